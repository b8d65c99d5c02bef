"""
Password hashing and bearer-token issuance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from backend.config import Settings
from backend.errors import AuthError, ValidationError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class CredentialAdapter:
    """Stateless wrapper around bcrypt and JWT signing."""

    secret: str
    algorithm: str = "HS256"
    expires_minutes: int = 24 * 60
    rounds: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialAdapter":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expires_minutes=settings.jwt_expires_minutes,
            rounds=settings.bcrypt_rounds,
        )

    def hash_password(self, password: str) -> str:
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValidationError("password is too long")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode(
            "utf-8"
        )

    def verify_password(self, password: str, password_hash: str | None) -> bool:
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(
                password.encode("utf-8"), password_hash.encode("utf-8")
            )
        except ValueError:
            logger.warning("Stored password hash is malformed or password too long")
            return False

    def sign_token(self, claims: dict, now: datetime | None = None) -> str:
        """
        Issue a bearer token for the given claims.

        Callers pass at least ``userId`` and ``username``. ``iat`` and ``exp``
        are always set here.
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = dict(claims)
        payload["iat"] = issued_at
        payload["exp"] = issued_at + timedelta(minutes=self.expires_minutes)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_token(self, token: str) -> dict:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as exc:
            raise AuthError() from exc
