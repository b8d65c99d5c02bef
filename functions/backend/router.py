"""
Request router for the cloud function.

Matches the event's path and method exactly against a fixed route table and
turns every outcome, including errors, into a response envelope.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Callable, Optional, Type, TypeVar
from uuid import uuid4

from dacite import Config, DaciteError, from_dict

from backend.dependencies import Services
from backend.errors import (
    ApiError,
    AuthError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from shared.api import (
    CreateUserRequest,
    CustomerRequest,
    LoginRequest,
    PublicUser,
    SignupRequest,
)
from shared.json_utils import convert_keys

logger = logging.getLogger(__name__)

T = TypeVar("T")

COST_REPORT_MESSAGE = "Cost data retrieved and saved successfully"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_scheduled_event(event: dict) -> bool:
    """True for invocations coming from the daily EventBridge rule."""
    return event.get("source") == "aws.events" and "path" not in event


def parse_body(event: dict, data_class: Type[T]) -> T:
    raw = event.get("body")
    if raw and event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ValidationError("Malformed request body") from exc
    if not raw:
        data = {}
    elif isinstance(raw, dict):
        data = raw
    else:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError("Malformed JSON body") from exc
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return from_dict(data_class=data_class, data=data, config=Config(check_types=True))
    except DaciteError as exc:
        raise ValidationError(f"Invalid request body: {exc}") from exc


def cors_headers(origin: str) -> dict:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type,Authorization",
        "Access-Control-Allow-Credentials": "true",
    }


def server_error(origin: str) -> dict:
    """The generic 500 envelope, usable before a router exists."""
    return {
        "statusCode": 500,
        "headers": cors_headers(origin),
        "body": json.dumps({"error": ApiError.message}),
    }


def _require(**fields: Optional[str]) -> None:
    missing = [name for name, value in fields.items() if not value]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


class ApiRouter:
    """Dispatches handler events to one of the fixed routes."""

    def __init__(self, services: Services, clock: Callable[[], datetime] = _utc_now):
        self.services = services
        self.settings = services.settings
        self.clock = clock
        self.routes = {
            ("/api/health", "GET"): self.health,
            ("/api/auth/signup", "POST"): self.signup,
            ("/api/auth/login", "POST"): self.login,
            ("/api/customers", "POST"): self.create_customer,
            ("/api/users", "POST"): self.create_user,
            ("/api/costs", "GET"): self.fetch_costs,
        }

    @property
    def headers(self) -> dict:
        return cors_headers(self.settings.cors_allowed_origin)

    def respond(self, status_code: int, body) -> dict:
        return {
            "statusCode": status_code,
            "headers": self.headers,
            "body": body if isinstance(body, str) else json.dumps(body, default=str),
        }

    def handle(self, event: dict) -> dict:
        try:
            if is_scheduled_event(event):
                logger.info("Scheduled invocation: collecting cost report")
                data = self.services.cost_reports.collect(None, now=self.clock())
                return self.respond(200, {"message": COST_REPORT_MESSAGE, "data": data})

            path = event.get("path")
            method = event.get("method") or event.get("httpMethod")
            logger.info("%s %s", method, path)

            # CORS preflight for any path.
            if method == "OPTIONS":
                return self.respond(200, "")

            route = self.routes.get((path, method))
            if route is None:
                raise NotFoundError()
            status_code, body = route(event)
            return self.respond(status_code, body)
        except ApiError as exc:
            if exc.status_code >= 500:
                logger.exception("Request failed: %s", exc.detail)
            else:
                logger.info("Request rejected (%d): %s", exc.status_code, exc.detail)
            return self.respond(exc.status_code, {"error": exc.message})
        except Exception:
            logger.exception("Unhandled error")
            return server_error(self.settings.cors_allowed_origin)

    def _public_user(self, user_id: str, username: str, fullname: str) -> dict:
        user = PublicUser(user_id=user_id, username=username, fullname=fullname)
        return convert_keys(asdict(user), "snake_to_camel")

    def _token_for(self, user_id: str, username: str) -> str:
        return self.services.credentials.sign_token(
            {"userId": user_id, "username": username}, now=self.clock()
        )

    def health(self, event: dict):
        return 200, {"status": "healthy", "timestamp": _iso(self.clock())}

    def signup(self, event: dict):
        request = parse_body(event, SignupRequest)
        _require(
            username=request.username,
            password=request.password,
            fullname=request.fullname,
        )
        table = self.settings.users_table
        if self.services.store.scan_eq(table, "username", request.username):
            raise ConflictError(f"username {request.username} already exists")

        hashed_password = self.services.credentials.hash_password(request.password)
        user_id = str(uuid4())
        self.services.store.put_item(
            table,
            {
                "userId": user_id,
                "username": request.username,
                "password": hashed_password,
                "fullname": request.fullname,
                "createdAt": _iso(self.clock()),
            },
        )
        return 200, {
            "token": self._token_for(user_id, request.username),
            "user": self._public_user(user_id, request.username, request.fullname),
        }

    def login(self, event: dict):
        request = parse_body(event, LoginRequest)
        _require(username=request.username, password=request.password)

        matches = self.services.store.scan_eq(
            self.settings.users_table, "username", request.username
        )
        user = matches[0] if matches else None
        if user is None or not self.services.credentials.verify_password(
            request.password, user.get("password")
        ):
            raise AuthError(f"login failed for {request.username}")

        return 200, {
            "token": self._token_for(user["userId"], request.username),
            "user": self._public_user(
                user["userId"], user["username"], user.get("fullname")
            ),
        }

    def create_customer(self, event: dict):
        request = parse_body(event, CustomerRequest)
        _require(name=request.name)
        customer_id = str(uuid4())
        self.services.store.put_item(
            self.settings.customers_table,
            {
                "customerId": customer_id,
                "name": request.name,
                "createdAt": _iso(self.clock()),
            },
        )
        return 200, {
            "message": "Customer registered successfully",
            "customerId": customer_id,
        }

    def create_user(self, event: dict):
        request = parse_body(event, CreateUserRequest)
        if not request.email and not request.name:
            raise ValidationError("Missing required fields: email or name")
        user_id = str(uuid4())
        item = {"userId": user_id, "createdAt": _iso(self.clock())}
        if request.email:
            item["email"] = request.email
        if request.name:
            item["name"] = request.name
        self.services.store.put_item(self.settings.users_table, item)
        return 201, {"message": "User created successfully", "userId": user_id}

    def fetch_costs(self, event: dict):
        params = event.get("queryStringParameters") or {}
        user_id = params.get("userId") or None
        data = self.services.cost_reports.collect(user_id, now=self.clock())
        return 200, {"message": COST_REPORT_MESSAGE, "data": data}
