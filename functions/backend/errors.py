"""
Error kinds raised by the backend.

The router is the only place that turns these into HTTP responses.
"""

from __future__ import annotations


class ApiError(Exception):
    """Base error carrying the status code and the message shown to callers."""

    status_code = 500
    message = "Internal Server Error"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.message)
        self.detail = detail or self.message


class ValidationError(ApiError):
    status_code = 400
    message = "Bad Request"

    def __init__(self, detail: str | None = None):
        super().__init__(detail)
        # Validation details are safe to show to the caller.
        self.message = self.detail


class AuthError(ApiError):
    # The message never says whether the username or the password was wrong.
    status_code = 401
    message = "Invalid credentials"


class NotFoundError(ApiError):
    status_code = 404
    message = "Not Found"


class ConflictError(ApiError):
    status_code = 409
    message = "Username already taken"


class StorageError(ApiError):
    status_code = 500
    message = "Internal Server Error"


class UpstreamError(ApiError):
    status_code = 502
    message = "Upstream service unavailable"
