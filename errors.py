"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

Authentication failures share one status (401) but keep distinct error codes
so callers can tell a rejected one-time code from a rejected token. Nothing in
this module retries; the caller decides whether to re-prompt.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password. Same message for both causes."""

    error_code = "invalid_credentials"

    def __init__(self, message: str = "invalid email or password") -> None:
        super().__init__(message)


class InvalidTotpCodeError(AuthenticationError):
    error_code = "invalid_totp_code"

    def __init__(self, message: str = "invalid one-time code") -> None:
        super().__init__(message)


class MalformedOrForgedTokenError(AuthenticationError):
    """Token failed signature, structure, expiry or type-tag checks.

    ``reason`` is kept for logs only and never sent to the client.
    """

    error_code = "invalid_token"

    def __init__(self, reason: str, message: str = "invalid or expired token") -> None:
        super().__init__(message)
        self.reason = reason


class AlreadyEnrolledError(AppError):
    status_code = 400
    error_code = "already_enrolled"

    def __init__(
        self, message: str = "two-factor authentication is already enabled"
    ) -> None:
        super().__init__(message)


class DataIntegrityError(AppError):
    """Stored state contradicts the flow that was entered.

    Surfaces as a 500 and is never downgraded to an authentication failure.
    """

    status_code = 500
    error_code = "data_integrity_fault"


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        missing = [
            ".".join(str(part) for part in err["loc"] if part != "body")
            for err in exc.errors()
        ]
        err = ValidationError("invalid request body", details={"fields": missing})
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # sentry_sdk, when initialised, captures the exception before this runs
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=500,
            content={
                "error": "An internal server error occurred.",
                "code": "internal_error",
            },
            headers={"X-Request-ID": request_id} if request_id else None,
        )
