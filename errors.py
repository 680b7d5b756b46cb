"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

Malformed request bodies are 400s with the offending field named.
Authentication failures (credentials, tokens, codes) are 401s.
Backend and transport failures are 503s so clients know they may retry.
Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


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
    """Email/password mismatch. Never reveals whether the email exists."""

    error_code = "invalid_credentials"


class InvalidTokenError(AuthenticationError):
    """Pending, password-change, access or refresh token missing, malformed or expired."""

    error_code = "invalid_token"


class InvalidCodeError(AuthenticationError):
    """Verification code mismatch, or no live code for the user."""

    error_code = "invalid_code"


class AttemptsExhaustedError(InvalidCodeError):
    """The wrong-code cap was hit; the code is burned and a new login is required."""

    error_code = "attempts_exhausted"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class MisconfiguredServiceError(AppError):
    """A collaborator is missing required configuration. Fatal for the request only."""

    status_code = 500
    error_code = "misconfigured_service"


class ServiceUnavailableError(AppError):
    status_code = 503
    error_code = "service_unavailable"


class TransportError(ServiceUnavailableError):
    """SMS provider or code store unreachable after bounded retries."""

    error_code = "transport_failure"


class PersistenceError(ServiceUnavailableError):
    error_code = "persistence_failure"


def _from_request_validation(exc: RequestValidationError) -> ValidationError:
    """Collapse pydantic request errors into one ValidationError.

    ``field`` names the first offending field; ``details`` lists every error.
    """
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    first = errors[0] if errors else {"field": None, "message": "Invalid request"}
    return ValidationError(
        first["message"], field=first["field"] or None, details=errors
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = _from_request_validation(exc)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
