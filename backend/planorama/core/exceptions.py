"""
Domain error taxonomy and the FastAPI handlers that shape it into JSON.

Every error body has the same shape:
    {"error": "<human readable message>", "code": "<ERROR_CODE>", ...extra}

Services raise these exceptions; routes never build error responses by hand.
"""

from enum import Enum
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from planorama.core.logging import get_logger

logger = get_logger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    ALREADY_RESPONDED = "ALREADY_RESPONDED"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    RATE_LIMITED = "RATE_LIMITED"
    DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code.value, **jsonable_encoder(self.extra)}


class ValidationFailedError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.VALIDATION_ERROR
    default_message = "Validation error"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = ErrorCode.UNAUTHORIZED
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = ErrorCode.FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.NOT_FOUND
    default_message = "Not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = ErrorCode.CONFLICT
    default_message = "Conflict"


class AlreadyRespondedError(AppError):
    """A token-path RSVP already exists; carries the existing response."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.ALREADY_RESPONDED
    default_message = "You have already responded to this invitation"

    def __init__(self, rsvp: dict):
        super().__init__(rsvp=rsvp)
        self.rsvp = rsvp


class CapacityExceededError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.CAPACITY_EXCEEDED

    def __init__(self, remaining_spots: int):
        noun = "spot" if remaining_spots == 1 else "spots"
        super().__init__(
            f"Event is full. Only {remaining_spots} {noun} remaining.",
            remaining_spots=remaining_spots,
        )
        self.remaining_spots = remaining_spots


class RateLimitedError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = ErrorCode.RATE_LIMITED
    default_message = "Too many requests, please try again later"


class DependencyFailureError(AppError):
    """Database or email outage. The message never leaks internal details."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = ErrorCode.DEPENDENCY_FAILURE
    default_message = "Internal server error"


class DeliveryError(DependencyFailureError):
    default_message = "Failed to send email"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_dependency_failure", error=str(exc), code=exc.code.value)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation error",
            "code": ErrorCode.VALIDATION_ERROR.value,
            "details": jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "code": ErrorCode.INTERNAL_ERROR.value},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
