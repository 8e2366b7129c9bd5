from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse


class AppError(Exception):
    """Base application error with consistent schema."""

    def __init__(
        self,
        message: str,
        code: str = "ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, code="UNAUTHORIZED", status_code=status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, code="FORBIDDEN", status_code=status.HTTP_403_FORBIDDEN)


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND", status_code=status.HTTP_404_NOT_FOUND)


class ConflictError(AppError):
    def __init__(self, message: str = "Conflict", details: dict[str, Any] | None = None):
        super().__init__(message, code="CONFLICT", status_code=status.HTTP_409_CONFLICT, details=details)


class BadRequestError(AppError):
    def __init__(self, message: str = "Bad request", details: dict[str, Any] | None = None):
        super().__init__(message, code="BAD_REQUEST", status_code=status.HTTP_400_BAD_REQUEST, details=details)


# Fulfillment


class OrderHasNoItemsError(AppError):
    def __init__(self, order_id: str | None = None):
        super().__init__(
            "No order items",
            code="NO_ITEMS",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"order_id": order_id} if order_id else None,
        )


class CodeUnavailableError(AppError):
    """Inventory for the pack is exhausted."""

    def __init__(self, pack_id: str | None = None):
        super().__init__(
            "No code available",
            code="NO_CODE_AVAILABLE",
            status_code=status.HTTP_409_CONFLICT,
            details={"pack_id": pack_id} if pack_id else None,
        )


class CodeDecryptError(AppError):
    """A stored inventory code could not be decrypted with the configured keys."""

    def __init__(self, code_id: str | None = None):
        super().__init__(
            "Inventory code could not be decrypted",
            code="CODE_DECRYPT_FAILED",
            details={"code_id": code_id} if code_id else None,
        )


# Payments


class PaymentProviderError(AppError):
    def __init__(self, message: str = "Payment provider error", details: dict[str, Any] | None = None):
        super().__init__(message, code="PAYMENT_PROVIDER_ERROR", status_code=status.HTTP_502_BAD_GATEWAY, details=details)


class WebhookRejectedError(AppError):
    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message, code="WEBHOOK_REJECTED", status_code=status.HTTP_400_BAD_REQUEST)


def error_response(request: Request, exc: AppError) -> ORJSONResponse:
    body = {
        "error": {
            "message": exc.message,
            "code": exc.code,
            "details": exc.details,
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(status_code=exc.status_code, content=body)


async def app_exception_handler(request: Request, exc: AppError) -> ORJSONResponse:
    return error_response(request, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    body = {
        "error": {
            "message": "Validation error",
            "code": "VALIDATION_ERROR",
            "details": {"errors": exc.errors()},
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    from app.core.logging import get_logger
    get_logger(__name__).exception("unhandled_exception", exc_info=exc)
    body = {
        "error": {
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
            "details": {},
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body,
    )
