"""Shared FastAPI dependencies."""

from beanie import PydanticObjectId
from bson.errors import InvalidId
from fastapi import Request

from app.core.config import get_settings
from app.core.encryption import CodeCipher, get_cipher
from app.core.exceptions import ForbiddenError, NotFoundError, UnauthorizedError
from app.core.security import load_session_cookie
from app.models.user import User
from app.services.fulfillment import OrderFulfillmentService, build_fulfillment_service
from app.services.payments import PaymentGateway, get_gateway

SESSION_COOKIE_NAME = "nexyshop_session"


async def get_current_user(request: Request) -> User:
    """Dependency: load session from cookie and return User."""
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if not cookie:
        raise UnauthorizedError("Not authenticated")
    payload = load_session_cookie(cookie)
    if not payload:
        raise UnauthorizedError("Invalid or expired session")
    user_id = payload.get("user_id")
    if not user_id:
        raise UnauthorizedError("Invalid session")
    try:
        user = await User.get(PydanticObjectId(user_id))
    except InvalidId:
        raise UnauthorizedError("Invalid session")
    if not user:
        raise UnauthorizedError("User not found")
    if payload.get("session_version") != user.session_version:
        raise UnauthorizedError("Session invalidated")
    return user


async def require_admin(request: Request) -> User:
    """Dependency: require current user to have role admin."""
    user = await get_current_user(request)
    if getattr(user, "role", "user") != "admin":
        raise ForbiddenError("Admin only")
    return user


def parse_object_id(value: str, what: str = "Resource") -> PydanticObjectId:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{what} not found")


def get_code_cipher() -> CodeCipher:
    return get_cipher()


def get_fulfillment_service() -> OrderFulfillmentService:
    return build_fulfillment_service()


def get_checkout_gateway() -> PaymentGateway:
    return get_gateway(get_settings().payment_provider)


def get_webhook_gateway(provider: str) -> PaymentGateway:
    """Resolved from the {provider} path segment."""
    return get_gateway(provider)
