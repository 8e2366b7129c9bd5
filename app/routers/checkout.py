from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.core.config import get_settings
from app.core.exceptions import BadRequestError
from app.deps import get_checkout_gateway, get_current_user, parse_object_id
from app.models.user import User
from app.services import checkout as checkout_service
from app.services.payments import PaymentGateway

router = APIRouter()


class CheckoutRequest(BaseModel):
    pack_id: str
    quantity: int = Field(default=1, ge=1)


@router.post("")
async def checkout(
    body: CheckoutRequest,
    user: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_checkout_gateway),
):
    """Create a pending order for a pack; frontend confirms payment with client_secret."""
    max_quantity = get_settings().checkout_max_quantity
    if body.quantity > max_quantity:
        raise BadRequestError(f"Quantity must be at most {max_quantity}", details={"max_quantity": max_quantity})
    pack_id = parse_object_id(body.pack_id, "Pack")
    return await checkout_service.create_checkout(user, pack_id, body.quantity, gateway)
