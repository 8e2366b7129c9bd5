from fastapi import APIRouter, Depends, Query

from app.core.pagination import paginate
from app.deps import get_current_user, get_fulfillment_service, parse_object_id
from app.models.code_record import CodeRecord
from app.models.order import Order
from app.models.user import User
from app.services import orders as orders_service
from app.services.fulfillment import OrderFulfillmentService

router = APIRouter()


def order_out(order: Order, code: CodeRecord | None = None) -> dict:
    """Client view of an order; the sealed code never leaves the server."""
    return {
        "id": str(order.id),
        "status": order.status.value,
        "total_amount": order.total_amount,
        "currency": order.currency,
        "provider": order.provider,
        "items": [
            {
                "pack_id": str(i.pack_id),
                "pack_name": i.pack_name,
                "quantity": i.quantity,
                "unit_price": i.unit_price,
                "total_price": i.total_price,
            }
            for i in order.items
        ],
        "code": (
            {"id": str(code.id), "used_at": code.used_at.isoformat() if code.used_at else None}
            if code
            else None
        ),
        "created_at": order.created_at.isoformat(),
        "updated_at": order.updated_at.isoformat(),
    }


@router.get("")
async def orders_list(
    user: User = Depends(get_current_user),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """Return orders of the current user (newest first)."""
    limit, offset = paginate(limit, offset)
    orders = await orders_service.list_user_orders(user.id, limit, offset)
    return {"orders": [order_out(o) for o in orders], "limit": limit, "offset": offset}


@router.get("/{order_id}")
async def order_get(
    order_id: str,
    user: User = Depends(get_current_user),
    fulfillment: OrderFulfillmentService = Depends(get_fulfillment_service),
):
    """Owner-only. Includes the plaintext code once the order is fulfilled."""
    order = await orders_service.get_order_for_user(user.id, parse_object_id(order_id, "Order"))
    code = await orders_service.get_allocated_code(order.id)
    return {
        "order": order_out(order, code),
        "code": fulfillment.reveal_code(order),
    }
