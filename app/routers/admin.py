from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from app.core.encryption import CodeCipher
from app.core.exceptions import ConflictError
from app.core.pagination import paginate
from app.deps import get_code_cipher, get_fulfillment_service, parse_object_id, require_admin
from app.models.order import OrderStatus
from app.models.pack import Pack
from app.models.user import User
from app.routers.orders import order_out
from app.services import messages as messages_service
from app.services import orders as orders_service
from app.services import packs as packs_service
from app.services.fulfillment import OrderFulfillmentService

router = APIRouter()


class PackCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    amount: int = Field(gt=0)
    price: int = Field(gt=0)
    currency: str = "XOF"
    is_active: bool = True


class PackUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    price: int | None = Field(default=None, gt=0)
    currency: str | None = None
    is_active: bool | None = None


class CodesImportRequest(BaseModel):
    codes: list[str] = Field(min_length=1)


class BroadcastRequest(BaseModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    user_ids: list[str] | None = None


async def _pack_out(pack: Pack) -> dict:
    return {
        "id": str(pack.id),
        "name": pack.name,
        "amount": pack.amount,
        "price": pack.price,
        "currency": pack.currency,
        "is_active": pack.is_active,
        "inventory": await packs_service.inventory_stats(pack.id),
    }


@router.get("/packs")
async def admin_packs_list(user: User = Depends(require_admin)):
    """Admin: all packs with available/used code counts."""
    packs = await packs_service.list_packs()
    return {"packs": [await _pack_out(p) for p in packs]}


@router.post("/packs")
async def admin_packs_create(body: PackCreateRequest, user: User = Depends(require_admin)):
    pack = await packs_service.create_pack(**body.model_dump())
    return await _pack_out(pack)


@router.patch("/packs/{pack_id}")
async def admin_packs_update(pack_id: str, body: PackUpdateRequest, user: User = Depends(require_admin)):
    pack = await packs_service.update_pack(parse_object_id(pack_id, "Pack"), body.model_dump(exclude_unset=True))
    return await _pack_out(pack)


@router.post("/packs/{pack_id}/codes")
async def admin_codes_import(
    pack_id: str,
    body: CodesImportRequest,
    user: User = Depends(require_admin),
    cipher: CodeCipher = Depends(get_code_cipher),
):
    """Admin: add plaintext codes to a pack's inventory (stored encrypted)."""
    return await packs_service.import_codes(parse_object_id(pack_id, "Pack"), body.codes, cipher, user_id=str(user.id))


@router.get("/orders")
async def admin_orders_list(
    user: User = Depends(require_admin),
    status: OrderStatus | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """Admin: orders, optionally by status (e.g. paid = awaiting a code)."""
    limit, offset = paginate(limit, offset)
    orders = await orders_service.list_orders(status, limit, offset)
    return {
        "orders": [{**order_out(o), "user_id": str(o.user_id)} for o in orders],
        "limit": limit,
        "offset": offset,
    }


@router.post("/orders/{order_id}/fulfill")
async def admin_order_fulfill(
    order_id: str,
    user: User = Depends(require_admin),
    fulfillment: OrderFulfillmentService = Depends(get_fulfillment_service),
):
    """Admin: retry fulfillment of a paid order after restocking. 409 if still out of codes."""
    order = await orders_service.get_order(parse_object_id(order_id, "Order"))
    if order.status == OrderStatus.PENDING:
        raise ConflictError("Order is not paid")
    await fulfillment.fulfill(order)
    code = await orders_service.get_allocated_code(order.id)
    return order_out(order, code)


@router.post("/messages/broadcast")
async def admin_messages_broadcast(body: BroadcastRequest, user: User = Depends(require_admin)):
    """Admin: notify selected users, or everyone when user_ids is omitted."""
    user_ids = [parse_object_id(u, "User") for u in body.user_ids] if body.user_ids is not None else None
    sent = await messages_service.broadcast_notification(body.title, body.content, user_ids)
    return {"sent": sent}
