"""Order reads for customers and admins."""

from beanie import PydanticObjectId

from app.core.exceptions import ForbiddenError, NotFoundError
from app.models.code_record import CodeRecord
from app.models.order import Order, OrderStatus


async def get_order(order_id: PydanticObjectId) -> Order:
    order = await Order.get(order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


async def get_order_for_user(user_id: PydanticObjectId, order_id: PydanticObjectId) -> Order:
    order = await get_order(order_id)
    if order.user_id != user_id:
        raise ForbiddenError("Not your order")
    return order


async def list_user_orders(user_id: PydanticObjectId, limit: int, offset: int) -> list[Order]:
    return (
        await Order.find(Order.user_id == user_id)
        .sort(-Order.created_at)
        .skip(offset)
        .limit(limit)
        .to_list()
    )


async def list_orders(status: OrderStatus | None, limit: int, offset: int) -> list[Order]:
    query = Order.find(Order.status == status) if status else Order.find_all()
    return await query.sort(-Order.created_at).skip(offset).limit(limit).to_list()


async def get_allocated_code(order_id: PydanticObjectId) -> CodeRecord | None:
    return await CodeRecord.find_one(CodeRecord.allocated_order_id == order_id)
