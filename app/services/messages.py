"""Per-user message inbox: order confirmations and admin notifications."""

from datetime import datetime

from beanie import PydanticObjectId
from beanie.operators import In, Set

from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.logging import get_logger
from app.models.order import Order
from app.models.user import User
from app.models.user_message import MessageType, UserMessage

log = get_logger(__name__)


async def send_message(
    user_id: PydanticObjectId,
    title: str,
    content: str,
    type: MessageType = "notification",
    order_id: PydanticObjectId | None = None,
) -> UserMessage:
    message = UserMessage(user_id=user_id, type=type, title=title, content=content, order_id=order_id)
    await message.insert()
    log.info("message_sent", message_id=str(message.id), user_id=str(user_id), type=type)
    return message


async def send_notification(user_id: PydanticObjectId, title: str, content: str) -> UserMessage:
    return await send_message(user_id, title, content)


async def send_order_confirmation(order: Order) -> UserMessage:
    """Tell the buyer their code is ready. The code itself is only shown on the order page."""
    pack_name = order.items[0].pack_name if order.items else "your pack"
    return await send_message(
        order.user_id,
        "Order delivered",
        f"Your code for {pack_name} is ready. Open order {order.id} to reveal it.",
        type="order",
        order_id=order.id,
    )


async def broadcast_notification(
    title: str,
    content: str,
    user_ids: list[PydanticObjectId] | None = None,
) -> int:
    """Notify the given users, or every user when user_ids is None. Returns how many were sent."""
    query = User.find(In(User.id, user_ids)) if user_ids is not None else User.find_all()
    users = await query.to_list()
    if users:
        await UserMessage.insert_many(
            [UserMessage(user_id=u.id, title=title, content=content) for u in users]
        )
    log.info("message_broadcast", recipients=len(users))
    return len(users)


async def list_user_messages(user_id: PydanticObjectId, limit: int, offset: int) -> list[UserMessage]:
    return (
        await UserMessage.find(UserMessage.user_id == user_id)
        .sort(-UserMessage.created_at)
        .skip(offset)
        .limit(limit)
        .to_list()
    )


async def unread_count(user_id: PydanticObjectId) -> int:
    return await UserMessage.find(
        UserMessage.user_id == user_id,
        UserMessage.read_status == False,  # noqa: E712
    ).count()


async def get_message_for_user(user_id: PydanticObjectId, message_id: PydanticObjectId) -> UserMessage:
    message = await UserMessage.get(message_id)
    if not message:
        raise NotFoundError("Message not found")
    if message.user_id != user_id:
        raise ForbiddenError("Not your message")
    return message


async def set_read_status(user_id: PydanticObjectId, message_id: PydanticObjectId, read: bool) -> UserMessage:
    message = await get_message_for_user(user_id, message_id)
    await message.set({UserMessage.read_status: read, UserMessage.updated_at: datetime.utcnow()})
    return message


async def mark_all_read(user_id: PydanticObjectId) -> int:
    result = await UserMessage.find(
        UserMessage.user_id == user_id,
        UserMessage.read_status == False,  # noqa: E712
    ).update(Set({UserMessage.read_status: True, UserMessage.updated_at: datetime.utcnow()}))
    return result.modified_count if result else 0


async def delete_message(user_id: PydanticObjectId, message_id: PydanticObjectId) -> None:
    message = await get_message_for_user(user_id, message_id)
    await message.delete()
