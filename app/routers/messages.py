from fastapi import APIRouter, Depends, Query

from app.core.pagination import paginate
from app.deps import get_current_user, parse_object_id
from app.models.user import User
from app.models.user_message import UserMessage
from app.services import messages as messages_service

router = APIRouter()


def message_out(message: UserMessage) -> dict:
    return {
        "id": str(message.id),
        "type": message.type,
        "title": message.title,
        "content": message.content,
        "order_id": str(message.order_id) if message.order_id else None,
        "read_status": message.read_status,
        "created_at": message.created_at.isoformat(),
    }


@router.get("")
async def messages_list(
    user: User = Depends(get_current_user),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """Return the current user's inbox (newest first)."""
    limit, offset = paginate(limit, offset)
    messages = await messages_service.list_user_messages(user.id, limit, offset)
    return {"messages": [message_out(m) for m in messages], "limit": limit, "offset": offset}


@router.get("/unread-count")
async def messages_unread_count(user: User = Depends(get_current_user)):
    return {"unread_count": await messages_service.unread_count(user.id)}


@router.put("/mark-all-read")
async def messages_mark_all_read(user: User = Depends(get_current_user)):
    return {"updated": await messages_service.mark_all_read(user.id)}


@router.put("/{message_id}/read")
async def message_mark_read(message_id: str, user: User = Depends(get_current_user)):
    message = await messages_service.set_read_status(user.id, parse_object_id(message_id, "Message"), True)
    return message_out(message)


@router.put("/{message_id}/unread")
async def message_mark_unread(message_id: str, user: User = Depends(get_current_user)):
    message = await messages_service.set_read_status(user.id, parse_object_id(message_id, "Message"), False)
    return message_out(message)


@router.delete("/{message_id}")
async def message_delete(message_id: str, user: User = Depends(get_current_user)):
    """Owner-only."""
    await messages_service.delete_message(user.id, parse_object_id(message_id, "Message"))
    return {"status": "ok"}
