from datetime import datetime
from typing import Literal

from beanie import Document, PydanticObjectId
from pydantic import Field

MessageType = Literal["notification", "code", "order"]


class UserMessage(Document):
    """Inbox entry for one user. Never carries a plaintext code; order messages point at the order."""
    user_id: PydanticObjectId
    type: MessageType = "notification"
    title: str
    content: str
    order_id: PydanticObjectId | None = None
    read_status: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "user_messages"
        indexes = [
            [("user_id", 1), ("read_status", 1)],
            [("user_id", 1), ("created_at", -1)],
        ]
