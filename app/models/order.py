from datetime import datetime
from enum import Enum

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FULFILLED = "fulfilled"


class OrderItem(BaseModel):
    """Embedded line: written with the order in one insert, never edited afterwards."""
    pack_id: PydanticObjectId
    pack_name: str
    quantity: int = 1
    unit_price: int
    total_price: int


class Order(Document):
    user_id: PydanticObjectId
    total_amount: int
    currency: str = "XOF"
    status: OrderStatus = OrderStatus.PENDING
    provider: str = "stripe"
    payment_intent_id: str | None = None
    # Fernet ciphertext; set once, together with status=fulfilled. Never serialized to clients.
    fulfilled_code: str | None = None
    items: list[OrderItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "orders"
        indexes = [
            [("user_id", 1), ("created_at", -1)],
            [("payment_intent_id", 1)],
            [("status", 1), ("updated_at", 1)],
        ]
