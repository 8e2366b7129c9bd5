from datetime import datetime
from typing import Any

from beanie import Document, PydanticObjectId
from pydantic import Field


class Payment(Document):
    """Provider transaction audit record. The Order, not this, drives fulfillment."""
    order_id: PydanticObjectId
    provider: str  # stripe | razorpay
    status: str = "pending"  # pending | succeeded | failed
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "payments"
        indexes = [[("order_id", 1), ("provider", 1)]]
