from datetime import datetime
from typing import Any

from beanie import Document
from pydantic import Field


class AuditLog(Document):
    """Append-only trail: checkout_created, payment_succeeded, code_allocated, order_fulfilled, codes_imported."""
    user_id: str | None = None  # None for system events (webhooks, reconciliation)
    event_type: str
    entity_type: str  # order | payment | code | pack
    entity_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "audit_logs"
        indexes = [
            [("entity_type", 1), ("entity_id", 1)],
            [("event_type", 1), ("created_at", -1)],
        ]
