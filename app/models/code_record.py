from datetime import datetime

from beanie import Document, Indexed, PydanticObjectId
from pydantic import Field


class CodeRecord(Document):
    """One single-use redemption code. Available while used_at and invalid_at are None; claims are final."""
    pack_id: PydanticObjectId
    code_encrypted: str
    code_fingerprint: Indexed(str, unique=True)
    used_at: datetime | None = None
    # Set when the stored ciphertext cannot be decrypted; never claimed again.
    invalid_at: datetime | None = None
    allocated_to_user_id: PydanticObjectId | None = None
    allocated_order_id: PydanticObjectId | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "codes"
        indexes = [
            [("pack_id", 1), ("used_at", 1), ("invalid_at", 1)],
            [("allocated_order_id", 1)],
        ]
