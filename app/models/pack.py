from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class Pack(Document):
    """Purchasable denomination of in-game currency; its codes live in `codes`."""
    name: Indexed(str, unique=True)
    amount: int  # units of in-game currency, e.g. 110 diamonds
    price: int  # minor units of currency
    currency: str = "XOF"
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "packs"
        indexes = [[("is_active", 1), ("amount", 1)]]
