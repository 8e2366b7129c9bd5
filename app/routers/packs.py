from fastapi import APIRouter

from app.services import packs as packs_service

router = APIRouter()


@router.get("")
async def packs_list():
    """Active packs, cheapest first."""
    packs = await packs_service.list_active_packs()
    return {
        "packs": [
            {
                "id": str(p.id),
                "name": p.name,
                "amount": p.amount,
                "price": p.price,
                "currency": p.currency,
            }
            for p in packs
        ]
    }
