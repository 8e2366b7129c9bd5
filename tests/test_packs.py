"""Pack catalogue and inventory service."""

import pytest
from beanie import PydanticObjectId

from app.core.exceptions import NotFoundError
from app.models.code_record import CodeRecord
from app.models.pack import Pack
from app.services import packs as packs_service

pytestmark = pytest.mark.asyncio


async def test_seed_is_idempotent(db):
    await packs_service.seed_packs()
    await packs_service.seed_packs()

    packs = await packs_service.list_active_packs()
    assert [p.name for p in packs] == [
        "110 Diamants", "231 Diamants", "583 Diamants", "1188 Diamants", "2200 Diamants",
    ]
    assert await Pack.find_all().count() == 5
    assert packs[0].price == 800
    assert packs[0].currency == "XOF"


async def test_inventory_stats(user, pack, stock, make_order, cipher):
    from app.services.allocator import CodeAllocator
    await stock(pack, ["A", "B", "C"])
    await CodeAllocator(cipher).allocate_for_order(await make_order(user, pack))

    assert await packs_service.inventory_stats(pack.id) == {"available": 2, "used": 1, "invalid": 0}


async def test_import_codes_stores_ciphertext_only(pack, stock, cipher):
    result = await stock(pack, ["  CODE-1 ", "CODE-2", "\n"])

    assert result == {"imported": 2, "duplicates": 0}
    records = await CodeRecord.find(CodeRecord.pack_id == pack.id).to_list()
    assert sorted(cipher.decrypt(r.code_encrypted) for r in records) == ["CODE-1", "CODE-2"]
    assert all(r.used_at is None for r in records)


async def test_import_into_unknown_pack(db, cipher):
    with pytest.raises(NotFoundError):
        await packs_service.import_codes(PydanticObjectId(), ["A"], cipher)


async def test_import_race_counts_late_duplicates(pack, stock, cipher, monkeypatch):
    """A code stored by another import after the pre-check is counted, not a 500."""
    await stock(pack, ["CODE-1"])

    async def _nothing_stored(fingerprints):
        return set()

    monkeypatch.setattr(packs_service, "_stored_fingerprints", _nothing_stored)
    result = await packs_service.import_codes(pack.id, ["CODE-1", "CODE-2"], cipher)

    assert result == {"imported": 1, "duplicates": 1}
    records = await CodeRecord.find(CodeRecord.pack_id == pack.id).to_list()
    assert sorted(cipher.decrypt(r.code_encrypted) for r in records) == ["CODE-1", "CODE-2"]
