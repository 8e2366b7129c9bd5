"""Pack catalogue and code inventory."""

from datetime import datetime
from typing import Any, Iterable

from beanie import PydanticObjectId
from beanie.operators import In
from pymongo.errors import BulkWriteError

from app.core.audit import log_event
from app.core.encryption import CodeCipher, fingerprint
from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging import get_logger
from app.models.code_record import CodeRecord
from app.models.pack import Pack

log = get_logger(__name__)

PACK_CATALOGUE = [
    {"name": "110 Diamants", "amount": 110, "price": 800, "currency": "XOF"},
    {"name": "231 Diamants", "amount": 231, "price": 1500, "currency": "XOF"},
    {"name": "583 Diamants", "amount": 583, "price": 3600, "currency": "XOF"},
    {"name": "1188 Diamants", "amount": 1188, "price": 7000, "currency": "XOF"},
    {"name": "2200 Diamants", "amount": 2200, "price": 12700, "currency": "XOF"},
]

EDITABLE_FIELDS = ("name", "price", "currency", "is_active")
DUPLICATE_KEY = 11000


async def list_active_packs() -> list[Pack]:
    return await Pack.find(Pack.is_active == True).sort(+Pack.amount).to_list()  # noqa: E712


async def list_packs() -> list[Pack]:
    return await Pack.find_all().sort(+Pack.amount).to_list()


async def get_pack(pack_id: PydanticObjectId) -> Pack:
    pack = await Pack.get(pack_id)
    if not pack:
        raise NotFoundError("Pack not found")
    return pack


async def create_pack(name: str, amount: int, price: int, currency: str = "XOF", is_active: bool = True) -> Pack:
    if await Pack.find_one(Pack.name == name):
        raise ConflictError("Pack name already exists", details={"name": name})
    pack = Pack(name=name, amount=amount, price=price, currency=currency, is_active=is_active)
    await pack.insert()
    log.info("pack_created", pack_id=str(pack.id), name=name)
    return pack


async def update_pack(pack_id: PydanticObjectId, changes: dict[str, Any]) -> Pack:
    """Admin edit. Existing orders keep the name and price copied into their items."""
    pack = await get_pack(pack_id)
    updates = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
    if "name" in updates and updates["name"] != pack.name and await Pack.find_one(Pack.name == updates["name"]):
        raise ConflictError("Pack name already exists", details={"name": updates["name"]})
    if updates:
        updates["updated_at"] = datetime.utcnow()
        await pack.set(updates)
    return pack


async def import_codes(
    pack_id: PydanticObjectId,
    codes: Iterable[str],
    cipher: CodeCipher,
    user_id: str | None = None,
) -> dict[str, int]:
    """Encrypt and store new codes for a pack; blanks are dropped, duplicates skipped."""
    pack = await get_pack(pack_id)
    batch: dict[str, str] = {}
    duplicates = 0
    for raw in codes:
        code = raw.strip()
        if not code:
            continue
        fp = fingerprint(code)
        if fp in batch:
            duplicates += 1
            continue
        batch[fp] = code
    for fp in await _stored_fingerprints(list(batch)):
        batch.pop(fp, None)
        duplicates += 1
    records = [
        CodeRecord(pack_id=pack.id, code_encrypted=cipher.encrypt(code), code_fingerprint=fp)
        for fp, code in batch.items()
    ]
    imported = len(records)
    if records:
        # Unordered: a concurrent import of the same code only loses its own rows.
        try:
            await CodeRecord.insert_many(records, ordered=False)
        except BulkWriteError as e:
            errors = e.details.get("writeErrors", [])
            if any(err.get("code") != DUPLICATE_KEY for err in errors):
                raise
            imported -= len(errors)
            duplicates += len(errors)
    log.info("codes_imported", pack_id=str(pack.id), imported=imported, duplicates=duplicates)
    await log_event(user_id, "codes_imported", "pack", str(pack.id), {"imported": imported, "duplicates": duplicates})
    return {"imported": imported, "duplicates": duplicates}


async def _stored_fingerprints(fingerprints: list[str]) -> set[str]:
    if not fingerprints:
        return set()
    existing = await CodeRecord.find(In(CodeRecord.code_fingerprint, fingerprints)).to_list()
    return {record.code_fingerprint for record in existing}


async def count_available(pack_id: PydanticObjectId) -> int:
    return await CodeRecord.find(
        CodeRecord.pack_id == pack_id,
        CodeRecord.used_at == None,  # noqa: E711
        CodeRecord.invalid_at == None,  # noqa: E711
    ).count()


async def inventory_stats(pack_id: PydanticObjectId) -> dict[str, int]:
    available = await count_available(pack_id)
    used = await CodeRecord.find(CodeRecord.pack_id == pack_id, CodeRecord.used_at != None).count()  # noqa: E711
    invalid = await CodeRecord.find(CodeRecord.pack_id == pack_id, CodeRecord.invalid_at != None).count()  # noqa: E711
    return {"available": available, "used": used, "invalid": invalid}


async def seed_packs() -> list[Pack]:
    """Upsert the default catalogue by name."""
    out = []
    for data in PACK_CATALOGUE:
        pack = await Pack.find_one(Pack.name == data["name"])
        if pack:
            await pack.set({**data, "updated_at": datetime.utcnow()})
        else:
            pack = Pack(**data)
            await pack.insert()
        out.append(pack)
    return out
