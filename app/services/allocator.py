"""Exclusive allocation of one unused code to an order."""

from datetime import datetime

from beanie import UpdateResponse
from beanie.operators import Set

from app.core.audit import log_event
from app.core.config import get_settings
from app.core.encryption import CodeCipher, DecryptError
from app.core.exceptions import CodeDecryptError, CodeUnavailableError, OrderHasNoItemsError
from app.core.logging import get_logger
from app.models.code_record import CodeRecord
from app.models.order import Order
from app.services.packs import count_available

log = get_logger(__name__)


class CodeAllocator:
    def __init__(self, cipher: CodeCipher, low_inventory_threshold: int | None = None):
        self.cipher = cipher
        if low_inventory_threshold is None:
            low_inventory_threshold = get_settings().low_inventory_threshold
        self.low_inventory_threshold = low_inventory_threshold

    async def allocate_for_order(self, order: Order) -> str:
        """
        Claim one unused code of the order's pack and return it decrypted.

        The filter (unused, not invalid) and the claim are a single findOneAndUpdate, so
        concurrent callers on the same pack can never receive the same record.
        A code that cannot be decrypted is taken out of the pool for good and the call
        raises CodeDecryptError; the next call claims a different record.
        Raises OrderHasNoItemsError, CodeUnavailableError or CodeDecryptError; never retries.
        """
        if not order.items:
            raise OrderHasNoItemsError(str(order.id))
        pack_id = order.items[0].pack_id

        code = await CodeRecord.find_one(
            CodeRecord.pack_id == pack_id,
            CodeRecord.used_at == None,  # noqa: E711
            CodeRecord.invalid_at == None,  # noqa: E711
        ).update(
            Set({
                CodeRecord.used_at: datetime.utcnow(),
                CodeRecord.allocated_to_user_id: order.user_id,
                CodeRecord.allocated_order_id: order.id,
            }),
            response_type=UpdateResponse.NEW_DOCUMENT,
        )
        if code is None:
            log.error("code_unavailable", order_id=str(order.id), pack_id=str(pack_id))
            raise CodeUnavailableError(str(pack_id))

        try:
            plain = self.cipher.decrypt(code.code_encrypted)
        except DecryptError as e:
            await self._quarantine(code, order)
            log.error("code_decrypt_failed", code_id=str(code.id), order_id=str(order.id), pack_id=str(pack_id))
            await log_event(
                str(order.user_id),
                "code_quarantined",
                "code",
                str(code.id),
                {"order_id": str(order.id), "pack_id": str(pack_id)},
            )
            raise CodeDecryptError(str(code.id)) from e

        log.info("code_allocated", code_id=str(code.id), order_id=str(order.id), pack_id=str(pack_id))
        await log_event(
            str(order.user_id),
            "code_allocated",
            "code",
            str(code.id),
            {"order_id": str(order.id), "pack_id": str(pack_id)},
        )
        await self._warn_if_low(pack_id)
        return plain

    async def _quarantine(self, code: CodeRecord, order: Order) -> None:
        # Drop our claim and mark the record invalid so no later filter matches it.
        await CodeRecord.find_one(
            CodeRecord.id == code.id,
            CodeRecord.allocated_order_id == order.id,
        ).update(
            Set({
                CodeRecord.invalid_at: datetime.utcnow(),
                CodeRecord.used_at: None,
                CodeRecord.allocated_to_user_id: None,
                CodeRecord.allocated_order_id: None,
            })
        )

    async def _warn_if_low(self, pack_id) -> None:
        available = await count_available(pack_id)
        if available < self.low_inventory_threshold:
            log.warning("inventory_low", pack_id=str(pack_id), available=available)
