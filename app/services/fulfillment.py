"""Order fulfillment: allocate a code, seal it onto the order, reveal it to the owner."""

from datetime import datetime, timedelta

from app.core.audit import log_event
from app.core.encryption import CodeCipher, DecryptError, get_cipher
from app.core.exceptions import AppError, CodeUnavailableError
from app.core.logging import get_logger
from app.models.code_record import CodeRecord
from app.models.order import Order, OrderStatus
from app.services.allocator import CodeAllocator
from app.services.messages import send_order_confirmation

log = get_logger(__name__)

RECONCILE_OUTCOMES = ("repaired", "fulfilled", "exhausted", "failed", "skipped")


class OrderFulfillmentService:
    def __init__(self, allocator: CodeAllocator, cipher: CodeCipher):
        self.allocator = allocator
        self.cipher = cipher

    async def fulfill(self, order: Order) -> None:
        """
        Allocate a code and store it encrypted; no-op for fulfilled orders.
        Allocation errors propagate and leave the order in its current status.
        """
        if order.status == OrderStatus.FULFILLED:
            return
        code = await self.allocator.allocate_for_order(order)
        # The claim is already persisted. A crash before _complete leaves the order
        # in "paid" with a consumed code; reconcile_order picks that up.
        await self._complete(order, code)

    async def _complete(self, order: Order, code: str) -> None:
        # One single-document update: readers see both fields or neither.
        await order.set({
            Order.status: OrderStatus.FULFILLED,
            Order.fulfilled_code: self.cipher.encrypt(code),
            Order.updated_at: datetime.utcnow(),
        })
        log.info("order_fulfilled", order_id=str(order.id))
        await log_event(str(order.user_id), "order_fulfilled", "order", str(order.id))
        await send_order_confirmation(order)

    def reveal_code(self, order: Order) -> str | None:
        if order.status != OrderStatus.FULFILLED or not order.fulfilled_code:
            return None
        try:
            return self.cipher.decrypt(order.fulfilled_code)
        except DecryptError:
            log.warning("reveal_decrypt_failed", order_id=str(order.id))
            return None

    async def reconcile_order(self, order: Order) -> str:
        """Finish an order stuck in "paid". Returns one of RECONCILE_OUTCOMES."""
        if order.status != OrderStatus.PAID:
            return "skipped"
        claimed = await CodeRecord.find_one(CodeRecord.allocated_order_id == order.id)
        if claimed:
            try:
                code = self.cipher.decrypt(claimed.code_encrypted)
            except DecryptError:
                log.error("reconcile_decrypt_failed", order_id=str(order.id), code_id=str(claimed.id))
                return "failed"
            await self._complete(order, code)
            log.warning("reconcile_repaired", order_id=str(order.id), code_id=str(claimed.id))
            return "repaired"
        try:
            await self.fulfill(order)
        except CodeUnavailableError:
            return "exhausted"
        except AppError as e:
            log.error("reconcile_failed", order_id=str(order.id), code=e.code, error=e.message)
            return "failed"
        return "fulfilled"

    async def reconcile_paid_orders(self, older_than: timedelta, limit: int = 100) -> dict[str, int]:
        cutoff = datetime.utcnow() - older_than
        stuck = await Order.find(
            Order.status == OrderStatus.PAID,
            Order.updated_at <= cutoff,
        ).sort(+Order.updated_at).limit(limit).to_list()
        counts = dict.fromkeys(RECONCILE_OUTCOMES, 0)
        for order in stuck:
            counts[await self.reconcile_order(order)] += 1
        if stuck:
            log.info("reconcile_done", checked=len(stuck), **counts)
        return counts


def build_fulfillment_service() -> OrderFulfillmentService:
    cipher = get_cipher()
    return OrderFulfillmentService(CodeAllocator(cipher), cipher)
