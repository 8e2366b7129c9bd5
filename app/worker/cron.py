"""Cron: reconcile orders left in "paid" by a partial fulfillment."""

from datetime import timedelta

from app.core.logging import get_logger
from app.services.fulfillment import build_fulfillment_service

log = get_logger(__name__)


async def run_reconcile_paid_orders(older_than_minutes: int) -> dict[str, int]:
    """Repair or retry paid orders untouched for `older_than_minutes`. Returns outcome counts."""
    service = build_fulfillment_service()
    counts = await service.reconcile_paid_orders(timedelta(minutes=older_than_minutes))
    if counts["exhausted"]:
        log.error("reconcile_inventory_exhausted", orders=counts["exhausted"])
    return counts
