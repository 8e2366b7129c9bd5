"""Checkout (order + payment intent) and payment webhooks."""

from datetime import datetime

from beanie import PydanticObjectId
from beanie.operators import Set

from app.core.audit import log_event
from app.core.exceptions import AppError, NotFoundError, WebhookRejectedError
from app.core.logging import get_logger
from app.models.order import Order, OrderItem, OrderStatus
from app.models.pack import Pack
from app.models.payment import Payment
from app.models.user import User
from app.services.fulfillment import OrderFulfillmentService
from app.services.payments import PaymentEvent, PaymentGateway

log = get_logger(__name__)


async def create_checkout(user: User, pack_id: PydanticObjectId, quantity: int, gateway: PaymentGateway) -> dict:
    """Create a pending order with its item, open a payment intent, return what the frontend needs."""
    pack = await Pack.get(pack_id)
    if not pack or not pack.is_active:
        raise NotFoundError("Pack not found")
    total = pack.price * quantity
    order = Order(
        user_id=user.id,
        total_amount=total,
        currency=pack.currency,
        status=OrderStatus.PENDING,
        provider=gateway.name,
        items=[
            OrderItem(
                pack_id=pack.id,
                pack_name=pack.name,
                quantity=quantity,
                unit_price=pack.price,
                total_price=total,
            )
        ],
    )
    await order.insert()

    intent = gateway.create_intent(
        total,
        pack.currency,
        {"order_id": str(order.id), "pack_id": str(pack.id), "user_id": str(user.id)},
    )
    await order.set({Order.payment_intent_id: intent.id, Order.updated_at: datetime.utcnow()})
    await Payment(order_id=order.id, provider=gateway.name, status="pending", payload=intent.payload).insert()

    log.info("checkout_created", order_id=str(order.id), pack_id=str(pack.id), provider=gateway.name)
    await log_event(str(user.id), "checkout_created", "order", str(order.id), {"pack_id": str(pack.id), "quantity": quantity})
    return {"order_id": str(order.id), "client_secret": intent.client_secret}


async def _record_payment(order: Order, event: PaymentEvent, status: str) -> None:
    await Payment.find(
        Payment.order_id == order.id,
        Payment.provider == event.provider,
    ).update(Set({Payment.status: status, Payment.payload: event.data, Payment.updated_at: datetime.utcnow()}))


async def handle_webhook(
    gateway: PaymentGateway,
    payload: bytes,
    signature: str | None,
    fulfillment: OrderFulfillmentService,
) -> str:
    """
    Verify and apply a provider event; returns the plain-text acknowledgement.

    Only a failed signature check raises (WebhookRejectedError), and it happens before
    anything is read or written. Ignored events and unknown orders are acknowledged so
    the provider does not retry them. Fulfillment errors are logged and acknowledged.
    """
    event = gateway.verify_and_parse_event(payload, signature)
    if event is None:
        log.warning("webhook_rejected", provider=gateway.name)
        raise WebhookRejectedError("Invalid signature")

    if event.outcome is None:
        log.info("webhook_ignored", provider=gateway.name, event_type=event.type)
        return "ignored"
    if not event.intent_id:
        raise WebhookRejectedError("no pid")

    order = await Order.find_one(
        Order.payment_intent_id == event.intent_id,
        Order.provider == gateway.name,
    )
    if not order:
        log.info("webhook_order_missing", provider=gateway.name, intent_id=event.intent_id)
        return "order missing"

    if event.outcome == "failed":
        if order.status != OrderStatus.PENDING:
            # Late failure for an attempt superseded by a successful payment.
            log.info("payment_failed_ignored", order_id=str(order.id), status=order.status.value)
            return "ok"
        await _record_payment(order, event, "failed")
        log.info("payment_failed", order_id=str(order.id), provider=gateway.name)
        await log_event(str(order.user_id), "payment_failed", "payment", event.intent_id, {"order_id": str(order.id)})
        return "ok"

    # Redelivery after fulfillment must not move the order back to "paid".
    if order.status == OrderStatus.PENDING:
        await order.set({Order.status: OrderStatus.PAID, Order.updated_at: datetime.utcnow()})
    await _record_payment(order, event, "succeeded")
    await log_event(str(order.user_id), "payment_succeeded", "payment", event.intent_id, {"order_id": str(order.id)})

    try:
        await fulfillment.fulfill(order)
    except AppError as e:
        # Order stays "paid"; an admin retry or the reconcile job finishes it after restock.
        log.error("fulfillment_failed", order_id=str(order.id), code=e.code, error=e.message)
    return "ok"
