"""Payment provider adapters: intent creation and signed webhook parsing."""

import json
from abc import ABC, abstractmethod
from typing import Any, Literal

import stripe
from pydantic import BaseModel, Field

from app.core.config import get_settings
from app.core.exceptions import BadRequestError, NotFoundError, PaymentProviderError
from app.core.logging import get_logger
from app.core.security import verify_hmac_sha256

log = get_logger(__name__)


class PaymentIntent(BaseModel):
    id: str
    client_secret: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


class PaymentEvent(BaseModel):
    """A verified provider event, normalized."""
    provider: str
    type: str
    intent_id: str | None = None
    outcome: Literal["succeeded", "failed"] | None = None
    data: dict[str, Any] = Field(default_factory=dict)


def _dig(data: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Nested dict lookup that yields {} as soon as a level is missing or not a dict."""
    for key in keys:
        data = data.get(key) if isinstance(data, dict) else None
    return data if isinstance(data, dict) else {}


class PaymentGateway(ABC):
    name: str
    signature_header: str

    @abstractmethod
    def create_intent(self, amount: int, currency: str, metadata: dict[str, str]) -> PaymentIntent:
        ...

    @abstractmethod
    def verify_and_parse_event(self, payload: bytes, signature: str | None) -> PaymentEvent | None:
        """Return the event only if the signature checks out; None on any failure."""


class StripeGateway(PaymentGateway):
    name = "stripe"
    signature_header = "Stripe-Signature"
    outcomes = {
        "payment_intent.succeeded": "succeeded",
        "payment_intent.payment_failed": "failed",
    }

    def __init__(self, secret_key: str, webhook_secret: str):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    def create_intent(self, amount: int, currency: str, metadata: dict[str, str]) -> PaymentIntent:
        if not self.secret_key:
            raise BadRequestError("Payments not configured")
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.secret_key,
                amount=amount,
                currency=currency.lower(),
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            log.error("stripe_intent_failed", error=str(e), error_type=type(e).__name__)
            raise PaymentProviderError("Could not create payment intent") from e
        return PaymentIntent(
            id=intent.id,
            client_secret=intent.client_secret,
            payload={"id": intent.id, "amount": amount, "currency": currency, "status": intent.status},
        )

    def verify_and_parse_event(self, payload: bytes, signature: str | None) -> PaymentEvent | None:
        if not self.webhook_secret or not signature:
            return None
        try:
            text = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                text, signature, self.webhook_secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
            event = json.loads(text)
        except (stripe.SignatureVerificationError, ValueError) as e:
            log.warning("stripe_signature_invalid", error=str(e))
            return None
        if not isinstance(event, dict):
            return None
        obj = _dig(event, "data", "object")
        event_type = str(event.get("type", ""))
        return PaymentEvent(
            provider=self.name,
            type=event_type,
            intent_id=obj.get("id"),
            outcome=self.outcomes.get(event_type),
            data=obj,
        )


class RazorpayGateway(PaymentGateway):
    name = "razorpay"
    signature_header = "X-Razorpay-Signature"
    outcomes = {
        "payment.captured": "succeeded",
        "payment.failed": "failed",
    }

    def __init__(self, key_id: str, key_secret: str, webhook_secret: str):
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret

    def create_intent(self, amount: int, currency: str, metadata: dict[str, str]) -> PaymentIntent:
        """Razorpay has no client secret; the frontend opens checkout with the order id and key id."""
        import razorpay
        from razorpay import errors as razorpay_errors
        if not self.key_id or not self.key_secret:
            raise BadRequestError("Payments not configured")
        client = razorpay.Client(auth=(self.key_id, self.key_secret))
        try:
            order = client.order.create({"amount": amount, "currency": currency, "notes": metadata})
        except (razorpay_errors.BadRequestError, razorpay_errors.ServerError, razorpay_errors.GatewayError) as e:
            log.error("razorpay_order_failed", error=str(e), error_type=type(e).__name__)
            raise PaymentProviderError("Could not create payment order") from e
        return PaymentIntent(
            id=order["id"],
            client_secret=None,
            payload={"id": order["id"], "amount": order["amount"], "currency": order["currency"], "key_id": self.key_id},
        )

    def verify_and_parse_event(self, payload: bytes, signature: str | None) -> PaymentEvent | None:
        if not self.webhook_secret or not signature:
            return None
        if not verify_hmac_sha256(payload, signature, self.webhook_secret):
            log.warning("razorpay_signature_invalid")
            return None
        try:
            data = json.loads(payload.decode("utf-8"))
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        entity = _dig(data, "payload", "payment", "entity")
        event_type = str(data.get("event", ""))
        return PaymentEvent(
            provider=self.name,
            type=event_type,
            intent_id=entity.get("order_id"),
            outcome=self.outcomes.get(event_type),
            data=entity,
        )


def get_gateway(name: str) -> PaymentGateway:
    settings = get_settings()
    if name == StripeGateway.name:
        return StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret)
    if name == RazorpayGateway.name:
        return RazorpayGateway(
            settings.razorpay_key_id,
            settings.razorpay_key_secret,
            settings.razorpay_webhook_secret,
        )
    raise NotFoundError(f"Unknown payment provider: {name}")
