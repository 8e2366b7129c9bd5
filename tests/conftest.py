import base64
import hashlib
import hmac
import json
import os
import time
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# In-memory Mongo per test; deterministic secrets
os.environ.setdefault("MONGODB_DB_NAME", "nexyshop_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-min-32-characters-long")
os.environ.setdefault("CODE_ENCRYPTION_KEY", base64.urlsafe_b64encode(b"k" * 32).decode())
os.environ.setdefault("PAYMENT_PROVIDER", "stripe")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_123")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "rzp_webhook_test")

STRIPE_WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
RAZORPAY_WEBHOOK_SECRET = os.environ["RAZORPAY_WEBHOOK_SECRET"]


@pytest_asyncio.fixture
async def db() -> None:
    from mongomock_motor import AsyncMongoMockClient

    from app.db.init import init_db
    await init_db(client=AsyncMongoMockClient())


@pytest_asyncio.fixture
async def client(db) -> AsyncGenerator[AsyncClient, None]:
    from app.main import app
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def cipher():
    from app.core.encryption import get_cipher
    return get_cipher()


@pytest_asyncio.fixture
async def user(db):
    from app.models.user import User
    u = User(email="buyer@example.com", name="Buyer")
    await u.insert()
    return u


@pytest_asyncio.fixture
async def other_user(db):
    from app.models.user import User
    u = User(email="other@example.com", name="Other")
    await u.insert()
    return u


@pytest_asyncio.fixture
async def admin(db):
    from app.models.user import User
    u = User(email="admin@example.com", name="Admin", role="admin")
    await u.insert()
    return u


@pytest_asyncio.fixture
async def pack(db):
    from app.models.pack import Pack
    p = Pack(name="110 Diamants", amount=110, price=800, currency="XOF")
    await p.insert()
    return p


@pytest.fixture
def auth_headers():
    """Cookie header for a logged-in user."""
    from app.core.security import create_session_cookie
    from app.deps import SESSION_COOKIE_NAME

    def _headers(u) -> dict:
        value = create_session_cookie({"user_id": str(u.id), "session_version": u.session_version})
        return {"Cookie": f"{SESSION_COOKIE_NAME}={value}"}
    return _headers


@pytest.fixture
def stock(cipher):
    """Add plaintext codes to a pack's inventory."""
    from app.services.packs import import_codes

    async def _stock(p, codes: list[str]) -> dict:
        return await import_codes(p.id, codes, cipher)
    return _stock


@pytest.fixture
def make_order():
    """Insert an order for one item of `pack`."""
    from app.models.order import Order, OrderItem, OrderStatus

    async def _make(u, p, status=OrderStatus.PAID, quantity: int = 1, intent_id: str | None = None):
        order = Order(
            user_id=u.id,
            total_amount=p.price * quantity,
            currency=p.currency,
            status=status,
            payment_intent_id=intent_id,
            items=[
                OrderItem(
                    pack_id=p.id,
                    pack_name=p.name,
                    quantity=quantity,
                    unit_price=p.price,
                    total_price=p.price * quantity,
                )
            ],
        )
        await order.insert()
        return order
    return _make


@pytest.fixture
def fake_stripe(monkeypatch):
    """Replace PaymentIntent.create; returns the list of calls."""
    import stripe
    calls = []

    def _create(**kwargs):
        calls.append(kwargs)
        n = len(calls)
        return SimpleNamespace(id=f"pi_test_{n}", client_secret=f"pi_test_{n}_secret_abc", status="requires_payment_method")

    monkeypatch.setattr(stripe.PaymentIntent, "create", _create)
    return calls


def stripe_event(event_type: str, intent_id: str | None) -> bytes:
    obj = {"object": "payment_intent"}
    if intent_id:
        obj["id"] = intent_id
    return json.dumps({"id": "evt_test", "type": event_type, "data": {"object": obj}}).encode()


def stripe_signature(payload: bytes, secret: str = STRIPE_WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    ts = timestamp or int(time.time())
    signed = f"{ts}.{payload.decode()}".encode()
    sig = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


@pytest.fixture
def signed_stripe_event():
    """(payload, headers) for a Stripe webhook call."""
    def _build(event_type: str, intent_id: str | None, secret: str = STRIPE_WEBHOOK_SECRET):
        payload = stripe_event(event_type, intent_id)
        return payload, {"Stripe-Signature": stripe_signature(payload, secret), "Content-Type": "application/json"}
    return _build


@pytest.fixture
def fake_razorpay(monkeypatch):
    """Replace Razorpay's order creation; returns the list of request bodies."""
    from razorpay.resources.order import Order as RazorpayOrder
    calls = []

    def _create(self, data={}, **kwargs):
        calls.append(data)
        return {"id": f"order_test_{len(calls)}", "amount": data["amount"], "currency": data["currency"], "status": "created"}

    monkeypatch.setattr(RazorpayOrder, "create", _create)
    return calls


def razorpay_event(event: str, order_id: str | None) -> bytes:
    entity = {"id": "pay_1", "amount": 800}
    if order_id:
        entity["order_id"] = order_id
    return json.dumps({"event": event, "payload": {"payment": {"entity": entity}}}).encode()


def razorpay_signature(payload: bytes, secret: str = RAZORPAY_WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
