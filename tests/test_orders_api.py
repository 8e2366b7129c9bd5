"""Order reads, session handling and admin inventory endpoints."""

import pytest

from app.models.code_record import CodeRecord
from app.models.order import OrderStatus
from app.models.pack import Pack
from app.services.fulfillment import build_fulfillment_service

pytestmark = pytest.mark.asyncio


async def test_order_detail_hides_ciphertext(client, user, pack, stock, make_order, auth_headers):
    await stock(pack, ["SECRET-X"])
    order = await make_order(user, pack)
    await build_fulfillment_service().fulfill(order)

    r = await client.get(f"/v1/orders/{order.id}", headers=auth_headers(user))

    assert r.status_code == 200
    body = r.json()
    assert body["code"] == "SECRET-X"
    assert body["order"]["status"] == "fulfilled"
    assert "fulfilled_code" not in body["order"]
    assert order.fulfilled_code not in r.text


async def test_pending_order_has_no_code(client, user, pack, make_order, auth_headers):
    order = await make_order(user, pack, status=OrderStatus.PENDING)
    r = await client.get(f"/v1/orders/{order.id}", headers=auth_headers(user))
    assert r.json()["code"] is None
    assert r.json()["order"]["code"] is None


async def test_order_detail_is_owner_only(client, user, other_user, pack, make_order, auth_headers):
    order = await make_order(user, pack)
    r = await client.get(f"/v1/orders/{order.id}", headers=auth_headers(other_user))
    assert r.status_code == 403
    assert (await client.get("/v1/orders/nope", headers=auth_headers(user))).status_code == 404
    assert (await client.get(f"/v1/orders/{pack.id}", headers=auth_headers(user))).status_code == 404


async def test_orders_list_only_shows_own_orders(client, user, other_user, pack, make_order, auth_headers):
    mine = [await make_order(user, pack) for _ in range(3)]
    await make_order(other_user, pack)

    r = await client.get("/v1/orders", params={"limit": 2}, headers=auth_headers(user))

    assert r.status_code == 200
    ids = [o["id"] for o in r.json()["orders"]]
    assert len(ids) == 2
    assert set(ids) <= {str(o.id) for o in mine}


async def test_logout_invalidates_session(client, user, auth_headers):
    headers = auth_headers(user)
    assert (await client.get("/v1/auth/me", headers=headers)).json()["email"] == "buyer@example.com"
    assert (await client.post("/v1/auth/logout", headers=headers)).status_code == 200
    assert (await client.get("/v1/auth/me", headers=headers)).status_code == 401


async def test_tampered_cookie_is_rejected(client, user, auth_headers):
    headers = auth_headers(user)
    headers["Cookie"] = headers["Cookie"][:-2] + "xx"
    assert (await client.get("/v1/auth/me", headers=headers)).status_code == 401


async def test_public_pack_list(client, pack):
    hidden = Pack(name="Retired", amount=50, price=400, is_active=False)
    await hidden.insert()
    cheap = Pack(name="60 Diamants", amount=60, price=500)
    await cheap.insert()

    r = await client.get("/v1/packs")

    assert [p["name"] for p in r.json()["packs"]] == ["60 Diamants", "110 Diamants"]


async def test_admin_routes_require_admin(client, user, pack, auth_headers):
    r = await client.post(f"/v1/admin/packs/{pack.id}/codes", json={"codes": ["A"]}, headers=auth_headers(user))
    assert r.status_code == 403
    assert await CodeRecord.find_all().count() == 0


async def test_admin_pack_and_code_import(client, admin, auth_headers):
    headers = auth_headers(admin)
    r = await client.post(
        "/v1/admin/packs",
        json={"name": "583 Diamants", "amount": 583, "price": 3600},
        headers=headers,
    )
    assert r.status_code == 200
    pack_id = r.json()["id"]
    dup = await client.post("/v1/admin/packs", json={"name": "583 Diamants", "amount": 1, "price": 1}, headers=headers)
    assert dup.status_code == 409

    r = await client.post(f"/v1/admin/packs/{pack_id}/codes", json={"codes": ["AAA", " BBB ", "AAA", ""]}, headers=headers)
    assert r.json() == {"imported": 2, "duplicates": 1}
    r = await client.post(f"/v1/admin/packs/{pack_id}/codes", json={"codes": ["BBB", "CCC"]}, headers=headers)
    assert r.json() == {"imported": 1, "duplicates": 1}

    records = await CodeRecord.find_all().to_list()
    assert all(r.code_encrypted not in {"AAA", "BBB", "CCC"} for r in records)

    r = await client.patch(f"/v1/admin/packs/{pack_id}", json={"price": 3500, "is_active": False}, headers=headers)
    assert r.json()["price"] == 3500
    assert r.json()["is_active"] is False
    assert r.json()["inventory"] == {"available": 3, "used": 0, "invalid": 0}


async def test_admin_manual_fulfill_after_restock(client, admin, user, pack, stock, make_order, auth_headers):
    headers = auth_headers(admin)
    order = await make_order(user, pack, status=OrderStatus.PAID)

    r = await client.post(f"/v1/admin/orders/{order.id}/fulfill", headers=headers)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "NO_CODE_AVAILABLE"

    r = await client.get("/v1/admin/orders", params={"status": "paid"}, headers=headers)
    assert [o["id"] for o in r.json()["orders"]] == [str(order.id)]

    await stock(pack, ["LATE-CODE"])
    r = await client.post(f"/v1/admin/orders/{order.id}/fulfill", headers=headers)
    assert r.status_code == 200
    assert r.json()["status"] == "fulfilled"

    r = await client.get(f"/v1/orders/{order.id}", headers=auth_headers(user))
    assert r.json()["code"] == "LATE-CODE"

    pending = await make_order(user, pack, status=OrderStatus.PENDING)
    assert (await client.post(f"/v1/admin/orders/{pending.id}/fulfill", headers=headers)).status_code == 409
