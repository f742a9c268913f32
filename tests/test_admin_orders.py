from decimal import Decimal

import pytest
from sqlalchemy import func, select

from helpers import line, order_payload
from services.order_service.models import OrderLine


async def test_admin_endpoints_require_admin_role(client, accounts):
    for path in ("/order/admin", "/order/admin/stats"):
        resp = await client.get(path, headers=accounts["buyer"].headers)
        assert resp.status_code == 403
        assert resp.json() == {"error": "Unauthorized: Admin access required"}

    assert (await client.get("/order/admin")).status_code == 401


async def test_admin_order_detail_carries_customer_and_sellers(client, place_order, accounts, mixed_cart):
    order_id = (await place_order(accounts["buyer"], mixed_cart)).json()["order"]["id"]

    resp = await client.get(f"/order/admin/{order_id}", headers=accounts["admin"].headers)

    body = resp.json()
    assert body["customer"]["name"] == "Ada Buyer"
    assert body["itemCount"] == 2
    assert [item["seller"]["id"] for item in body["items"]] == [accounts["seller_a"].id, accounts["seller_b"].id]
    assert body["items"][0]["productId"] == "p-apples"


async def test_admin_filters_apply_to_page_and_count(client, place_order, place_paid_order, accounts, products, mixed_cart):
    paid_id = await place_paid_order(accounts["buyer"], mixed_cart)
    await place_order(accounts["buyer"], mixed_cart)
    other = order_payload(
        [line(products["pears"], accounts["seller_a"].id, 1, "4.50")],
        name="Otto Other", email="otto@example.com",
    )
    await place_order(accounts["other_buyer"], other)
    headers = accounts["admin"].headers

    everything = (await client.get("/order/admin", headers=headers)).json()
    paid = (await client.get("/order/admin", params={"paymentStatus": "paid"}, headers=headers)).json()
    by_name = (await client.get("/order/admin", params={"search": "otto"}, headers=headers)).json()
    paged = (await client.get("/order/admin", params={"limit": 2, "page": 2}, headers=headers)).json()

    assert everything["totalCount"] == len(everything["orders"]) == 3
    assert paid["totalCount"] == len(paid["orders"]) == 1
    assert paid["orders"][0]["id"] == paid_id
    assert by_name["totalCount"] == len(by_name["orders"]) == 1
    assert by_name["orders"][0]["customer"]["email"] == "otto@example.com"
    assert paged["totalCount"] == 3
    assert len(paged["orders"]) == 1


async def test_admin_rejects_unknown_filter_value(client, accounts):
    resp = await client.get("/order/admin", params={"status": "shipped"}, headers=accounts["admin"].headers)

    assert resp.status_code == 400


async def test_admin_stats(client, place_order, place_paid_order, accounts, mixed_cart):
    await place_paid_order(accounts["buyer"], mixed_cart)
    pending_id = (await place_order(accounts["buyer"], mixed_cart)).json()["order"]["id"]
    await client.patch(
        f"/order/admin/{pending_id}/status", json={"status": "cancelled"}, headers=accounts["admin"].headers
    )

    stats = (await client.get("/order/admin/stats", headers=accounts["admin"].headers)).json()

    assert stats["totalOrders"] == 2
    assert Decimal(stats["totalRevenue"]) == Decimal("25.00")
    assert stats["pendingOrders"] == 1
    assert stats["cancelledOrders"] == 1
    assert stats["completedOrders"] == 0
    assert stats["paidOrders"] == 1


async def test_status_moves_only_out_of_pending(client, place_order, accounts, mixed_cart):
    order_id = (await place_order(accounts["buyer"], mixed_cart)).json()["order"]["id"]
    url = f"/order/admin/{order_id}/status"
    headers = accounts["admin"].headers

    completed = await client.patch(url, json={"status": "completed"}, headers=headers)
    reopened = await client.patch(url, json={"status": "pending"}, headers=headers)
    cancelled = await client.patch(url, json={"status": "cancelled"}, headers=headers)

    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"
    assert reopened.status_code == 409
    assert cancelled.status_code == 409


@pytest.mark.parametrize("target", ["paid", "failed"])
async def test_payment_status_moves_only_out_of_pending(client, place_order, accounts, mixed_cart, target):
    order_id = (await place_order(accounts["buyer"], mixed_cart)).json()["order"]["id"]
    url = f"/order/admin/{order_id}/payment-status"
    headers = accounts["admin"].headers

    first = await client.patch(url, json={"paymentStatus": target}, headers=headers)
    again = await client.patch(url, json={"paymentStatus": "pending"}, headers=headers)

    assert first.status_code == 200
    assert first.json()["paymentStatus"] == target
    assert again.status_code == 409


async def test_status_change_on_missing_order_is_not_found(client, accounts):
    resp = await client.patch(
        "/order/admin/missing/status", json={"status": "completed"}, headers=accounts["admin"].headers
    )

    assert resp.status_code == 404


async def test_delete_order_removes_its_lines(client, place_order, accounts, mixed_cart, session_factory):
    order_id = (await place_order(accounts["buyer"], mixed_cart)).json()["order"]["id"]
    headers = accounts["admin"].headers

    deleted = await client.delete(f"/order/admin/{order_id}", headers=headers)
    again = await client.delete(f"/order/admin/{order_id}", headers=headers)

    assert deleted.status_code == 204
    assert again.status_code == 404
    assert (await client.get(f"/order/admin/{order_id}", headers=headers)).status_code == 404
    async with session_factory() as session:
        remaining = await session.execute(
            select(func.count()).select_from(OrderLine).where(OrderLine.order_id == order_id)
        )
        assert remaining.scalar_one() == 0


@pytest.mark.parametrize("term", ["%", "_", "Ada%Buyer", "\\"])
async def test_admin_search_treats_wildcards_literally(client, place_order, accounts, mixed_cart, term):
    await place_order(accounts["buyer"], mixed_cart)

    resp = await client.get("/order/admin", params={"search": term}, headers=accounts["admin"].headers)

    assert resp.json()["totalCount"] == 0
    assert resp.json()["orders"] == []


async def test_admin_search_still_matches_substrings(client, place_order, accounts, mixed_cart):
    await place_order(accounts["buyer"], mixed_cart)

    resp = await client.get("/order/admin", params={"search": "da buy"}, headers=accounts["admin"].headers)

    assert resp.json()["totalCount"] == 1
