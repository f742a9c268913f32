from decimal import Decimal

from helpers import Account
from shared.security import ROLE_USER


async def test_save_list_and_unsave(client, accounts, products):
    headers = accounts["buyer"].headers

    saved = await client.post(f"/saved/{products['apples']}", headers=headers)
    await client.post(f"/saved/{products['honey']}", headers=headers)
    status = (await client.get(f"/saved/{products['apples']}", headers=headers)).json()
    ids = (await client.get("/saved/ids", headers=headers)).json()
    listing = (await client.get("/saved", headers=headers)).json()

    assert saved.status_code == 201
    assert status == {"productId": products["apples"], "saved": True}
    assert set(ids) == {products["apples"], products["honey"]}
    assert listing["totalCount"] == 2
    apples = next(item for item in listing["items"] if item["id"] == products["apples"])
    assert apples["image"] == "https://img.test/apples.jpg"
    assert Decimal(apples["price"]) == Decimal("10.00")
    assert apples["sellerId"] == accounts["seller_a"].id

    removed = await client.delete(f"/saved/{products['apples']}", headers=headers)
    assert removed.json() == {"productId": products["apples"], "saved": False}
    assert (await client.get("/saved/ids", headers=headers)).json() == [products["honey"]]


async def test_saving_twice_conflicts(client, accounts, products):
    headers = accounts["buyer"].headers
    await client.post(f"/saved/{products['apples']}", headers=headers)

    resp = await client.post(f"/saved/{products['apples']}", headers=headers)

    assert resp.status_code == 409
    assert resp.json() == {"error": "Product already saved"}


async def test_saved_lists_are_per_user(client, accounts, products):
    await client.post(f"/saved/{products['apples']}", headers=accounts["buyer"].headers)

    resp = await client.get("/saved/ids", headers=accounts["other_buyer"].headers)

    assert resp.json() == []


async def test_saving_unknown_product_is_not_found(client, accounts):
    resp = await client.post("/saved/p-missing", headers=accounts["buyer"].headers)

    assert resp.status_code == 404


async def test_saved_products_require_authentication(client):
    assert (await client.get("/saved")).status_code == 401


async def test_saving_for_an_unprovisioned_account_is_unauthenticated(client, products):
    stranger = Account("u-new", "New Person", "new@example.com", ROLE_USER)

    resp = await client.post(f"/saved/{products['apples']}", headers=stranger.headers)

    assert resp.status_code == 401
    assert resp.json() == {"error": "Unknown account"}
