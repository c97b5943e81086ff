"""Orders API: pricing, posting to the stock ledger, voiding, payments and kitchen flow."""

from decimal import Decimal

import pytest

from cafe_erp.services.orders import rollup_kitchen_status
from tests.helpers import API, create_product, on_hand_qty, receive


async def create_order(client, location, product, quantity="3", **extra) -> dict:
    body = {
        "locationId": location["id"],
        "orderType": "dine_in",
        "tableNo": "T4",
        "items": [{"productId": product["id"], "quantity": quantity}],
        **extra,
    }
    resp = await client.post(f"{API}/orders", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_create_order_prices_items_and_applies_tax(client, location, product):
    order = await create_order(client, location, product)

    assert order["status"] == "open"
    assert order["orderNumber"].startswith("ORD-")
    [item] = order["items"]
    assert Decimal(item["unitPrice"]) == Decimal("10.00")
    assert Decimal(item["lineTotal"]) == Decimal("30.00")
    assert Decimal(order["subtotal"]) == Decimal("30.00")
    assert Decimal(order["taxAmount"]) == Decimal("3.30")
    assert Decimal(order["totalAmount"]) == Decimal("33.30")


async def test_explicit_unit_price_overrides_product_price(client, location, product):
    resp = await client.post(
        f"{API}/orders",
        json={
            "locationId": location["id"],
            "items": [{"productId": product["id"], "quantity": "2", "unitPrice": "7.25"}],
        },
    )
    order = resp.json()["data"]
    assert Decimal(order["subtotal"]) == Decimal("14.50")
    # 14.50 * 0.11 = 1.595 -> 1.60
    assert Decimal(order["taxAmount"]) == Decimal("1.60")


async def test_order_number_collision_draws_a_fresh_number(client, location, product, monkeypatch):
    numbers = iter(["ORD-DUP", "ORD-DUP", "ORD-NEW"])
    monkeypatch.setattr(
        "cafe_erp.services.doc_sequence.generate_doc_number", lambda *args, **kwargs: next(numbers)
    )

    first = await create_order(client, location, product)
    second = await create_order(client, location, product)

    assert first["orderNumber"] == "ORD-DUP"
    assert second["orderNumber"] == "ORD-NEW"


async def test_oversized_table_number_is_validation_error(client, location, product):
    resp = await client.post(
        f"{API}/orders",
        json={
            "locationId": location["id"],
            "tableNo": "T" * 20,
            "items": [{"productId": product["id"], "quantity": "1"}],
        },
    )
    assert resp.status_code == 422


async def test_create_order_requires_items(client, location):
    resp = await client.post(f"{API}/orders", json={"locationId": location["id"], "items": []})
    assert resp.status_code == 422


async def test_create_order_with_unknown_product_is_404(client, location):
    resp = await client.post(
        f"{API}/orders",
        json={"locationId": location["id"], "items": [{"productId": "missing", "quantity": "1"}]},
    )
    assert resp.status_code == 404


async def test_update_discount_recomputes_total(client, location, product):
    order = await create_order(client, location, product)

    resp = await client.patch(f"{API}/orders/{order['id']}", json={"discountAmount": "3.30"})

    assert resp.status_code == 200
    updated = resp.json()["data"]
    assert Decimal(updated["discountAmount"]) == Decimal("3.30")
    assert Decimal(updated["totalAmount"]) == Decimal("30.00")


async def test_list_orders_filters_by_status(client, location, product):
    await create_order(client, location, product)
    resp = await client.get(f"{API}/orders", params={"status": "open"})
    assert resp.json()["meta"]["total"] == 1
    resp = await client.get(f"{API}/orders", params={"status": "posted"})
    assert resp.json()["meta"]["total"] == 0


# ---------------------------------------------------------------------------
# Posting / voiding
# ---------------------------------------------------------------------------

async def test_post_issues_stock_fefo_and_void_restores_it(client, location, product):
    await receive(client, product["id"], location["id"], "5", "2", lot_no="LATE", expiry_days=10)
    await receive(client, product["id"], location["id"], "5", "1", lot_no="SOON", expiry_days=2)
    order = await create_order(client, location, product, quantity="7")

    resp = await client.post(f"{API}/orders/{order['id']}/post")
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["status"] == "posted"
    assert await on_hand_qty(client, product["id"], location["id"]) == Decimal("3")

    resp = await client.get(
        f"{API}/inventory/ledger", params={"refType": "ORDER", "refId": order["id"]}
    )
    rows = resp.json()["data"]
    issued = sorted((Decimal(r["qtyDeltaBase"]), Decimal(r["unitCost"])) for r in rows)
    # 5 from SOON @ 1, then 2 from LATE @ 2
    assert issued == [(Decimal("-5"), Decimal("1")), (Decimal("-2"), Decimal("2"))]

    resp = await client.post(f"{API}/orders/{order['id']}/void", json={"reason": "customer left"})
    assert resp.status_code == 200, resp.text
    voided = resp.json()["data"]
    assert voided["status"] == "voided"
    assert voided["voidReason"] == "customer left"
    assert await on_hand_qty(client, product["id"], location["id"]) == Decimal("10")

    resp = await client.get(
        f"{API}/inventory/cost/{product['id']}", params={"locationId": location["id"]}
    )
    cost = resp.json()["data"]
    assert Decimal(cost["quantityCosted"]) == Decimal("10")
    assert Decimal(cost["mavgCost"]) == Decimal("1.5")

    resp = await client.get(
        f"{API}/inventory/ledger", params={"refType": "ORDER", "type": "iss_rev"}
    )
    assert resp.json()["meta"]["total"] == 2


async def test_post_skips_expired_lots(client, location, product):
    await receive(client, product["id"], location["id"], "10", "1", lot_no="GONE", expiry_days=-1)
    order = await create_order(client, location, product, quantity="1")

    resp = await client.post(f"{API}/orders/{order['id']}/post")

    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INSUFFICIENT_STOCK"


async def test_post_uses_unlotted_stock_after_lots(client, location, product):
    await receive(client, product["id"], location["id"], "2", "1", lot_no="L1", expiry_days=5)
    await receive(client, product["id"], location["id"], "2", "3")
    order = await create_order(client, location, product, quantity="3")

    resp = await client.post(f"{API}/orders/{order['id']}/post")

    assert resp.status_code == 200, resp.text
    assert await on_hand_qty(client, product["id"], location["id"]) == Decimal("1")


async def test_post_with_insufficient_stock_changes_nothing(client, location, product):
    await receive(client, product["id"], location["id"], "2", "1", lot_no="L1")
    order = await create_order(client, location, product, quantity="5")

    resp = await client.post(f"{API}/orders/{order['id']}/post")

    assert resp.status_code == 409
    assert await on_hand_qty(client, product["id"], location["id"]) == Decimal("2")
    resp = await client.get(f"{API}/orders/{order['id']}")
    assert resp.json()["data"]["status"] == "open"


async def test_repeated_product_lines_share_the_same_stock(client, location, product):
    await receive(client, product["id"], location["id"], "4", "1", lot_no="L1")
    resp = await client.post(
        f"{API}/orders",
        json={
            "locationId": location["id"],
            "items": [
                {"productId": product["id"], "quantity": "3"},
                {"productId": product["id"], "quantity": "3"},
            ],
        },
    )
    order = resp.json()["data"]

    resp = await client.post(f"{API}/orders/{order['id']}/post")

    assert resp.status_code == 409
    assert await on_hand_qty(client, product["id"], location["id"]) == Decimal("4")


async def test_post_twice_and_void_twice_are_conflicts(client, location, product):
    await receive(client, product["id"], location["id"], "5", "1")
    order = await create_order(client, location, product, quantity="1")

    assert (await client.post(f"{API}/orders/{order['id']}/post")).status_code == 200
    assert (await client.post(f"{API}/orders/{order['id']}/post")).status_code == 409
    assert (await client.patch(f"{API}/orders/{order['id']}", json={"tableNo": "T9"})).status_code == 409

    void = {"reason": "mistake"}
    assert (await client.post(f"{API}/orders/{order['id']}/void", json=void)).status_code == 200
    assert (await client.post(f"{API}/orders/{order['id']}/void", json=void)).status_code == 409


async def test_void_open_order_touches_no_stock(client, location, product):
    await receive(client, product["id"], location["id"], "5", "1")
    order = await create_order(client, location, product, quantity="1")

    resp = await client.post(f"{API}/orders/{order['id']}/void", json={"reason": "test"})

    assert resp.status_code == 200
    assert await on_hand_qty(client, product["id"], location["id"]) == Decimal("5")


# ---------------------------------------------------------------------------
# Payments and quote
# ---------------------------------------------------------------------------

async def test_multi_tender_payment_and_quote(client, location, product):
    order = await create_order(client, location, product)

    resp = await client.post(
        f"{API}/orders/{order['id']}/payments",
        json={
            "tenders": [
                {"paymentMethod": "cash", "amount": "20.00", "changeGiven": "0"},
                {"paymentMethod": "card", "amount": "10.00", "transactionRef": "AUTH-1"},
            ]
        },
    )
    assert resp.status_code == 201, resp.text
    payments = resp.json()["data"]
    assert [p["tender"] for p in payments] == ["cash", "card"]
    assert payments[0]["shiftId"] is None

    resp = await client.get(f"{API}/orders/{order['id']}/payments")
    assert len(resp.json()["data"]) == 2

    resp = await client.post(f"{API}/orders/{order['id']}/quote")
    quote = resp.json()["data"]
    assert Decimal(quote["totalAmount"]) == Decimal("33.30")
    assert Decimal(quote["amountPaid"]) == Decimal("30.00")
    assert Decimal(quote["balanceDue"]) == Decimal("3.30")


async def test_payment_on_voided_order_is_conflict(client, location, product):
    order = await create_order(client, location, product)
    await client.post(f"{API}/orders/{order['id']}/void", json={"reason": "x"})

    resp = await client.post(
        f"{API}/orders/{order['id']}/payments",
        json={"tenders": [{"paymentMethod": "cash", "amount": "1"}]},
    )
    assert resp.status_code == 409


# ---------------------------------------------------------------------------
# Kitchen flow
# ---------------------------------------------------------------------------

async def test_kitchen_status_transitions(client, location, product):
    order = await create_order(client, location, product)
    url = f"{API}/orders/{order['id']}/kitchen-status"

    resp = await client.patch(url, json={"kitchenStatus": "ready"})
    assert resp.status_code == 422

    resp = await client.patch(url, json={"kitchenStatus": "preparing", "notes": "no sugar"})
    assert resp.status_code == 200
    assert resp.json()["data"]["kitchenStatus"] == "preparing"
    assert resp.json()["data"]["kitchenNotes"] == "no sugar"


async def test_item_prep_status_rolls_up_to_order(client, location, product):
    croissant = await create_product(client, sku="PAIN-AU-CHOC", default_price="12")
    resp = await client.post(
        f"{API}/orders",
        json={
            "locationId": location["id"],
            "items": [
                {"productId": product["id"], "quantity": "1"},
                {"productId": croissant["id"], "quantity": "1"},
            ],
        },
    )
    order = resp.json()["data"]
    first, second = (item["id"] for item in order["items"])

    async def prep(item_id, status):
        resp = await client.patch(
            f"{API}/orders/items/{item_id}/prep-status", json={"prepStatus": status}
        )
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]["orderKitchenStatus"]

    assert await prep(first, "preparing") == "preparing"
    assert await prep(first, "ready") == "preparing"
    assert await prep(second, "cancelled") == "ready"
    assert await prep(first, "served") == "served"

    resp = await client.patch(
        f"{API}/orders/items/{first}/prep-status", json={"prepStatus": "queued"}
    )
    assert resp.status_code == 422


@pytest.mark.parametrize(
    "current, statuses, expected",
    [
        ("open", ["queued", "preparing"], "preparing"),
        ("open", ["queued", "queued"], "open"),
        ("preparing", ["ready", "cancelled"], "ready"),
        ("preparing", ["ready", "preparing"], "preparing"),
        ("ready", ["served", "ready"], "served"),
        ("served", ["served"], "served"),
    ],
)
def test_rollup_kitchen_status(current, statuses, expected):
    assert rollup_kitchen_status(current, statuses) == expected
