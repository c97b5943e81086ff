"""POS API: one open shift per location, drawer movements, cash reconciliation."""

from decimal import Decimal

from tests.helpers import API, create_location


async def open_shift(client, location, float_amount="100.00", **headers):
    return await client.post(
        f"{API}/pos/shifts/open",
        json={"locationId": location["id"], "deviceId": "till-1", "floatAmount": float_amount},
        headers=headers or None,
    )


async def test_open_shift_sets_expected_cash_to_float(client, location):
    resp = await open_shift(client, location, **{"X-User-ID": "cashier-1"})

    assert resp.status_code == 201, resp.text
    shift = resp.json()["data"]
    assert shift["isOpen"] is True
    assert shift["openedBy"] == "cashier-1"
    assert Decimal(shift["expectedCash"]) == Decimal("100.00")


async def test_second_open_shift_for_location_is_rejected(client, location):
    assert (await open_shift(client, location)).status_code == 201

    resp = await open_shift(client, location)

    assert resp.status_code == 409
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "CONFLICT"


async def test_open_shifts_at_different_locations_are_independent(client, location):
    other = await create_location(client, code="OUT-02")
    assert (await open_shift(client, location)).status_code == 201
    assert (await open_shift(client, other)).status_code == 201


async def test_open_shift_for_unknown_location_is_404(client):
    resp = await open_shift(client, {"id": "nowhere"})
    assert resp.status_code == 404


async def test_close_records_variance_against_expected_cash(client, location, product):
    shift = (await open_shift(client, location)).json()["data"]
    url = f"{API}/pos/shifts/{shift['id']}"

    for kind, amount in (("cash_in", "20"), ("paid_out", "5"), ("drop", "30")):
        resp = await client.post(f"{url}/drawer-movements", json={"kind": kind, "amount": amount})
        assert resp.status_code == 201, resp.text

    # A cash sale at the same location lands on the open shift: 60 tendered, 10 change
    resp = await client.post(
        f"{API}/orders",
        json={"locationId": location["id"], "items": [{"productId": product["id"], "quantity": "4"}]},
    )
    order = resp.json()["data"]
    resp = await client.post(
        f"{API}/orders/{order['id']}/payments",
        json={"tenders": [{"paymentMethod": "cash", "amount": "60", "changeGiven": "10"}]},
    )
    assert resp.json()["data"][0]["shiftId"] == shift["id"]

    resp = await client.get(f"{url}/summary")
    summary = resp.json()["data"]
    # 100 + 20 - 5 - 30 + (60 - 10)
    assert Decimal(summary["expectedCash"]) == Decimal("135.00")
    assert Decimal(summary["cashSales"]) == Decimal("60.00")
    assert Decimal(summary["changeGiven"]) == Decimal("10.00")

    resp = await client.post(f"{url}/close", json={"actualCash": "132.50", "notes": "short"})

    assert resp.status_code == 200, resp.text
    closed = resp.json()["data"]
    assert closed["isOpen"] is False
    assert closed["closedAt"] is not None
    assert Decimal(closed["expectedCash"]) == Decimal("135.00")
    assert Decimal(closed["actualCash"]) == Decimal("132.50")
    assert Decimal(closed["variance"]) == Decimal("-2.50")
    assert closed["notes"] == "short"


async def test_close_with_only_float(client, location):
    shift = (await open_shift(client, location, float_amount="50")).json()["data"]

    resp = await client.post(f"{API}/pos/shifts/{shift['id']}/close", json={"actualCash": "55"})

    assert Decimal(resp.json()["data"]["variance"]) == Decimal("5.00")


async def test_closed_shift_rejects_close_and_movements(client, location):
    shift = (await open_shift(client, location)).json()["data"]
    url = f"{API}/pos/shifts/{shift['id']}"
    assert (await client.post(f"{url}/close", json={"actualCash": "100"})).status_code == 200

    assert (await client.post(f"{url}/close", json={"actualCash": "100"})).status_code == 409
    resp = await client.post(f"{url}/drawer-movements", json={"kind": "cash_in", "amount": "1"})
    assert resp.status_code == 409

    # The location can open a new shift once the previous one is closed
    assert (await open_shift(client, location)).status_code == 201


async def test_drawer_movement_validation(client, location):
    shift = (await open_shift(client, location)).json()["data"]
    url = f"{API}/pos/shifts/{shift['id']}/drawer-movements"

    assert (await client.post(url, json={"kind": "refund", "amount": "1"})).status_code == 422
    assert (await client.post(url, json={"kind": "cash_in", "amount": "0"})).status_code == 422
    resp = await client.post(f"{API}/pos/shifts/missing/drawer-movements", json={"kind": "cash_in", "amount": "1"})
    assert resp.status_code == 404


async def test_list_movements(client, location):
    shift = (await open_shift(client, location)).json()["data"]
    url = f"{API}/pos/shifts/{shift['id']}/drawer-movements"
    await client.post(url, json={"kind": "cash_in", "amount": "1", "reason": "coins"})
    await client.post(url, json={"kind": "cash_out", "amount": "2", "reason": "bank"})

    resp = await client.get(url)
    assert sorted(m["reason"] for m in resp.json()["data"]) == ["bank", "coins"]


async def test_list_shifts_by_status(client, location):
    other = await create_location(client, code="OUT-02")
    first = (await open_shift(client, location)).json()["data"]
    await open_shift(client, other)
    await client.post(f"{API}/pos/shifts/{first['id']}/close", json={"actualCash": "100"})

    resp = await client.get(f"{API}/pos/shifts", params={"status": "open"})
    assert resp.json()["meta"]["total"] == 1
    resp = await client.get(f"{API}/pos/shifts", params={"status": "closed"})
    assert [s["id"] for s in resp.json()["data"]] == [first["id"]]
    resp = await client.get(f"{API}/pos/shifts", params={"locationId": location["id"]})
    assert resp.json()["meta"]["total"] == 1
