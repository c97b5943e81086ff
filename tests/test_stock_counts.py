"""Stock counts: draft lines, review snapshot, and variance posting as ``adj`` ledger rows."""

from decimal import Decimal

from tests.helpers import API, create_location, on_hand_qty, receive


async def start_count(client, location_id: str, **headers) -> dict:
    resp = await client.post(f"{API}/stock-counts", json={"locationId": location_id}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def add_line(client, count_id: str, product_id: str, counted: str, lot_id: str | None = None):
    body = {"productId": product_id, "countedQtyBase": counted}
    if lot_id:
        body["lotId"] = lot_id
    return await client.post(f"{API}/stock-counts/{count_id}/lines", json=body)


async def adj_rows(client, count_id: str) -> list[dict]:
    resp = await client.get(
        f"{API}/inventory/ledger", params={"type": "adj", "refType": "STOCK_COUNT", "refId": count_id}
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


async def test_create_count_starts_in_draft(client, location):
    count = await start_count(client, location["id"], **{"X-User-ID": "u-1"})

    assert count["status"] == "draft"
    assert count["countNumber"].startswith("SC-")
    assert count["createdBy"] == "u-1"
    assert count["lines"] == []


async def test_create_count_for_unknown_location_is_404(client):
    resp = await client.post(f"{API}/stock-counts", json={"locationId": "missing"})
    assert resp.status_code == 404


async def test_line_snapshots_system_quantity_and_variance(client, location, product):
    await receive(client, product["id"], location["id"], "10", "2")
    count = await start_count(client, location["id"])

    resp = await add_line(client, count["id"], product["id"], "7.5")

    assert resp.status_code == 201, resp.text
    line = resp.json()["data"]
    assert Decimal(line["systemQtyBase"]) == Decimal("10")
    assert Decimal(line["varianceQtyBase"]) == Decimal("-2.5")

    resp = await client.patch(f"{API}/stock-counts/lines/{line['id']}", json={"countedQtyBase": "11"})
    assert Decimal(resp.json()["data"]["varianceQtyBase"]) == Decimal("1")

    resp = await client.get(f"{API}/stock-counts/{count['id']}/lines")
    assert [l["id"] for l in resp.json()["data"]] == [line["id"]]


async def test_duplicate_line_is_conflict(client, location, product):
    count = await start_count(client, location["id"])
    assert (await add_line(client, count["id"], product["id"], "1")).status_code == 201

    resp = await add_line(client, count["id"], product["id"], "2")

    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "CONFLICT"


async def test_line_lot_must_belong_to_product_and_location(client, location, product):
    other = await create_location(client, code="OUT-02")
    received = await receive(client, product["id"], other["id"], "5", "1", lot_no="ELSEWHERE")
    count = await start_count(client, location["id"])

    resp = await add_line(client, count["id"], product["id"], "5", lot_id=received["lot"]["id"])
    assert resp.status_code == 404

    resp = await add_line(client, count["id"], "missing", "5")
    assert resp.status_code == 404


async def test_negative_counted_quantity_is_validation_error(client, location, product):
    count = await start_count(client, location["id"])
    resp = await add_line(client, count["id"], product["id"], "-1")
    assert resp.status_code == 422


async def test_shortage_posts_negative_adjustment_at_layer_cost(client, location, product):
    await receive(client, product["id"], location["id"], "10", "2")
    count = await start_count(client, location["id"])
    await add_line(client, count["id"], product["id"], "7")

    resp = await client.post(f"{API}/stock-counts/{count['id']}/review")
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["status"] == "review"

    resp = await client.post(f"{API}/stock-counts/{count['id']}/post", headers={"X-User-ID": "u-9"})

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["message"] == "Stock count posted"
    assert body["data"]["status"] == "posted"
    assert body["data"]["postedBy"] == "u-9"
    assert body["data"]["postedAt"] is not None

    [row] = await adj_rows(client, count["id"])
    assert Decimal(row["qtyDeltaBase"]) == Decimal("-3")
    assert Decimal(row["unitCost"]) == Decimal("2")
    assert row["createdBy"] == "u-9"
    assert await on_hand_qty(client, product["id"], location["id"]) == Decimal("7")

    resp = await client.get(
        f"{API}/inventory/cost/{product['id']}", params={"locationId": location["id"]}
    )
    assert Decimal(resp.json()["data"]["quantityCosted"]) == Decimal("7")


async def test_surplus_posts_positive_adjustment_at_moving_average(client, location, product):
    received = await receive(client, product["id"], location["id"], "10", "2", lot_no="A", expiry_days=30)
    await receive(client, product["id"], location["id"], "10", "4")
    lot_id = received["lot"]["id"]
    count = await start_count(client, location["id"])
    await add_line(client, count["id"], product["id"], "12", lot_id=lot_id)

    await client.post(f"{API}/stock-counts/{count['id']}/review")
    resp = await client.post(f"{API}/stock-counts/{count['id']}/post")
    assert resp.status_code == 200, resp.text

    [row] = await adj_rows(client, count["id"])
    assert row["lotId"] == lot_id
    assert Decimal(row["qtyDeltaBase"]) == Decimal("2")
    assert Decimal(row["unitCost"]) == Decimal("3")

    resp = await client.get(f"{API}/inventory/lots/{lot_id}")
    assert Decimal(resp.json()["data"]["currentStock"]) == Decimal("12")

    resp = await client.get(
        f"{API}/inventory/cost/{product['id']}", params={"locationId": location["id"]}
    )
    cost = resp.json()["data"]
    # 10 @ 2 + 10 @ 4 + 2 @ 3
    assert cost["layerCount"] == 3
    assert Decimal(cost["quantityCosted"]) == Decimal("22")
    assert Decimal(cost["mavgCost"]) == Decimal("3")


async def test_count_with_both_directions_posts_one_row_per_variance(client, location, product):
    received = await receive(client, product["id"], location["id"], "4", "1", lot_no="A", expiry_days=10)
    await receive(client, product["id"], location["id"], "6", "1")
    count = await start_count(client, location["id"])
    await add_line(client, count["id"], product["id"], "5", lot_id=received["lot"]["id"])
    await add_line(client, count["id"], product["id"], "2")

    await client.post(f"{API}/stock-counts/{count['id']}/review")
    await client.post(f"{API}/stock-counts/{count['id']}/post")

    rows = await adj_rows(client, count["id"])
    assert sorted(Decimal(r["qtyDeltaBase"]) for r in rows) == [Decimal("-4"), Decimal("1")]
    assert await on_hand_qty(client, product["id"], location["id"]) == Decimal("7")


async def test_count_without_variance_posts_no_ledger_rows(client, location, product):
    await receive(client, product["id"], location["id"], "10", "2")
    count = await start_count(client, location["id"])
    await add_line(client, count["id"], product["id"], "10")

    await client.post(f"{API}/stock-counts/{count['id']}/review")
    resp = await client.post(f"{API}/stock-counts/{count['id']}/post")

    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "posted"
    assert await adj_rows(client, count["id"]) == []


async def test_review_refreshes_system_quantity(client, location, product):
    await receive(client, product["id"], location["id"], "10", "2")
    count = await start_count(client, location["id"])
    await add_line(client, count["id"], product["id"], "8")
    await client.post(
        f"{API}/inventory/movements",
        json={"productId": product["id"], "locationId": location["id"], "quantity": "-2"},
    )

    resp = await client.post(f"{API}/stock-counts/{count['id']}/review")

    [line] = resp.json()["data"]["lines"]
    assert Decimal(line["systemQtyBase"]) == Decimal("8")
    assert Decimal(line["varianceQtyBase"]) == Decimal("0")


async def test_post_requires_review(client, location, product):
    count = await start_count(client, location["id"])
    await add_line(client, count["id"], product["id"], "1")

    resp = await client.post(f"{API}/stock-counts/{count['id']}/post")

    assert resp.status_code == 409
    assert await adj_rows(client, count["id"]) == []


async def test_review_without_lines_is_conflict(client, location):
    count = await start_count(client, location["id"])
    resp = await client.post(f"{API}/stock-counts/{count['id']}/review")
    assert resp.status_code == 409


async def test_reviewed_count_is_locked(client, location, product):
    count = await start_count(client, location["id"])
    line = (await add_line(client, count["id"], product["id"], "1")).json()["data"]
    await client.post(f"{API}/stock-counts/{count['id']}/review")

    assert (await add_line(client, count["id"], product["id"], "2")).status_code == 409
    resp = await client.patch(f"{API}/stock-counts/lines/{line['id']}", json={"countedQtyBase": "3"})
    assert resp.status_code == 409
    assert (await client.delete(f"{API}/stock-counts/lines/{line['id']}")).status_code == 409
    resp = await client.patch(f"{API}/stock-counts/{count['id']}", json={"notes": "late"})
    assert resp.status_code == 409
    assert (await client.post(f"{API}/stock-counts/{count['id']}/review")).status_code == 409


async def test_posted_count_cannot_post_again(client, location, product):
    await receive(client, product["id"], location["id"], "3", "1")
    count = await start_count(client, location["id"])
    await add_line(client, count["id"], product["id"], "1")
    await client.post(f"{API}/stock-counts/{count['id']}/review")
    assert (await client.post(f"{API}/stock-counts/{count['id']}/post")).status_code == 200

    resp = await client.post(f"{API}/stock-counts/{count['id']}/post")

    assert resp.status_code == 409
    assert len(await adj_rows(client, count["id"])) == 1


async def test_shortage_beyond_current_stock_is_rejected_at_post(client, location, product):
    await receive(client, product["id"], location["id"], "10", "2")
    count = await start_count(client, location["id"])
    await add_line(client, count["id"], product["id"], "0")
    await client.post(f"{API}/stock-counts/{count['id']}/review")
    await client.post(
        f"{API}/inventory/movements",
        json={"productId": product["id"], "locationId": location["id"], "quantity": "-5"},
    )

    resp = await client.post(f"{API}/stock-counts/{count['id']}/post")

    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INSUFFICIENT_STOCK"
    resp = await client.get(f"{API}/stock-counts/{count['id']}")
    assert resp.json()["data"]["status"] == "review"
    assert await on_hand_qty(client, product["id"], location["id"]) == Decimal("5")


async def test_delete_line_and_update_count_in_draft(client, location, product):
    other = await create_location(client, code="OUT-02")
    count = await start_count(client, location["id"])
    line = (await add_line(client, count["id"], product["id"], "1")).json()["data"]

    resp = await client.patch(f"{API}/stock-counts/{count['id']}", json={"locationId": other["id"]})
    assert resp.status_code == 409

    assert (await client.delete(f"{API}/stock-counts/lines/{line['id']}")).status_code == 204
    resp = await client.patch(
        f"{API}/stock-counts/{count['id']}", json={"locationId": other["id"], "notes": "moved"}
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["locationId"] == other["id"]
    assert resp.json()["data"]["lines"] == []


async def test_list_counts_filters_by_status_and_tenant(client, location, product):
    draft = await start_count(client, location["id"])
    reviewed = await start_count(client, location["id"])
    await add_line(client, reviewed["id"], product["id"], "0")
    await client.post(f"{API}/stock-counts/{reviewed['id']}/review")

    resp = await client.get(f"{API}/stock-counts", params={"status": "draft"})
    assert [c["id"] for c in resp.json()["data"]] == [draft["id"]]

    resp = await client.get(f"{API}/stock-counts", headers={"X-Tenant-ID": "other-tenant"})
    assert resp.json()["meta"]["total"] == 0
