"""Request helpers shared by the API tests."""

from datetime import date, timedelta
from decimal import Decimal

from httpx import AsyncClient

API = "/api/v1"


async def create_location(client: AsyncClient, code: str = "OUT-01", **extra) -> dict:
    resp = await client.post(f"{API}/locations", json={"code": code, "name": f"Outlet {code}", **extra})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def create_product(client: AsyncClient, sku: str = "CROISSANT", **extra) -> dict:
    body = {"sku": sku, "name": sku.title(), "kind": "finished_good", **extra}
    resp = await client.post(f"{API}/products", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def receive(
    client: AsyncClient,
    product_id: str,
    location_id: str,
    quantity: str,
    unit_cost: str,
    lot_no: str | None = None,
    expiry_days: int | None = None,
) -> dict:
    body = {
        "productId": product_id,
        "locationId": location_id,
        "quantity": quantity,
        "unitCost": unit_cost,
    }
    if lot_no:
        body["lotNo"] = lot_no
    if expiry_days is not None:
        body["expiryDate"] = (date.today() + timedelta(days=expiry_days)).isoformat()
    resp = await client.post(f"{API}/inventory/receipts", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def on_hand_qty(client: AsyncClient, product_id: str, location_id: str) -> Decimal:
    resp = await client.get(
        f"{API}/inventory/onhand", params={"productId": product_id, "locationId": location_id}
    )
    assert resp.status_code == 200, resp.text
    rows = resp.json()["data"]
    return Decimal(rows[0]["quantityOnHand"]) if rows else Decimal("0")


