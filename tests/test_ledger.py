"""Stock-ledger writes: negative-stock prevention and reversals."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from cafe_erp.core.exceptions import InsufficientStockError
from cafe_erp.domain.inventory import Lot
from cafe_erp.domain.location import Location
from cafe_erp.domain.product import Product
from cafe_erp.services.ledger import ISSUE, RECEIPT, LedgerEntry, LedgerService, build_reversals

TENANT = "t-ledger"


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def keys(session):
    location = Location(tenant_id=TENANT, code="WH", name="Warehouse", type="warehouse")
    product = Product(tenant_id=TENANT, sku="FLOUR", name="Flour", kind="raw_material")
    session.add_all([location, product])
    await session.flush()
    lot = Lot(tenant_id=TENANT, product_id=product.id, location_id=location.id, lot_no="L1")
    session.add(lot)
    await session.flush()
    return SimpleNamespace(product=product.id, location=location.id, lot=lot.id)


def entry(keys, qty, lot_id=None, type_=None):
    qty = Decimal(qty)
    return LedgerEntry(
        product_id=keys.product,
        location_id=keys.location,
        lot_id=lot_id,
        type=type_ or (RECEIPT if qty > 0 else ISSUE),
        qty_delta_base=qty,
        ref_type="ADJ",
        ref_id="ref-1",
    )


async def test_balance_sums_ledger_rows(session, keys):
    svc = LedgerService(session, TENANT)
    await svc.record_movements([entry(keys, "10"), entry(keys, "-4")])
    assert await svc.balance(keys.product, keys.location) == Decimal("6")


async def test_issue_beyond_balance_is_rejected(session, keys):
    svc = LedgerService(session, TENANT)
    await svc.record_movements([entry(keys, "5")])

    with pytest.raises(InsufficientStockError) as exc:
        await svc.record_movements([entry(keys, "-6")])

    assert exc.value.status_code == 409
    assert exc.value.code == "INSUFFICIENT_STOCK"
    assert "current balance 5 + change -6 = -1" in exc.value.message
    assert await svc.balance(keys.product, keys.location) == Decimal("5")


async def test_batch_is_checked_as_a_whole(session, keys):
    svc = LedgerService(session, TENANT)
    await svc.record_movements([entry(keys, "5")])

    # Each issue fits on its own; together they would go negative
    with pytest.raises(InsufficientStockError):
        await svc.record_movements([entry(keys, "-3"), entry(keys, "-3")])

    assert await svc.balance(keys.product, keys.location) == Decimal("5")


async def test_null_lot_only_matches_unlotted_stock(session, keys):
    svc = LedgerService(session, TENANT)
    await svc.record_movements([entry(keys, "8", lot_id=keys.lot)])

    with pytest.raises(InsufficientStockError):
        await svc.record_movements([entry(keys, "-1")])

    await svc.record_movements([entry(keys, "-8", lot_id=keys.lot)])
    assert await svc.balance(keys.product, keys.location, keys.lot) == Decimal("0")


async def test_balances_are_tenant_scoped(session, keys):
    await LedgerService(session, TENANT).record_movements([entry(keys, "3")])
    assert await LedgerService(session, "someone-else").balance(keys.product, keys.location) == 0


async def test_reverse_ref_negates_issue_rows(session, keys):
    svc = LedgerService(session, TENANT)
    await svc.record_movements([entry(keys, "10")])
    await svc.record_movements([entry(keys, "-4")])

    rows = await svc.reverse_ref("ADJ", "ref-1", types=[ISSUE], note_prefix="Void")

    assert [(r.type, r.qty_delta_base) for r in rows] == [("iss_rev", Decimal("4"))]
    assert rows[0].note == "Void"
    assert await svc.balance(keys.product, keys.location) == Decimal("10")


def test_build_reversals_mirrors_rows():
    row = SimpleNamespace(
        product_id="p",
        location_id="l",
        lot_id="lot",
        type="iss",
        qty_delta_base=Decimal("-2.5"),
        unit_cost=Decimal("1.2"),
        ref_type="ORDER",
        ref_id="o-1",
        note="Order ORD-1",
        created_by="u-1",
    )
    [rev] = build_reversals([row], created_by="u-2", note_prefix="Void:")
    assert rev.type == "iss_rev"
    assert rev.qty_delta_base == Decimal("2.5")
    assert rev.unit_cost == Decimal("1.2")
    assert rev.ref_id == "o-1"
    assert rev.note == "Void: Order ORD-1"
    assert rev.created_by == "u-2"
