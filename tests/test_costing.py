"""Unit tests for the pure costing / FEFO algorithms."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from cafe_erp.services import costing
from cafe_erp.services.costing import LotBalance

TODAY = date(2026, 3, 15)


@dataclass
class Layer:
    id: int
    qty_remaining_base: Decimal
    unit_cost: Decimal


def lot(lot_id, qty, expiry_days=None, first=None):
    return LotBalance(
        lot_id=lot_id,
        lot_no=lot_id.upper(),
        quantity=Decimal(qty),
        expiry_date=TODAY + timedelta(days=expiry_days) if expiry_days is not None else None,
        first_txn_at=first,
    )


# ---------------------------------------------------------------------------
# Expiry / stock status
# ---------------------------------------------------------------------------

def test_expiry_status_buckets():
    assert costing.expiry_status(None, TODAY) == "no_expiry"
    assert costing.expiry_status(TODAY - timedelta(days=1), TODAY) == "expired"
    assert costing.expiry_status(TODAY, TODAY) == "expiring_soon"
    assert costing.expiry_status(TODAY + timedelta(days=7), TODAY) == "expiring_soon"
    assert costing.expiry_status(TODAY + timedelta(days=8), TODAY) == "expiring_this_month"
    assert costing.expiry_status(TODAY + timedelta(days=30), TODAY) == "expiring_this_month"
    assert costing.expiry_status(TODAY + timedelta(days=31), TODAY) == "good"


def test_stock_status_thresholds():
    assert costing.stock_status(Decimal("0")) == "out_of_stock"
    assert costing.stock_status(Decimal("-2")) == "out_of_stock"
    assert costing.stock_status(Decimal("10")) == "low_stock"
    assert costing.stock_status(Decimal("10.5")) == "in_stock"
    assert costing.stock_status(Decimal("4"), low_threshold=Decimal("3")) == "in_stock"


def test_money_rounds_half_up():
    assert costing.money(Decimal("3.305")) == Decimal("3.31")
    assert costing.money(Decimal("3.304")) == Decimal("3.30")


# ---------------------------------------------------------------------------
# FEFO
# ---------------------------------------------------------------------------

def test_rank_fefo_orders_by_expiry_and_drops_expired_and_empty():
    picks = costing.rank_fefo(
        [
            lot("late", "5", expiry_days=20),
            lot("never", "5"),
            lot("expired", "5", expiry_days=-1),
            lot("soon", "5", expiry_days=2),
            lot("empty", "0", expiry_days=1),
        ],
        TODAY,
    )
    assert [p.lot.lot_id for p in picks] == ["soon", "late", "never"]
    assert [p.pick_priority for p in picks] == [1, 2, 3]
    assert picks[0].expiry_status == "expiring_soon"
    assert picks[0].days_to_expiry == 2
    assert picks[2].expiry_status == "no_expiry"


def test_rank_fefo_breaks_ties_on_first_transaction():
    early = datetime(2026, 3, 1, 8, 0)
    late = datetime(2026, 3, 2, 8, 0)
    picks = costing.rank_fefo(
        [lot("b", "1", expiry_days=5, first=late), lot("a", "1", expiry_days=5, first=early)],
        TODAY,
    )
    assert [p.lot.lot_id for p in picks] == ["a", "b"]


def test_allocate_fefo_spans_lots_in_order():
    result = costing.allocate_fefo([lot("a", "4"), lot("b", "10"), lot("c", "10")], Decimal("9"))
    assert [(a.lot_id, a.quantity) for a in result.allocations] == [
        ("a", Decimal("4")),
        ("b", Decimal("5")),
    ]
    assert result.allocated == Decimal("9")
    assert result.remaining == Decimal("0")
    assert result.fully_allocated


def test_allocate_fefo_reports_shortfall():
    result = costing.allocate_fefo([lot("a", "2"), lot("b", "1")], Decimal("5"))
    assert result.allocated == Decimal("3")
    assert result.remaining == Decimal("2")
    assert not result.fully_allocated


def test_lots_required_counts_leading_picks():
    picks = costing.rank_fefo(
        [lot("a", "4", expiry_days=1), lot("b", "4", expiry_days=2), lot("c", "4", expiry_days=3)],
        TODAY,
    )
    assert costing.lots_required(picks, Decimal("4")) == 1
    assert costing.lots_required(picks, Decimal("5")) == 2
    assert costing.lots_required(picks, Decimal("100")) == 3


# ---------------------------------------------------------------------------
# Cost layers
# ---------------------------------------------------------------------------

def test_moving_average_cost_weights_by_remaining_quantity():
    layers = [
        Layer(1, Decimal("10"), Decimal("2")),
        Layer(2, Decimal("30"), Decimal("4")),
        Layer(3, Decimal("0"), Decimal("100")),
    ]
    assert costing.moving_average_cost(layers) == Decimal("3.5000")


def test_moving_average_cost_rounds_to_four_places():
    layers = [Layer(1, Decimal("3"), Decimal("1")), Layer(2, Decimal("0"), Decimal("9"))]
    layers.append(Layer(3, Decimal("6"), Decimal("2")))
    assert costing.moving_average_cost(layers) == Decimal("1.6667")


def test_moving_average_cost_falls_back_when_no_quantity():
    assert costing.moving_average_cost([], Decimal("1.25")) == Decimal("1.2500")
    assert costing.moving_average_cost([Layer(1, Decimal("0"), Decimal("9"))]) == Decimal("0.0000")


def test_consume_fifo_takes_oldest_layers_first():
    layers = [
        Layer(1, Decimal("5"), Decimal("2")),
        Layer(2, Decimal("0"), Decimal("7")),
        Layer(3, Decimal("10"), Decimal("3")),
    ]
    result = costing.consume_fifo(layers, Decimal("8"))
    assert [(t.layer_id, t.quantity) for t in result.takes] == [(1, Decimal("5")), (3, Decimal("3"))]
    assert result.cost == Decimal("19")
    assert result.unit_cost == Decimal("2.3750")
    assert result.remaining == Decimal("0")
    # plan only; layers are untouched
    assert layers[0].qty_remaining_base == Decimal("5")


def test_consume_fifo_reports_uncovered_quantity():
    result = costing.consume_fifo([Layer(1, Decimal("2"), Decimal("1"))], Decimal("5"))
    assert result.quantity == Decimal("2")
    assert result.remaining == Decimal("3")


def test_consume_fifo_with_no_layers_has_no_unit_cost():
    result = costing.consume_fifo([], Decimal("1"))
    assert result.takes == []
    assert result.unit_cost is None
