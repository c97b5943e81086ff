"""Inventory costing and lot-picking algorithms.

Pure functions with no database or FastAPI access. The inventory and order
services load rows through repositories and hand plain values in here.

Responsibilities:
  - Expiry classification of lots
  - FEFO (first-expiry-first-out) ranking and allocation
  - Moving-average cost over open cost layers
  - FIFO depletion of cost layers
  - Money / quantity rounding
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Protocol, Sequence

ZERO = Decimal("0")
MONEY = Decimal("0.01")
UNIT_COST = Decimal("0.0001")
QUANTITY = Decimal("0.000001")

# Expiry buckets
NO_EXPIRY = "no_expiry"
EXPIRED = "expired"
EXPIRING_SOON = "expiring_soon"
EXPIRING_THIS_MONTH = "expiring_this_month"
GOOD = "good"

# ---------------------------------------------------------------------------
# Rounding helpers
# ---------------------------------------------------------------------------

def money(value: Decimal | int | str) -> Decimal:
    return Decimal(value).quantize(MONEY, rounding=ROUND_HALF_UP)

def unit_cost(value: Decimal | int | str) -> Decimal:
    return Decimal(value).quantize(UNIT_COST, rounding=ROUND_HALF_UP)

def quantity(value: Decimal | int | str) -> Decimal:
    return Decimal(value).quantize(QUANTITY, rounding=ROUND_HALF_UP)

# ---------------------------------------------------------------------------
# Stock / expiry classification
# ---------------------------------------------------------------------------

def stock_status(qty: Decimal, low_threshold: Decimal = Decimal("10")) -> str:
    if qty <= 0:
        return "out_of_stock"
    if qty <= low_threshold:
        return "low_stock"
    return "in_stock"

def days_to_expiry(expiry_date: date | None, today: date) -> int | None:
    return None if expiry_date is None else (expiry_date - today).days

def expiry_status(
    expiry_date: date | None,
    today: date,
    soon_days: int = 7,
    month_days: int = 30,
) -> str:
    """Bucket a lot by how close it is to expiry. A lot expiring today is still usable."""
    if expiry_date is None:
        return NO_EXPIRY
    days = (expiry_date - today).days
    if days < 0:
        return EXPIRED
    if days <= soon_days:
        return EXPIRING_SOON
    if days <= month_days:
        return EXPIRING_THIS_MONTH
    return GOOD

# ---------------------------------------------------------------------------
# FEFO
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LotBalance:
    """Quantity on hand of one lot (``lot_id=None`` is the unlotted balance)."""

    lot_id: str | None
    lot_no: str | None
    quantity: Decimal
    expiry_date: date | None = None
    first_txn_at: datetime | None = None
    unit_cost: Decimal | None = None


@dataclass(frozen=True)
class FefoPick:
    lot: LotBalance
    pick_priority: int
    expiry_status: str
    days_to_expiry: int | None


@dataclass(frozen=True)
class Allocation:
    lot_id: str | None
    lot_no: str | None
    quantity: Decimal
    expiry_date: date | None
    unit_cost: Decimal | None


@dataclass
class AllocationResult:
    requested: Decimal
    allocations: list[Allocation] = field(default_factory=list)

    @property
    def allocated(self) -> Decimal:
        return sum((a.quantity for a in self.allocations), ZERO)

    @property
    def remaining(self) -> Decimal:
        return self.requested - self.allocated

    @property
    def fully_allocated(self) -> bool:
        return self.remaining <= 0


def _fefo_key(lot: LotBalance) -> tuple:
    # Lots without expiry go last; FIFO on first receipt breaks ties
    first = lot.first_txn_at.timestamp() if lot.first_txn_at is not None else 0.0
    return (
        lot.expiry_date is None,
        lot.expiry_date or date.min,
        lot.first_txn_at is None,
        first,
    )

def rank_fefo(
    lots: Iterable[LotBalance],
    today: date,
    soon_days: int = 7,
    month_days: int = 30,
) -> list[FefoPick]:
    """Order pickable lots by FEFO priority. Expired and empty lots are dropped."""
    pickable = [
        lot for lot in lots
        if lot.quantity > 0
        and expiry_status(lot.expiry_date, today, soon_days, month_days) != EXPIRED
    ]
    pickable.sort(key=_fefo_key)
    return [
        FefoPick(
            lot=lot,
            pick_priority=index,
            expiry_status=expiry_status(lot.expiry_date, today, soon_days, month_days),
            days_to_expiry=days_to_expiry(lot.expiry_date, today),
        )
        for index, lot in enumerate(pickable, start=1)
    ]

def allocate_fefo(candidates: Iterable[LotBalance], quantity_needed: Decimal) -> AllocationResult:
    """Take ``min(available, remaining)`` from each candidate, in the order given."""
    result = AllocationResult(requested=Decimal(quantity_needed))
    remaining = result.requested
    for lot in candidates:
        if remaining <= 0:
            break
        if lot.quantity <= 0:
            continue
        take = min(lot.quantity, remaining)
        result.allocations.append(
            Allocation(
                lot_id=lot.lot_id,
                lot_no=lot.lot_no,
                quantity=take,
                expiry_date=lot.expiry_date,
                unit_cost=lot.unit_cost,
            )
        )
        remaining -= take
    return result

def lots_required(picks: Sequence[FefoPick], quantity_needed: Decimal) -> int:
    """Number of leading FEFO picks needed to cover ``quantity_needed``."""
    cumulative = ZERO
    count = 0
    for pick in picks:
        if cumulative >= quantity_needed:
            break
        cumulative += pick.lot.quantity
        count += 1
    return count

# ---------------------------------------------------------------------------
# Cost layers
# ---------------------------------------------------------------------------

class CostLayerLike(Protocol):
    id: int
    qty_remaining_base: Decimal
    unit_cost: Decimal


def moving_average_cost(
    layers: Iterable[CostLayerLike],
    fallback: Decimal | None = None,
) -> Decimal:
    """Σ(qty × cost) / Σqty over layers with quantity left; ``fallback`` when there are none."""
    total_value = ZERO
    total_qty = ZERO
    for layer in layers:
        if layer.qty_remaining_base > 0:
            total_value += layer.qty_remaining_base * layer.unit_cost
            total_qty += layer.qty_remaining_base
    if total_qty > 0:
        return unit_cost(total_value / total_qty)
    return unit_cost(fallback or ZERO)


@dataclass(frozen=True)
class LayerTake:
    layer_id: int
    quantity: Decimal
    unit_cost: Decimal

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_cost


@dataclass
class FifoResult:
    requested: Decimal
    takes: list[LayerTake] = field(default_factory=list)

    @property
    def quantity(self) -> Decimal:
        return sum((t.quantity for t in self.takes), ZERO)

    @property
    def cost(self) -> Decimal:
        return sum((t.amount for t in self.takes), ZERO)

    @property
    def remaining(self) -> Decimal:
        return self.requested - self.quantity

    @property
    def unit_cost(self) -> Decimal | None:
        qty = self.quantity
        return unit_cost(self.cost / qty) if qty > 0 else None


def consume_fifo(layers: Sequence[CostLayerLike], qty: Decimal) -> FifoResult:
    """Plan the depletion of ``qty`` from ``layers`` (already oldest-first).

    Layers are not mutated; the caller applies the takes. A non-zero
    ``remaining`` means the layers did not cover the quantity (uncosted stock).
    """
    result = FifoResult(requested=Decimal(qty))
    remaining = result.requested
    for layer in layers:
        if remaining <= 0:
            break
        available = layer.qty_remaining_base
        if available <= 0:
            continue
        take = min(available, remaining)
        result.takes.append(LayerTake(layer_id=layer.id, quantity=take, unit_cost=layer.unit_cost))
        remaining -= take
    return result
