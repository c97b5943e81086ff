"""Inventory schemas: lots, ledger movements, on-hand, FEFO picking, costing and valuation."""


from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field, model_validator

from cafe_erp.schemas.common import CamelModel

CostMethod = Literal["fifo", "mavg", "latest"]

# ---------------------------------------------------------------------------
# Lots
# ---------------------------------------------------------------------------

class LotCreate(CamelModel):
    product_id: str
    location_id: str
    lot_no: str | None = Field(default=None, max_length=100)
    expiry_date: date | None = None
    manufacture_date: date | None = None
    supplier_id: str | None = None
    notes: str | None = None

class LotOut(CamelModel):
    id: str
    product_id: str
    location_id: str
    supplier_id: str | None = None
    lot_no: str | None = None
    expiry_date: date | None = None
    manufacture_date: date | None = None
    received_date: datetime
    notes: str | None = None

class LotWithStockOut(LotOut):
    current_stock: Decimal
    expiry_status: str

# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class LedgerEntryOut(CamelModel):
    id: int
    product_id: str
    location_id: str
    lot_id: str | None = None
    txn_ts: datetime
    type: str
    qty_delta_base: Decimal
    unit_cost: Decimal | None = None
    ref_type: str
    ref_id: str
    note: str | None = None
    created_by: str | None = None

class LotDetailOut(LotWithStockOut):
    movements: list[LedgerEntryOut] = Field(default_factory=list)

class StockMovementCreate(CamelModel):
    """Manual adjustment: positive quantity receives, negative issues."""

    product_id: str
    location_id: str
    lot_id: str | None = None
    quantity: Decimal
    unit_cost: Decimal | None = Field(default=None, ge=0)
    ref_type: str = Field(default="ADJ", max_length=24)
    ref_id: str | None = Field(default=None, max_length=36)
    note: str | None = None

    @model_validator(mode="after")
    def _non_zero(self):
        if self.quantity == 0:
            raise ValueError("quantity must not be zero")
        return self

class StockReceiptCreate(CamelModel):
    """Receive stock into a (found or created) lot and open a cost layer for it."""

    product_id: str
    location_id: str
    quantity: Decimal = Field(gt=0)
    unit_cost: Decimal = Field(ge=0)
    lot_no: str | None = Field(default=None, max_length=100)
    expiry_date: date | None = None
    manufacture_date: date | None = None
    supplier_id: str | None = None
    ref_type: str = Field(default="GR", max_length=24)
    ref_id: str | None = Field(default=None, max_length=36)
    note: str | None = None

class StockReceiptOut(CamelModel):
    lot: LotOut | None = None
    ledger_entry: LedgerEntryOut
    cost_layer_id: int

# ---------------------------------------------------------------------------
# On-hand and lot balances
# ---------------------------------------------------------------------------

class OnHandRow(CamelModel):
    product_id: str
    product_sku: str | None = None
    product_name: str | None = None
    is_perishable: bool = False
    location_id: str
    location_code: str | None = None
    location_name: str | None = None
    quantity_on_hand: Decimal
    stock_status: str
    latest_unit_cost: Decimal | None = None
    total_value: Decimal
    lot_count: int
    first_transaction_date: datetime | None = None
    last_transaction_date: datetime | None = None

class LotBalanceRow(CamelModel):
    lot_id: str
    lot_no: str | None = None
    product_id: str
    location_id: str
    quantity_on_hand: Decimal
    expiry_date: date | None = None
    days_to_expiry: int | None = None
    expiry_status: str
    lot_unit_cost: Decimal | None = None
    first_transaction_date: datetime | None = None
    last_transaction_date: datetime | None = None

# ---------------------------------------------------------------------------
# FEFO
# ---------------------------------------------------------------------------

class FefoRecommendation(CamelModel):
    lot_id: str
    lot_no: str | None = None
    quantity_available: Decimal
    expiry_date: date | None = None
    days_to_expiry: int | None = None
    expiry_status: str
    pick_priority: int
    unit_cost: Decimal | None = None

class FefoRecommendationsOut(CamelModel):
    product_id: str
    product_sku: str
    product_name: str
    location_id: str
    location_code: str
    location_name: str
    recommendations: list[FefoRecommendation]
    total_available: Decimal
    quantity_needed: Decimal | None = None
    sufficient_stock: bool | None = None
    lots_required: int | None = None

class FefoAllocateRequest(CamelModel):
    product_id: str
    location_id: str
    quantity_needed: Decimal = Field(gt=0)
    ref_type: str = Field(max_length=24)
    ref_id: str = Field(max_length=36)
    allow_partial: bool = False
    reserve_only: bool = False

class FefoAllocationLine(CamelModel):
    lot_id: str
    lot_no: str | None = None
    quantity_allocated: Decimal
    expiry_date: date | None = None
    unit_cost: Decimal | None = None

class FefoAllocationOut(CamelModel):
    product_id: str
    location_id: str
    quantity_requested: Decimal
    quantity_allocated: Decimal
    fully_allocated: bool
    allocations: list[FefoAllocationLine]
    ref_type: str
    ref_id: str
    reserve_only: bool

# ---------------------------------------------------------------------------
# Costing / valuation
# ---------------------------------------------------------------------------

class MavgCostOut(CamelModel):
    product_id: str
    location_id: str
    mavg_cost: Decimal
    quantity_costed: Decimal
    layer_count: int

class ValuationRequest(CamelModel):
    location_id: str | None = None
    product_id: str | None = None
    cost_method: CostMethod = "fifo"

class LocationValuation(CamelModel):
    location_id: str
    location_name: str | None = None
    total_value: Decimal
    item_count: int

class ProductValuation(CamelModel):
    product_id: str
    product_name: str | None = None
    total_quantity: Decimal
    total_value: Decimal
    average_cost: Decimal

class ValuationOut(CamelModel):
    total_value: Decimal
    location_breakdown: list[LocationValuation]
    product_breakdown: list[ProductValuation]
    cost_method: str
    calculated_at: datetime
