"""POS shift and cash-drawer schemas."""


from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field

from cafe_erp.schemas.common import CamelModel

MovementKind = Literal["cash_in", "cash_out", "paid_out", "drop"]

class ShiftOpen(CamelModel):
    location_id: str
    device_id: str | None = Field(default=None, max_length=64)
    float_amount: Decimal = Field(default=Decimal("0"), ge=0)

class ShiftClose(CamelModel):
    actual_cash: Decimal = Field(ge=0)
    notes: str | None = None

class ShiftOut(CamelModel):
    id: str
    tenant_id: str
    location_id: str
    device_id: str | None = None
    opened_by: str | None = None
    opened_at: datetime
    closed_by: str | None = None
    closed_at: datetime | None = None
    float_amount: Decimal
    expected_cash: Decimal
    actual_cash: Decimal
    variance: Decimal
    notes: str | None = None
    is_open: bool

class DrawerMovementCreate(CamelModel):
    kind: MovementKind
    amount: Decimal = Field(gt=0)
    reason: str | None = None

class DrawerMovementOut(CamelModel):
    id: str
    shift_id: str
    kind: str
    amount: Decimal
    reason: str | None = None
    created_by: str | None = None
    created_at: datetime

class ShiftSummaryOut(CamelModel):
    """Live cash reconciliation of a shift."""

    shift_id: str
    float_amount: Decimal
    cash_in: Decimal
    cash_out: Decimal
    paid_out: Decimal
    drops: Decimal
    cash_sales: Decimal
    change_given: Decimal
    expected_cash: Decimal
