"""Order, payment and kitchen-flow schemas."""


from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field

from cafe_erp.schemas.common import CamelModel

Channel = Literal["pos", "online", "wholesale"]
OrderType = Literal["dine_in", "take_away", "delivery"]
Tender = Literal["cash", "card", "qris", "transfer", "voucher"]
KitchenStatus = Literal["open", "preparing", "ready", "served", "cancelled"]
PrepStatus = Literal["queued", "preparing", "ready", "served", "cancelled"]

class OrderItemCreate(CamelModel):
    product_id: str
    quantity: Decimal = Field(gt=0)
    unit_price: Decimal | None = Field(default=None, ge=0)  # defaults to the product price
    station: str | None = Field(default=None, max_length=32)
    notes: str | None = None

class OrderCreate(CamelModel):
    location_id: str
    channel: Channel = "pos"
    order_type: OrderType = "take_away"
    table_no: str | None = Field(default=None, max_length=16)
    device_id: str | None = Field(default=None, max_length=64)
    items: list[OrderItemCreate] = Field(min_length=1)

class OrderUpdate(CamelModel):
    table_no: str | None = Field(default=None, max_length=16)
    order_type: OrderType | None = None
    discount_amount: Decimal | None = Field(default=None, ge=0)

class OrderItemOut(CamelModel):
    id: str
    product_id: str
    lot_id: str | None = None
    quantity: Decimal
    unit_price: Decimal
    discount_amount: Decimal
    line_total: Decimal
    prep_status: str
    station: str | None = None
    notes: str | None = None

class PaymentOut(CamelModel):
    id: str
    order_id: str
    shift_id: str | None = None
    tender: str
    amount: Decimal
    reference: str | None = None
    change: Decimal
    paid_at: datetime

class OrderOut(CamelModel):
    id: str
    tenant_id: str
    order_number: str
    location_id: str
    device_id: str | None = None
    channel: str
    order_type: str
    status: str
    kitchen_status: str
    table_no: str | None = None
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    kitchen_notes: str | None = None
    void_reason: str | None = None
    posted_at: datetime | None = None
    voided_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemOut] = Field(default_factory=list)
    payments: list[PaymentOut] = Field(default_factory=list)

class OrderQuoteOut(CamelModel):
    order_id: str
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    recalculated_at: datetime

class OrderVoid(CamelModel):
    reason: str = Field(min_length=1)

class TenderIn(CamelModel):
    payment_method: Tender
    amount: Decimal = Field(gt=0)
    transaction_ref: str | None = Field(default=None, max_length=128)
    change_given: Decimal = Field(default=Decimal("0"), ge=0)

class PaymentCreate(CamelModel):
    tenders: list[TenderIn] = Field(min_length=1)

class KitchenStatusUpdate(CamelModel):
    kitchen_status: KitchenStatus
    notes: str | None = None

class PrepStatusUpdate(CamelModel):
    prep_status: PrepStatus
    station: str | None = Field(default=None, max_length=32)
    notes: str | None = None

class PrepStatusOut(CamelModel):
    item: OrderItemOut
    order_kitchen_status: str
