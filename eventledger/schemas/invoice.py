"""Invoice schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DiscountType = Literal["fixed", "percentage"]


class InvoiceItemInput(BaseModel):
    description: str
    quantity: Decimal = Decimal("1")
    unit_price: Decimal


class InvoiceItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal


class InvoiceCreate(BaseModel):
    client_id: int
    event_id: Optional[int] = None
    invoice_date: Optional[datetime] = None
    due_date: datetime
    items: List[InvoiceItemInput]
    tax_rate: Optional[Decimal] = None
    discount: Decimal = Decimal("0")
    discount_type: DiscountType = "fixed"
    notes: Optional[str] = None
    terms: Optional[str] = None


class InvoiceUpdate(BaseModel):
    items: Optional[List[InvoiceItemInput]] = None
    tax_rate: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    discount_type: Optional[DiscountType] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    terms: Optional[str] = None


class TotalsRequest(BaseModel):
    items: List[InvoiceItemInput]
    tax_rate: Optional[Decimal] = None
    discount: Decimal = Decimal("0")
    discount_type: DiscountType = "fixed"


class TotalsRead(BaseModel):
    items: List[InvoiceItemRead]
    subtotal: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    total: Decimal


class InvoicePaymentInput(BaseModel):
    amount: Decimal


class VoidInvoiceInput(BaseModel):
    reason: str = Field(min_length=1)


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    invoice_number: str
    client_id: int
    event_id: Optional[int] = None
    invoice_date: datetime
    due_date: datetime
    items: List[InvoiceItemRead]

    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount: Decimal
    discount_type: str
    discount_amount: Decimal
    total: Decimal
    paid_amount: Decimal
    balance_amount: Decimal

    status: str
    notes: Optional[str] = None
    terms: Optional[str] = None
    created_by: Optional[int] = None
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    created_at: datetime
    updated_at: datetime


class StatusBucket(BaseModel):
    count: int
    total_amount: Decimal


class RevenueSummary(BaseModel):
    total: Decimal
    paid: Decimal
    pending: Decimal


class InvoiceStats(BaseModel):
    status_breakdown: Dict[str, StatusBucket]
    revenue: RevenueSummary
