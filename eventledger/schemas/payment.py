"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PaymentType = Literal["client_payment", "vendor_payment"]
PaymentMethod = Literal["cash", "upi", "bank_transfer", "cheque", "card", "online"]
VendorCategory = Literal[
    "catering", "decoration", "photography", "videography", "venue", "dj", "makeup", "transport", "other"
]


class PaymentCreate(BaseModel):
    event_id: int
    payment_type: PaymentType
    client_id: Optional[int] = None
    invoice_id: Optional[int] = None
    vendor_name: Optional[str] = None
    vendor_category: Optional[VendorCategory] = None
    description: str = Field(min_length=1)
    amount: Decimal = Field(ge=0)
    due_date: datetime
    notes: Optional[str] = None
    receipt_url: Optional[str] = None


class PaymentUpdate(BaseModel):
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    due_date: Optional[datetime] = None
    vendor_name: Optional[str] = None
    vendor_category: Optional[VendorCategory] = None
    notes: Optional[str] = None


class RecordPaymentInput(BaseModel):
    amount: Decimal
    paid_date: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    transaction_reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    event_id: int
    payment_type: str
    client_id: Optional[int] = None
    invoice_id: Optional[int] = None
    vendor_name: Optional[str] = None
    vendor_category: Optional[str] = None
    description: str
    amount: Decimal
    paid_amount: Decimal
    outstanding_amount: Decimal
    status: str
    due_date: datetime
    paid_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    transaction_reference: Optional[str] = None
    notes: Optional[str] = None
    receipt_url: Optional[str] = None
    reminder_sent: bool
    last_reminder_date: Optional[datetime] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class EventPaymentSummary(BaseModel):
    client_total: Decimal
    client_paid: Decimal
    client_outstanding: Decimal
    vendor_total: Decimal
    vendor_paid: Decimal
    vendor_outstanding: Decimal
    net_balance: Decimal


class EventPayments(BaseModel):
    client_payments: List[PaymentRead]
    vendor_payments: List[PaymentRead]
    summary: EventPaymentSummary


class Pagination(BaseModel):
    total: int
    page: int
    pages: int
    limit: int


class OutstandingSummary(BaseModel):
    total_outstanding: Decimal
    overdue_amount: Decimal
    overdue_count: int


class OutstandingPayments(BaseModel):
    payments: List[PaymentRead]
    pagination: Pagination
    summary: OutstandingSummary


class PaymentStats(BaseModel):
    total_expected: Decimal
    total_collected: Decimal
    outstanding_amount: Decimal
    vendor_due: Decimal
    overdue_count: int
    overdue_amount: Decimal
    due_this_week_count: int
    due_this_week_amount: Decimal
    collection_rate: Decimal
