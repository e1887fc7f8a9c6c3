"""Invoice model for client billing."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from eventledger.core.time import utc_now
from eventledger.db.base_class import Base

INVOICE_STATUSES = ("draft", "sent", "paid", "partial", "overdue", "cancelled")
DISCOUNT_TYPES = ("fixed", "percentage")
DEFAULT_TERMS = "Payment is due within 30 days of invoice date."


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("organization_id", "invoice_number", name="uq_invoices_org_number"),)

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, nullable=False, index=True)
    invoice_number = Column(String(50), nullable=False)

    event_id = Column(Integer, nullable=True, index=True)
    client_id = Column(Integer, nullable=False, index=True)

    invoice_date = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    due_date = Column(DateTime(timezone=True), nullable=False)

    subtotal = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    tax_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("18.00"))
    tax_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    discount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    discount_type = Column(String(20), nullable=False, default="fixed")
    discount_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    paid_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    balance_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    status = Column(String(20), nullable=False, default="draft", index=True)

    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True, default=DEFAULT_TERMS)

    created_by = Column(Integer, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
    )
    payments = relationship("Payment", back_populates="invoice")

    __mapper_args__ = {"version_id_col": version_id}
