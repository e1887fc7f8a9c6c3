"""Payment model for client receipts and vendor payouts owed per event."""

from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from eventledger.core.time import utc_now
from eventledger.db.base_class import Base

PAYMENT_TYPES = ("client_payment", "vendor_payment")
PAYMENT_STATUSES = ("pending", "partially_paid", "paid", "overdue")
PAYMENT_METHODS = ("cash", "upi", "bank_transfer", "cheque", "card", "online")
VENDOR_CATEGORIES = (
    "catering",
    "decoration",
    "photography",
    "videography",
    "venue",
    "dj",
    "makeup",
    "transport",
    "other",
)


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        Index("ix_payments_org_event", "organization_id", "event_id"),
        Index("ix_payments_org_status_due", "organization_id", "status", "due_date"),
        Index("ix_payments_org_type_status", "organization_id", "payment_type", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, nullable=False, index=True)
    event_id = Column(Integer, nullable=False, index=True)
    payment_type = Column(String(20), nullable=False, index=True)

    client_id = Column(Integer, nullable=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True, index=True)

    vendor_name = Column(String(255), nullable=True)
    vendor_category = Column(String(50), nullable=True)

    description = Column(String(500), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="pending", index=True)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    paid_date = Column(DateTime(timezone=True), nullable=True)
    payment_method = Column(String(20), nullable=True)
    transaction_reference = Column(String(255), nullable=True)

    notes = Column(Text, nullable=True)
    receipt_url = Column(String(512), nullable=True)

    reminder_sent = Column(Boolean, nullable=False, default=False)
    last_reminder_date = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)

    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    invoice = relationship("Invoice", back_populates="payments")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def outstanding_amount(self) -> Decimal:
        return Decimal(str(self.amount or 0)) - Decimal(str(self.paid_amount or 0))
