"""Payment ledger service.

Payments track money an event is owed by its client or owes to a vendor.
``record_payment`` is the only path that moves ``paid_amount``; it rejects
overpayment outright and, for payments linked to an invoice, writes the
invoice in the same transaction.
"""

import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from eventledger.core.exceptions import (
    ConsistencyError,
    InvalidStateError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from eventledger.core.settings import get_settings
from eventledger.core.time import ensure_utc, utc_now
from eventledger.db.transaction import commit_or_conflict
from eventledger.models.invoice import Invoice
from eventledger.models.payment import Payment
from eventledger.schemas.payment import PaymentCreate, PaymentUpdate, RecordPaymentInput
from eventledger.services.invoice_totals import ZERO, to_money
from eventledger.services.invoices import apply_invoice_payment, check_invoice_payment
from eventledger.services.notifications import notify
from eventledger.services.payment_status import apply_payment_status

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("pending", "partially_paid", "overdue")
UPDATABLE_FIELDS = ("description", "amount", "due_date", "vendor_name", "vendor_category", "notes")


def get_payment(db: Session, organization_id: int, payment_id: int) -> Payment:
    payment = (
        db.query(Payment)
        .filter(
            Payment.id == payment_id,
            Payment.organization_id == organization_id,
            Payment.is_deleted.is_(False),
        )
        .first()
    )
    if payment is None:
        raise NotFoundError("Payment not found or does not belong to your organization")
    return payment


def append_note(existing: str | None, note: str | None, now: datetime) -> str | None:
    """Notes only ever grow; each addition is stamped with its date."""
    if not note:
        return existing
    if not existing:
        return note
    return f"{existing}\n\n[{now.date().isoformat()}] {note}"


def _linked_invoice(db: Session, organization_id: int, invoice_id: int) -> Invoice:
    invoice = (
        db.query(Invoice)
        .filter(Invoice.id == invoice_id, Invoice.organization_id == organization_id)
        .first()
    )
    if invoice is None:
        raise NotFoundError("Invoice not found or does not belong to your organization")
    return invoice


def _ensure_invoice_capacity(
    db: Session, invoice: Invoice, amount: Decimal, exclude_payment_id: int | None = None
) -> None:
    """Each linked payment reserves its unpaid remainder out of the invoice balance."""
    query = db.query(Payment).filter(Payment.invoice_id == invoice.id, Payment.is_deleted.is_(False))
    if exclude_payment_id is not None:
        query = query.filter(Payment.id != exclude_payment_id)
    available = to_money(invoice.total) - to_money(invoice.paid_amount or ZERO) - _outstanding(query.all())
    if to_money(amount) > available:
        symbol = get_settings().currency_symbol
        raise ValidationError(
            f"Linked payments cannot exceed the unreserved invoice balance of {symbol}{max(available, ZERO)}"
        )


def _validate_invoice_link(db: Session, organization_id: int, payload: PaymentCreate) -> None:
    if payload.payment_type != "client_payment":
        raise ValidationError("Only client payments can be linked to an invoice")
    invoice = _linked_invoice(db, organization_id, payload.invoice_id)
    if invoice.status == "cancelled":
        raise InvalidStateError("Cannot link a payment to a cancelled invoice")
    if invoice.client_id != payload.client_id:
        raise ValidationError("Client does not match the invoice")
    _ensure_invoice_capacity(db, invoice, payload.amount)


def create_payment(
    db: Session,
    organization_id: int,
    payload: PaymentCreate,
    user_id: int | None = None,
    now: datetime | None = None,
) -> Payment:
    if payload.payment_type == "client_payment" and payload.client_id is None:
        raise ValidationError("Client ID is required for client payments")
    if payload.invoice_id is not None:
        _validate_invoice_link(db, organization_id, payload)

    payment = Payment(
        organization_id=organization_id,
        event_id=payload.event_id,
        payment_type=payload.payment_type,
        client_id=payload.client_id,
        invoice_id=payload.invoice_id,
        vendor_name=payload.vendor_name,
        vendor_category=payload.vendor_category,
        description=payload.description,
        amount=to_money(payload.amount),
        due_date=ensure_utc(payload.due_date),
        paid_amount=ZERO,
        status="pending",
        notes=payload.notes,
        receipt_url=payload.receipt_url,
        created_by=user_id,
    )
    apply_payment_status(payment, now)
    db.add(payment)
    commit_or_conflict(db, "Payment")
    db.refresh(payment)
    logger.info(
        "Payment created",
        extra={"payment_id": payment.id, "payment_type": payment.payment_type, "amount": str(payment.amount)},
    )
    notify("payment.created", payment)
    return payment


def record_payment(
    db: Session,
    organization_id: int,
    payment_id: int,
    data: RecordPaymentInput,
    user_id: int | None = None,
    now: datetime | None = None,
) -> Payment:
    payment = get_payment(db, organization_id, payment_id)

    incoming = to_money(data.amount)
    if incoming <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    owed = to_money(payment.amount)
    already_paid = to_money(payment.paid_amount or ZERO)
    new_paid = already_paid + incoming
    if new_paid > owed:
        symbol = get_settings().currency_symbol
        raise ValidationError(f"Paid amount cannot exceed outstanding balance of {symbol}{owed - already_paid}")

    invoice = None
    if payment.invoice_id is not None:
        # The invoice must accept the money before either record is touched.
        invoice = _linked_invoice(db, organization_id, payment.invoice_id)
        check_invoice_payment(invoice, incoming)

    now = now or utc_now()
    payment.paid_amount = new_paid
    payment.paid_date = ensure_utc(data.paid_date) or now
    if data.payment_method is not None:
        payment.payment_method = data.payment_method
    if data.transaction_reference is not None:
        payment.transaction_reference = data.transaction_reference
    payment.notes = append_note(payment.notes, data.notes, now)
    payment.updated_by = user_id
    apply_payment_status(payment, now)

    if invoice is not None:
        invoice_id = invoice.id
        try:
            apply_invoice_payment(invoice, incoming, now)
        except LedgerError as exc:
            db.rollback()
            logger.error(
                "Linked invoice rejected payment; nothing recorded",
                extra={
                    "payment_id": payment_id,
                    "invoice_id": invoice_id,
                    "amount": str(incoming),
                    "reason": exc.message,
                },
            )
            raise ConsistencyError(
                f"Payment {payment_id} could not be applied to invoice {invoice_id}: {exc.message}",
                payment_id=payment_id,
                invoice_id=invoice_id,
                amount=incoming,
            ) from exc

    commit_or_conflict(db, "Payment")
    db.refresh(payment)
    logger.info(
        "Payment recorded",
        extra={
            "payment_id": payment.id,
            "amount": str(incoming),
            "paid_amount": str(payment.paid_amount),
            "status": payment.status,
            "invoice_id": payment.invoice_id,
        },
    )
    notify("payment.recorded", payment)
    if invoice is not None:
        notify("invoice.payment_recorded", invoice)
    return payment


def update_payment(
    db: Session,
    organization_id: int,
    payment_id: int,
    payload: PaymentUpdate,
    user_id: int | None = None,
    now: datetime | None = None,
) -> Payment:
    payment = get_payment(db, organization_id, payment_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("amount") is not None:
        new_amount = to_money(changes["amount"])
        if new_amount < to_money(payment.paid_amount or ZERO):
            raise ValidationError(f"Amount cannot be less than the {payment.paid_amount} already paid")
        if payment.invoice_id is not None and new_amount > to_money(payment.amount):
            invoice = _linked_invoice(db, organization_id, payment.invoice_id)
            _ensure_invoice_capacity(db, invoice, new_amount - to_money(payment.paid_amount or ZERO), payment.id)
        changes["amount"] = new_amount
    if changes.get("due_date") is not None:
        changes["due_date"] = ensure_utc(changes["due_date"])

    for field in UPDATABLE_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(payment, field, changes[field])

    payment.updated_by = user_id
    apply_payment_status(payment, now)
    commit_or_conflict(db, "Payment")
    db.refresh(payment)
    notify("payment.updated", payment)
    return payment


def delete_payment(db: Session, organization_id: int, payment_id: int) -> Payment:
    payment = get_payment(db, organization_id, payment_id)
    payment.is_deleted = True
    commit_or_conflict(db, "Payment")
    logger.info("Payment deleted", extra={"payment_id": payment_id})
    notify("payment.deleted", payment)
    return payment


def send_payment_reminder(
    db: Session, organization_id: int, payment_id: int, now: datetime | None = None
) -> Payment:
    payment = get_payment(db, organization_id, payment_id)
    if payment.status == "paid":
        raise InvalidStateError("Payment is already settled")
    payment.reminder_sent = True
    payment.last_reminder_date = now or utc_now()
    commit_or_conflict(db, "Payment")
    db.refresh(payment)
    notify("payment.reminder", payment)
    return payment


def _sum(payments, attr: str) -> Decimal:
    return sum((to_money(getattr(p, attr) or ZERO) for p in payments), ZERO)


def _outstanding(payments) -> Decimal:
    return sum((to_money(p.outstanding_amount) for p in payments), ZERO)


def get_event_payments(db: Session, organization_id: int, event_id: int) -> dict:
    payments = (
        db.query(Payment)
        .filter(
            Payment.organization_id == organization_id,
            Payment.event_id == event_id,
            Payment.is_deleted.is_(False),
        )
        .order_by(Payment.due_date.asc(), Payment.id.asc())
        .all()
    )
    client_payments = [p for p in payments if p.payment_type == "client_payment"]
    vendor_payments = [p for p in payments if p.payment_type == "vendor_payment"]

    client_total = _sum(client_payments, "amount")
    client_paid = _sum(client_payments, "paid_amount")
    vendor_total = _sum(vendor_payments, "amount")
    vendor_paid = _sum(vendor_payments, "paid_amount")

    return {
        "client_payments": client_payments,
        "vendor_payments": vendor_payments,
        "summary": {
            "client_total": client_total,
            "client_paid": client_paid,
            "client_outstanding": client_total - client_paid,
            "vendor_total": vendor_total,
            "vendor_paid": vendor_paid,
            "vendor_outstanding": vendor_total - vendor_paid,
            "net_balance": client_paid - vendor_paid,
        },
    }


def get_outstanding_payments(
    db: Session,
    organization_id: int,
    payment_type: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")
    query = db.query(Payment).filter(
        Payment.organization_id == organization_id,
        Payment.is_deleted.is_(False),
        Payment.status.in_(OPEN_STATUSES),
    )
    if payment_type == "client":
        query = query.filter(Payment.payment_type == "client_payment")
    elif payment_type == "vendor":
        query = query.filter(Payment.payment_type == "vendor_payment")

    all_outstanding = query.all()
    overdue = [p for p in all_outstanding if p.status == "overdue"]
    total = len(all_outstanding)

    page_items = (
        query.order_by(Payment.due_date.asc(), Payment.status.desc(), Payment.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "payments": page_items,
        "pagination": {"total": total, "page": page, "pages": math.ceil(total / limit), "limit": limit},
        "summary": {
            "total_outstanding": _outstanding(all_outstanding),
            "overdue_amount": _outstanding(overdue),
            "overdue_count": len(overdue),
        },
    }


def get_payment_stats(db: Session, organization_id: int, now: datetime | None = None) -> dict:
    now = now or utc_now()
    payments = (
        db.query(Payment)
        .filter(Payment.organization_id == organization_id, Payment.is_deleted.is_(False))
        .all()
    )

    client_payments = [p for p in payments if p.payment_type == "client_payment"]
    total_expected = _sum(client_payments, "amount")
    total_collected = _sum(client_payments, "paid_amount")

    vendor_due = _outstanding(p for p in payments if p.payment_type == "vendor_payment" and p.status != "paid")

    overdue = [p for p in payments if p.status == "overdue"]

    next_week = now + timedelta(days=7)
    due_this_week = [
        p for p in payments if p.status != "paid" and now <= ensure_utc(p.due_date) <= next_week
    ]

    collection_rate = Decimal("0")
    if total_expected > 0:
        collection_rate = (total_collected / total_expected * 100).quantize(Decimal("0.1"))

    return {
        "total_expected": total_expected,
        "total_collected": total_collected,
        "outstanding_amount": total_expected - total_collected,
        "vendor_due": vendor_due,
        "overdue_count": len(overdue),
        "overdue_amount": _outstanding(overdue),
        "due_this_week_count": len(due_this_week),
        "due_this_week_amount": _outstanding(due_this_week),
        "collection_rate": collection_rate,
    }


def sweep_overdue_payments(db: Session, now: datetime | None = None) -> int:
    """Promote pending payments past due to overdue.

    A single conditional UPDATE: rows already paid or partially paid never
    match, and a second run finds nothing left to change.
    """
    now = now or utc_now()
    result = db.execute(
        update(Payment)
        .where(
            Payment.status == "pending",
            Payment.is_deleted.is_(False),
            Payment.due_date < now,
        )
        .values(status="overdue", version_id=Payment.version_id + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
