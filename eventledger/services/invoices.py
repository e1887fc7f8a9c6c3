"""Invoice service: drafting, sending, voiding and applying money."""

import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from eventledger.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from eventledger.core.settings import get_settings
from eventledger.core.time import ensure_utc, utc_now
from eventledger.db.transaction import commit_or_conflict
from eventledger.models.invoice import DEFAULT_TERMS, Invoice
from eventledger.models.invoice_item import InvoiceItem
from eventledger.models.payment import Payment
from eventledger.schemas.invoice import InvoiceCreate, InvoiceUpdate
from eventledger.services import invoice_lifecycle
from eventledger.services.invoice_totals import ZERO, InvoiceTotals, calculate_totals, to_money
from eventledger.services.notifications import notify
from eventledger.services.payment_status import resolve_invoice_status

logger = logging.getLogger(__name__)


def generate_invoice_number(db: Session, organization_id: int, now: datetime | None = None) -> str:
    """Next ``INV-YYYYMM-NNNN`` for the organization, continuing its latest sequence."""
    now = now or utc_now()
    prefix = get_settings().invoice_number_prefix
    last_invoice = (
        db.query(Invoice)
        .filter(Invoice.organization_id == organization_id)
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .first()
    )
    sequence = 1
    if last_invoice is not None and last_invoice.invoice_number:
        try:
            sequence = int(last_invoice.invoice_number.rsplit("-", 1)[-1]) + 1
        except ValueError:
            sequence = 1
    return f"{prefix}-{now.year}{now.month:02d}-{sequence:04d}"


def apply_totals(invoice: Invoice, totals: InvoiceTotals) -> None:
    """Write items and every money field from one calculation."""
    invoice.items = [
        InvoiceItem(
            position=index,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            amount=item.amount,
        )
        for index, item in enumerate(totals.items)
    ]
    invoice.subtotal = totals.subtotal
    invoice.discount_amount = totals.discount_amount
    invoice.tax_amount = totals.tax_amount
    invoice.total = totals.total
    invoice.balance_amount = totals.total - to_money(invoice.paid_amount or ZERO)


def _items_payload(items) -> list[dict]:
    return [item.model_dump() if hasattr(item, "model_dump") else dict(item) for item in items]


def refresh_invoice_status(invoice: Invoice, now: datetime | None = None) -> str:
    now = now or utc_now()
    target = resolve_invoice_status(invoice.total, invoice.paid_amount, invoice.due_date, invoice.status, now)
    invoice_lifecycle.ensure_transition(invoice, target)
    invoice.status = target
    if target == "paid" and invoice.paid_at is None:
        invoice.paid_at = now
    return target


def create_invoice(db: Session, organization_id: int, payload: InvoiceCreate, user_id: int | None = None) -> Invoice:
    settings = get_settings()
    tax_rate = payload.tax_rate if payload.tax_rate is not None else settings.default_tax_rate
    totals = calculate_totals(_items_payload(payload.items), tax_rate, payload.discount, payload.discount_type)

    now = utc_now()
    invoice = Invoice(
        organization_id=organization_id,
        invoice_number=generate_invoice_number(db, organization_id, now),
        client_id=payload.client_id,
        event_id=payload.event_id,
        invoice_date=ensure_utc(payload.invoice_date) or now,
        due_date=ensure_utc(payload.due_date),
        tax_rate=to_money(tax_rate),
        discount=to_money(payload.discount),
        discount_type=payload.discount_type,
        paid_amount=ZERO,
        status="draft",
        notes=payload.notes,
        terms=payload.terms if payload.terms is not None else DEFAULT_TERMS,
        created_by=user_id,
    )
    apply_totals(invoice, totals)
    db.add(invoice)
    commit_or_conflict(db, "Invoice")
    db.refresh(invoice)
    logger.info(
        "Invoice created",
        extra={"invoice_id": invoice.id, "invoice_number": invoice.invoice_number, "total": str(invoice.total)},
    )
    notify("invoice.created", invoice)
    return invoice


def get_invoice(db: Session, organization_id: int, invoice_id: int) -> Invoice:
    invoice = (
        db.query(Invoice).filter(Invoice.id == invoice_id, Invoice.organization_id == organization_id).first()
    )
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def list_invoices(
    db: Session,
    organization_id: int,
    status: str | None = None,
    client_id: int | None = None,
    event_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[Invoice]:
    query = db.query(Invoice).filter(Invoice.organization_id == organization_id)
    if status:
        query = query.filter(Invoice.status == status)
    if client_id is not None:
        query = query.filter(Invoice.client_id == client_id)
    if event_id is not None:
        query = query.filter(Invoice.event_id == event_id)
    if date_from is not None:
        query = query.filter(Invoice.invoice_date >= ensure_utc(date_from))
    if date_to is not None:
        query = query.filter(Invoice.invoice_date <= ensure_utc(date_to))
    return query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).all()


def update_invoice(db: Session, organization_id: int, invoice_id: int, payload: InvoiceUpdate) -> Invoice:
    invoice = get_invoice(db, organization_id, invoice_id)
    changes = payload.model_dump(exclude_unset=True)
    if invoice.status == "cancelled" and changes:
        raise InvalidStateError("A cancelled invoice cannot be edited")

    if any(changes.get(field) is not None for field in invoice_lifecycle.FINANCIAL_FIELDS):
        invoice_lifecycle.ensure_editable(invoice)
        items = changes["items"] if changes.get("items") is not None else [
            {"description": item.description, "quantity": item.quantity, "unit_price": item.unit_price}
            for item in invoice.items
        ]
        tax_rate = changes.get("tax_rate") if changes.get("tax_rate") is not None else invoice.tax_rate
        discount = changes.get("discount") if changes.get("discount") is not None else invoice.discount
        discount_type = changes.get("discount_type") or invoice.discount_type
        # Calculate before touching the record so a rejected edit leaves it unchanged.
        totals = calculate_totals(items, tax_rate, discount, discount_type)
        invoice.tax_rate = to_money(tax_rate)
        invoice.discount = to_money(discount)
        invoice.discount_type = discount_type
        apply_totals(invoice, totals)

    if changes.get("due_date") is not None:
        invoice.due_date = ensure_utc(changes["due_date"])
    if "notes" in changes:
        invoice.notes = changes["notes"]
    if "terms" in changes:
        invoice.terms = changes["terms"]

    commit_or_conflict(db, "Invoice")
    db.refresh(invoice)
    notify("invoice.updated", invoice)
    return invoice


def mark_invoice_sent(db: Session, organization_id: int, invoice_id: int, now: datetime | None = None) -> Invoice:
    """Move a draft to sent; re-sending keeps the first ``sent_at``."""
    now = now or utc_now()
    invoice = get_invoice(db, organization_id, invoice_id)
    if invoice.status == "cancelled":
        raise InvalidStateError("A cancelled invoice cannot be sent")
    if invoice.status == "draft":
        invoice_lifecycle.ensure_transition(invoice, "sent")
        invoice.status = "sent"
        refresh_invoice_status(invoice, now)
    if invoice.sent_at is None:
        invoice.sent_at = now
    commit_or_conflict(db, "Invoice")
    db.refresh(invoice)
    notify("invoice.sent", invoice)
    return invoice


def void_invoice(
    db: Session, organization_id: int, invoice_id: int, reason: str, now: datetime | None = None
) -> Invoice:
    if not reason or not reason.strip():
        raise ValidationError("A reason is required to cancel an invoice")
    invoice = get_invoice(db, organization_id, invoice_id)
    invoice_lifecycle.ensure_voidable(invoice)
    invoice_lifecycle.ensure_transition(invoice, "cancelled")
    invoice.status = "cancelled"
    invoice.cancelled_at = now or utc_now()
    invoice.cancellation_reason = reason.strip()
    commit_or_conflict(db, "Invoice")
    db.refresh(invoice)
    logger.info("Invoice cancelled", extra={"invoice_id": invoice.id, "reason": invoice.cancellation_reason})
    notify("invoice.cancelled", invoice)
    return invoice


def check_invoice_payment(invoice: Invoice, amount) -> Decimal:
    """Raise unless the invoice can take ``amount`` now; return the new paid total."""
    incoming = to_money(amount)
    if incoming <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    invoice_lifecycle.ensure_payable(invoice)
    total = to_money(invoice.total)
    paid = to_money(invoice.paid_amount or ZERO)
    if paid + incoming > total:
        symbol = get_settings().currency_symbol
        raise ValidationError(f"Paid amount cannot exceed outstanding balance of {symbol}{total - paid}")
    return paid + incoming


def apply_invoice_payment(invoice: Invoice, amount, now: datetime | None = None) -> Invoice:
    """Add money to an invoice in memory; the caller commits."""
    new_paid = check_invoice_payment(invoice, amount)
    total = to_money(invoice.total)
    invoice.paid_amount = new_paid
    invoice.balance_amount = total - new_paid
    refresh_invoice_status(invoice, now)
    return invoice


def has_linked_payments(db: Session, invoice_id: int) -> bool:
    return (
        db.query(Payment.id)
        .filter(Payment.invoice_id == invoice_id, Payment.is_deleted.is_(False))
        .first()
        is not None
    )


def record_invoice_payment(
    db: Session, organization_id: int, invoice_id: int, amount, now: datetime | None = None
) -> Invoice:
    invoice = get_invoice(db, organization_id, invoice_id)
    if has_linked_payments(db, invoice.id):
        raise InvalidStateError(
            f"Invoice {invoice.invoice_number} has linked payments; record money against those payments instead"
        )
    apply_invoice_payment(invoice, amount, now)
    commit_or_conflict(db, "Invoice")
    db.refresh(invoice)
    logger.info(
        "Invoice payment recorded",
        extra={"invoice_id": invoice.id, "amount": str(to_money(amount)), "balance": str(invoice.balance_amount)},
    )
    notify("invoice.payment_recorded", invoice)
    return invoice


def sweep_overdue_invoices(db: Session, now: datetime | None = None) -> int:
    """Promote sent invoices past due with nothing paid. Conditional, so safe to repeat."""
    now = now or utc_now()
    result = db.execute(
        update(Invoice)
        .where(
            Invoice.status == "sent",
            Invoice.paid_amount <= 0,
            Invoice.due_date < now,
        )
        .values(status="overdue", version_id=Invoice.version_id + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def get_invoice_stats(db: Session, organization_id: int) -> dict:
    invoices = db.query(Invoice).filter(Invoice.organization_id == organization_id).all()

    breakdown: dict[str, dict] = defaultdict(lambda: {"count": 0, "total_amount": ZERO})
    revenue = {"total": ZERO, "paid": ZERO, "pending": ZERO}
    for invoice in invoices:
        total = to_money(invoice.total)
        bucket = breakdown[invoice.status]
        bucket["count"] += 1
        bucket["total_amount"] += total
        revenue["total"] += total
        revenue["paid"] += to_money(invoice.paid_amount or ZERO)
        revenue["pending"] += to_money(invoice.balance_amount or ZERO)

    return {"status_breakdown": dict(breakdown), "revenue": revenue}
