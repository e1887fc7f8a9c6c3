"""Status derivation for payments and invoices.

Status is never written by callers. Services call these resolvers right
before persisting a record; the result depends only on the arguments.
"""

from datetime import datetime
from decimal import Decimal

from eventledger.core.time import ensure_utc, utc_now
from eventledger.models.payment import Payment


def resolve_payment_status(
    amount: Decimal,
    paid_amount: Decimal,
    due_date: datetime | None,
    current_status: str | None,
    now: datetime,
) -> str:
    """First match wins: paid, partially_paid, overdue (only from pending), unchanged."""
    amount = Decimal(str(amount or 0))
    paid_amount = Decimal(str(paid_amount or 0))
    current = current_status or "pending"

    if paid_amount >= amount:
        return "paid"
    if paid_amount > 0:
        return "partially_paid"
    due = ensure_utc(due_date)
    if due is not None and due < ensure_utc(now) and current == "pending":
        return "overdue"
    return current


def resolve_invoice_status(
    total: Decimal,
    paid_amount: Decimal,
    due_date: datetime | None,
    current_status: str,
    now: datetime,
) -> str:
    if current_status in ("draft", "cancelled"):
        return current_status
    total = Decimal(str(total or 0))
    paid_amount = Decimal(str(paid_amount or 0))
    if paid_amount >= total:
        return "paid"
    if paid_amount > 0:
        return "partial"
    due = ensure_utc(due_date)
    if due is not None and due < ensure_utc(now) and current_status in ("sent", "overdue"):
        return "overdue"
    return current_status


def apply_payment_status(payment: Payment, now: datetime | None = None) -> str:
    payment.status = resolve_payment_status(
        payment.amount,
        payment.paid_amount,
        payment.due_date,
        payment.status,
        now or utc_now(),
    )
    return payment.status
