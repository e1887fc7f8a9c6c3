"""Legal invoice status transitions."""

from eventledger.core.exceptions import InvalidStateError
from eventledger.models.invoice import Invoice

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"sent", "cancelled"}),
    "sent": frozenset({"partial", "paid", "overdue", "cancelled"}),
    "partial": frozenset({"paid", "overdue", "cancelled"}),
    "overdue": frozenset({"partial", "paid", "cancelled"}),
    "paid": frozenset({"partial"}),
    "cancelled": frozenset(),
}

# Statuses that accept money.
PAYABLE_STATUSES = frozenset({"sent", "partial", "overdue"})

FINANCIAL_FIELDS = ("items", "tax_rate", "discount", "discount_type")


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(invoice: Invoice, target: str) -> None:
    if invoice.status == target:
        return
    if not can_transition(invoice.status, target):
        raise InvalidStateError(f"Invoice {invoice.invoice_number} cannot move from {invoice.status} to {target}")


def ensure_editable(invoice: Invoice) -> None:
    """Items and financial terms are frozen once an invoice leaves draft."""
    if invoice.status != "draft":
        raise InvalidStateError(
            f"Invoice {invoice.invoice_number} is {invoice.status}; items, tax rate and discount can only change while draft"
        )


def ensure_payable(invoice: Invoice) -> None:
    if invoice.status not in PAYABLE_STATUSES:
        raise InvalidStateError(f"Cannot record a payment against a {invoice.status} invoice")


def ensure_voidable(invoice: Invoice) -> None:
    if invoice.status == "paid":
        raise InvalidStateError("A paid invoice cannot be cancelled")
    if invoice.status == "cancelled":
        raise InvalidStateError("Invoice is already cancelled")
