"""Invoice total calculation.

``calculate_totals`` is the only place invoice money fields are computed.
It is pure: callers pass plain values and receive an ``InvoiceTotals``; writing
the result onto an ``Invoice`` is a separate step (``apply_totals``).
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Mapping, Sequence

from eventledger.core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_money(value) -> Decimal:
    """Coerce to a Decimal rounded to cents."""
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValidationError(f"Invalid monetary value: {value!r}") from exc


def _to_decimal(value, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValidationError(f"Invalid {field}: {value!r}") from exc


@dataclass(frozen=True)
class LineItem:
    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    items: tuple[LineItem, ...]
    subtotal: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    total: Decimal


def normalize_item(item: Mapping) -> LineItem:
    """Validate one line item and recompute its amount from quantity and unit price."""
    description = (item.get("description") or "").strip()
    if not description:
        raise ValidationError("Line item description is required")
    quantity = _to_decimal(item.get("quantity"), "quantity")
    unit_price = _to_decimal(item.get("unit_price"), "unit price")
    if quantity <= 0:
        raise ValidationError("Line item quantity must be greater than zero")
    if unit_price < 0:
        raise ValidationError("Line item unit price cannot be negative")
    return LineItem(
        description=description,
        quantity=quantity,
        unit_price=unit_price,
        amount=to_money(quantity * unit_price),
    )


def calculate_totals(
    items: Iterable[Mapping],
    tax_rate,
    discount=ZERO,
    discount_type: str = "fixed",
) -> InvoiceTotals:
    line_items = tuple(normalize_item(item) for item in items)
    if not line_items:
        raise ValidationError("Invoice must have at least one item")

    rate = _to_decimal(tax_rate, "tax rate")
    if rate < 0 or rate > HUNDRED:
        raise ValidationError("Tax rate must be between 0 and 100")
    discount_value = _to_decimal(discount if discount is not None else ZERO, "discount")
    if discount_value < 0:
        raise ValidationError("Discount cannot be negative")

    subtotal = sum((item.amount for item in line_items), ZERO)

    if discount_type == "percentage":
        discount_amount = min(to_money(subtotal * discount_value / HUNDRED), subtotal)
    elif discount_type == "fixed":
        discount_amount = to_money(discount_value)
        if discount_amount > subtotal:
            raise ValidationError(f"Discount of {discount_amount} exceeds subtotal of {subtotal}")
    else:
        raise ValidationError(f"Unknown discount type: {discount_type!r}")

    taxable_amount = subtotal - discount_amount
    tax_amount = to_money(taxable_amount * rate / HUNDRED)
    total = taxable_amount + tax_amount

    for name, value in (
        ("subtotal", subtotal),
        ("discount amount", discount_amount),
        ("taxable amount", taxable_amount),
        ("tax amount", tax_amount),
        ("total", total),
    ):
        if value < 0:
            raise ValidationError(f"Computed {name} is negative")

    return InvoiceTotals(
        items=line_items,
        subtotal=subtotal,
        discount_amount=discount_amount,
        taxable_amount=taxable_amount,
        tax_amount=tax_amount,
        total=total,
    )


def items_as_dicts(line_items: Sequence[LineItem]) -> list[dict]:
    return [
        {"description": li.description, "quantity": li.quantity, "unit_price": li.unit_price, "amount": li.amount}
        for li in line_items
    ]
