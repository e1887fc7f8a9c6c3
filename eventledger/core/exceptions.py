"""Ledger error taxonomy.

Every error raised by the ledger services derives from ``LedgerError`` and
carries the HTTP status the API layer should answer with. Validation and
state errors are raised before anything is written.
"""


class LedgerError(Exception):
    """Base class for ledger failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Malformed input: empty items, negative amounts, overpayment."""

    status_code = 400


class NotFoundError(LedgerError):
    """Referenced record is missing, soft-deleted or in another organization."""

    status_code = 404


class InvalidStateError(LedgerError):
    """The record's current status forbids the operation."""

    status_code = 409


class ConcurrentUpdateError(LedgerError):
    """Another request changed the record between read and write."""

    status_code = 409


class ConsistencyError(LedgerError):
    """A payment could not be mirrored onto its linked invoice."""

    status_code = 500
    public_message = "Ledger update could not be completed"

    def __init__(self, message: str, payment_id: int | None = None, invoice_id: int | None = None, amount=None):
        super().__init__(message)
        self.payment_id = payment_id
        self.invoice_id = invoice_id
        self.amount = amount
