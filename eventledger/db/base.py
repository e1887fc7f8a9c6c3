from eventledger.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all in tests
from eventledger.models.invoice import Invoice  # noqa: F401
from eventledger.models.invoice_item import InvoiceItem  # noqa: F401
from eventledger.models.payment import Payment  # noqa: F401
