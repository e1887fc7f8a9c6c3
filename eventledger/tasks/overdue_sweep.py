# Periodic overdue sweep: run from cron or a scheduler.
import logging

from eventledger.core.logging_config import configure_logging
from eventledger.core.settings import get_settings
from eventledger.core.time import utc_now
from eventledger.db.session import SessionLocal
from eventledger.services.invoices import sweep_overdue_invoices
from eventledger.services.payments import sweep_overdue_payments

logger = logging.getLogger(__name__)


def run_overdue_sweep(now=None) -> dict:
    """Promote past-due pending payments and sent invoices to overdue."""
    now = now or utc_now()
    db = SessionLocal()
    try:
        payments_updated = sweep_overdue_payments(db, now)
        invoices_updated = sweep_overdue_invoices(db, now)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Overdue sweep failed")
        raise
    finally:
        db.close()
    logger.info(
        "Overdue sweep complete",
        extra={"payments_updated": payments_updated, "invoices_updated": invoices_updated},
    )
    return {"payments": payments_updated, "invoices": invoices_updated}


if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    run_overdue_sweep()
