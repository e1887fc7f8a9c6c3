from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from eventledger.core.exceptions import ConcurrentUpdateError, InvalidStateError, NotFoundError, ValidationError
from eventledger.db.base import Base
from eventledger.db.session import SessionLocal, engine
from eventledger.models.payment import Payment
from eventledger.schemas.payment import PaymentCreate, PaymentUpdate, RecordPaymentInput
from eventledger.services.payments import (
    create_payment,
    delete_payment,
    get_event_payments,
    get_outstanding_payments,
    get_payment,
    get_payment_stats,
    record_payment,
    send_payment_reminder,
    update_payment,
)

ORG = 1
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _create(db, now=NOW, organization_id=ORG, **overrides):
    data = {
        "event_id": 10,
        "payment_type": "client_payment",
        "client_id": 20,
        "description": "Venue advance",
        "amount": Decimal("10000"),
        "due_date": NOW + timedelta(days=7),
    }
    data.update(overrides)
    return create_payment(db, organization_id, PaymentCreate(**data), user_id=5, now=now)


def _vendor(db, **overrides):
    data = {
        "payment_type": "vendor_payment",
        "client_id": None,
        "vendor_name": "Shree Caterers",
        "vendor_category": "catering",
        "description": "Catering deposit",
        "amount": Decimal("3000"),
    }
    data.update(overrides)
    return _create(db, **data)


def _pay(db, payment_id, amount, now=NOW, **extra):
    return record_payment(db, ORG, payment_id, RecordPaymentInput(amount=Decimal(str(amount)), **extra), user_id=6, now=now)


def test_create_payment_starts_pending_with_nothing_paid():
    db = SessionLocal()
    try:
        payment = _create(db)
        assert payment.id is not None
        assert payment.status == "pending"
        assert payment.paid_amount == Decimal("0")
        assert payment.outstanding_amount == Decimal("10000")
        assert payment.created_by == 5
        assert payment.is_deleted is False
    finally:
        db.close()


def test_create_payment_already_past_due_is_overdue():
    db = SessionLocal()
    try:
        payment = _create(db, due_date=NOW - timedelta(days=1))
        assert payment.status == "overdue"
    finally:
        db.close()


def test_client_payment_requires_client():
    db = SessionLocal()
    try:
        with pytest.raises(ValidationError):
            _create(db, client_id=None)
        assert db.query(Payment).count() == 0
    finally:
        db.close()


def test_partial_then_full_payment():
    db = SessionLocal()
    try:
        payment = _create(db)
        payment = _pay(db, payment.id, 4000, payment_method="upi", transaction_reference="UPI-123")
        assert payment.paid_amount == Decimal("4000")
        assert payment.outstanding_amount == Decimal("6000")
        assert payment.status == "partially_paid"
        assert payment.payment_method == "upi"
        assert payment.transaction_reference == "UPI-123"
        assert payment.paid_date is not None
        assert payment.updated_by == 6

        payment = _pay(db, payment.id, 6000)
        assert payment.status == "paid"
        assert payment.outstanding_amount == Decimal("0")
        assert payment.payment_method == "upi"
    finally:
        db.close()


def test_overpayment_rejected_and_paid_amount_unchanged():
    db = SessionLocal()
    try:
        payment = _create(db)
        _pay(db, payment.id, 4000)
        with pytest.raises(ValidationError) as excinfo:
            _pay(db, payment.id, 7000)
        assert "outstanding balance of ₹6000.00" in excinfo.value.message
    finally:
        db.close()

    db = SessionLocal()
    try:
        reloaded = db.query(Payment).one()
        assert reloaded.paid_amount == Decimal("4000")
        assert reloaded.status == "partially_paid"
    finally:
        db.close()


@pytest.mark.parametrize("amount", ["0", "-50"])
def test_non_positive_amount_rejected(amount):
    db = SessionLocal()
    try:
        payment = _create(db)
        with pytest.raises(ValidationError):
            _pay(db, payment.id, amount)
    finally:
        db.close()


def test_paid_amount_never_decreases():
    db = SessionLocal()
    try:
        payment = _create(db)
        seen = [payment.paid_amount]
        for amount in (1000, "0.50", 2500, 7000, 100):
            try:
                payment = _pay(db, payment.id, amount)
            except ValidationError:
                payment = get_payment(db, ORG, payment.id)
            assert payment.paid_amount >= seen[-1]
            seen.append(payment.paid_amount)
        assert seen[-1] <= payment.amount
    finally:
        db.close()


def test_overdue_payment_receiving_money_becomes_partially_paid():
    db = SessionLocal()
    try:
        payment = _create(db, due_date=NOW - timedelta(days=3))
        assert payment.status == "overdue"
        payment = _pay(db, payment.id, 100)
        assert payment.status == "partially_paid"
    finally:
        db.close()


def test_notes_are_appended_never_overwritten():
    db = SessionLocal()
    try:
        payment = _create(db, notes="Advance agreed at booking")
        payment = _pay(db, payment.id, 1000, notes="First installment")
        assert payment.notes == "Advance agreed at booking\n\n[2026-10-19] First installment"
        payment = _pay(db, payment.id, 1000)
        assert payment.notes == "Advance agreed at booking\n\n[2026-10-19] First installment"

        fresh = _create(db)
        fresh = _pay(db, fresh.id, 1000, notes="Cash at venue")
        assert fresh.notes == "Cash at venue"
    finally:
        db.close()


def test_record_on_deleted_or_foreign_payment_is_not_found():
    db = SessionLocal()
    try:
        deleted = _create(db)
        delete_payment(db, ORG, deleted.id)
        with pytest.raises(NotFoundError):
            _pay(db, deleted.id, 100)

        foreign = _create(db, organization_id=2)
        with pytest.raises(NotFoundError):
            _pay(db, foreign.id, 100)

        with pytest.raises(NotFoundError):
            _pay(db, 9999, 100)
    finally:
        db.close()


def test_soft_delete_keeps_the_row():
    db = SessionLocal()
    try:
        payment = _create(db)
        delete_payment(db, ORG, payment.id)
        row = db.query(Payment).filter(Payment.id == payment.id).one()
        assert row.is_deleted is True
        with pytest.raises(NotFoundError):
            get_payment(db, ORG, payment.id)
    finally:
        db.close()


def test_update_payment_fields_and_status():
    db = SessionLocal()
    try:
        payment = _create(db)
        _pay(db, payment.id, 4000)
        payment = update_payment(
            db, ORG, payment.id, PaymentUpdate(amount=Decimal("4000"), description="Venue advance (revised)"), now=NOW
        )
        assert payment.description == "Venue advance (revised)"
        assert payment.status == "paid"
    finally:
        db.close()


def test_update_amount_below_paid_rejected():
    db = SessionLocal()
    try:
        payment = _create(db)
        _pay(db, payment.id, 4000)
        with pytest.raises(ValidationError):
            update_payment(db, ORG, payment.id, PaymentUpdate(amount=Decimal("3999")))
    finally:
        db.close()


def test_reminder_stamps_tracking_fields():
    db = SessionLocal()
    try:
        payment = _create(db)
        payment = send_payment_reminder(db, ORG, payment.id, now=NOW)
        assert payment.reminder_sent is True
        assert payment.last_reminder_date is not None

        _pay(db, payment.id, 10000)
        with pytest.raises(InvalidStateError):
            send_payment_reminder(db, ORG, payment.id)
    finally:
        db.close()


def test_event_payment_summary():
    db = SessionLocal()
    try:
        client = _create(db)
        _pay(db, client.id, 4000)
        vendor = _vendor(db)
        _pay(db, vendor.id, 1000)
        _create(db, event_id=11)

        result = get_event_payments(db, ORG, 10)
        assert len(result["client_payments"]) == 1
        assert len(result["vendor_payments"]) == 1
        summary = result["summary"]
        assert summary["client_total"] == Decimal("10000")
        assert summary["client_paid"] == Decimal("4000")
        assert summary["client_outstanding"] == Decimal("6000")
        assert summary["vendor_total"] == Decimal("3000")
        assert summary["vendor_paid"] == Decimal("1000")
        assert summary["vendor_outstanding"] == Decimal("2000")
        assert summary["net_balance"] == Decimal("3000")
    finally:
        db.close()


def test_outstanding_payments_pagination_and_summary():
    db = SessionLocal()
    try:
        overdue = _create(db, due_date=NOW - timedelta(days=2), amount=Decimal("500"))
        partial = _create(db, due_date=NOW + timedelta(days=1))
        _pay(db, partial.id, 2500)
        settled = _create(db)
        _pay(db, settled.id, 10000)
        _vendor(db, due_date=NOW + timedelta(days=5))

        result = get_outstanding_payments(db, ORG, page=1, limit=2)
        assert result["pagination"] == {"total": 3, "page": 1, "pages": 2, "limit": 2}
        assert [p.id for p in result["payments"]][0] == overdue.id
        assert result["summary"]["total_outstanding"] == Decimal("11000")
        assert result["summary"]["overdue_amount"] == Decimal("500")
        assert result["summary"]["overdue_count"] == 1

        clients_only = get_outstanding_payments(db, ORG, payment_type="client")
        assert clients_only["pagination"]["total"] == 2
        vendors_only = get_outstanding_payments(db, ORG, payment_type="vendor")
        assert vendors_only["pagination"]["total"] == 1
    finally:
        db.close()


def test_payment_stats():
    db = SessionLocal()
    try:
        client = _create(db, due_date=NOW + timedelta(days=3))
        _pay(db, client.id, 4000)
        _vendor(db, due_date=NOW + timedelta(days=20))
        _create(db, due_date=NOW - timedelta(days=1), amount=Decimal("1000"))

        stats = get_payment_stats(db, ORG, now=NOW)
        assert stats["total_expected"] == Decimal("11000")
        assert stats["total_collected"] == Decimal("4000")
        assert stats["outstanding_amount"] == Decimal("7000")
        assert stats["vendor_due"] == Decimal("3000")
        assert stats["overdue_count"] == 1
        assert stats["overdue_amount"] == Decimal("1000")
        assert stats["due_this_week_count"] == 1
        assert stats["due_this_week_amount"] == Decimal("6000")
        assert stats["collection_rate"] == Decimal("36.4")
    finally:
        db.close()


def test_stats_for_empty_organization():
    db = SessionLocal()
    try:
        stats = get_payment_stats(db, ORG, now=NOW)
        assert stats["collection_rate"] == Decimal("0")
        assert stats["overdue_count"] == 0
    finally:
        db.close()


def test_concurrent_write_is_detected():
    db_a = SessionLocal()
    db_b = SessionLocal()
    try:
        payment = _create(db_a)
        get_payment(db_b, ORG, payment.id)

        _pay(db_a, payment.id, 4000)
        with pytest.raises(ConcurrentUpdateError):
            _pay(db_b, payment.id, 3000)
    finally:
        db_a.close()
        db_b.close()

    db = SessionLocal()
    try:
        assert db.query(Payment).one().paid_amount == Decimal("4000")
    finally:
        db.close()
