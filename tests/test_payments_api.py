from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from eventledger.db.base import Base
from eventledger.db.session import engine
from eventledger.main import app

HEADERS = {"X-Organization-Id": "1", "X-User-Id": "7"}


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _due(days: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def create_payment(client: TestClient, headers=HEADERS, **overrides):
    body = {
        "event_id": 10,
        "payment_type": "client_payment",
        "client_id": 20,
        "description": "Venue advance",
        "amount": "10000",
        "due_date": _due(14),
    }
    body.update(overrides)
    resp = client.post("/payments/", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_and_fetch_payment():
    client = TestClient(app)
    payment = create_payment(client)
    assert payment["status"] == "pending"
    assert payment["created_by"] == 7
    assert Decimal(payment["outstanding_amount"]) == Decimal("10000")

    resp = client.get(f"/payments/{payment['id']}", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["description"] == "Venue advance"


def test_organization_header_required():
    client = TestClient(app)
    resp = client.get("/payments/stats")
    assert resp.status_code == 400
    assert "X-Organization-Id" in resp.json()["detail"]


def test_other_organization_cannot_see_payment():
    client = TestClient(app)
    payment = create_payment(client)
    resp = client.get(f"/payments/{payment['id']}", headers={"X-Organization-Id": "2"})
    assert resp.status_code == 404


def test_client_payment_requires_client():
    client = TestClient(app)
    body = {
        "event_id": 10,
        "payment_type": "client_payment",
        "description": "Advance",
        "amount": "100",
        "due_date": _due(3),
    }
    resp = client.post("/payments/", json=body, headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Client ID is required for client payments"


def test_mark_paid_partial_then_full():
    client = TestClient(app)
    payment = create_payment(client)

    resp = client.put(
        f"/payments/{payment['id']}/mark-paid",
        json={"amount": "4000", "payment_method": "upi", "transaction_reference": "UPI-123", "notes": "first"},
        headers=HEADERS,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["status"] == "partially_paid"
    assert Decimal(data["paid_amount"]) == Decimal("4000")
    assert data["payment_method"] == "upi"
    assert data["updated_by"] == 7

    resp = client.put(f"/payments/{payment['id']}/mark-paid", json={"amount": "6000"}, headers=HEADERS)
    data = resp.json()
    assert data["status"] == "paid"
    assert data["transaction_reference"] == "UPI-123"
    assert Decimal(data["outstanding_amount"]) == Decimal("0")


def test_overpayment_is_rejected_with_balance():
    client = TestClient(app)
    payment = create_payment(client)
    client.put(f"/payments/{payment['id']}/mark-paid", json={"amount": "4000"}, headers=HEADERS)

    resp = client.put(f"/payments/{payment['id']}/mark-paid", json={"amount": "7000"}, headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Paid amount cannot exceed outstanding balance of ₹6000.00"

    resp = client.get(f"/payments/{payment['id']}", headers=HEADERS)
    assert Decimal(resp.json()["paid_amount"]) == Decimal("4000")


def test_zero_payment_rejected():
    client = TestClient(app)
    payment = create_payment(client)
    resp = client.put(f"/payments/{payment['id']}/mark-paid", json={"amount": "0"}, headers=HEADERS)
    assert resp.status_code == 400


def test_update_and_delete_payment():
    client = TestClient(app)
    payment = create_payment(client)

    resp = client.put(f"/payments/{payment['id']}", json={"description": "Venue balance"}, headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["description"] == "Venue balance"

    resp = client.delete(f"/payments/{payment['id']}", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Payment deleted successfully"}

    assert client.get(f"/payments/{payment['id']}", headers=HEADERS).status_code == 404


def test_reminder_on_settled_payment_conflicts():
    client = TestClient(app)
    payment = create_payment(client, amount="500")

    resp = client.post(f"/payments/{payment['id']}/send-reminder", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["reminder_sent"] is True

    client.put(f"/payments/{payment['id']}/mark-paid", json={"amount": "500"}, headers=HEADERS)
    resp = client.post(f"/payments/{payment['id']}/send-reminder", headers=HEADERS)
    assert resp.status_code == 409


def test_event_outstanding_and_stats_endpoints():
    client = TestClient(app)
    create_payment(client)
    create_payment(
        client,
        payment_type="vendor_payment",
        client_id=None,
        vendor_name="Shree Caterers",
        vendor_category="catering",
        amount="3000",
    )

    resp = client.get("/payments/event/10", headers=HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["client_payments"]) == 1
    assert len(data["vendor_payments"]) == 1
    assert Decimal(data["summary"]["vendor_outstanding"]) == Decimal("3000")

    resp = client.get("/payments/outstanding", params={"type": "vendor"}, headers=HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["pagination"] == {"total": 1, "page": 1, "pages": 1, "limit": 20}
    assert Decimal(data["summary"]["total_outstanding"]) == Decimal("3000")

    resp = client.get("/payments/stats", headers=HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert Decimal(data["total_expected"]) == Decimal("10000")
    assert Decimal(data["vendor_due"]) == Decimal("3000")
    assert Decimal(data["collection_rate"]) == Decimal("0")


def test_unknown_payment_type_is_rejected():
    client = TestClient(app)
    body = {
        "event_id": 10,
        "payment_type": "refund",
        "description": "Refund",
        "amount": "100",
        "due_date": _due(3),
    }
    resp = client.post("/payments/", json=body, headers=HEADERS)
    assert resp.status_code == 422
