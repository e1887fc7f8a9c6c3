"""Payment ledger endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from eventledger.db.session import get_db
from eventledger.dependencies.context import LedgerContext, get_ledger_context
from eventledger.schemas.payment import (
    EventPayments,
    OutstandingPayments,
    PaymentCreate,
    PaymentRead,
    PaymentStats,
    PaymentUpdate,
    RecordPaymentInput,
)
from eventledger.services import payments as payment_service

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return payment_service.create_payment(db, ctx.organization_id, payload, user_id=ctx.user_id)


@router.get("/event/{event_id}", response_model=EventPayments)
async def get_event_payments(
    event_id: int,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return payment_service.get_event_payments(db, ctx.organization_id, event_id)


@router.get("/outstanding", response_model=OutstandingPayments)
async def get_outstanding_payments(
    type: Literal["client", "vendor"] | None = None,
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return payment_service.get_outstanding_payments(db, ctx.organization_id, payment_type=type, page=page, limit=limit)


@router.get("/stats", response_model=PaymentStats)
async def get_payment_stats(
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return payment_service.get_payment_stats(db, ctx.organization_id)


@router.get("/{payment_id}", response_model=PaymentRead)
async def get_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return payment_service.get_payment(db, ctx.organization_id, payment_id)


@router.put("/{payment_id}/mark-paid", response_model=PaymentRead)
async def mark_payment_as_paid(
    payment_id: int,
    payload: RecordPaymentInput,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return payment_service.record_payment(db, ctx.organization_id, payment_id, payload, user_id=ctx.user_id)


@router.put("/{payment_id}", response_model=PaymentRead)
async def update_payment(
    payment_id: int,
    payload: PaymentUpdate,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return payment_service.update_payment(db, ctx.organization_id, payment_id, payload, user_id=ctx.user_id)


@router.delete("/{payment_id}")
async def delete_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    payment_service.delete_payment(db, ctx.organization_id, payment_id)
    return {"message": "Payment deleted successfully"}


@router.post("/{payment_id}/send-reminder", response_model=PaymentRead)
async def send_payment_reminder(
    payment_id: int,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return payment_service.send_payment_reminder(db, ctx.organization_id, payment_id)
