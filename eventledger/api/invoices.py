"""Invoice endpoints."""

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from eventledger.core.settings import get_settings
from eventledger.db.session import get_db
from eventledger.dependencies.context import LedgerContext, get_ledger_context
from eventledger.schemas.invoice import (
    InvoiceCreate,
    InvoicePaymentInput,
    InvoiceRead,
    InvoiceStats,
    InvoiceUpdate,
    TotalsRead,
    TotalsRequest,
    VoidInvoiceInput,
)
from eventledger.services import invoices as invoice_service
from eventledger.services.invoice_totals import calculate_totals, items_as_dicts

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.post("/", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return invoice_service.create_invoice(db, ctx.organization_id, payload, user_id=ctx.user_id)


@router.get("/", response_model=List[InvoiceRead])
async def list_invoices(
    status: str | None = None,
    client_id: int | None = None,
    event_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return invoice_service.list_invoices(
        db,
        ctx.organization_id,
        status=status,
        client_id=client_id,
        event_id=event_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/stats", response_model=InvoiceStats)
async def get_invoice_stats(
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return invoice_service.get_invoice_stats(db, ctx.organization_id)


@router.post("/calculate", response_model=TotalsRead)
async def preview_totals(payload: TotalsRequest):
    tax_rate = payload.tax_rate if payload.tax_rate is not None else get_settings().default_tax_rate
    totals = calculate_totals(
        [item.model_dump() for item in payload.items], tax_rate, payload.discount, payload.discount_type
    )
    return {
        "items": items_as_dicts(totals.items),
        "subtotal": totals.subtotal,
        "discount_amount": totals.discount_amount,
        "taxable_amount": totals.taxable_amount,
        "tax_amount": totals.tax_amount,
        "total": totals.total,
    }


@router.get("/{invoice_id}", response_model=InvoiceRead)
async def get_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return invoice_service.get_invoice(db, ctx.organization_id, invoice_id)


@router.put("/{invoice_id}", response_model=InvoiceRead)
async def update_invoice(
    invoice_id: int,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return invoice_service.update_invoice(db, ctx.organization_id, invoice_id, payload)


@router.put("/{invoice_id}/send", response_model=InvoiceRead)
async def send_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return invoice_service.mark_invoice_sent(db, ctx.organization_id, invoice_id)


@router.post("/{invoice_id}/payment", response_model=InvoiceRead)
async def record_invoice_payment(
    invoice_id: int,
    payload: InvoicePaymentInput,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return invoice_service.record_invoice_payment(db, ctx.organization_id, invoice_id, payload.amount)


@router.post("/{invoice_id}/void", response_model=InvoiceRead)
async def void_invoice(
    invoice_id: int,
    payload: VoidInvoiceInput,
    db: Session = Depends(get_db),
    ctx: LedgerContext = Depends(get_ledger_context),
):
    return invoice_service.void_invoice(db, ctx.organization_id, invoice_id, payload.reason)
