from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from hourbook.api.deps import get_mailer, get_store
from hourbook.db.store import Store
from hourbook.schemas.invoice_schema import (
    InvoiceCreate,
    InvoiceSendIn,
    InvoiceStatus,
    InvoiceUpdate,
    InvoiceView,
)
from hourbook.schemas.payment_schema import PaymentIn
from hourbook.schemas.time_entry_schema import TimeEntry
from hourbook.services import invoices as invoice_service
from hourbook.services.delivery import send_invoice
from hourbook.services.payments import add_payment, remove_payment
from hourbook.services.selector import select_uninvoiced


router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("/uninvoiced", response_model=list[TimeEntry])
async def list_uninvoiced_entries(
    client_id: str = Query(...),
    cutoff_date: Optional[date] = Query(None, description="Leave out entries dated after this day"),
    store: Store = Depends(get_store),
):
    return await select_uninvoiced(store, client_id, cutoff_date)


@router.post("", response_model=InvoiceView, status_code=status.HTTP_201_CREATED)
async def create_invoice(payload: InvoiceCreate, store: Store = Depends(get_store)):
    invoice = await invoice_service.build_invoice(store, payload)
    return invoice_service.to_view(invoice)


@router.get("", response_model=list[InvoiceView])
async def list_invoices(
    client_id: Optional[str] = Query(None),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    store: Store = Depends(get_store),
):
    return await invoice_service.list_invoices(store, client_id, status_filter)


@router.get("/{invoice_id}", response_model=InvoiceView)
async def get_invoice(invoice_id: str, store: Store = Depends(get_store)):
    return invoice_service.to_view(await invoice_service.get_invoice(store, invoice_id))


@router.patch("/{invoice_id}", response_model=InvoiceView)
async def update_invoice(invoice_id: str, payload: InvoiceUpdate, store: Store = Depends(get_store)):
    return invoice_service.to_view(await invoice_service.update_invoice(store, invoice_id, payload))


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(invoice_id: str, store: Store = Depends(get_store)):
    await invoice_service.delete_invoice(store, invoice_id)


@router.post("/{invoice_id}/mark-sent", response_model=InvoiceView)
async def mark_sent(invoice_id: str, store: Store = Depends(get_store)):
    return invoice_service.to_view(await invoice_service.mark_sent(store, invoice_id))


@router.post("/{invoice_id}/mark-paid", response_model=InvoiceView)
async def mark_paid(invoice_id: str, store: Store = Depends(get_store)):
    return invoice_service.to_view(await invoice_service.mark_paid(store, invoice_id))


@router.post("/{invoice_id}/mark-entries", response_model=dict)
async def retry_mark_entries(invoice_id: str, store: Store = Depends(get_store)):
    marked = await invoice_service.mark_entries_invoiced(store, invoice_id)
    return {"marked": marked}


@router.post("/{invoice_id}/send", response_model=InvoiceView)
async def send(
    invoice_id: str,
    payload: Optional[InvoiceSendIn] = None,
    store: Store = Depends(get_store),
    mailer=Depends(get_mailer),
):
    message = payload.message if payload else None
    return invoice_service.to_view(await send_invoice(store, invoice_id, message, mailer=mailer))


# ---------------------- Payments ----------------------


@router.post("/{invoice_id}/payments", response_model=InvoiceView, status_code=status.HTTP_201_CREATED)
async def record_payment(invoice_id: str, payload: PaymentIn, store: Store = Depends(get_store)):
    return invoice_service.to_view(await add_payment(store, invoice_id, payload))


@router.delete("/{invoice_id}/payments/{payment_id}", response_model=InvoiceView)
async def delete_payment(invoice_id: str, payment_id: str, store: Store = Depends(get_store)):
    return invoice_service.to_view(await remove_payment(store, invoice_id, payment_id))
