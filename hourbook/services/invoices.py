"""Invoice building and lifecycle.

An invoice is written in three steps: the invoice document, its line items,
then the ``invoice_id`` marker on every consumed time entry. The store has
no multi-document transactions, so each step's failure is reported with
enough context to recover (see :func:`mark_entries_invoiced`).
"""
import logging
import re
from collections import defaultdict
from datetime import date as _date, timedelta
from typing import Any, Optional, Sequence

from hourbook.core.config import settings
from hourbook.core.errors import (
    ConflictError,
    NotFoundError,
    PartialFailureError,
    PersistenceError,
    ValidationError,
    parse_model,
)
from hourbook.db.mappers import (
    invoice_from_doc,
    invoice_to_doc,
    invoice_update_to_doc,
    line_item_to_doc,
    time_entry_from_doc,
)
from hourbook.db.store import Store, new_id
from hourbook.schemas.client_schema import Client
from hourbook.schemas.invoice_schema import (
    Invoice,
    InvoiceCreate,
    InvoiceLineItem,
    InvoiceStatus,
    InvoiceUpdate,
    InvoiceView,
    LineItemIn,
)
from hourbook.schemas.time_entry_schema import TimeEntry
from hourbook.services.clients import get_client
from hourbook.services.invoice_numbers import invoice_prefix, next_invoice_number
from hourbook.services.invoice_status import effective_status
from hourbook.services.time_entries import TIME_ENTRIES
from hourbook.utils.money import round_money, sum_money


logger = logging.getLogger(__name__)

INVOICES = "invoices"
LINE_ITEMS = "invoice_line_items"
PAYMENTS = "payments"

MONEY_STATUSES = (InvoiceStatus.paid, InvoiceStatus.partially_paid)


# ---------------------- Building ----------------------


async def _load_selected_entries(store: Store, client_id: str, entry_ids: Sequence[str]) -> list[TimeEntry]:
    if not entry_ids:
        return []
    docs = await store.find(
        TIME_ENTRIES,
        {"_id": {"$in": list(entry_ids)}},
        sort=[("date", 1), ("seq", 1)],
    )
    found = {d["_id"] for d in docs}
    for entry_id in entry_ids:
        if entry_id not in found:
            raise NotFoundError("Time entry", entry_id)
    entries = [time_entry_from_doc(d) for d in docs]
    for entry in entries:
        if entry.client_id != client_id:
            raise ValidationError(f"time entry {entry.id} belongs to another client")
        if entry.is_invoiced:
            raise ValidationError(f"time entry {entry.id} is already invoiced")
    return entries


def _entry_line_item(entry: TimeEntry, rate: float) -> InvoiceLineItem:
    return InvoiceLineItem(
        id=new_id(),
        date=entry.date,
        description=f"{entry.project} - {entry.description}",
        hours=entry.hours,
        rate=rate,
        subtotal=round_money(entry.hours * rate),
        time_entry_id=entry.id,
    )


def _manual_line_item(item: LineItemIn, default_rate: float) -> InvoiceLineItem:
    rate = default_rate if item.rate is None else item.rate
    return InvoiceLineItem(
        id=new_id(),
        date=item.date,
        description=item.description,
        hours=item.hours,
        rate=rate,
        subtotal=round_money(item.hours * rate),
    )


def build_line_items(
    client: Client,
    entries: Sequence[TimeEntry],
    manual_items: Sequence[LineItemIn] = (),
) -> list[InvoiceLineItem]:
    """Entry rows in the given order, then manual rows.

    The client's current rate is captured on every row so later rate
    changes leave issued invoices untouched.
    """
    items = [_entry_line_item(e, client.hourly_rate) for e in entries]
    items.extend(_manual_line_item(m, client.hourly_rate) for m in manual_items)
    return items


async def _insert_numbered(store: Store, *, client_id: str, date_issued: _date, due_date: _date,
                           status: InvoiceStatus, total: float) -> dict:
    year = date_issued.year
    invoice_id = new_id()
    for attempt in range(1, settings.INVOICE_NUMBER_RETRIES + 1):
        issued = await store.find(
            INVOICES,
            {"invoice_number": {"$regex": f"^{re.escape(invoice_prefix(year))}"}},
            projection={"invoice_number": 1},
        )
        number = next_invoice_number((d["invoice_number"] for d in issued), year)
        try:
            return await store.insert(
                INVOICES,
                invoice_to_doc(
                    invoice_id=invoice_id,
                    invoice_number=number,
                    client_id=client_id,
                    date_issued=date_issued,
                    due_date=due_date,
                    status=status,
                    total=total,
                ),
            )
        except ConflictError:
            logger.warning("Invoice number %s already taken (attempt %d)", number, attempt)
    raise ConflictError(f"could not allocate an invoice number for {year}")


async def build_invoice(store: Store, data: InvoiceCreate | dict[str, Any]) -> Invoice:
    """Create an invoice for a client from selected time entries and manual rows.

    Everything is validated before the first write: the client and every
    entry must exist, entries must belong to the client and be unbilled,
    and at least one line item must result.

    Raises:
        NotFoundError: unknown client or entry id.
        ValidationError: bad input, foreign or already billed entries.
        PersistenceError: the invoice or its line items could not be written;
            nothing is left behind.
        ConflictError: another invoice billed a selected entry first; the
            new invoice is removed again.
        PartialFailureError: the invoice exists but its entries could not be
            marked as billed.
    """
    payload = parse_model(InvoiceCreate, data)
    client = await get_client(store, payload.client_id)
    entries = await _load_selected_entries(store, client.id, payload.time_entry_ids)
    items = build_line_items(client, entries, payload.manual_line_items)
    if not items:
        raise ValidationError("an invoice needs at least one line item")

    due_date = payload.due_date or payload.date_issued + timedelta(days=settings.INVOICE_DUE_DAYS)
    if due_date < payload.date_issued:
        raise ValidationError("due date is before the issue date")
    total = sum_money(item.subtotal for item in items)

    invoice_doc = await _insert_numbered(
        store,
        client_id=client.id,
        date_issued=payload.date_issued,
        due_date=due_date,
        status=InvoiceStatus(payload.status),
        total=total,
    )
    invoice_id = invoice_doc["_id"]

    try:
        item_docs = await store.insert_many(
            LINE_ITEMS, [line_item_to_doc(item, invoice_id, pos) for pos, item in enumerate(items)]
        )
    except PersistenceError as exc:
        logger.error("Line items for invoice %s failed, removing invoice", invoice_doc["invoice_number"])
        await store.delete(INVOICES, invoice_id)
        raise PersistenceError(f"could not save line items for {invoice_doc['invoice_number']}") from exc

    try:
        await mark_entries_invoiced(store, invoice_id)
    except ConflictError:
        logger.error("Invoice %s lost entries to another invoice, removing it", invoice_doc["invoice_number"])
        await delete_invoice(store, invoice_id)
        raise
    except PersistenceError as exc:
        logger.error("Invoice %s saved but entries were not marked", invoice_doc["invoice_number"])
        raise PartialFailureError(
            f"invoice {invoice_doc['invoice_number']} saved but its time entries were not marked as billed",
            invoice_id=invoice_id,
        ) from exc

    logger.info(
        "Invoice %s built for client %s: %d rows, total %.2f",
        invoice_doc["invoice_number"], client.id, len(items), total,
    )
    return invoice_from_doc(invoice_doc, item_docs)


async def mark_entries_invoiced(store: Store, invoice_id: str) -> int:
    """Mark every entry referenced by the invoice's line items as billed.

    Safe to run again: entries already carrying this invoice id are skipped.
    Returns how many entries were marked by this call. Raises ConflictError
    when a referenced entry is billed on a different invoice.
    """
    if not await store.get(INVOICES, invoice_id):
        raise NotFoundError("Invoice", invoice_id)
    rows = await store.find(LINE_ITEMS, {"invoice_id": invoice_id, "time_entry_id": {"$ne": None}})
    entry_ids = [r["time_entry_id"] for r in rows]
    if not entry_ids:
        return 0
    marked = await store.update_many(
        TIME_ENTRIES, {"_id": {"$in": entry_ids}, "invoice_id": None}, {"invoice_id": invoice_id}
    )
    taken = await store.find(
        TIME_ENTRIES,
        {"_id": {"$in": entry_ids}, "invoice_id": {"$nin": [None, invoice_id]}},
        projection={"_id": 1},
    )
    if taken:
        raise ConflictError(
            "time entries already billed on another invoice: " + ", ".join(d["_id"] for d in taken)
        )
    if marked < len(entry_ids):
        logger.info("Invoice %s: %d of %d entries needed marking", invoice_id, marked, len(entry_ids))
    return marked


# ---------------------- Reading ----------------------


async def get_invoice(store: Store, invoice_id: str) -> Invoice:
    doc = await store.get(INVOICES, invoice_id)
    if not doc:
        raise NotFoundError("Invoice", invoice_id)
    items = await store.find(LINE_ITEMS, {"invoice_id": invoice_id}, sort=[("position", 1)])
    payments = await store.find(PAYMENTS, {"invoice_id": invoice_id}, sort=[("date", 1), ("created_at", 1)])
    return invoice_from_doc(doc, items, payments)


def to_view(invoice: Invoice, today: Optional[_date] = None) -> InvoiceView:
    today = today or _date.today()
    return InvoiceView.model_validate(
        {**invoice.model_dump(), "effective_status": effective_status(invoice.status, invoice.due_date, today)}
    )


async def list_invoices(
    store: Store,
    client_id: Optional[str] = None,
    status: Optional[InvoiceStatus] = None,
    today: Optional[_date] = None,
) -> list[InvoiceView]:
    """Invoices newest first. ``status`` filters on the status as displayed today."""
    q: dict = {}
    if client_id:
        q["client_id"] = client_id
    docs = await store.find(INVOICES, q, sort=[("date_issued", -1), ("created_at", -1)])
    ids = [d["_id"] for d in docs]
    items_by_invoice: dict[str, list[dict]] = defaultdict(list)
    payments_by_invoice: dict[str, list[dict]] = defaultdict(list)
    if ids:
        for item in await store.find(LINE_ITEMS, {"invoice_id": {"$in": ids}}, sort=[("position", 1)]):
            items_by_invoice[item["invoice_id"]].append(item)
        for payment in await store.find(PAYMENTS, {"invoice_id": {"$in": ids}}, sort=[("date", 1), ("created_at", 1)]):
            payments_by_invoice[payment["invoice_id"]].append(payment)

    views = [
        to_view(invoice_from_doc(d, items_by_invoice[d["_id"]], payments_by_invoice[d["_id"]]), today)
        for d in docs
    ]
    if status is not None:
        views = [v for v in views if v.effective_status == status]
    return views


# ---------------------- Lifecycle ----------------------


def _status_fields(current: Invoice, new_status: InvoiceStatus) -> dict:
    if new_status == InvoiceStatus.overdue:
        raise ValidationError("overdue is derived from the due date and cannot be stored")
    fields: dict = {"status": new_status}
    # Remember where the invoice came from the first time it counts as paid
    if new_status in MONEY_STATUSES and current.status not in MONEY_STATUSES:
        fields["pre_payment_status"] = current.status
    return fields


async def update_invoice(store: Store, invoice_id: str, data: InvoiceUpdate | dict[str, Any]) -> Invoice:
    """Change dates or status. The invoice number stays as issued."""
    patch = parse_model(InvoiceUpdate, data).model_dump(exclude_unset=True)
    patch = {k: v for k, v in patch.items() if v is not None}
    current = await get_invoice(store, invoice_id)
    fields: dict = {}
    if "status" in patch:
        fields.update(_status_fields(current, patch.pop("status")))
    fields.update(patch)
    if fields.get("due_date", current.due_date) < fields.get("date_issued", current.date_issued):
        raise ValidationError("due date is before the issue date")
    if fields:
        await store.update(INVOICES, invoice_id, invoice_update_to_doc(fields))
    return await get_invoice(store, invoice_id)


async def mark_sent(store: Store, invoice_id: str) -> Invoice:
    current = await get_invoice(store, invoice_id)
    if current.status != InvoiceStatus.draft:
        return current
    await store.update(INVOICES, invoice_id, invoice_update_to_doc({"status": InvoiceStatus.sent}))
    logger.info("Invoice %s marked as sent", current.invoice_number)
    return await get_invoice(store, invoice_id)


async def mark_paid(store: Store, invoice_id: str) -> Invoice:
    """Mark paid in full without recording a payment (settled outside the ledger)."""
    current = await get_invoice(store, invoice_id)
    if current.status == InvoiceStatus.paid:
        return current
    await store.update(INVOICES, invoice_id, invoice_update_to_doc(_status_fields(current, InvoiceStatus.paid)))
    logger.info("Invoice %s marked as paid", current.invoice_number)
    return await get_invoice(store, invoice_id)


async def delete_invoice(store: Store, invoice_id: str) -> None:
    """Delete an invoice and release its time entries for billing again."""
    doc = await store.get(INVOICES, invoice_id)
    if not doc:
        raise NotFoundError("Invoice", invoice_id)
    released = await store.update_many(TIME_ENTRIES, {"invoice_id": invoice_id}, {"invoice_id": None})
    await store.delete_many(PAYMENTS, {"invoice_id": invoice_id})
    await store.delete_many(LINE_ITEMS, {"invoice_id": invoice_id})
    await store.delete(INVOICES, invoice_id)
    logger.info("Invoice %s deleted, %d entries released", doc["invoice_number"], released)
