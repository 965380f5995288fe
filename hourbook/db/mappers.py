"""Document <-> model mapping at the persistence boundary.

Documents keep calendar dates as ``YYYY-MM-DD`` strings and wall-clock times
as ``HH:MM`` strings so range filters and sorts work on the raw values.
One pair of functions per entity; nothing else in the package touches raw
documents' field encodings.
"""
from __future__ import annotations

from datetime import date as _date, datetime, time as _time
from typing import Any, Iterable, Optional

from hourbook.schemas.client_schema import Client, ClientIn, ClientUpdate
from hourbook.schemas.invoice_schema import (
    Invoice,
    InvoiceEmailHistory,
    InvoiceLineItem,
    InvoiceStatus,
)
from hourbook.schemas.payment_schema import Payment, PaymentIn
from hourbook.schemas.settings_schema import SettingsUpdate, UserSettings
from hourbook.schemas.time_entry_schema import TimeEntry


def encode_date(value: _date) -> str:
    return value.isoformat()


def decode_date(value: Any) -> _date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, _date):
        return value
    return _date.fromisoformat(str(value)[:10])


def encode_time(value: _time) -> str:
    return value.strftime("%H:%M")


def decode_time(value: Any) -> _time:
    if isinstance(value, _time):
        return value.replace(second=0, microsecond=0)
    # Older rows carry HH:MM:SS
    hh, mm = str(value).split(":")[:2]
    return _time(int(hh), int(mm))


# ---------------------- Clients ----------------------


def client_from_doc(doc: dict) -> Client:
    return Client(
        id=doc["_id"],
        name=doc.get("name", ""),
        billing_first_name=doc.get("billing_first_name") or "",
        billing_last_name=doc.get("billing_last_name") or "",
        billing_phone=doc.get("billing_phone") or "",
        billing_email=doc.get("billing_email") or None,
        cc_emails=doc.get("cc_emails") or [],
        address_street=doc.get("address_street") or "",
        address_line_2=doc.get("address_line_2") or "",
        address_city=doc.get("address_city") or "",
        address_state=doc.get("address_state") or "",
        address_zip=doc.get("address_zip") or "",
        address_country=doc.get("address_country") or "",
        hourly_rate=float(doc.get("hourly_rate", 0.0)),
        color=doc.get("color") or "#3b82f6",
    )


def client_to_doc(client: ClientIn) -> dict:
    return client.model_dump(mode="json")


def client_update_to_doc(update: ClientUpdate) -> dict:
    fields = update.model_dump(mode="json", exclude_unset=True)
    # billing_email is the only field that may be cleared
    return {k: v for k, v in fields.items() if v is not None or k == "billing_email"}


# ---------------------- Time entries ----------------------


def time_entry_from_doc(doc: dict) -> TimeEntry:
    return TimeEntry(
        id=doc["_id"],
        client_id=doc["client_id"],
        date=decode_date(doc["date"]),
        start_time=decode_time(doc["start_time"]),
        end_time=decode_time(doc["end_time"]),
        project=doc.get("project") or "",
        description=doc.get("description") or "",
        hours=float(doc.get("hours", 0.0)),
        invoice_id=doc.get("invoice_id") or None,
    )


def time_entry_to_doc(fields: dict) -> dict:
    """Encode a (possibly partial) set of time entry fields."""
    doc: dict = {}
    for key, value in fields.items():
        if key == "date" and value is not None:
            doc[key] = encode_date(value)
        elif key in ("start_time", "end_time") and value is not None:
            doc[key] = encode_time(value)
        else:
            doc[key] = value
    return doc


# ---------------------- Invoices ----------------------


def line_item_from_doc(doc: dict) -> InvoiceLineItem:
    return InvoiceLineItem(
        id=doc["_id"],
        date=decode_date(doc["date"]),
        description=doc.get("description") or "",
        hours=float(doc.get("hours", 0.0)),
        rate=float(doc.get("rate", 0.0)),
        subtotal=float(doc.get("subtotal", 0.0)),
        time_entry_id=doc.get("time_entry_id") or None,
    )


def line_item_to_doc(item: InvoiceLineItem, invoice_id: str, position: int) -> dict:
    return {
        "_id": item.id,
        "invoice_id": invoice_id,
        "position": position,
        "date": encode_date(item.date),
        "description": item.description,
        "hours": item.hours,
        "rate": item.rate,
        "subtotal": item.subtotal,
        "time_entry_id": item.time_entry_id,
    }


def email_history_from_doc(doc: dict) -> InvoiceEmailHistory:
    return InvoiceEmailHistory(
        id=doc["id"],
        sent_at=doc["sent_at"],
        sent_to=doc.get("sent_to", ""),
        cc_emails=doc.get("cc_emails") or [],
        custom_message=doc.get("custom_message"),
    )


def email_history_to_doc(history: InvoiceEmailHistory) -> dict:
    return {
        "id": history.id,
        "sent_at": history.sent_at,
        "sent_to": history.sent_to,
        "cc_emails": list(history.cc_emails),
        "custom_message": history.custom_message,
    }


def _stored_status(value: Optional[str]) -> InvoiceStatus:
    # Overdue is derived at read time; older documents may still carry it
    if value == InvoiceStatus.overdue.value:
        return InvoiceStatus.sent
    return InvoiceStatus(value or InvoiceStatus.draft.value)


def invoice_from_doc(
    doc: dict,
    line_items: Iterable[dict] = (),
    payments: Iterable[dict] = (),
) -> Invoice:
    pre = doc.get("pre_payment_status")
    return Invoice(
        id=doc["_id"],
        invoice_number=doc["invoice_number"],
        client_id=doc["client_id"],
        date_issued=decode_date(doc["date_issued"]),
        due_date=decode_date(doc["due_date"]),
        status=_stored_status(doc.get("status")),
        line_items=[line_item_from_doc(li) for li in sorted(line_items, key=lambda d: d.get("position", 0))],
        total=float(doc.get("total", 0.0)),
        last_sent_at=doc.get("last_sent_at"),
        sent_count=int(doc.get("sent_count") or 0),
        email_history=[email_history_from_doc(h) for h in (doc.get("email_history") or [])],
        payments=[payment_from_doc(p) for p in payments],
        pre_payment_status=_stored_status(pre) if pre else None,
    )


def invoice_to_doc(
    *,
    invoice_id: str,
    invoice_number: str,
    client_id: str,
    date_issued: _date,
    due_date: _date,
    status: InvoiceStatus,
    total: float,
) -> dict:
    return {
        "_id": invoice_id,
        "invoice_number": invoice_number,
        "client_id": client_id,
        "date_issued": encode_date(date_issued),
        "due_date": encode_date(due_date),
        "status": status.value,
        "total": total,
        "last_sent_at": None,
        "sent_count": 0,
        "email_history": [],
        "pre_payment_status": None,
    }


def invoice_update_to_doc(fields: dict) -> dict:
    doc: dict = {}
    for key, value in fields.items():
        if key in ("date_issued", "due_date") and value is not None:
            doc[key] = encode_date(value)
        elif isinstance(value, InvoiceStatus):
            doc[key] = value.value
        else:
            doc[key] = value
    return doc


# ---------------------- Payments ----------------------


def payment_from_doc(doc: dict) -> Payment:
    return Payment(
        id=doc["_id"],
        invoice_id=doc["invoice_id"],
        date=decode_date(doc["date"]),
        amount=float(doc["amount"]),
        method=doc.get("method"),
        reference=doc.get("reference"),
        notes=doc.get("notes"),
        created_at=doc["created_at"],
    )


def payment_to_doc(payment: PaymentIn, invoice_id: str) -> dict:
    return {
        "invoice_id": invoice_id,
        "date": encode_date(payment.date),
        "amount": payment.amount,
        "method": payment.method,
        "reference": payment.reference,
        "notes": payment.notes,
    }


# ---------------------- Settings ----------------------


def settings_from_doc(doc: Optional[dict]) -> UserSettings:
    if not doc:
        return UserSettings()
    known = UserSettings.model_fields.keys()
    # Null columns fall back to the defaults
    values = {k: v for k, v in doc.items() if k in known and v is not None}
    return UserSettings(**values)


def settings_update_to_doc(update: SettingsUpdate) -> dict:
    return update.model_dump(exclude_unset=True, exclude_none=True)
