"""Sending invoices by email.

The message is composed from the account's email settings and handed to a
mailer callable (SMTP by default). The send is recorded on the invoice only
after the mailer returns.
"""
import asyncio
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from typing import Callable, Optional

from pydantic import BaseModel

from hourbook.core.config import settings
from hourbook.core.errors import DeliveryError, ValidationError
from hourbook.db.mappers import email_history_to_doc, invoice_update_to_doc
from hourbook.db.store import Store, new_id, utcnow
from hourbook.schemas.client_schema import Client
from hourbook.schemas.invoice_schema import Invoice, InvoiceEmailHistory, InvoiceStatus
from hourbook.schemas.settings_schema import UserSettings
from hourbook.services.clients import get_client
from hourbook.services.invoices import INVOICES, get_invoice
from hourbook.services.merge_fields import merge_values, render_merge_fields
from hourbook.services.user_settings import get_settings
from hourbook.utils.email import build_message, render_template, send_email_smtp
from hourbook.utils.money import format_money


logger = logging.getLogger(__name__)

Mailer = Callable[[EmailMessage], None]

DEFAULT_MESSAGE = (
    "Thank you for your business! Please find invoice {{invoice_number}} for services rendered."
)
DEFAULT_FOOTER = (
    "Questions? Reply to this email or contact us at {{company_email}}\n\n{{company_name}} | {{company_website}}"
)


class InvoiceSnapshot(BaseModel):
    """Everything a rendered invoice needs, read in one go."""

    invoice: Invoice
    client: Client
    settings: UserSettings


async def build_snapshot(store: Store, invoice_id: str) -> InvoiceSnapshot:
    invoice = await get_invoice(store, invoice_id)
    client = await get_client(store, invoice.client_id)
    account = await get_settings(store)
    return InvoiceSnapshot(invoice=invoice, client=client, settings=account)


def invoice_url(invoice_id: str) -> str:
    return f"{settings.FRONTEND_BASE_URL.rstrip('/')}/invoice/{invoice_id}"


def compose_invoice_email(snapshot: InvoiceSnapshot, message: Optional[str] = None) -> EmailMessage:
    invoice, client, account = snapshot.invoice, snapshot.client, snapshot.settings
    if not client.billing_email:
        raise ValidationError(f"client {client.name} has no billing email")

    values = merge_values(invoice, client, account)
    subject = render_merge_fields(account.email_subject, values)
    body = render_merge_fields(message or account.email_default_message or DEFAULT_MESSAGE, values)
    footer = render_merge_fields(account.email_footer or DEFAULT_FOOTER, values)

    line_items = []
    if account.email_include_line_items:
        line_items = [
            {
                "date": f"{item.date:%b} {item.date.day}, {item.date.year}",
                "description": item.description,
                "hours": f"{item.hours:.2f}",
                "rate": format_money(item.rate),
                "amount": format_money(item.subtotal),
            }
            for item in invoice.line_items
        ]
    html = render_template(
        "invoice.html",
        {
            "invoice": invoice,
            "company_name": account.company_name,
            "primary_color": account.email_primary_color,
            "message": body,
            "footer": footer,
            "invoice_date": values["invoice_date"],
            "due_date": values["due_date"],
            "total_amount": values["total_amount"],
            "line_items": line_items,
            "labels": {
                "date": account.pdf_date_column_label,
                "description": account.pdf_description_column_label,
                "hours": account.pdf_hours_column_label,
                "rate": account.pdf_rate_column_label,
                "amount": account.pdf_amount_column_label,
            },
            "invoice_url": invoice_url(invoice.id),
        },
    )
    text = f"{body}\n\nInvoice {invoice.invoice_number}\nDue {values['due_date']}\nTotal {values['total_amount']}\n\n{footer}"
    return build_message(
        subject=subject,
        to=client.billing_email,
        html_body=html,
        text_body=text,
        cc=client.cc_emails,
        reply_to=account.company_email or None,
        from_name=account.company_name or None,
    )


async def send_invoice(
    store: Store,
    invoice_id: str,
    message: Optional[str] = None,
    mailer: Mailer = send_email_smtp,
    now: Optional[datetime] = None,
) -> Invoice:
    """Email an invoice to the client's billing address, copying cc addresses.

    ``message`` replaces the account's default message for this send only.
    Drafts become ``sent``; other statuses are kept.

    Raises:
        ValidationError: the client has no billing email.
        DeliveryError: the mailer failed. Nothing is recorded.
    """
    snapshot = await build_snapshot(store, invoice_id)
    email = compose_invoice_email(snapshot, message)
    invoice, client = snapshot.invoice, snapshot.client

    try:
        await asyncio.to_thread(mailer, email)
    except (RuntimeError, OSError, smtplib.SMTPException) as exc:
        logging.getLogger("uvicorn.error").error("Failed to send invoice %s: %s", invoice.invoice_number, exc)
        raise DeliveryError(f"invoice {invoice.invoice_number} could not be sent: {exc}") from exc

    history = InvoiceEmailHistory(
        id=new_id(),
        sent_at=now or utcnow(),
        sent_to=client.billing_email,
        cc_emails=list(client.cc_emails),
        custom_message=message,
    )
    fields: dict = {"last_sent_at": history.sent_at}
    if invoice.status == InvoiceStatus.draft:
        fields["status"] = InvoiceStatus.sent
    await store.update(
        INVOICES,
        invoice.id,
        invoice_update_to_doc(fields),
        push={"email_history": email_history_to_doc(history)},
        inc={"sent_count": 1},
    )
    logger.info("Invoice %s sent to %s", invoice.invoice_number, client.billing_email)
    return await get_invoice(store, invoice.id)
