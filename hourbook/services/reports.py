"""Dashboard and client detail figures.

Invoices marked paid count as fully collected even without recorded
payments. Drafts are not outstanding.
"""
from datetime import date as _date, timedelta
from typing import Optional

from hourbook.db.store import Store
from hourbook.schemas.invoice_schema import InvoiceStatus, InvoiceView
from hourbook.schemas.report_schema import AccountSummary, ClientSummary
from hourbook.services.clients import get_client
from hourbook.services.invoices import list_invoices
from hourbook.services.selector import select_uninvoiced
from hourbook.services.time_entries import list_time_entries
from hourbook.utils.money import round_money, sum_money


def _collected(invoice: InvoiceView) -> float:
    if invoice.status == InvoiceStatus.paid:
        return invoice.total
    return min(invoice.amount_paid, invoice.total)


def _open_balance(invoice: InvoiceView) -> float:
    if invoice.status in (InvoiceStatus.draft, InvoiceStatus.paid):
        return 0.0
    return round_money(invoice.total - _collected(invoice))


def _month_bounds(day: _date) -> tuple[_date, _date]:
    first = day.replace(day=1)
    next_first = (first + timedelta(days=32)).replace(day=1)
    return first, next_first - timedelta(days=1)


async def account_summary(store: Store, today: Optional[_date] = None) -> AccountSummary:
    today = today or _date.today()
    start, end = _month_bounds(today)
    entries = await list_time_entries(store, date_from=start, date_to=end)
    invoices = await list_invoices(store, today=today)
    return AccountSummary(
        hours_this_month=round(sum(e.hours for e in entries), 2),
        total_invoiced=sum_money(i.total for i in invoices),
        amount_paid=sum_money(_collected(i) for i in invoices),
        outstanding=sum_money(_open_balance(i) for i in invoices),
        overdue=sum_money(_open_balance(i) for i in invoices if i.effective_status == InvoiceStatus.overdue),
    )


async def client_summary(store: Store, client_id: str, today: Optional[_date] = None) -> ClientSummary:
    client = await get_client(store, client_id)
    entries = await list_time_entries(store, client_id=client.id)
    invoices = await list_invoices(store, client_id=client.id, today=today)
    unbilled = await select_uninvoiced(store, client.id)
    unbilled_hours = sum(e.hours for e in unbilled)
    return ClientSummary(
        client_id=client.id,
        total_hours=round(sum(e.hours for e in entries), 2),
        billed=sum_money(_collected(i) for i in invoices),
        outstanding=sum_money(_open_balance(i) for i in invoices),
        uninvoiced_hours=round(unbilled_hours, 2),
        uninvoiced_amount=sum_money(round_money(e.hours * client.hourly_rate) for e in unbilled),
    )
