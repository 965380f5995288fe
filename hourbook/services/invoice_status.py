"""Status derivation for invoices. No I/O here."""
from datetime import date as _date
from typing import Iterable, Optional

from hourbook.schemas.invoice_schema import InvoiceStatus
from hourbook.utils.money import to_cents


_MONEY_STATUSES = (InvoiceStatus.paid, InvoiceStatus.partially_paid)


def reconcile_status(
    total: float,
    status: InvoiceStatus,
    payments: Iterable[float],
    pre_payment_status: Optional[InvoiceStatus] = None,
) -> InvoiceStatus:
    """Stored status after the payment set changed.

    ``payments`` are the amounts currently recorded. With nothing paid an
    invoice that was paid or partially paid returns to the status it had
    before money arrived (``sent`` when unknown); any other status is kept.
    """
    paid_cents = sum(to_cents(a) for a in payments)
    if paid_cents == 0:
        if status in _MONEY_STATUSES:
            if pre_payment_status and pre_payment_status not in _MONEY_STATUSES:
                return pre_payment_status
            return InvoiceStatus.sent
        return status
    if paid_cents >= to_cents(total):
        return InvoiceStatus.paid
    return InvoiceStatus.partially_paid


def effective_status(status: InvoiceStatus, due_date: _date, today: _date) -> InvoiceStatus:
    if status == InvoiceStatus.sent and due_date < today:
        return InvoiceStatus.overdue
    return status
