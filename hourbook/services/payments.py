import logging
from typing import Any

from hourbook.core.errors import NotFoundError, parse_model
from hourbook.db.mappers import invoice_update_to_doc, payment_to_doc
from hourbook.db.store import Store
from hourbook.schemas.invoice_schema import Invoice
from hourbook.schemas.payment_schema import PaymentIn
from hourbook.services.invoice_status import reconcile_status
from hourbook.services.invoices import INVOICES, MONEY_STATUSES, PAYMENTS, get_invoice


logger = logging.getLogger(__name__)


async def _reconcile(store: Store, invoice: Invoice) -> Invoice:
    new_status = reconcile_status(
        invoice.total,
        invoice.status,
        [p.amount for p in invoice.payments],
        invoice.pre_payment_status,
    )
    if new_status == invoice.status:
        return invoice
    fields: dict = {"status": new_status}
    if new_status in MONEY_STATUSES and invoice.status not in MONEY_STATUSES:
        fields["pre_payment_status"] = invoice.status
    await store.update(INVOICES, invoice.id, invoice_update_to_doc(fields))
    logger.info("Invoice %s status %s -> %s", invoice.invoice_number, invoice.status.value, new_status.value)
    return await get_invoice(store, invoice.id)


async def add_payment(store: Store, invoice_id: str, data: PaymentIn | dict[str, Any]) -> Invoice:
    """Record a payment and bring the invoice status in line with the ledger.

    Payments above the balance are accepted; the invoice is then simply paid.
    """
    payment = parse_model(PaymentIn, data)
    await get_invoice(store, invoice_id)
    await store.insert(PAYMENTS, payment_to_doc(payment, invoice_id))
    return await _reconcile(store, await get_invoice(store, invoice_id))


async def remove_payment(store: Store, invoice_id: str, payment_id: str) -> Invoice:
    await get_invoice(store, invoice_id)
    deleted = await store.delete_many(PAYMENTS, {"_id": payment_id, "invoice_id": invoice_id})
    if not deleted:
        raise NotFoundError("Payment", payment_id)
    return await _reconcile(store, await get_invoice(store, invoice_id))
