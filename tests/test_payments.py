from datetime import date

import pytest

from hourbook.core.errors import NotFoundError, ValidationError
from hourbook.schemas.invoice_schema import InvoiceStatus
from hourbook.services.invoice_status import effective_status, reconcile_status
from hourbook.services.invoices import build_invoice, get_invoice
from hourbook.services.payments import add_payment, remove_payment


S = InvoiceStatus


@pytest.fixture
def invoice_for(store, acme):
    async def _build(total_hours: float, status: str = "sent"):
        return await build_invoice(
            store,
            {
                "client_id": acme.id,
                "date_issued": "2024-01-10",
                "status": status,
                "manual_line_items": [{"date": "2024-01-10", "description": "Consulting", "hours": total_hours}],
            },
        )

    return _build


class TestReconcileStatus:
    def test_full_payment_is_paid(self):
        assert reconcile_status(600.0, S.sent, [600.0]) == S.paid

    def test_overpayment_is_paid(self):
        assert reconcile_status(600.0, S.sent, [500.0, 200.0]) == S.paid

    def test_partial_payment(self):
        assert reconcile_status(600.0, S.sent, [100.0]) == S.partially_paid
        assert reconcile_status(600.0, S.draft, [100.0]) == S.partially_paid

    def test_compares_in_cents(self):
        assert reconcile_status(0.3, S.sent, [0.1, 0.2]) == S.paid
        assert reconcile_status(100.0, S.sent, [33.33, 33.33, 33.33]) == S.partially_paid

    def test_nothing_paid_keeps_status(self):
        assert reconcile_status(600.0, S.draft, []) == S.draft
        assert reconcile_status(600.0, S.sent, []) == S.sent
        assert reconcile_status(0.0, S.sent, []) == S.sent

    def test_nothing_paid_falls_back(self):
        assert reconcile_status(600.0, S.paid, []) == S.sent
        assert reconcile_status(600.0, S.partially_paid, [], S.draft) == S.draft
        assert reconcile_status(600.0, S.paid, [], S.sent) == S.sent


class TestEffectiveStatus:
    def test_sent_past_due_is_overdue(self):
        assert effective_status(S.sent, date(2024, 1, 31), date(2024, 2, 1)) == S.overdue

    def test_due_today_is_not_overdue(self):
        assert effective_status(S.sent, date(2024, 1, 31), date(2024, 1, 31)) == S.sent

    @pytest.mark.parametrize("status", [S.draft, S.paid, S.partially_paid])
    def test_other_statuses_never_overdue(self, status):
        assert effective_status(status, date(2024, 1, 1), date(2024, 6, 1)) == status


async def test_full_payment_then_removal(store, invoice_for):
    invoice = await invoice_for(4)
    assert invoice.total == 600.0

    paid = await add_payment(store, invoice.id, {"date": "2024-01-20", "amount": 600, "method": "ACH"})
    assert paid.status == S.paid
    assert paid.amount_paid == 600.0
    assert paid.balance_due == 0.0

    reopened = await remove_payment(store, invoice.id, paid.payments[0].id)
    assert reopened.status == S.sent
    assert reopened.payments == []
    assert reopened.balance_due == 600.0


async def test_partial_payments_accumulate(store, invoice_for):
    invoice = await invoice_for(4)
    first = await add_payment(store, invoice.id, {"date": "2024-01-20", "amount": 250})
    assert first.status == S.partially_paid
    assert first.balance_due == 350.0

    second = await add_payment(store, invoice.id, {"date": "2024-01-25", "amount": 350})
    assert second.status == S.paid
    assert [p.amount for p in second.payments] == [250.0, 350.0]

    back = await remove_payment(store, invoice.id, second.payments[1].id)
    assert back.status == S.partially_paid


async def test_draft_round_trip(store, invoice_for):
    invoice = await invoice_for(2, status="draft")
    paid = await add_payment(store, invoice.id, {"date": "2024-01-20", "amount": 50})
    assert paid.status == S.partially_paid
    assert paid.pre_payment_status == S.draft

    again = await remove_payment(store, invoice.id, paid.payments[0].id)
    assert again.status == S.draft


async def test_overpayment_keeps_zero_balance(store, invoice_for):
    invoice = await invoice_for(1)
    paid = await add_payment(store, invoice.id, {"date": "2024-01-20", "amount": 500})
    assert paid.status == S.paid
    assert paid.balance_due == 0.0


async def test_rejects_non_positive_amount(store, invoice_for):
    invoice = await invoice_for(1)
    for amount in (0, -10):
        with pytest.raises(ValidationError):
            await add_payment(store, invoice.id, {"date": "2024-01-20", "amount": amount})
    assert (await get_invoice(store, invoice.id)).payments == []


async def test_unknown_invoice_or_payment(store, invoice_for):
    with pytest.raises(NotFoundError):
        await add_payment(store, "missing", {"date": "2024-01-20", "amount": 10})
    invoice = await invoice_for(1)
    with pytest.raises(NotFoundError):
        await remove_payment(store, invoice.id, "missing")
