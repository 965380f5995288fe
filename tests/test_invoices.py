from datetime import date, datetime, time

import pytest

from hourbook.core.errors import (
    ConflictError,
    NotFoundError,
    PartialFailureError,
    PersistenceError,
    ValidationError,
)
from hourbook.schemas.invoice_schema import InvoiceStatus
from hourbook.services import invoices as invoice_service
from hourbook.services.clients import add_client, update_client
from hourbook.services.invoices import (
    build_invoice,
    delete_invoice,
    get_invoice,
    list_invoices,
    mark_entries_invoiced,
    mark_paid,
    mark_sent,
    update_invoice,
)
from hourbook.services.payments import add_payment
from hourbook.services.selector import select_uninvoiced
from hourbook.services.time_entries import TIME_ENTRIES, get_time_entry, list_time_entries


@pytest.fixture
async def january(acme, log_entry):
    """2.5h on Jan 5 and 1.5h on Jan 10 for the $150/h client."""
    first = await log_entry(acme.id, date(2024, 1, 5), time(9, 0), time(11, 30), "Web", "Homepage")
    second = await log_entry(acme.id, date(2024, 1, 10), time(13, 0), time(14, 30), "Web", "Checkout")
    return [first, second]


async def test_build_from_selected_entries(store, acme, january):
    picked = await select_uninvoiced(store, acme.id, cutoff_date=date(2024, 1, 10))
    invoice = await build_invoice(
        store,
        {"client_id": acme.id, "date_issued": "2024-01-10", "time_entry_ids": [e.id for e in picked]},
    )

    assert invoice.invoice_number == "INV-2024-001"
    assert invoice.status == InvoiceStatus.draft
    assert [(li.hours, li.rate, li.subtotal) for li in invoice.line_items] == [(2.5, 150, 375.0), (1.5, 150, 225.0)]
    assert [li.description for li in invoice.line_items] == ["Web - Homepage", "Web - Checkout"]
    assert invoice.total == 600.0
    assert invoice.line_items_total() == invoice.total
    assert invoice.due_date == date(2024, 2, 9)
    assert invoice.balance_due == 600.0

    for entry in january:
        assert (await get_time_entry(store, entry.id)).invoice_id == invoice.id
    assert await select_uninvoiced(store, acme.id) == []

    stored = await get_invoice(store, invoice.id)
    assert stored.line_items == invoice.line_items
    assert stored.total == 600.0


async def test_numbers_follow_issue_year(store, acme):
    manual = [{"date": "2024-12-30", "description": "Retainer", "hours": 1}]
    first = await build_invoice(store, {"client_id": acme.id, "date_issued": "2024-12-30", "manual_line_items": manual})
    second = await build_invoice(store, {"client_id": acme.id, "date_issued": "2024-12-31", "manual_line_items": manual})
    third = await build_invoice(store, {"client_id": acme.id, "date_issued": "2025-01-02", "manual_line_items": manual})
    assert [first.invoice_number, second.invoice_number, third.invoice_number] == [
        "INV-2024-001",
        "INV-2024-002",
        "INV-2025-001",
    ]


async def test_manual_rows_follow_entry_rows(store, acme, january):
    invoice = await build_invoice(
        store,
        {
            "client_id": acme.id,
            "date_issued": "2024-01-31",
            "time_entry_ids": [january[1].id, january[0].id],
            "manual_line_items": [
                {"date": "2024-01-31", "description": "Hosting", "hours": 1, "rate": 49.99},
                {"date": "2024-01-31", "description": "Setup"},
            ],
        },
    )
    rows = invoice.line_items
    assert [r.time_entry_id for r in rows] == [january[0].id, january[1].id, None, None]
    assert (rows[2].rate, rows[2].subtotal) == (49.99, 49.99)
    # Manual rows default to one hour at the client rate
    assert (rows[3].hours, rows[3].rate, rows[3].subtotal) == (1.0, 150, 150.0)
    assert invoice.total == 799.99


async def test_rate_is_captured_at_build_time(store, acme, january):
    invoice = await build_invoice(
        store, {"client_id": acme.id, "date_issued": "2024-01-31", "time_entry_ids": [january[0].id]}
    )
    await update_client(store, acme.id, {"hourly_rate": 200})
    stored = await get_invoice(store, invoice.id)
    assert stored.line_items[0].rate == 150
    assert stored.total == 375.0


async def test_subtotals_round_to_cents(store):
    client = await add_client(store, {"name": "Odd Rate", "hourly_rate": 33.33})
    invoice = await build_invoice(
        store,
        {
            "client_id": client.id,
            "date_issued": "2024-03-01",
            "manual_line_items": [{"date": "2024-03-01", "hours": 0.25}, {"date": "2024-03-01", "hours": 0.25}],
        },
    )
    assert [r.subtotal for r in invoice.line_items] == [8.33, 8.33]
    assert invoice.total == 16.66


async def test_rejects_empty_invoice(store, acme):
    with pytest.raises(ValidationError):
        await build_invoice(store, {"client_id": acme.id, "date_issued": "2024-01-31"})
    assert await list_invoices(store) == []


async def test_rejects_unknown_client_and_entry(store, acme):
    with pytest.raises(NotFoundError):
        await build_invoice(store, {"client_id": "nope", "date_issued": "2024-01-31", "time_entry_ids": []})
    with pytest.raises(NotFoundError):
        await build_invoice(store, {"client_id": acme.id, "date_issued": "2024-01-31", "time_entry_ids": ["nope"]})


async def test_rejects_foreign_and_billed_entries(store, acme, january, log_entry):
    other = await add_client(store, {"name": "Globex", "hourly_rate": 100})
    foreign = await log_entry(other.id, date(2024, 1, 5), time(9, 0), time(10, 0))
    with pytest.raises(ValidationError):
        await build_invoice(
            store, {"client_id": acme.id, "date_issued": "2024-01-31", "time_entry_ids": [january[0].id, foreign.id]}
        )

    await build_invoice(store, {"client_id": acme.id, "date_issued": "2024-01-31", "time_entry_ids": [january[0].id]})
    with pytest.raises(ValidationError):
        await build_invoice(
            store, {"client_id": acme.id, "date_issued": "2024-01-31", "time_entry_ids": [january[0].id]}
        )
    assert len(await list_invoices(store)) == 1


async def test_rejects_duplicate_entry_ids(store, acme, january):
    with pytest.raises(ValidationError):
        await build_invoice(
            store,
            {"client_id": acme.id, "date_issued": "2024-01-31", "time_entry_ids": [january[0].id, january[0].id]},
        )


async def test_line_item_failure_removes_invoice(store, acme, january, monkeypatch):
    async def broken_insert_many(collection, docs):
        raise PersistenceError("insert on invoice_line_items failed")

    monkeypatch.setattr(store, "insert_many", broken_insert_many)
    with pytest.raises(PersistenceError):
        await build_invoice(
            store, {"client_id": acme.id, "date_issued": "2024-01-31", "time_entry_ids": [january[0].id]}
        )
    assert await list_invoices(store) == []
    assert (await get_time_entry(store, january[0].id)).invoice_id is None


async def test_entry_billed_elsewhere_during_build_is_not_billed_twice(db, store, acme, january, monkeypatch):
    real_insert_many = store.insert_many

    async def insert_after_other_writer(collection, docs):
        # Another invoice claims the first entry between validation and marking
        await store.update(TIME_ENTRIES, january[0].id, {"invoice_id": "other-invoice"})
        return await real_insert_many(collection, docs)

    monkeypatch.setattr(store, "insert_many", insert_after_other_writer)
    with pytest.raises(ConflictError) as exc_info:
        await build_invoice(
            store, {"client_id": acme.id, "date_issued": "2024-01-31", "time_entry_ids": [e.id for e in january]}
        )
    assert january[0].id in exc_info.value.message
    assert await list_invoices(store) == []
    assert await db["invoice_line_items"].count_documents({}) == 0
    assert (await get_time_entry(store, january[0].id)).invoice_id == "other-invoice"
    assert (await get_time_entry(store, january[1].id)).invoice_id is None


async def test_marking_retry_rejects_entries_owned_by_another_invoice(store, acme, january, monkeypatch):
    async def broken_update_many(collection, query, fields):
        raise PersistenceError("update on time_entries failed")

    monkeypatch.setattr(store, "update_many", broken_update_many)
    with pytest.raises(PartialFailureError) as exc_info:
        await build_invoice(
            store, {"client_id": acme.id, "date_issued": "2024-01-31", "time_entry_ids": [january[0].id]}
        )
    monkeypatch.undo()

    await store.update(TIME_ENTRIES, january[0].id, {"invoice_id": "other-invoice"})
    with pytest.raises(ConflictError):
        await mark_entries_invoiced(store, exc_info.value.invoice_id)


async def test_marking_failure_reports_invoice_and_can_be_retried(store, acme, january, monkeypatch):
    async def broken_update_many(collection, query, fields):
        raise PersistenceError("update on time_entries failed")

    monkeypatch.setattr(store, "update_many", broken_update_many)
    with pytest.raises(PartialFailureError) as exc_info:
        await build_invoice(
            store, {"client_id": acme.id, "date_issued": "2024-01-31", "time_entry_ids": [e.id for e in january]}
        )
    invoice_id = exc_info.value.invoice_id
    assert (await get_invoice(store, invoice_id)).total == 600.0
    assert all(e.invoice_id is None for e in await list_time_entries(store))

    monkeypatch.undo()
    assert await mark_entries_invoiced(store, invoice_id) == 2
    assert await mark_entries_invoiced(store, invoice_id) == 0
    assert all(e.invoice_id == invoice_id for e in await list_time_entries(store))


async def test_number_collision_is_retried(store, acme, monkeypatch):
    manual = [{"date": "2024-05-01", "description": "Support"}]
    await build_invoice(store, {"client_id": acme.id, "date_issued": "2024-05-01", "manual_line_items": manual})

    real = invoice_service.next_invoice_number
    calls = []

    def stale_then_real(existing, year):
        calls.append(year)
        # First read misses the invoice another writer just stored
        return "INV-2024-001" if len(calls) == 1 else real(existing, year)

    monkeypatch.setattr(invoice_service, "next_invoice_number", stale_then_real)
    invoice = await build_invoice(store, {"client_id": acme.id, "date_issued": "2024-05-02", "manual_line_items": manual})
    assert invoice.invoice_number == "INV-2024-002"
    assert len(calls) == 2


async def test_number_collision_gives_up(store, acme, monkeypatch):
    manual = [{"date": "2024-05-01", "description": "Support"}]
    await build_invoice(store, {"client_id": acme.id, "date_issued": "2024-05-01", "manual_line_items": manual})
    monkeypatch.setattr(invoice_service, "next_invoice_number", lambda existing, year: "INV-2024-001")
    with pytest.raises(ConflictError):
        await build_invoice(store, {"client_id": acme.id, "date_issued": "2024-05-02", "manual_line_items": manual})


async def test_delete_releases_entries_and_payments(db, store, acme, january):
    invoice = await build_invoice(
        store, {"client_id": acme.id, "date_issued": "2024-01-31", "time_entry_ids": [e.id for e in january]}
    )
    await add_payment(store, invoice.id, {"date": "2024-02-01", "amount": 100})

    await delete_invoice(store, invoice.id)

    with pytest.raises(NotFoundError):
        await get_invoice(store, invoice.id)
    assert await db["payments"].count_documents({}) == 0
    assert await db["invoice_line_items"].count_documents({}) == 0
    assert len(await select_uninvoiced(store, acme.id)) == 2


async def test_update_rejects_overdue_and_bad_dates(store, acme):
    invoice = await build_invoice(
        store,
        {"client_id": acme.id, "date_issued": "2024-01-31", "manual_line_items": [{"date": "2024-01-31"}]},
    )
    with pytest.raises(ValidationError):
        await update_invoice(store, invoice.id, {"status": "overdue"})
    with pytest.raises(ValidationError):
        await update_invoice(store, invoice.id, {"due_date": "2024-01-01"})

    updated = await update_invoice(store, invoice.id, {"due_date": "2024-03-15", "status": "sent"})
    assert updated.due_date == date(2024, 3, 15)
    assert updated.status == InvoiceStatus.sent
    assert updated.invoice_number == invoice.invoice_number


async def test_mark_sent_and_paid(store, acme):
    invoice = await build_invoice(
        store,
        {"client_id": acme.id, "date_issued": "2024-01-31", "manual_line_items": [{"date": "2024-01-31"}]},
    )
    sent = await mark_sent(store, invoice.id)
    assert sent.status == InvoiceStatus.sent
    paid = await mark_paid(store, invoice.id)
    assert paid.status == InvoiceStatus.paid
    assert paid.pre_payment_status == InvoiceStatus.sent
    # Sending again does not reopen a paid invoice
    assert (await mark_sent(store, invoice.id)).status == InvoiceStatus.paid


async def test_overdue_is_derived_when_listing(store, acme):
    manual = [{"date": "2024-01-31"}]
    late = await build_invoice(
        store,
        {"client_id": acme.id, "date_issued": "2024-01-01", "due_date": "2024-01-31", "status": "sent", "manual_line_items": manual},
    )
    draft = await build_invoice(
        store, {"client_id": acme.id, "date_issued": "2024-01-01", "due_date": "2024-01-31", "manual_line_items": manual}
    )
    today = date(2024, 2, 15)

    views = {v.id: v for v in await list_invoices(store, today=today)}
    assert views[late.id].effective_status == InvoiceStatus.overdue
    assert views[late.id].status == InvoiceStatus.sent
    assert views[draft.id].effective_status == InvoiceStatus.draft

    overdue = await list_invoices(store, status=InvoiceStatus.overdue, today=today)
    assert [v.id for v in overdue] == [late.id]
    assert await list_invoices(store, status=InvoiceStatus.overdue, today=date(2024, 1, 31)) == []


async def test_list_orders_same_day_by_creation(db, store, acme):
    manual = [{"date": "2024-06-03"}]
    older = await build_invoice(store, {"client_id": acme.id, "date_issued": "2024-06-03", "manual_line_items": manual})
    await db["invoices"].update_one(
        {"_id": older.id}, {"$set": {"invoice_number": "INV-2024-999", "created_at": datetime(2024, 6, 3, 9, 0)}}
    )
    newer = await build_invoice(store, {"client_id": acme.id, "date_issued": "2024-06-03", "manual_line_items": manual})
    assert newer.invoice_number == "INV-2024-1000"

    assert [v.invoice_number for v in await list_invoices(store)] == ["INV-2024-1000", "INV-2024-999"]


async def test_legacy_overdue_reads_as_sent(db, store, acme):
    invoice = await build_invoice(
        store,
        {"client_id": acme.id, "date_issued": "2024-01-01", "manual_line_items": [{"date": "2024-01-01"}]},
    )
    await db["invoices"].update_one({"_id": invoice.id}, {"$set": {"status": "overdue"}})
    assert (await get_invoice(store, invoice.id)).status == InvoiceStatus.sent
