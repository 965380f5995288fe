from __future__ import annotations

import asyncio
from datetime import date, time, timedelta

from hourbook.db.mongo import get_mongo_db, close_mongo_client
from hourbook.db.mongo_indexes import ensure_indexes
from hourbook.db.store import Store
from hourbook.core.security import create_account_token
from hourbook.services.clients import add_client, list_clients
from hourbook.services.invoices import build_invoice
from hourbook.services.payments import add_payment
from hourbook.services.selector import select_uninvoiced
from hourbook.services.time_entries import add_time_entry
from hourbook.services.user_settings import update_settings


DEMO_ACCOUNT_ID = "00000000-0000-4000-8000-000000000001"  # stable id for idempotence


async def seed_settings(store: Store):
    await update_settings(
        store,
        {
            "company_name": "Northwind Consulting",
            "company_email": "billing@northwind.local",
            "company_phone": "(555) 010-2000",
            "company_website": "northwind.local",
            "email_default_message": "Hi {{client_name}}, invoice {{invoice_number}} for {{total_amount}} is due {{due_date}}.",
            "email_include_line_items": True,
        },
    )


async def seed_clients(store: Store):
    acme = await add_client(
        store,
        {
            "name": "Acme Corp",
            "billing_first_name": "Wile",
            "billing_last_name": "Coyote",
            "billing_email": "ap@acme.example.com",
            "cc_emails": ["finance@acme.example.com"],
            "address_street": "1 Desert Rd",
            "address_city": "Phoenix",
            "address_state": "AZ",
            "address_zip": "85001",
            "hourly_rate": 150,
            "color": "#3b82f6",
        },
    )
    globex = await add_client(
        store,
        {"name": "Globex", "billing_email": "accounts@globex.example.com", "hourly_rate": 120, "color": "#10b981"},
    )
    return acme, globex


async def seed_time_entries(store: Store, clients, today: date):
    monday = today - timedelta(days=today.weekday() + 14)
    slots = [(time(9, 0), time(11, 30)), (time(13, 0), time(14, 30)), (time(15, 0), time(17, 0))]
    for week in range(3):
        for day in range(5):
            for i, client in enumerate(clients):
                start, end = slots[(day + i) % len(slots)]
                await add_time_entry(
                    store,
                    {
                        "client_id": client.id,
                        "date": monday + timedelta(days=week * 7 + day),
                        "start_time": start,
                        "end_time": end,
                        "project": "Platform" if i == 0 else "Audit",
                        "description": f"Week {week + 1} work",
                    },
                )


async def seed_invoices(store: Store, client, today: date):
    cutoff = today - timedelta(days=today.weekday() + 8)
    entries = await select_uninvoiced(store, client.id, cutoff)
    if not entries:
        return
    invoice = await build_invoice(
        store,
        {
            "client_id": client.id,
            "date_issued": cutoff,
            "status": "sent",
            "time_entry_ids": [e.id for e in entries],
        },
    )
    await add_payment(store, invoice.id, {"date": today, "amount": round(invoice.total / 2, 2), "method": "ACH"})


async def main():
    db = get_mongo_db()
    # Ensure indexes before inserting
    await ensure_indexes(db)
    store = Store(db, DEMO_ACCOUNT_ID)

    if await list_clients(store):
        print("Demo account already seeded.")
    else:
        today = date.today()
        await seed_settings(store)
        clients = await seed_clients(store)
        await seed_time_entries(store, clients, today)
        await seed_invoices(store, clients[0], today)
        print("MongoDB seed completed.")

    print(f"Dev token: {create_account_token(DEMO_ACCOUNT_ID, 'demo@northwind.local')}")
    close_mongo_client()


if __name__ == "__main__":
    asyncio.run(main())
