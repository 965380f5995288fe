from motor.motor_asyncio import AsyncIOMotorDatabase
from hourbook.db.mongo import get_mongo_db


async def ensure_indexes(db: AsyncIOMotorDatabase | None = None) -> None:
    """Create required MongoDB indexes (idempotent)."""
    if db is None:
        db = get_mongo_db()

    clients = db["clients"]
    await clients.create_index([("account_id", 1), ("name", 1)], name="idx_clients_account_name")

    time_entries = db["time_entries"]
    # Selector: client's unbilled entries in date order
    await time_entries.create_index(
        [("account_id", 1), ("client_id", 1), ("invoice_id", 1), ("date", 1)],
        name="idx_te_account_client_invoice_date",
    )
    # Calendar week queries
    await time_entries.create_index([("account_id", 1), ("date", 1)], name="idx_te_account_date")

    invoices = db["invoices"]
    # Guards the read-max-then-write invoice numbering against concurrent writers
    await invoices.create_index(
        [("account_id", 1), ("invoice_number", 1)], unique=True, name="uniq_account_invoice_number"
    )
    await invoices.create_index([("account_id", 1), ("client_id", 1)], name="idx_inv_account_client")

    line_items = db["invoice_line_items"]
    await line_items.create_index([("account_id", 1), ("invoice_id", 1), ("position", 1)], name="idx_li_invoice_position")

    payments = db["payments"]
    await payments.create_index([("account_id", 1), ("invoice_id", 1), ("date", 1)], name="idx_pay_invoice_date")

    counters = db["counters"]
    await counters.create_index([("account_id", 1), ("name", 1)], unique=True, name="uniq_account_counter")

    user_settings = db["user_settings"]
    # One settings document per account
    await user_settings.create_index([("account_id", 1)], unique=True, name="uniq_account_settings")
