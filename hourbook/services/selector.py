from datetime import date as _date
from typing import Optional

from hourbook.db.mappers import encode_date, time_entry_from_doc
from hourbook.db.store import Store
from hourbook.schemas.time_entry_schema import TimeEntry
from hourbook.services.time_entries import TIME_ENTRIES


def _unbilled_query(client_id: str, cutoff_date: Optional[_date] = None) -> dict:
    q: dict = {"client_id": client_id, "invoice_id": None}
    if cutoff_date is not None:
        # Inclusive: entries dated on the cutoff are billable
        q["date"] = {"$lte": encode_date(cutoff_date)}
    return q


async def select_uninvoiced(store: Store, client_id: str, cutoff_date: Optional[_date] = None) -> list[TimeEntry]:
    """Unbilled time for a client, oldest first.

    Entries dated after ``cutoff_date`` are left out. Same-day entries keep
    the order they were recorded in. An empty list is a normal result: the
    invoice can still be built from manual rows.
    """
    docs = await store.find(TIME_ENTRIES, _unbilled_query(client_id, cutoff_date), sort=[("date", 1), ("seq", 1)])
    return [time_entry_from_doc(d) for d in docs]
