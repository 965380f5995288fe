import logging
from datetime import date as _date
from typing import Any, Optional

from hourbook.core.errors import NotFoundError, ValidationError, parse_model
from hourbook.db.mappers import encode_date, time_entry_from_doc, time_entry_to_doc
from hourbook.db.store import Store
from hourbook.schemas.time_entry_schema import TimeEntry, TimeEntryIn, TimeEntryUpdate
from hourbook.services.clients import get_client
from hourbook.services.hours import compute_hours


logger = logging.getLogger(__name__)

TIME_ENTRIES = "time_entries"


async def add_time_entry(store: Store, data: TimeEntryIn | dict[str, Any]) -> TimeEntry:
    payload = parse_model(TimeEntryIn, data)
    hours = compute_hours(payload.start_time, payload.end_time)
    await get_client(store, payload.client_id)
    # Orders same-day entries; timestamps can tie within a millisecond
    seq = await store.next_sequence(TIME_ENTRIES)
    doc = await store.insert(
        TIME_ENTRIES,
        time_entry_to_doc({**payload.model_dump(), "hours": hours, "invoice_id": None, "seq": seq}),
    )
    return time_entry_from_doc(doc)


async def get_time_entry(store: Store, entry_id: str) -> TimeEntry:
    doc = await store.get(TIME_ENTRIES, entry_id)
    if not doc:
        raise NotFoundError("Time entry", entry_id)
    return time_entry_from_doc(doc)


async def list_time_entries(
    store: Store,
    client_id: Optional[str] = None,
    date_from: Optional[_date] = None,
    date_to: Optional[_date] = None,
) -> list[TimeEntry]:
    q: dict = {}
    if client_id:
        q["client_id"] = client_id
    if date_from:
        q["date"] = {"$gte": encode_date(date_from)}
    if date_to:
        q.setdefault("date", {}).update({"$lte": encode_date(date_to)})
    docs = await store.find(TIME_ENTRIES, q, sort=[("date", 1), ("start_time", 1)])
    return [time_entry_from_doc(d) for d in docs]


async def update_time_entry(store: Store, entry_id: str, data: TimeEntryUpdate | dict[str, Any]) -> TimeEntry:
    """Edit date, times, client or text. Hours are recomputed from the merged times."""
    patch = parse_model(TimeEntryUpdate, data).model_dump(exclude_unset=True)
    patch = {k: v for k, v in patch.items() if v is not None}
    current = await get_time_entry(store, entry_id)
    start = patch.get("start_time", current.start_time)
    end = patch.get("end_time", current.end_time)
    patch["hours"] = compute_hours(start, end)
    if "client_id" in patch and patch["client_id"] != current.client_id:
        if current.invoice_id:
            raise ValidationError("cannot move an invoiced time entry to another client")
        await get_client(store, patch["client_id"])
    matched = await store.update(TIME_ENTRIES, entry_id, time_entry_to_doc(patch))
    if not matched:
        raise NotFoundError("Time entry", entry_id)
    return await get_time_entry(store, entry_id)


async def delete_time_entry(store: Store, entry_id: str) -> None:
    deleted = await store.delete(TIME_ENTRIES, entry_id)
    if not deleted:
        raise NotFoundError("Time entry", entry_id)
    logger.info("Time entry %s deleted", entry_id)
