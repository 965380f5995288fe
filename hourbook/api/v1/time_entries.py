from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from hourbook.api.deps import get_store
from hourbook.calendar.grid import TimeGrid, week_days
from hourbook.db.store import Store
from hourbook.schemas.time_entry_schema import CalendarWeek, TimeEntry, TimeEntryIn, TimeEntryUpdate
from hourbook.services import time_entries as entry_service


router = APIRouter(prefix="/time", tags=["time"])


@router.post("/entries", response_model=TimeEntry, status_code=status.HTTP_201_CREATED)
async def create_time_entry(payload: TimeEntryIn, store: Store = Depends(get_store)):
    return await entry_service.add_time_entry(store, payload)


@router.get("/entries", response_model=list[TimeEntry])
async def list_time_entries(
    client_id: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None, description="Inclusive lower bound"),
    date_to: Optional[date] = Query(None, description="Inclusive upper bound"),
    store: Store = Depends(get_store),
):
    return await entry_service.list_time_entries(store, client_id, date_from, date_to)


@router.get("/entries/{entry_id}", response_model=TimeEntry)
async def get_time_entry(entry_id: str, store: Store = Depends(get_store)):
    return await entry_service.get_time_entry(store, entry_id)


@router.patch("/entries/{entry_id}", response_model=TimeEntry)
async def update_time_entry(entry_id: str, payload: TimeEntryUpdate, store: Store = Depends(get_store)):
    return await entry_service.update_time_entry(store, entry_id, payload)


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_time_entry(entry_id: str, store: Store = Depends(get_store)):
    await entry_service.delete_time_entry(store, entry_id)


@router.get("/calendar", response_model=CalendarWeek)
async def calendar_week(
    day: date = Query(..., description="Any day of the week to show"),
    store: Store = Depends(get_store),
):
    grid = TimeGrid.from_settings()
    days = week_days(day)
    entries = await entry_service.list_time_entries(store, date_from=days[0], date_to=days[-1])
    return CalendarWeek(
        start_hour=grid.start_hour,
        end_hour=grid.end_hour,
        hour_height=grid.hour_height,
        snap_minutes=grid.snap_minutes,
        days=days,
        entries=entries,
    )
