from datetime import date as _date
from typing import Optional
from pydantic import BaseModel

from .common import ClockTime


class TimeEntryIn(BaseModel):
    client_id: str
    date: _date
    start_time: ClockTime
    end_time: ClockTime
    project: str = ""
    description: str = ""


class TimeEntryUpdate(BaseModel):
    client_id: Optional[str] = None
    date: Optional[_date] = None
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    project: Optional[str] = None
    description: Optional[str] = None


class TimeEntry(BaseModel):
    id: str
    client_id: str
    date: _date
    start_time: ClockTime
    end_time: ClockTime
    project: str = ""
    description: str = ""
    hours: float
    invoice_id: Optional[str] = None

    @property
    def is_invoiced(self) -> bool:
        return bool(self.invoice_id)


class CalendarWeek(BaseModel):
    start_hour: int
    end_hour: int
    hour_height: float
    snap_minutes: int
    days: list[_date]
    entries: list[TimeEntry]
