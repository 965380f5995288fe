"""Drag-to-create and drag-to-move for the weekly calendar.

The engine is fed pointer events already translated to the calendar body's
coordinate space and emits requests; it never touches the store itself.
"""
import logging
from dataclasses import dataclass
from datetime import date as _date, time as _time
from enum import Enum
from typing import Optional, Sequence, Union

from hourbook.calendar.grid import TimeGrid
from hourbook.db.store import Store
from hourbook.schemas.time_entry_schema import TimeEntry
from hourbook.services.hours import minutes_of_day, time_of_minutes
from hourbook.services.time_entries import add_time_entry, update_time_entry


logger = logging.getLogger(__name__)

PRIMARY_BUTTON = 0


class DragState(str, Enum):
    idle = "idle"
    dragging_new_block = "dragging_new_block"
    dragging_existing_block = "dragging_existing_block"


@dataclass(frozen=True)
class PointerEvent:
    x: float
    y: float
    button: int = PRIMARY_BUTTON


@dataclass(frozen=True)
class DayColumn:
    index: int
    date: _date
    left: float
    right: float

    def contains(self, x: float) -> bool:
        return self.left <= x < self.right


@dataclass(frozen=True)
class NewEntryRequest:
    date: _date
    start_time: _time
    end_time: _time


@dataclass(frozen=True)
class EntryMove:
    entry_id: str
    date: _date
    start_time: _time
    end_time: _time


DragResult = Union[NewEntryRequest, EntryMove]


class DragEngine:
    def __init__(self, grid: TimeGrid, columns: Sequence[DayColumn]) -> None:
        self.grid = grid
        self.columns = list(columns)
        self.state = DragState.idle
        # Set when a block drag ends so the click that follows is ignored
        self.just_dragged = False
        self._column: Optional[DayColumn] = None
        self._anchor_y = 0.0
        self._current_y = 0.0
        self._entry: Optional[TimeEntry] = None
        self._grab_offset = 0.0
        self._moved = False

    def column_at(self, x: float) -> Optional[DayColumn]:
        for column in self.columns:
            if column.contains(x):
                return column
        return None

    def _reset(self) -> None:
        self.state = DragState.idle
        self._column = None
        self._entry = None
        self._moved = False

    # ---------------------- Inputs ----------------------

    def press_cell(self, event: PointerEvent) -> None:
        if event.button != PRIMARY_BUTTON or self.state != DragState.idle:
            return
        column = self.column_at(event.x)
        if column is None:
            return
        self.state = DragState.dragging_new_block
        self._column = column
        self._anchor_y = self._current_y = event.y

    def press_block(self, event: PointerEvent, entry: TimeEntry) -> None:
        if event.button != PRIMARY_BUTTON or self.state != DragState.idle:
            return
        self.state = DragState.dragging_existing_block
        self._entry = entry
        self._column = self.column_at(event.x)
        self._grab_offset = event.y - self.grid.time_to_y(entry.start_time)
        self._current_y = event.y
        self._moved = False

    def move(self, event: PointerEvent) -> None:
        if self.state == DragState.idle:
            return
        if self.state == DragState.dragging_existing_block:
            if event.y != self._current_y or self._column is None or not self._column.contains(event.x):
                self._moved = True
            self._column = self.column_at(event.x)
        # A new block stays in the column where it started
        self._current_y = event.y

    def release(self, event: PointerEvent) -> Optional[DragResult]:
        if self.state == DragState.idle:
            return None
        if self.state == DragState.dragging_new_block:
            self._current_y = event.y
            result = self._new_block()
            self._reset()
            return result

        self.move(event)
        moved = self._moved
        result = self._moved_block() if moved else None
        self._reset()
        # Press and release in place is a click on the block
        self.just_dragged = moved
        return result

    def click_block(self, entry_id: str) -> bool:
        """Whether a click on a block should open it. Consumes ``just_dragged``."""
        if self.just_dragged:
            self.just_dragged = False
            return False
        return True

    def cancel(self) -> None:
        self._reset()

    # ---------------------- Outputs ----------------------

    def preview(self) -> Optional[DragResult]:
        """Where the block being dragged would land if released now."""
        if self.state == DragState.dragging_new_block:
            return self._new_block()
        if self.state == DragState.dragging_existing_block:
            return self._moved_block()
        return None

    def _new_block(self) -> Optional[NewEntryRequest]:
        top = min(self._anchor_y, self._current_y)
        bottom = max(self._anchor_y, self._current_y)
        if bottom - top < self.grid.snap_height:
            return None
        start = self.grid.snap(self.grid.y_to_minutes(top), "down")
        end = self.grid.snap(self.grid.y_to_minutes(bottom), "up")
        if end <= start:
            return None
        return NewEntryRequest(
            date=self._column.date,
            start_time=time_of_minutes(start),
            end_time=time_of_minutes(end),
        )

    def _fits(self, duration: int) -> bool:
        return duration <= self.grid.last_minute - self.grid.first_minute

    def _lowest_start(self, duration: int) -> int:
        return self.grid.first_minute if self._fits(duration) else 0

    def _highest_start(self, duration: int) -> int:
        # Highest grid line where the block still ends inside the visible
        # range, or inside the day for blocks taller than the view
        limit = self.grid.last_minute if self._fits(duration) else 24 * 60 - 1
        step = self.grid.snap_minutes
        return (limit - duration) // step * step

    def _moved_block(self) -> Optional[EntryMove]:
        entry = self._entry
        if self._column is None:
            return None
        duration = minutes_of_day(entry.end_time) - minutes_of_day(entry.start_time)
        start = self.grid.snap(self.grid.y_to_minutes(self._current_y - self._grab_offset), clamp=False)
        start = max(self._lowest_start(duration), min(start, self._highest_start(duration)))
        end = start + duration
        move = EntryMove(
            entry_id=entry.id,
            date=self._column.date,
            start_time=time_of_minutes(start),
            end_time=time_of_minutes(end),
        )
        if (move.date, move.start_time, move.end_time) == (entry.date, entry.start_time, entry.end_time):
            return None
        return move


async def apply_entry_move(store: Store, move: EntryMove) -> TimeEntry:
    entry = await update_time_entry(
        store,
        move.entry_id,
        {"date": move.date, "start_time": move.start_time, "end_time": move.end_time},
    )
    logger.info("Time entry %s moved to %s %s-%s", move.entry_id, move.date, move.start_time, move.end_time)
    return entry


async def create_from_request(
    store: Store,
    request: NewEntryRequest,
    client_id: str,
    project: str = "",
    description: str = "",
) -> TimeEntry:
    return await add_time_entry(
        store,
        {
            "client_id": client_id,
            "date": request.date,
            "start_time": request.start_time,
            "end_time": request.end_time,
            "project": project,
            "description": description,
        },
    )
