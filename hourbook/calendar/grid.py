"""Pixel <-> wall-clock mapping for the weekly calendar.

``y`` is measured in pixels from the top of the visible range, so ``y == 0``
is ``start_hour:00``.
"""
import math
from dataclasses import dataclass
from datetime import date as _date, time as _time, timedelta
from typing import Literal

from hourbook.core.config import settings
from hourbook.core.errors import ValidationError
from hourbook.services.hours import minutes_of_day, time_of_minutes


SnapMode = Literal["nearest", "down", "up"]


@dataclass(frozen=True)
class TimeGrid:
    start_hour: int = 7
    end_hour: int = 19
    hour_height: float = 60
    snap_minutes: int = 15

    def __post_init__(self) -> None:
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValidationError(f"invalid visible hours {self.start_hour}-{self.end_hour}")
        if self.hour_height <= 0:
            raise ValidationError("hour height must be positive")
        if self.snap_minutes <= 0 or 60 % self.snap_minutes:
            raise ValidationError("snap interval must divide an hour")

    @classmethod
    def from_settings(cls) -> "TimeGrid":
        return cls(
            start_hour=settings.CALENDAR_START_HOUR,
            end_hour=settings.CALENDAR_END_HOUR,
            hour_height=settings.CALENDAR_HOUR_HEIGHT,
        )

    @property
    def px_per_minute(self) -> float:
        return self.hour_height / 60

    @property
    def snap_height(self) -> float:
        return self.snap_minutes * self.px_per_minute

    @property
    def first_minute(self) -> int:
        return self.start_hour * 60

    @property
    def last_minute(self) -> int:
        # 24:00 is not a wall-clock time; a full-day view stops one step short
        return min(self.end_hour * 60, 24 * 60 - self.snap_minutes)

    @property
    def height(self) -> float:
        return (self.end_hour - self.start_hour) * self.hour_height

    def y_to_minutes(self, y: float) -> float:
        return self.first_minute + y / self.px_per_minute

    def minutes_to_y(self, minutes: float) -> float:
        return (minutes - self.first_minute) * self.px_per_minute

    def snap(self, minutes: float, mode: SnapMode = "nearest", clamp: bool = True) -> int:
        """Snap minutes of the day to the grid and, unless ``clamp`` is off, to the visible range."""
        steps = round(minutes, 6) / self.snap_minutes
        if mode == "down":
            n = math.floor(steps)
        elif mode == "up":
            n = math.ceil(steps)
        else:
            n = math.floor(steps + 0.5)
        if not clamp:
            return n * self.snap_minutes
        return max(self.first_minute, min(self.last_minute, n * self.snap_minutes))

    def snap_y(self, y: float, mode: SnapMode = "nearest") -> float:
        return self.minutes_to_y(self.snap(self.y_to_minutes(y), mode))

    def y_to_time(self, y: float, mode: SnapMode = "nearest") -> _time:
        return time_of_minutes(self.snap(self.y_to_minutes(y), mode))

    def time_to_y(self, t: _time) -> float:
        return self.minutes_to_y(minutes_of_day(t))


def week_days(day: _date) -> list[_date]:
    """The Monday-to-Sunday week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return [monday + timedelta(days=i) for i in range(7)]
