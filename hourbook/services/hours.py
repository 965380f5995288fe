from datetime import time as _time

from hourbook.core.errors import ValidationError


def minutes_of_day(t: _time) -> int:
    return t.hour * 60 + t.minute


def time_of_minutes(minutes: int) -> _time:
    if not 0 <= minutes < 24 * 60:
        raise ValidationError(f"{minutes} minutes is outside a single day")
    return _time(minutes // 60, minutes % 60)


def compute_hours(start: _time, end: _time) -> float:
    """Hours between two wall-clock times on the same day, minute resolution.

    Raises ValidationError unless ``end`` is strictly after ``start``.
    """
    delta = minutes_of_day(end) - minutes_of_day(start)
    if delta <= 0:
        raise ValidationError("end time must be after start time")
    return delta / 60
