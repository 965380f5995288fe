from datetime import time as _time
from typing import Annotated

from pydantic import AfterValidator, PlainSerializer


def _minute_resolution(value: _time) -> _time:
    # Wall-clock times carry no seconds
    return value.replace(second=0, microsecond=0, tzinfo=None)


ClockTime = Annotated[
    _time,
    AfterValidator(_minute_resolution),
    PlainSerializer(lambda t: t.strftime("%H:%M"), return_type=str, when_used="json"),
]

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"
