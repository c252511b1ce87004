from __future__ import annotations

from datetime import date, datetime
from typing import Callable

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Naive local wall-clock time; the scheduler does not track timezones."""
    return datetime.now()


def sunday_weekday(day: date) -> int:
    # Python counts Monday as 0; alarms count Sunday as 0.
    return (day.weekday() + 1) % 7


def minute_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M")


def days_between(start: date, end: date) -> int:
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    return (end - start).days


def format_hhmm(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"
