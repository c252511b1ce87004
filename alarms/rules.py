from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import ClassVar, FrozenSet, Union

from time_utils import days_between

logger = logging.getLogger(__name__)

# Weekday indexing used throughout alarms: Sunday=0 ... Saturday=6.
DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
WORKDAYS = frozenset({1, 2, 3, 4, 5})
MON_TO_SAT = frozenset({1, 2, 3, 4, 5, 6})


@dataclass(frozen=True)
class Once:
    kind: ClassVar[str] = "once"


@dataclass(frozen=True)
class Daily:
    kind: ClassVar[str] = "daily"


@dataclass(frozen=True)
class Workdays:
    kind: ClassVar[str] = "workdays"


@dataclass(frozen=True)
class MonToSat:
    kind: ClassVar[str] = "mon_to_sat"


@dataclass(frozen=True)
class Custom:
    days: FrozenSet[int] = field(default_factory=frozenset)
    kind: ClassVar[str] = "custom"

    def __post_init__(self) -> None:
        object.__setattr__(self, "days", frozenset(int(d) for d in self.days))


@dataclass(frozen=True)
class Shift:
    start_date: date
    work_days: int = 1
    rest_days: int = 1
    kind: ClassVar[str] = "shift"

    @property
    def cycle_length(self) -> int:
        return self.work_days + self.rest_days


RepeatRule = Union[Once, Daily, Workdays, MonToSat, Custom, Shift]

_SIMPLE_RULES = {cls.kind: cls for cls in (Once, Daily, Workdays, MonToSat)}


def should_fire(rule: RepeatRule, today: date, weekday: int, already_fired_today: bool) -> bool:
    """Decide whether an alarm whose time-of-day matches now fires today.

    ``weekday`` uses Sunday=0. ``already_fired_today`` only gates one-shot
    alarms: a ``Once`` alarm that already fired on ``today`` must not fire
    again if the same minute is evaluated twice.
    """
    if isinstance(rule, Once):
        return not already_fired_today
    if isinstance(rule, Daily):
        return True
    if isinstance(rule, Workdays):
        return weekday in WORKDAYS
    if isinstance(rule, MonToSat):
        return weekday in MON_TO_SAT
    if isinstance(rule, Custom):
        return weekday in rule.days
    if isinstance(rule, Shift):
        return _shift_fires(rule, today)
    raise TypeError(f"Unsupported repeat rule: {rule!r}")


def _shift_fires(rule: Shift, today: date) -> bool:
    diff_days = days_between(rule.start_date, today)
    if diff_days < 0:
        return False
    cycle = rule.cycle_length
    if cycle <= 0:
        logger.warning("Shift rule with empty cycle (work=%s rest=%s) never fires", rule.work_days, rule.rest_days)
        return False
    return diff_days % cycle < rule.work_days


def validate_rule(rule: RepeatRule) -> None:
    if isinstance(rule, Custom):
        bad = sorted(d for d in rule.days if d < 0 or d > 6)
        if bad:
            raise ValueError(f"Custom weekdays must be 0..6 (Sun..Sat), got {bad}")
    elif isinstance(rule, Shift):
        if rule.work_days < 1:
            raise ValueError("Shift work_days must be at least 1")
        if rule.rest_days < 1:
            raise ValueError("Shift rest_days must be at least 1")
    elif not isinstance(rule, (Once, Daily, Workdays, MonToSat)):
        raise TypeError(f"Unsupported repeat rule: {rule!r}")


def rule_to_dict(rule: RepeatRule) -> dict:
    data: dict = {"type": rule.kind}
    if isinstance(rule, Custom):
        data["days"] = sorted(rule.days)
    elif isinstance(rule, Shift):
        data["start_date"] = rule.start_date.isoformat()
        data["work_days"] = rule.work_days
        data["rest_days"] = rule.rest_days
    return data


def rule_from_dict(data: dict) -> RepeatRule:
    kind = str(data.get("type") or "once").lower()
    if kind in _SIMPLE_RULES:
        return _SIMPLE_RULES[kind]()
    if kind == Custom.kind:
        return Custom(frozenset(int(d) for d in data.get("days") or []))
    if kind == Shift.kind:
        start_raw = data.get("start_date")
        if not start_raw:
            raise ValueError("Shift rule payload missing start_date")
        return Shift(
            start_date=date.fromisoformat(start_raw),
            work_days=int(data.get("work_days", 1)),
            rest_days=int(data.get("rest_days", 1)),
        )
    raise ValueError(f"Unknown repeat rule type: {kind}")


def describe_rule(rule: RepeatRule) -> str:
    if isinstance(rule, Once):
        return "Once"
    if isinstance(rule, Daily):
        return "Every day"
    if isinstance(rule, Workdays):
        return "Mon-Fri"
    if isinstance(rule, MonToSat):
        return "Mon-Sat"
    if isinstance(rule, Custom):
        if not rule.days:
            return "Never"
        return ", ".join(DAY_NAMES[d] for d in sorted(rule.days) if 0 <= d <= 6)
    if isinstance(rule, Shift):
        return f"Shift {rule.work_days} on / {rule.rest_days} off from {rule.start_date.isoformat()}"
    return repr(rule)
