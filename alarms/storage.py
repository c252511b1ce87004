from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Optional

from .rules import Once, RepeatRule, rule_from_dict, rule_to_dict, validate_rule

logger = logging.getLogger(__name__)


@dataclass
class Alarm:
    id: str
    hour: int
    minute: int
    label: str = ""
    enabled: bool = True
    repeat: RepeatRule = field(default_factory=Once)
    last_triggered_date: Optional[date] = None

    def validate(self) -> None:
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour must be 0..23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute must be 0..59, got {self.minute}")
        validate_rule(self.repeat)

    @property
    def is_one_shot(self) -> bool:
        return isinstance(self.repeat, Once)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "hour": self.hour,
            "minute": self.minute,
            "label": self.label,
            "enabled": self.enabled,
            "repeat": rule_to_dict(self.repeat),
            "last_triggered_date": self.last_triggered_date.isoformat() if self.last_triggered_date else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Alarm":
        if not data.get("id"):
            raise ValueError("Alarm payload missing id")
        if "hour" not in data or "minute" not in data:
            raise ValueError("Alarm payload missing hour/minute fields")
        last_raw = data.get("last_triggered_date")
        alarm = cls(
            id=str(data["id"]),
            hour=int(data["hour"]),
            minute=int(data["minute"]),
            label=str(data.get("label") or ""),
            enabled=bool(data.get("enabled", True)),
            repeat=rule_from_dict(data.get("repeat") or {}),
            last_triggered_date=date.fromisoformat(last_raw) if last_raw else None,
        )
        alarm.validate()
        return alarm


def load_alarms(path: Path) -> List[Alarm]:
    if not path.exists():
        return []
    try:
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as exc:
        logger.error("Failed to load alarms from %s: %s", path, exc)
        return []
    if not isinstance(payload, list):
        logger.error("Alarm store %s does not hold a list, ignoring it", path)
        return []
    alarms: List[Alarm] = []
    seen_ids = set()
    for item in payload:
        try:
            alarm = Alarm.from_dict(item)
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("Skipping alarm item due to parse error: %s", exc)
            continue
        if alarm.id in seen_ids:
            logger.warning("Skipping alarm with duplicate id %s", alarm.id)
            continue
        seen_ids.add(alarm.id)
        alarms.append(alarm)
    return alarms


def save_alarms(path: Path, alarms: List[Alarm]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    serializable = [a.to_dict() for a in alarms]
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(serializable, f, ensure_ascii=False, indent=2)
    tmp.replace(path)


def load_settings(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as exc:
        logger.error("Failed to load settings from %s: %s", path, exc)
        return {}
    return payload if isinstance(payload, dict) else {}


def save_settings(path: Path, settings: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(settings, f, ensure_ascii=False, indent=2)
