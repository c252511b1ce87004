from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from threading import Event, Lock, Thread
from typing import List, Optional

from time_utils import Clock, format_hhmm, local_now, minute_key, sunday_weekday

from .notifier import DeliveryOutcome, Notifier
from .rules import Once, RepeatRule, should_fire
from .storage import Alarm, load_alarms, load_settings, save_alarms, save_settings

logger = logging.getLogger(__name__)

DEFAULT_LABEL = "Alarm"


class AlarmManager:
    """Ordered in-memory alarm store plus the minute-polling scheduler."""

    def __init__(
        self,
        storage_path: Path,
        notifier: Notifier,
        settings_path: Optional[Path] = None,
        tick_interval: float = 1.0,
        clock: Clock = local_now,
        title: str = "Alarm",
        default_label: str = DEFAULT_LABEL,
    ):
        self.storage_path = storage_path
        self.settings_path = settings_path
        self.notifier = notifier
        self.tick_interval = max(0.2, tick_interval)
        self.clock = clock
        self.title = title
        self.default_label = default_label or DEFAULT_LABEL

        self._alarms: List[Alarm] = []
        self._last_minute: Optional[str] = None
        self._store_stamp: Optional[tuple] = None
        self._lock = Lock()
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    def load(self) -> None:
        with self._lock:
            alarms = self._reload()
        logger.info("Loaded %s alarms from %s", len(alarms), self.storage_path)
        if self.settings_path:
            style = load_settings(self.settings_path).get("notification_style")
            if style:
                try:
                    self.notifier.set_style(style)
                except ValueError:
                    logger.warning("Ignoring saved notification style %r", style)

    def start(self) -> None:
        self.load()
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="alarm-scheduler", daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        self._thread = None

    # CRUD

    def list_alarms(self) -> List[Alarm]:
        with self._lock:
            return [replace(a) for a in self._alarms]

    def get_alarm(self, alarm_id: str) -> Optional[Alarm]:
        with self._lock:
            alarm = self._find(alarm_id)
            return replace(alarm) if alarm else None

    def add_alarm(
        self,
        hour: int,
        minute: int,
        label: str = "",
        repeat: Optional[RepeatRule] = None,
        enabled: bool = True,
    ) -> Alarm:
        with self._lock:
            self._reload_if_changed()
            alarm = Alarm(
                id=self._new_id(),
                hour=hour,
                minute=minute,
                label=label.strip() or self.default_label,
                enabled=enabled,
                repeat=repeat if repeat is not None else Once(),
            )
            alarm.validate()
            self._commit(self._alarms + [alarm])
        logger.info("Alarm %s added for %s (label=%s)", alarm.id, format_hhmm(hour, minute), alarm.label)
        return replace(alarm)

    def update_alarm(self, alarm: Alarm) -> Alarm:
        """Replace the stored alarm with the same id, keeping its position."""
        updated = replace(alarm, label=alarm.label.strip() or self.default_label)
        updated.validate()
        with self._lock:
            self._reload_if_changed()
            current = self._find(updated.id)
            if current is None:
                raise ValueError(f"Unknown alarm id: {updated.id}")
            if updated.is_one_shot:
                updated.last_triggered_date = None
            elif updated.last_triggered_date is None:
                updated.last_triggered_date = current.last_triggered_date
            self._commit([updated if a.id == updated.id else a for a in self._alarms])
        logger.info("Alarm %s updated", updated.id)
        return replace(updated)

    def remove_alarm(self, alarm_id: str) -> Optional[Alarm]:
        with self._lock:
            self._reload_if_changed()
            alarm = self._find(alarm_id)
            if alarm is None:
                return None
            self._commit([a for a in self._alarms if a.id != alarm_id])
        logger.info("Removed alarm %s", alarm_id)
        return alarm

    def set_enabled(self, alarm_id: str, enabled: bool) -> Optional[Alarm]:
        with self._lock:
            self._reload_if_changed()
            current = self._find(alarm_id)
            if current is None:
                return None
            alarm = replace(current, enabled=enabled)
            if enabled and not current.enabled and current.is_one_shot:
                # Re-arming a one-shot alarm lets it fire again today.
                alarm.last_triggered_date = None
            self._commit([alarm if a.id == alarm_id else a for a in self._alarms])
        logger.info("Alarm %s %s", alarm_id, "enabled" if enabled else "disabled")
        return replace(alarm)

    def toggle(self, alarm_id: str) -> Optional[Alarm]:
        alarm = self.get_alarm(alarm_id)
        if alarm is None:
            return None
        return self.set_enabled(alarm_id, not alarm.enabled)

    # Notification preferences

    @property
    def notification_style(self) -> str:
        return self.notifier.style

    def set_notification_style(self, style: str) -> None:
        self.notifier.set_style(style)
        if self.settings_path:
            settings = load_settings(self.settings_path)
            settings["notification_style"] = self.notifier.style
            save_settings(self.settings_path, settings)

    def send_test_notification(self) -> DeliveryOutcome:
        outcome = self.notifier.send_test(self.title, "Test notification")
        logger.info("Test notification: %s", outcome.value)
        return outcome

    # Scheduler

    def tick(self, now: Optional[datetime] = None) -> int:
        """Run one scheduler tick; returns the number of alarms fired."""
        now = now or self.clock()
        key = minute_key(now)
        if key == self._last_minute:
            return 0
        with self._lock:
            self._reload_if_changed()
            fired = self._sweep(now)
            self._last_minute = key
        return fired

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.error("Scheduler tick failed", exc_info=True)
            self._stop_event.wait(self.tick_interval)

    def _sweep(self, now: datetime) -> int:
        today = now.date()
        weekday = sunday_weekday(today)
        fired = 0
        for alarm in list(self._alarms):
            if not alarm.enabled:
                continue
            if (alarm.hour, alarm.minute) != (now.hour, now.minute):
                continue
            try:
                if not should_fire(alarm.repeat, today, weekday, alarm.last_triggered_date == today):
                    continue
                self._fire(alarm, today)
                fired += 1
            except Exception:
                logger.error("Alarm %s failed during sweep", alarm.id, exc_info=True)
        if fired:
            try:
                self._commit(self._alarms)
            except Exception:
                logger.error("Failed to save alarms to %s", self.storage_path, exc_info=True)
        return fired

    def _fire(self, alarm: Alarm, today: date) -> None:
        logger.info("Alarm %s firing at %s (label=%s)", alarm.id, format_hhmm(alarm.hour, alarm.minute), alarm.label)
        body = f"{alarm.label} ({format_hhmm(alarm.hour, alarm.minute)})"
        try:
            outcome = self.notifier.deliver(self.title, body)
        except Exception:
            logger.error("Notifier raised for alarm %s", alarm.id, exc_info=True)
            outcome = DeliveryOutcome.FAILED
        if outcome is DeliveryOutcome.FAILED:
            logger.warning("Alarm %s could not be delivered", alarm.id)
        if alarm.is_one_shot:
            alarm.enabled = False
        alarm.last_triggered_date = today

    def _find(self, alarm_id: str) -> Optional[Alarm]:
        for alarm in self._alarms:
            if alarm.id == alarm_id:
                return alarm
        return None

    def _new_id(self) -> str:
        while True:
            alarm_id = f"al_{uuid.uuid4().hex[:8]}"
            if self._find(alarm_id) is None:
                return alarm_id

    def _commit(self, alarms: List[Alarm]) -> None:
        # The in-memory list only changes once the file write succeeded.
        save_alarms(self.storage_path, alarms)
        self._alarms = alarms
        self._store_stamp = self._stat_store()

    def _reload(self) -> List[Alarm]:
        alarms = load_alarms(self.storage_path)
        self._alarms = alarms
        self._store_stamp = self._stat_store()
        return alarms

    def _reload_if_changed(self) -> None:
        """Pick up writes made by another process, e.g. the command line."""
        stamp = self._stat_store()
        if stamp == self._store_stamp:
            return
        logger.info("Alarm store %s changed on disk, reloading", self.storage_path)
        self._reload()

    def _stat_store(self) -> Optional[tuple]:
        try:
            st = self.storage_path.stat()
        except OSError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)
