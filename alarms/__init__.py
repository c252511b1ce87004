"""Recurring alarm engine: repeat rules, scheduler and notification delivery."""

from .manager import AlarmManager
from .notifier import DeliveryOutcome, Notifier
from .rules import Custom, Daily, MonToSat, Once, RepeatRule, Shift, Workdays, should_fire
from .storage import Alarm, load_alarms, save_alarms
