import argparse
import logging
import signal
import time
from datetime import date
from typing import List, Optional

from alarms.channels import CallbackWindowControl, CommandPermission, ConsoleBanner, DesktopNotifier, LocalSpeaker
from alarms.manager import AlarmManager
from alarms.notifier import DELIVERY_STYLES, DeliveryOutcome, Notifier
from alarms.rules import Custom, Daily, MonToSat, Once, RepeatRule, Shift, Workdays, describe_rule
from config import Config, load_config, setup_logging
from time_utils import format_hhmm

logger = logging.getLogger("alarms")

REPEAT_CHOICES = ("once", "daily", "workdays", "mon_to_sat", "custom", "shift")


def parse_hhmm(hhmm: str) -> tuple[int, int]:
    parts = hhmm.strip().split(":")
    if len(parts) != 2:
        raise ValueError("time must be HH:MM")
    h = int(parts[0])
    m = int(parts[1])
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError("hour/minute out of range")
    return h, m


def parse_days(raw: Optional[str]) -> frozenset:
    if not raw:
        return frozenset()
    return frozenset(int(x) for x in raw.split(",") if x.strip() != "")


def build_repeat(args: argparse.Namespace) -> RepeatRule:
    kind = args.repeat
    if kind == "daily":
        return Daily()
    if kind == "workdays":
        return Workdays()
    if kind == "mon_to_sat":
        return MonToSat()
    if kind == "custom":
        return Custom(parse_days(args.days))
    if kind == "shift":
        start = date.fromisoformat(args.start) if args.start else date.today()
        return Shift(start_date=start, work_days=args.work, rest_days=args.rest)
    return Once()


def build_manager(config: Config) -> AlarmManager:
    speaker = LocalSpeaker() if config.speak_banner else None
    notifier = Notifier(
        system=DesktopNotifier(timeout=config.notification_timeout_s),
        permission=CommandPermission(),
        banner=ConsoleBanner(speaker=speaker),
        window=CallbackWindowControl(),
        style=config.notification_style,
    )
    return AlarmManager(
        storage_path=config.alarms_path,
        notifier=notifier,
        settings_path=config.settings_path,
        tick_interval=config.tick_interval_ms / 1000.0,
        title=config.notification_title,
        default_label=config.default_alarm_label,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="alarms", description="Recurring alarm scheduler")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="run the scheduler until interrupted")
    sub.add_parser("list", help="list alarms")

    add = sub.add_parser("add", help="add an alarm")
    add.add_argument("time", help="HH:MM")
    add.add_argument("--label", default="")
    add.add_argument("--repeat", choices=REPEAT_CHOICES, default="once")
    add.add_argument("--days", help="comma-separated weekdays, 0=Sun..6=Sat (custom)")
    add.add_argument("--start", help="shift start date YYYY-MM-DD (default today)")
    add.add_argument("--work", type=int, default=1, help="shift work days")
    add.add_argument("--rest", type=int, default=1, help="shift rest days")
    add.add_argument("--disabled", action="store_true")

    remove = sub.add_parser("remove", help="delete an alarm")
    remove.add_argument("alarm_id")

    toggle = sub.add_parser("toggle", help="enable/disable an alarm")
    toggle.add_argument("alarm_id")

    style = sub.add_parser("style", help="show or set the notification style")
    style.add_argument("value", nargs="?", choices=DELIVERY_STYLES)

    sub.add_parser("test-notification", help="send a test system notification")
    return parser


def run_scheduler(manager: AlarmManager) -> None:
    stop = False

    def _handle_term(signum, frame):
        nonlocal stop
        stop = True

    signal.signal(signal.SIGTERM, _handle_term)
    manager.start()
    logger.info("Scheduler running (style=%s)", manager.notification_style)
    try:
        while not stop:
            time.sleep(0.5)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        manager.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    setup_logging("DEBUG" if config.debug else config.log_level)
    manager = build_manager(config)

    command = args.command or "run"
    if command == "run":
        run_scheduler(manager)
        return 0

    manager.load()
    try:
        return run_command(manager, command, args)
    except OSError as exc:
        print(f"Cannot save changes: {exc}")
        return 3


def run_command(manager: AlarmManager, command: str, args: argparse.Namespace) -> int:
    if command == "list":
        alarms = manager.list_alarms()
        if not alarms:
            print("No alarms.")
        for alarm in alarms:
            state = "on " if alarm.enabled else "off"
            print(f"{alarm.id}  [{state}] {format_hhmm(alarm.hour, alarm.minute)}  {alarm.label}  ({describe_rule(alarm.repeat)})")
        return 0
    if command == "add":
        try:
            hour, minute = parse_hhmm(args.time)
            alarm = manager.add_alarm(hour, minute, label=args.label, repeat=build_repeat(args), enabled=not args.disabled)
        except ValueError as exc:
            print(f"Cannot add alarm: {exc}")
            return 2
        print(f"Added {alarm.id} at {format_hhmm(alarm.hour, alarm.minute)} ({describe_rule(alarm.repeat)})")
        return 0
    if command == "remove":
        if manager.remove_alarm(args.alarm_id) is None:
            print(f"No alarm with id {args.alarm_id}")
            return 1
        print(f"Removed {args.alarm_id}")
        return 0
    if command == "toggle":
        alarm = manager.toggle(args.alarm_id)
        if alarm is None:
            print(f"No alarm with id {args.alarm_id}")
            return 1
        print(f"{alarm.id} is now {'enabled' if alarm.enabled else 'disabled'}")
        return 0
    if command == "style":
        if args.value:
            manager.set_notification_style(args.value)
        print(manager.notification_style)
        return 0
    if command == "test-notification":
        outcome = manager.send_test_notification()
        print(f"Test notification: {outcome.value}")
        return 0 if outcome is DeliveryOutcome.DELIVERED else 1
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
