import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

NOTIFICATION_STYLES = ("system", "alternate")


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _get_env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return float(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a float") from exc


@dataclass
class Config:
    alarms_path: Path
    settings_path: Path
    tick_interval_ms: int
    notification_style: str
    notification_title: str
    notification_timeout_s: float
    default_alarm_label: str
    speak_banner: bool
    debug: bool
    log_level: str


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    alarms_path = Path(os.getenv("ALARM_STORAGE_PATH", "data/alarms.json"))
    settings_path = Path(os.getenv("ALARM_SETTINGS_PATH", "data/settings.json"))
    tick_interval_ms = max(200, _get_env_int("ALARM_TICK_INTERVAL_MS", 1000))

    notification_style = os.getenv("NOTIFICATION_STYLE", "system").strip().lower()
    if notification_style not in NOTIFICATION_STYLES:
        raise ValueError(f"NOTIFICATION_STYLE must be one of {', '.join(NOTIFICATION_STYLES)}")
    notification_title = os.getenv("NOTIFICATION_TITLE", "Alarm")
    notification_timeout_s = _get_env_float("NOTIFICATION_TIMEOUT_S", 5.0)
    default_alarm_label = os.getenv("DEFAULT_ALARM_LABEL", "Alarm")
    speak_banner = _get_env_bool("SPEAK_BANNER", False)
    debug = _get_env_bool("DEBUG", False)
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    return Config(
        alarms_path=alarms_path,
        settings_path=settings_path,
        tick_interval_ms=tick_interval_ms,
        notification_style=notification_style,
        notification_title=notification_title,
        notification_timeout_s=notification_timeout_s,
        default_alarm_label=default_alarm_label,
        speak_banner=speak_banner,
        debug=debug,
        log_level=log_level,
    )


def setup_logging(log_level: str = "INFO") -> None:
    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    log_path = logs_dir / "alarms.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[file_handler, console_handler],
    )
