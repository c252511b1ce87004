from __future__ import annotations

import logging
import platform
import shutil
import subprocess
from threading import Lock, Thread
from typing import Callable, List, Optional

import pyttsx3

logger = logging.getLogger(__name__)


def _notify_command(title: str, body: str, system: str) -> Optional[List[str]]:
    if system == "Linux":
        return ["notify-send", "--app-name=alarms", "--expire-time=8000", title, body]
    if system == "Darwin":
        script = f"display notification {_apple_quote(body)} with title {_apple_quote(title)} sound name \"Glass\""
        return ["osascript", "-e", script]
    if system == "Windows":
        ps_cmd = (
            "Add-Type -AssemblyName System.Windows.Forms; "
            "$n = New-Object System.Windows.Forms.NotifyIcon; "
            "$n.Icon = [System.Drawing.SystemIcons]::Information; "
            "$n.Visible = $true; "
            f"$n.ShowBalloonTip(5000, {_ps_quote(title)}, {_ps_quote(body)}, "
            "[System.Windows.Forms.ToolTipIcon]::Info)"
        )
        return ["powershell", "-WindowStyle", "Hidden", "-Command", ps_cmd]
    return None


def _apple_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _ps_quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


class DesktopNotifier:
    """System notification via the platform's notification command."""

    def __init__(self, timeout: float = 5.0, system: Optional[str] = None):
        self.timeout = timeout
        self.system = system or platform.system()

    def send(self, title: str, body: str) -> bool:
        cmd = _notify_command(title, body, self.system)
        if cmd is None:
            logger.warning("No system notification command for platform %s", self.system)
            return False
        try:
            subprocess.run(
                cmd,
                check=True,
                timeout=self.timeout,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except FileNotFoundError:
            logger.warning("Notification command %s is not installed", cmd[0])
            return False
        except subprocess.TimeoutExpired:
            logger.warning("Notification command %s timed out after %.1fs", cmd[0], self.timeout)
            return False
        except subprocess.CalledProcessError as exc:
            logger.warning("Notification command %s exited with %s", cmd[0], exc.returncode)
            return False
        return True


class CommandPermission:
    """Treats the notification command being installed as the granted permission.

    Desktop notification commands have no interactive permission prompt, so a
    request simply re-checks availability.
    """

    def __init__(self, system: Optional[str] = None):
        self.system = system or platform.system()

    def is_granted(self) -> bool:
        cmd = _notify_command("", "", self.system)
        return bool(cmd) and shutil.which(cmd[0]) is not None

    def request(self) -> bool:
        granted = self.is_granted()
        logger.info("Notification permission %s", "granted" if granted else "denied")
        return granted


class LocalSpeaker:
    """Lightweight offline TTS wrapper around pyttsx3."""

    def __init__(self, rate: int = 185):
        self._engine = None
        self._lock = Lock()
        try:
            self._engine = pyttsx3.init()
            self._engine.setProperty("rate", rate)
        except Exception:
            logger.warning("pyttsx3 engine unavailable, spoken banners disabled")
            self._engine = None

    @property
    def available(self) -> bool:
        return self._engine is not None

    def speak_async(self, text: str) -> bool:
        if not self._engine:
            return False
        Thread(target=self._speak, args=(text,), name="banner-speech", daemon=True).start()
        return True

    def _speak(self, text: str) -> None:
        if not self._engine:
            return
        with self._lock:
            try:
                self._engine.say(text)
                self._engine.runAndWait()
            except Exception:  # pragma: no cover - engine runtime errors
                logger.error("pyttsx3 failed to speak text", exc_info=True)


class ConsoleBanner:
    """In-app banner: printed to the console, optionally spoken aloud."""

    def __init__(self, speaker: Optional[LocalSpeaker] = None, output: Callable[[str], None] = print):
        self.speaker = speaker
        self.output = output

    def show(self, title: str, body: str) -> bool:
        text = f"[{title}] {body}"
        logger.info("Banner: %s", text.replace("\n", " "))
        self.output(text)
        if self.speaker and self.speaker.available:
            self.speaker.speak_async(f"{title}. {body.splitlines()[0] if body else ''}")
        return True


class CallbackWindowControl:
    """Forwards restore requests to the host surface, if one registered a callback."""

    def __init__(self, on_restore: Optional[Callable[[], bool]] = None):
        self.on_restore = on_restore

    def restore(self) -> bool:
        if self.on_restore is None:
            logger.debug("No window to restore")
            return True
        return bool(self.on_restore())
