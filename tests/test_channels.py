import subprocess

from alarms import channels
from alarms.channels import CallbackWindowControl, CommandPermission, ConsoleBanner, DesktopNotifier


def test_desktop_notifier_runs_platform_command(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr(channels.subprocess, "run", fake_run)
    assert DesktopNotifier(timeout=3, system="Linux").send("Alarm", "Wake up (07:00)")
    cmd, kwargs = calls[0]
    assert cmd[0] == "notify-send"
    assert cmd[-2:] == ["Alarm", "Wake up (07:00)"]
    assert kwargs["timeout"] == 3
    assert kwargs["check"] is True


def test_desktop_notifier_reports_failures(monkeypatch):
    def missing(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    def slow(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    def broken(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd)

    for fake in (missing, slow, broken):
        monkeypatch.setattr(channels.subprocess, "run", fake)
        assert DesktopNotifier(system="Linux").send("Alarm", "x") is False


def test_desktop_notifier_unknown_platform():
    assert DesktopNotifier(system="Plan9").send("Alarm", "x") is False


def test_macos_command_escapes_quotes():
    cmd = channels._notify_command('Say "hi"', "body", "Darwin")
    assert cmd[0] == "osascript"
    assert '\\"hi\\"' in cmd[2]


def test_command_permission_follows_command_availability(monkeypatch):
    monkeypatch.setattr(channels.shutil, "which", lambda name: None)
    permission = CommandPermission(system="Linux")
    assert permission.is_granted() is False
    assert permission.request() is False

    monkeypatch.setattr(channels.shutil, "which", lambda name: f"/usr/bin/{name}")
    assert permission.request() is True
    assert CommandPermission(system="Plan9").is_granted() is False


def test_console_banner_prints_text():
    lines = []
    banner = ConsoleBanner(output=lines.append)
    assert banner.show("Alarm", "Meds (08:00)")
    assert lines == ["[Alarm] Meds (08:00)"]


def test_window_control_without_host_succeeds():
    assert CallbackWindowControl().restore() is True
    assert CallbackWindowControl(on_restore=lambda: False).restore() is False
