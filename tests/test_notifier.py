import pytest

from alarms.notifier import SYSTEM_FAILURE_NOTE, DeliveryOutcome, Notifier


class FakeSystem:
    def __init__(self, results):
        self.results = list(results)
        self.calls = []

    def send(self, title, body):
        self.calls.append((title, body))
        result = self.results.pop(0) if self.results else False
        if isinstance(result, Exception):
            raise result
        return result


class FakePermission:
    def __init__(self, granted=False, grant_on_request=False):
        self.granted = granted
        self.grant_on_request = grant_on_request
        self.requests = 0

    def is_granted(self):
        return self.granted

    def request(self):
        self.requests += 1
        self.granted = self.grant_on_request
        return self.granted


class FakeBanner:
    def __init__(self, ok=True):
        self.ok = ok
        self.shown = []

    def show(self, title, body):
        self.shown.append((title, body))
        return self.ok


class FakeWindow:
    def __init__(self, raises=False):
        self.raises = raises
        self.restored = 0

    def restore(self):
        self.restored += 1
        if self.raises:
            raise RuntimeError("no window")
        return True


def _notifier(system, permission=None, banner=None, window=None, style="system"):
    return Notifier(
        system=system,
        permission=permission or FakePermission(granted=True),
        banner=banner or FakeBanner(),
        window=window or FakeWindow(),
        style=style,
    )


def test_system_delivery_succeeds_first_try():
    system = FakeSystem([True])
    banner = FakeBanner()
    window = FakeWindow()
    outcome = _notifier(system, banner=banner, window=window).deliver("Alarm", "Wake up (07:00)")
    assert outcome is DeliveryOutcome.DELIVERED
    assert len(system.calls) == 1
    assert banner.shown == []
    assert window.restored == 1


def test_alternate_style_skips_system_channel():
    system = FakeSystem([True])
    banner = FakeBanner()
    outcome = _notifier(system, banner=banner, style="alternate").deliver("Alarm", "Stretch")
    assert outcome is DeliveryOutcome.SHOWN_AS_FALLBACK
    assert system.calls == []
    assert banner.shown == [("Alarm", "Stretch")]


def test_permission_denied_falls_back_to_marked_banner():
    system = FakeSystem([False])
    permission = FakePermission(granted=False, grant_on_request=False)
    banner = FakeBanner()
    outcome = _notifier(system, permission=permission, banner=banner).deliver("Alarm", "Meds")
    assert outcome is DeliveryOutcome.SHOWN_AS_FALLBACK
    assert permission.requests == 1
    assert len(system.calls) == 1
    title, body = banner.shown[0]
    assert body.startswith("Meds")
    assert SYSTEM_FAILURE_NOTE in body


def test_permission_granted_on_request_retries_once():
    system = FakeSystem([False, True])
    permission = FakePermission(granted=False, grant_on_request=True)
    banner = FakeBanner()
    outcome = _notifier(system, permission=permission, banner=banner).deliver("Alarm", "Meds")
    assert outcome is DeliveryOutcome.DELIVERED
    assert len(system.calls) == 2
    assert banner.shown == []


def test_retry_failure_is_bounded_and_falls_back():
    system = FakeSystem([False, False, True])
    banner = FakeBanner()
    outcome = _notifier(system, banner=banner).deliver("Alarm", "Meds")
    assert outcome is DeliveryOutcome.SHOWN_AS_FALLBACK
    assert len(system.calls) == 2
    assert SYSTEM_FAILURE_NOTE in banner.shown[0][1]


def test_system_channel_exception_counts_as_failure():
    system = FakeSystem([OSError("dbus down"), True])
    outcome = _notifier(system).deliver("Alarm", "Meds")
    assert outcome is DeliveryOutcome.DELIVERED
    assert len(system.calls) == 2


def test_everything_failing_reports_failed_without_restore():
    system = FakeSystem([False, False])
    window = FakeWindow()
    outcome = _notifier(system, banner=FakeBanner(ok=False), window=window).deliver("Alarm", "Meds")
    assert outcome is DeliveryOutcome.FAILED
    assert window.restored == 0


def test_window_restore_error_does_not_change_outcome():
    window = FakeWindow(raises=True)
    outcome = _notifier(FakeSystem([True]), window=window).deliver("Alarm", "Meds")
    assert outcome is DeliveryOutcome.DELIVERED
    assert window.restored == 1


def test_send_test_uses_system_channel_only():
    system = FakeSystem([False])
    permission = FakePermission(granted=False)
    banner = FakeBanner()
    notifier = _notifier(system, permission=permission, banner=banner)
    assert notifier.send_test("Alarm", "Test notification") is DeliveryOutcome.FAILED
    assert permission.requests == 0
    assert banner.shown == []


def test_set_style_validates():
    notifier = _notifier(FakeSystem([]))
    notifier.set_style("Alternate")
    assert notifier.style == "alternate"
    with pytest.raises(ValueError):
        notifier.set_style("carrier-pigeon")
