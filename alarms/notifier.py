"""Notification delivery with a fixed fallback chain.

The chain is an ordered list of steps. Each step returns a
``DeliveryOutcome`` when it settles the delivery or ``None`` to hand over to
the next one. The system channel is tried at most twice per delivery: once
optimistically and once more after permission has been confirmed.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional, Protocol

logger = logging.getLogger(__name__)

STYLE_SYSTEM = "system"
STYLE_ALTERNATE = "alternate"
DELIVERY_STYLES = (STYLE_SYSTEM, STYLE_ALTERNATE)

SYSTEM_FAILURE_NOTE = "(system notification unavailable, shown in app)"


class DeliveryOutcome(Enum):
    DELIVERED = "delivered"
    SHOWN_AS_FALLBACK = "shown_as_fallback"
    FAILED = "failed"


class SystemChannel(Protocol):
    def send(self, title: str, body: str) -> bool: ...


class PermissionGate(Protocol):
    def is_granted(self) -> bool: ...

    def request(self) -> bool: ...


class Banner(Protocol):
    def show(self, title: str, body: str) -> bool: ...


class WindowControl(Protocol):
    def restore(self) -> bool: ...


Step = Callable[[str, str], Optional[DeliveryOutcome]]


def fallback_body(body: str) -> str:
    return f"{body}\n{SYSTEM_FAILURE_NOTE}" if body else SYSTEM_FAILURE_NOTE


class Notifier:
    def __init__(
        self,
        system: SystemChannel,
        permission: PermissionGate,
        banner: Banner,
        window: Optional[WindowControl] = None,
        style: str = STYLE_SYSTEM,
    ):
        self.system = system
        self.permission = permission
        self.banner = banner
        self.window = window
        self._style = STYLE_SYSTEM
        self.set_style(style)

    @property
    def style(self) -> str:
        return self._style

    def set_style(self, style: str) -> None:
        style = (style or "").strip().lower()
        if style not in DELIVERY_STYLES:
            raise ValueError(f"Unknown delivery style: {style!r}")
        if style != self._style:
            logger.info("Notification style set to %s", style)
        self._style = style

    def deliver(self, title: str, body: str) -> DeliveryOutcome:
        outcome = DeliveryOutcome.FAILED
        for step in self._steps():
            result = step(title, body)
            if result is not None:
                outcome = result
                break
        logger.info("Delivery of %r finished: %s", title, outcome.value)
        if outcome is not DeliveryOutcome.FAILED:
            self._restore_window()
        return outcome

    def send_test(self, title: str, body: str) -> DeliveryOutcome:
        """Send straight through the system channel, without any fallback."""
        if self._send_system(title, body):
            return DeliveryOutcome.DELIVERED
        return DeliveryOutcome.FAILED

    def _steps(self) -> List[Step]:
        if self._style == STYLE_ALTERNATE:
            return [self._alternate_banner]
        return [self._optimistic_system, self._retry_with_permission, self._failure_banner]

    def _alternate_banner(self, title: str, body: str) -> Optional[DeliveryOutcome]:
        if self._show_banner(title, body):
            return DeliveryOutcome.SHOWN_AS_FALLBACK
        return DeliveryOutcome.FAILED

    def _optimistic_system(self, title: str, body: str) -> Optional[DeliveryOutcome]:
        if self._send_system(title, body):
            return DeliveryOutcome.DELIVERED
        logger.warning("System notification failed, checking permission")
        return None

    def _retry_with_permission(self, title: str, body: str) -> Optional[DeliveryOutcome]:
        if not self._ensure_permission():
            logger.warning("Notification permission not granted")
            return None
        if self._send_system(title, body):
            return DeliveryOutcome.DELIVERED
        logger.warning("System notification retry failed")
        return None

    def _failure_banner(self, title: str, body: str) -> Optional[DeliveryOutcome]:
        if self._show_banner(title, fallback_body(body)):
            return DeliveryOutcome.SHOWN_AS_FALLBACK
        return DeliveryOutcome.FAILED

    def _send_system(self, title: str, body: str) -> bool:
        try:
            return bool(self.system.send(title, body))
        except Exception:
            logger.error("System notification channel raised", exc_info=True)
            return False

    def _ensure_permission(self) -> bool:
        try:
            if self.permission.is_granted():
                return True
            logger.info("Requesting notification permission")
            return bool(self.permission.request())
        except Exception:
            logger.error("Notification permission check raised", exc_info=True)
            return False

    def _show_banner(self, title: str, body: str) -> bool:
        try:
            return bool(self.banner.show(title, body))
        except Exception:
            logger.error("In-app banner failed", exc_info=True)
            return False

    def _restore_window(self) -> None:
        if not self.window:
            return
        try:
            if not self.window.restore():
                logger.warning("Window restore reported failure")
        except Exception:
            logger.warning("Window restore raised", exc_info=True)
