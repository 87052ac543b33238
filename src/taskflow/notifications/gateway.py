# src/taskflow/notifications/gateway.py

"""Notification backends: console line, desktop toast, or nothing."""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from collections.abc import Callable
from datetime import datetime

from ..core.errors import DeliveryFailedError
from ..core.ports import NotificationGateway, Permission

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotificationGateway:
    """Prints notifications into the terminal next to the REPL."""

    def __init__(self, write: Callable[[str], None] | None = None) -> None:
        self._write = write or (lambda line: print(line, flush=True))

    def request_permission(self) -> Permission:
        return Permission.GRANTED

    def deliver(self, title: str, body: str, tag: str) -> None:
        try:
            self._write(f"[{_ts_local()}] [{title}] {body}")
        except OSError as e:
            raise DeliveryFailedError(f"console write failed: {e}") from e


class DesktopNotificationGateway:
    """
    Desktop toast via the platform CLI tool:
    - Linux: notify-send
    - macOS: osascript
    Other platforms (or a missing tool) report UNSUPPORTED.
    """

    def __init__(self, *, timeout_seconds: float = 10.0) -> None:
        self._timeout = timeout_seconds

    def _tool(self) -> str | None:
        if sys.platform.startswith("linux"):
            return shutil.which("notify-send")
        if sys.platform == "darwin":
            return shutil.which("osascript")
        return None

    def request_permission(self) -> Permission:
        return Permission.GRANTED if self._tool() else Permission.UNSUPPORTED

    def _command(self, tool: str, title: str, body: str, tag: str) -> list[str]:
        if sys.platform == "darwin":
            safe_title = title.replace('"', "'")
            safe_body = body.replace('"', "'")
            return [tool, "-e", f'display notification "{safe_body}" with title "{safe_title}"']
        # Same tag replaces the previous toast instead of stacking a new one.
        return [tool, "-h", f"string:x-canonical-private-synchronous:{tag}", title, body]

    def deliver(self, title: str, body: str, tag: str) -> None:
        tool = self._tool()
        if tool is None:
            raise DeliveryFailedError("no desktop notification tool available")
        try:
            subprocess.run(
                self._command(tool, title, body, tag),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                timeout=self._timeout,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", "replace").strip()
            raise DeliveryFailedError(f"{tool} exited with {e.returncode}: {stderr}") from e
        except (subprocess.TimeoutExpired, OSError) as e:
            raise DeliveryFailedError(f"{tool} failed: {e}") from e


class NullNotificationGateway:
    def request_permission(self) -> Permission:
        return Permission.UNSUPPORTED

    def deliver(self, title: str, body: str, tag: str) -> None:
        raise DeliveryFailedError("notifications are disabled")


def build_gateway(name: str) -> NotificationGateway:
    key = (name or "").strip().lower()
    if key in ("", "console"):
        return ConsoleNotificationGateway()
    if key == "desktop":
        return DesktopNotificationGateway()
    if key in ("none", "off"):
        return NullNotificationGateway()
    logger.warning("Unknown notifier %r; using console", name)
    return ConsoleNotificationGateway()
