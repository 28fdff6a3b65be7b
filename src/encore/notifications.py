"""Desktop notifications for failed user actions.

Uses ``notify-send`` when it is on PATH; without it, failures are still
reported through the log and console.
"""

import shutil
import subprocess
import threading
from functools import lru_cache
from typing import Literal

from encore.core.output import log

APP_NAME = "Encore"

Urgency = Literal["low", "normal", "critical"]


@lru_cache(maxsize=1)
def _notify_send() -> str | None:
    return shutil.which("notify-send")


def notify(message: str, urgency: Urgency = "normal", title: str = APP_NAME) -> bool:
    """Show a desktop popup; returns False when none could be shown."""
    binary = _notify_send()
    if binary is None:
        return False

    try:
        result = subprocess.run(
            [binary, "--urgency", urgency, "--app-name", APP_NAME, title, message],
            check=False,
            timeout=2.0,
            capture_output=True,
        )
    except (subprocess.TimeoutExpired, OSError):
        return False
    return result.returncode == 0


def report_error(message: str) -> None:
    """Report one failed user action: error log line plus a critical popup.

    This is the playback controller's default notifier. The popup runs in a
    background thread so callers on the event loop never wait on notify-send.
    """
    log(f"✗ {message}", level="error")
    popup_thread = threading.Thread(
        target=notify,
        args=(message,),
        kwargs={"urgency": "critical", "title": f"✗ {APP_NAME}"},
        daemon=True,
        name="NotifyThread",
    )
    popup_thread.start()
