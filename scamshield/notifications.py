"""
Notification Module
====================
User-facing notices raised by the interaction core ("Chat failed. Try
again.", recovery milestones, verdict errors).

The core never renders anything itself. Each component is handed a
notifier callable and calls it with a message and a level; the front-end
decides how to show it. The default notifier writes the notice to the
log so headless runs still record what the user would have seen.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

INFO = "info"
SUCCESS = "success"
ERROR = "error"

Notifier = Callable[[str, str], None]


def log_notice(message: str, level: str = INFO) -> None:
    """Default notifier: record the notice in the log."""
    if level == ERROR:
        logger.warning(f"[NOTICE {level}] {message}")
    else:
        logger.info(f"[NOTICE {level}] {message}")


class NoticeCollector:
    """Notifier that keeps every notice in memory, in order."""

    def __init__(self):
        self.notices: list[tuple[str, str]] = []

    def __call__(self, message: str, level: str = INFO) -> None:
        self.notices.append((message, level))

    def messages(self, level: str | None = None) -> list[str]:
        return [m for m, lv in self.notices if level is None or lv == level]
