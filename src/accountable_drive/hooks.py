"""Collaborator hooks the Drive core calls into.

The core never renders anything itself. Notifications, the connection
status indicator, the UI refresh, the "saved" marker and the filename
display are all supplied by the host application as plain callables.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class Severity(enum.Enum):
    """Severity tag attached to a user-visible notification."""

    INFO = "info"
    ERROR = "error"


def _log_notification(message: str, severity: Severity = Severity.INFO) -> None:
    level = logging.ERROR if severity is Severity.ERROR else logging.INFO
    logger.log(level, "[notify] %s", message)


def _log_status(connected: bool, text: str) -> None:
    logger.debug("[set_status] connected:%s;text:%s", connected, text)


def _noop(*_args: object) -> None:
    return None


@dataclass
class AppHooks:
    """Host-application callbacks used by the Drive core.

    Attributes:
        notify: One-line user-visible message sink, tagged with a Severity.
        set_status: Connection indicator updater: (connected, label).
        refresh: Re-render trigger after the in-memory document changed.
        mark_saved: Marks the in-memory document as persisted.
        show_filename: Updates the displayed document name.
    """

    notify: Callable[..., None] = _log_notification
    set_status: Callable[[bool, str], None] = _log_status
    refresh: Callable[[], None] = _noop
    mark_saved: Callable[[], None] = _noop
    show_filename: Callable[[str], None] = _noop
