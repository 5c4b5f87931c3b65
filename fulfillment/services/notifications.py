from __future__ import annotations

import enum
import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Severity(str, enum.Enum):
    success = "success"
    info = "info"
    warning = "warning"
    error = "error"


class Notifier(Protocol):
    def notify(self, message: str, severity: Severity) -> None: ...


_LEVELS = {
    Severity.success: logging.INFO,
    Severity.info: logging.INFO,
    Severity.warning: logging.WARNING,
    Severity.error: logging.ERROR,
}


class LoggingNotifier:
    """Fire-and-forget sink; delivery problems never reach the caller."""

    def notify(self, message: str, severity: Severity) -> None:
        logger.log(_LEVELS.get(severity, logging.INFO), "[%s] %s", severity.value, message)
