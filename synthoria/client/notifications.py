"""
Transient user notifications.
"""

import structlog

logger = structlog.get_logger(__name__)


class Notifier:
    """Non-blocking toast-style messages; implementations must not raise."""

    def success(self, message: str) -> None:
        raise NotImplementedError

    def error(self, message: str) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Writes notifications to the log, for headless use."""

    def success(self, message: str) -> None:
        logger.info("Notification", level="success", message=message)

    def error(self, message: str) -> None:
        logger.warning("Notification", level="error", message=message)
