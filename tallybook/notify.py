"""User-facing notifications for pipeline runs."""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Non-blocking success/error messages shown to the user."""

    @abstractmethod
    def success(self, message: str) -> None:
        ...

    @abstractmethod
    def error(self, message: str) -> None:
        ...


class ConsoleNotifier(Notifier):
    """Print notifications to the terminal."""

    def success(self, message: str) -> None:
        print(f"✅ {message}")

    def error(self, message: str) -> None:
        print(f"❌ {message}", file=sys.stderr)


class LoggingNotifier(Notifier):
    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)
