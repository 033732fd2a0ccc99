"""Hand-off point for freed-slot notifications."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify_slot_available(self, user_id: str, resource_id: str, slot_start: datetime) -> None:
        ...


class LoggingNotifier:
    """Writes one log record per notification; delivery is left to log shipping."""

    def notify_slot_available(self, user_id: str, resource_id: str, slot_start: datetime) -> None:
        logger.info(
            "Slot available: user=%s resource=%s slot_start=%s",
            user_id,
            resource_id,
            slot_start.isoformat(),
        )
