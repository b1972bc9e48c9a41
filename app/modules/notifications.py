# app/modules/notifications.py
"""
Outbound notification seam.

The booking core only calls emit(event, payload). Delivery (push, socket,
email) belongs to the notification service; the default implementation
here just logs.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Protocol, Tuple

logger = logging.getLogger(__name__)

APPOINTMENT_CREATED = "appointment:created"
APPOINTMENT_UPDATED = "appointment:updated"
APPOINTMENT_RESCHEDULED = "appointment:rescheduled"


class Notifier(Protocol):
    async def emit(self, event: str, payload: Dict[str, Any]) -> None:
        ...


class LoggingNotifier:
    async def emit(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info("notification %s -> %s: %s", event, payload.get("recipient_id"), payload.get("message"))


class RecordingNotifier:
    """Keeps every emitted event in memory. Handy for tests and dry runs."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    async def emit(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]


async def emit_safely(notifier: Notifier, event: str, payload: Dict[str, Any]) -> None:
    """
    Best-effort emit: a failing notifier is logged and never fails the
    booking operation that triggered it.
    """
    try:
        await notifier.emit(event, payload)
    except Exception:
        logger.exception("Failed to emit %s for appointment %s", event, payload.get("appointment_id"))
