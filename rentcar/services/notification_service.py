import logging
from typing import Any, Dict, List, Protocol, Tuple

from rentcar.enums.notification_event import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(self, event_type: NotificationEvent, payload: Dict[str, Any]) -> None: ...


class LoggingNotificationSink:
    """Default sink: records the event in the application log."""

    def notify(self, event_type: NotificationEvent, payload: Dict[str, Any]) -> None:
        logger.info("Notification %s: %s", event_type.value, payload)


class RecordingNotificationSink:
    def __init__(self):
        self.events: List[Tuple[NotificationEvent, Dict[str, Any]]] = []

    def notify(self, event_type: NotificationEvent, payload: Dict[str, Any]) -> None:
        self.events.append((event_type, payload))


class Notifier:
    """Fire-and-forget wrapper; a failing sink never fails the caller."""

    def __init__(self, sink: NotificationSink):
        self.sink = sink

    def booking_changed(self, booking_id: int, status: str, action: str):
        self._emit(
            NotificationEvent.BOOKING_CHANGED,
            {"booking_id": booking_id, "status": status, "action": action},
        )

    def invoice_changed(self, invoice_id: int, booking_id: int):
        self._emit(
            NotificationEvent.INVOICE_CHANGED,
            {"invoice_id": invoice_id, "booking_id": booking_id},
        )

    def _emit(self, event_type: NotificationEvent, payload: Dict[str, Any]):
        try:
            self.sink.notify(event_type, payload)
        except Exception:
            logger.error("Failed to emit %s for %s", event_type.value, payload, exc_info=True)
