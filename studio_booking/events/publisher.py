"""Event publisher - delivers committed lifecycle events to in-process handlers."""
import logging
from typing import Any, Callable, Dict, Iterable, List, Protocol

from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


class Event(Protocol):
    """Protocol for event types."""

    def to_dict(self) -> Dict[str, Any]:
        ...


Handler = Callable[[Any], None]


class EventPublisher:
    """
    Routes events to the handlers subscribed to their type.

    Callers publish only after their transaction has committed. Handlers
    produce side effects (reminders, notices) that must not undo booking
    state, so a handler that raises is logged with its traceback and counted,
    and the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers.setdefault(event_type.__name__, []).append(handler)

    def publish(self, event: Event) -> None:
        event_type = type(event).__name__
        for handler in self._handlers.get(event_type, []):
            handler_name = getattr(handler, "__name__", repr(handler))
            try:
                handler(event)
            except Exception:
                prometheus_metrics.record_event_handler_failure(event_type, handler_name)
                logger.exception(
                    "Event handler failed",
                    extra={"event_type": event_type, "handler": handler_name},
                )

    def publish_all(self, events: Iterable[Event]) -> None:
        for event in events:
            self.publish(event)
