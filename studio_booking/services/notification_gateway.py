# studio_booking/services/notification_gateway.py
"""
Notification gateway boundary.

The engine decides what to send and when; delivery belongs to whatever
implements ``NotificationGateway``. It is never called from inside a
class critical section.
"""

from datetime import datetime
import logging
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class NotificationGatewayTemporaryError(RuntimeError):
    """Raised by a gateway when delivery may succeed on a later attempt."""


class NotificationGateway(Protocol):
    def send(
        self,
        subscriber_id: str,
        title: str,
        body: str,
        fire_at: Optional[datetime] = None,
    ) -> None:
        """Deliver now when ``fire_at`` is None, otherwise at ``fire_at``."""
        ...


class LoggingNotificationGateway:
    """Default gateway: records the notification in the application log."""

    def send(
        self,
        subscriber_id: str,
        title: str,
        body: str,
        fire_at: Optional[datetime] = None,
    ) -> None:
        logger.info(
            "Notification dispatched",
            extra={
                "subscriber_id": subscriber_id,
                "title": title,
                "fire_at": fire_at.isoformat() if fire_at else None,
            },
        )
