# studio_booking/routes/dependencies.py
"""
Service layer dependencies for dependency injection.

Factory functions that build request-scoped services on top of the
request's database session.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..events.handlers import register_default_handlers
from ..events.publisher import EventPublisher
from ..services.booking_lifecycle_service import BookingLifecycleService
from ..services.notification_gateway import LoggingNotificationGateway, NotificationGateway
from ..services.reminder_scheduler import ReminderScheduler
from ..services.temporal_policy import TemporalPolicy


@lru_cache(maxsize=1)
def get_notification_gateway() -> NotificationGateway:
    return LoggingNotificationGateway()


def get_temporal_policy() -> TemporalPolicy:
    return TemporalPolicy()


def get_reminder_scheduler(
    db: Session = Depends(get_db),
    temporal_policy: TemporalPolicy = Depends(get_temporal_policy),
    gateway: NotificationGateway = Depends(get_notification_gateway),
) -> ReminderScheduler:
    return ReminderScheduler(db, temporal_policy=temporal_policy, gateway=gateway)


def get_booking_lifecycle_service(
    db: Session = Depends(get_db),
    temporal_policy: TemporalPolicy = Depends(get_temporal_policy),
    reminder_scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
    gateway: NotificationGateway = Depends(get_notification_gateway),
) -> BookingLifecycleService:
    """
    Get booking lifecycle service instance with all dependencies.

    Events go through a publisher wired with the default reminder and notice
    handlers.
    """
    publisher = register_default_handlers(EventPublisher(), reminder_scheduler, gateway)
    return BookingLifecycleService(db, temporal_policy=temporal_policy, event_publisher=publisher)
