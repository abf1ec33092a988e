# studio_booking/repositories/factory.py
"""
Repository Factory for the studio booking engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from sqlalchemy.orm import Session

from .booking_repository import BookingRepository
from .class_slot_repository import ClassSlotRepository
from .reminder_repository import NotificationPreferenceRepository, ReminderRepository
from .subscription_repository import SubscriptionRepository
from .waitlist_repository import WaitlistRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_class_slot_repository(db: Session) -> ClassSlotRepository:
        return ClassSlotRepository(db)

    @staticmethod
    def create_subscription_repository(db: Session) -> SubscriptionRepository:
        return SubscriptionRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> BookingRepository:
        return BookingRepository(db)

    @staticmethod
    def create_waitlist_repository(db: Session) -> WaitlistRepository:
        return WaitlistRepository(db)

    @staticmethod
    def create_reminder_repository(db: Session) -> ReminderRepository:
        return ReminderRepository(db)

    @staticmethod
    def create_notification_preference_repository(
        db: Session,
    ) -> NotificationPreferenceRepository:
        return NotificationPreferenceRepository(db)
