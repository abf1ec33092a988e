# studio_booking/repositories/__init__.py
"""
Repository layer for the studio booking engine.

Usage:
    from studio_booking.repositories import RepositoryFactory

    # In a service:
    bookings = RepositoryFactory.create_booking_repository(db)
    booking = bookings.get_confirmed_for_pair(subscriber_id, class_id)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .class_slot_repository import ClassSlotRepository
from .factory import RepositoryFactory
from .reminder_repository import NotificationPreferenceRepository, ReminderRepository
from .subscription_repository import SubscriptionRepository
from .waitlist_repository import WaitlistRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "ClassSlotRepository",
    "NotificationPreferenceRepository",
    "ReminderRepository",
    "RepositoryFactory",
    "SubscriptionRepository",
    "WaitlistRepository",
]
