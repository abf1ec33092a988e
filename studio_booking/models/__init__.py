"""
Database models for the studio booking engine.

Importing this package registers every table on ``Base.metadata``.
"""

from .booking import Booking
from .class_slot import ClassSlot
from .reminder import NotificationPreference, ReminderTask
from .subscription import Subscription
from .waitlist import WaitlistEntry

__all__ = [
    "Booking",
    "ClassSlot",
    "NotificationPreference",
    "ReminderTask",
    "Subscription",
    "WaitlistEntry",
]
