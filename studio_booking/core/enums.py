# studio_booking/core/enums.py
"""
Core enums for the studio booking engine.

All enums inherit from (str, Enum) so values compare equal to the strings
stored in the database.
"""

from enum import Enum


class ClassCategory(str, Enum):
    GROUP = "group"
    PERSONAL = "personal"


class EquipmentType(str, Enum):
    """Equipment a class requires, or a subscription grants access to."""

    MAT = "mat"
    REFORMER = "reformer"
    BOTH = "both"


class SubscriptionCategory(str, Enum):
    GROUP = "group"
    PERSONAL = "personal"
    PERSONAL_DUO = "personal_duo"
    PERSONAL_TRIO = "personal_trio"


PERSONAL_SUBSCRIPTION_CATEGORIES = frozenset(
    {
        SubscriptionCategory.PERSONAL.value,
        SubscriptionCategory.PERSONAL_DUO.value,
        SubscriptionCategory.PERSONAL_TRIO.value,
    }
)

# Personal sessions are sold per head count: the class capacity picks the plan.
PERSONAL_CATEGORY_BY_CAPACITY = {
    1: SubscriptionCategory.PERSONAL,
    2: SubscriptionCategory.PERSONAL_DUO,
    3: SubscriptionCategory.PERSONAL_TRIO,
}


class DurationUnit(str, Enum):
    DAYS = "days"
    MONTHS = "months"
    YEARS = "years"


class ClassStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class WaitlistStatus(str, Enum):
    WAITING = "waiting"
    PROMOTED = "promoted"
    LEFT = "left"


class WaitlistExitReason(str, Enum):
    """Why a waitlist entry left the queue without being promoted."""

    MEMBER_LEFT = "member_left"
    ENTITLEMENT_LAPSED = "entitlement_lapsed"
    ALREADY_BOOKED = "already_booked"
    CLASS_CANCELLED = "class_cancelled"


class ReminderStatus(str, Enum):
    SCHEDULED = "scheduled"
    FIRED = "fired"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CancelledBy(str, Enum):
    MEMBER = "member"
    STUDIO = "studio"


class DenialReason(str, Enum):
    """
    Closed set of reasons a booking operation can be refused.

    Callers render distinct messages from these values; never parse the
    exception message.
    """

    # Entitlement
    INACTIVE_SUBSCRIPTION = "InactiveSubscription"
    NO_REMAINING_CREDITS = "NoRemainingCredits"
    CATEGORY_MISMATCH = "CategoryMismatch"
    EQUIPMENT_MISMATCH = "EquipmentMismatch"

    # Temporal
    CLASS_ALREADY_STARTED = "ClassAlreadyStarted"
    TOO_CLOSE_TO_START = "TooCloseToStart"
    TOO_LATE_TO_CANCEL = "TooLateToCancel"

    # State
    CLASS_NOT_AVAILABLE = "ClassNotAvailable"
    ALREADY_BOOKED = "AlreadyBooked"
    ALREADY_WAITLISTED = "AlreadyWaitlisted"
    BOOKING_ALREADY_CANCELLED = "BookingAlreadyCancelled"
