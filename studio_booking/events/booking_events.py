"""Booking lifecycle events, published after the owning transaction commits."""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class BookingConfirmed:
    """Fired after a seat is reserved and the booking row exists."""

    booking_id: str
    subscriber_id: str
    class_id: str
    subscription_id: str
    class_start: datetime
    created_at: datetime
    remaining_classes: Optional[int] = None  # None for unlimited plans
    time_remaining_seconds: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WaitlistJoined:
    """Fired when a full class diverts a booking request onto the waitlist."""

    entry_id: str
    subscriber_id: str
    class_id: str
    position: int
    class_start: datetime
    joined_at: datetime
    time_remaining_seconds: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingCancelled:
    """Fired after a booking is cancelled by the member or the studio."""

    booking_id: str
    subscriber_id: str
    class_id: str
    cancelled_by: str  # 'member' or 'studio'
    cancelled_at: datetime
    refunded: bool = False
    remaining_classes: Optional[int] = None
    promoted_booking_id: Optional[str] = None
    promoted_subscriber_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WaitlistPromoted:
    """Fired when the head of a waitlist takes a freed seat."""

    entry_id: str
    booking_id: str
    subscriber_id: str
    class_id: str
    class_start: datetime
    promoted_at: datetime
    remaining_classes: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WaitlistLeft:
    """Fired when a member leaves a waitlist."""

    entry_id: str
    subscriber_id: str
    class_id: str
    reason: str
    left_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ClassCancelled:
    """Fired after the studio cancels a class and every booking on it."""

    class_id: str
    cancelled_at: Optional[datetime]
    cancelled_booking_ids: List[str] = field(default_factory=list)
    released_entry_ids: List[str] = field(default_factory=list)
    already_cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
