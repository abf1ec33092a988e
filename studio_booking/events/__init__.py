"""Booking lifecycle events and their in-process publisher."""

from .booking_events import (
    BookingCancelled,
    BookingConfirmed,
    ClassCancelled,
    WaitlistJoined,
    WaitlistLeft,
    WaitlistPromoted,
)
from .publisher import EventPublisher

__all__ = [
    "BookingCancelled",
    "BookingConfirmed",
    "ClassCancelled",
    "EventPublisher",
    "WaitlistJoined",
    "WaitlistLeft",
    "WaitlistPromoted",
]
