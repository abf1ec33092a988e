# studio_booking/schemas/booking.py
"""
Pydantic schemas for booking and waitlist operations.

Responses are built from the lifecycle events the service returns, so the
API reports exactly what was committed.
"""

from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import ConfigDict, Field

from ..events.booking_events import (
    BookingCancelled,
    BookingConfirmed,
    ClassCancelled,
    WaitlistJoined,
    WaitlistLeft,
)
from .base import StandardizedModel, StrictModel

ULID_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


class BookingCreate(StrictModel):
    subscriber_id: str = Field(..., min_length=1, max_length=26)
    class_id: str = Field(..., pattern=ULID_PATTERN, description="ClassSlot ULID")


class BookingOutcomeResponse(StandardizedModel):
    """Result of a booking request: a confirmed seat or a waitlist place."""

    status: Literal["confirmed", "waitlisted"]
    subscriber_id: str
    class_id: str
    class_start: datetime
    booking_id: Optional[str] = None
    entry_id: Optional[str] = None
    position: Optional[int] = None
    remaining_classes: Optional[int] = Field(
        None, description="Balance after booking; null for unlimited plans"
    )
    time_remaining_seconds: int = Field(0, description="Seconds until class start")

    @classmethod
    def from_event(cls, event: Union[BookingConfirmed, WaitlistJoined]) -> "BookingOutcomeResponse":
        if isinstance(event, BookingConfirmed):
            return cls(
                status="confirmed",
                subscriber_id=event.subscriber_id,
                class_id=event.class_id,
                class_start=event.class_start,
                booking_id=event.booking_id,
                remaining_classes=event.remaining_classes,
                time_remaining_seconds=event.time_remaining_seconds,
            )
        return cls(
            status="waitlisted",
            subscriber_id=event.subscriber_id,
            class_id=event.class_id,
            class_start=event.class_start,
            entry_id=event.entry_id,
            position=event.position,
            time_remaining_seconds=event.time_remaining_seconds,
        )


class BookingCancelResponse(StandardizedModel):
    booking_id: str
    status: Literal["cancelled"] = "cancelled"
    cancelled_by: str
    cancelled_at: datetime
    refunded: bool
    remaining_classes: Optional[int] = None
    promoted_subscriber_id: Optional[str] = None
    promoted_booking_id: Optional[str] = None

    @classmethod
    def from_event(cls, event: BookingCancelled) -> "BookingCancelResponse":
        return cls(
            booking_id=event.booking_id,
            cancelled_by=event.cancelled_by,
            cancelled_at=event.cancelled_at,
            refunded=event.refunded,
            remaining_classes=event.remaining_classes,
            promoted_subscriber_id=event.promoted_subscriber_id,
            promoted_booking_id=event.promoted_booking_id,
        )


class WaitlistEntryResponse(StandardizedModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: str
    class_id: str
    subscriber_id: str
    position: int
    status: str
    created_at: Optional[datetime] = None


class WaitlistLeftResponse(StandardizedModel):
    entry_id: str
    class_id: str
    status: Literal["left"] = "left"
    reason: str

    @classmethod
    def from_event(cls, event: WaitlistLeft) -> "WaitlistLeftResponse":
        return cls(entry_id=event.entry_id, class_id=event.class_id, reason=event.reason)


class WaitlistPositionResponse(StandardizedModel):
    subscriber_id: str
    class_id: str
    position: Optional[int] = Field(None, description="Assigned position; null when not waiting")
    place_in_line: Optional[int] = Field(
        None, description="Entries still waiting ahead of the member, plus one"
    )


class ClassWaitlistResponse(StandardizedModel):
    class_id: str
    entries: List[WaitlistEntryResponse]


class ClassCancelResponse(StandardizedModel):
    class_id: str
    status: Literal["cancelled"] = "cancelled"
    cancelled_booking_ids: List[str] = Field(default_factory=list)
    released_entry_ids: List[str] = Field(default_factory=list)
    already_cancelled: bool = False

    @classmethod
    def from_event(cls, event: ClassCancelled) -> "ClassCancelResponse":
        return cls(
            class_id=event.class_id,
            cancelled_booking_ids=event.cancelled_booking_ids,
            released_entry_ids=event.released_entry_ids,
            already_cancelled=event.already_cancelled,
        )
