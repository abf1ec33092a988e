# studio_booking/models/booking.py
"""
Booking model.

Created only by the booking lifecycle service. A cancelled booking is
terminal; rebooking the same class creates a new row.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    text,
)

from ..core.enums import BookingStatus, CancelledBy
from ..core.ulid_helper import generate_ulid
from ..database import Base

_CONFIRMED = text("status = 'confirmed'")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    class_id = Column(String(26), ForeignKey("class_slots.id"), nullable=False, index=True)
    subscriber_id = Column(String(26), nullable=False, index=True)
    subscription_id = Column(String(26), ForeignKey("subscriptions.id"), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    # False for unlimited plans; a refund only returns what was charged
    credit_charged = Column(Boolean, nullable=False, default=True)
    waitlist_entry_id = Column(String(26), ForeignKey("waitlist_entries.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(20), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('confirmed', 'cancelled')", name="ck_bookings_status"),
        Index(
            "uq_bookings_confirmed_pair",
            "subscriber_id",
            "class_id",
            unique=True,
            postgresql_where=_CONFIRMED,
            sqlite_where=_CONFIRMED,
        ),
    )

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED

    def cancel(self, cancelled_by: CancelledBy, now: datetime) -> None:
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = now
        self.cancelled_by = cancelled_by.value

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: subscriber={self.subscriber_id} "
            f"class={self.class_id} status={self.status}>"
        )
