# studio_booking/services/temporal_policy.py
"""
Temporal policy: is a class still bookable, can a booking still be cancelled.

Every comparison is between two UTC instants. The class start is converted
from studio-local civil time exactly once; "now" comes from an injectable
clock, never from the caller's locale. Thresholds are strict: a request
landing exactly on the lockout or notice boundary is refused.
"""

from datetime import date, datetime, timedelta, timezone
import logging
from typing import Callable, Optional

from ..core.config import settings
from ..core.enums import DenialReason
from ..core.exceptions import ValidationException
from ..models.class_slot import ClassSlot
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TemporalPolicy:
    def __init__(
        self,
        now_fn: Optional[Clock] = None,
        timezone_str: Optional[str] = None,
        lockout_minutes: Optional[int] = None,
        notice_minutes: Optional[int] = None,
    ):
        self._now_fn = now_fn or utc_now
        self.timezone_str = timezone_str or settings.studio_timezone
        self.lockout = timedelta(
            minutes=settings.booking_lockout_minutes if lockout_minutes is None else lockout_minutes
        )
        self.notice = timedelta(
            minutes=(
                settings.cancellation_notice_minutes if notice_minutes is None else notice_minutes
            )
        )

    def now(self) -> datetime:
        return TimezoneService.ensure_utc(self._now_fn())

    def studio_today(self) -> date:
        return TimezoneService.local_today(self.now(), self.timezone_str)

    def class_start(self, class_slot: ClassSlot) -> datetime:
        """UTC instant at which the class begins."""
        try:
            return TimezoneService.local_to_utc(
                class_slot.class_date, class_slot.start_time, self.timezone_str
            )
        except ValueError as exc:
            raise ValidationException(
                str(exc), code="INVALID_CLASS_START", details={"class_id": class_slot.id}
            ) from exc

    # Gating decisions

    def booking_denial(self, class_start: datetime) -> Optional[DenialReason]:
        remaining = class_start - self.now()
        if remaining <= timedelta(0):
            return DenialReason.CLASS_ALREADY_STARTED
        if remaining <= self.lockout:
            return DenialReason.TOO_CLOSE_TO_START
        return None

    def cancellation_denial(self, class_start: datetime) -> Optional[DenialReason]:
        remaining = class_start - self.now()
        if remaining <= self.notice:
            return DenialReason.TOO_LATE_TO_CANCEL
        return None

    def is_bookable(self, class_start: datetime) -> bool:
        return self.booking_denial(class_start) is None

    def can_join_waitlist(self, class_start: datetime) -> bool:
        return self.is_bookable(class_start)

    def can_cancel(self, class_start: datetime) -> bool:
        return self.cancellation_denial(class_start) is None

    # Messaging only

    def time_remaining(self, class_start: datetime) -> timedelta:
        """Time until class start, zero once it has begun."""
        return max(class_start - self.now(), timedelta(0))

    def is_class_passed(self, class_start: datetime, duration_minutes: int) -> bool:
        return self.now() >= class_start + timedelta(minutes=duration_minutes)
