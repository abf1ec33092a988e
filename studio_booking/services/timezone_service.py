"""
Centralized timezone handling for the studio.

Rules:
- Class starts are stored as studio-local civil time
- All comparisons: UTC instants
- "Today" for subscription expiry is the studio's calendar date
"""

from datetime import date, datetime, time, timezone
from typing import Optional

import pytz

from ..core.config import settings


class TimezoneService:
    """Handles all timezone conversions consistently."""

    @staticmethod
    def get_timezone(tz_str: Optional[str] = None) -> pytz.BaseTzInfo:
        """Studio timezone unless another zone is named explicitly."""
        return pytz.timezone(tz_str or settings.studio_timezone)

    @staticmethod
    def local_to_utc(
        class_date: date, start_time: time, timezone_str: Optional[str] = None
    ) -> datetime:
        """
        Convert studio-local date/time to UTC.

        Uses the timezone rules valid on class_date (not today), so DST
        transitions between now and the class are handled.

        Raises:
            ValueError: If the time doesn't exist (DST spring-forward gap)
        """
        tz = TimezoneService.get_timezone(timezone_str)
        naive_dt = datetime.combine(class_date, start_time)

        try:
            # is_dst=None raises exception for ambiguous/nonexistent times
            local_dt = tz.localize(naive_dt, is_dst=None)
        except pytz.exceptions.AmbiguousTimeError:
            # Fall back (time exists twice) - use first occurrence
            local_dt = tz.localize(naive_dt, is_dst=True)
        except pytz.exceptions.NonExistentTimeError:
            raise ValueError(
                f"The time {start_time.strftime('%H:%M')} does not exist on "
                f"{class_date} in {tz.zone} due to Daylight Saving Time."
            )

        return local_dt.astimezone(timezone.utc)

    @staticmethod
    def utc_to_local(utc_dt: datetime, timezone_str: Optional[str] = None) -> datetime:
        """Convert UTC datetime to local timezone."""
        return TimezoneService.ensure_utc(utc_dt).astimezone(
            TimezoneService.get_timezone(timezone_str)
        )

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """Naive datetimes (as read back from sqlite) are UTC."""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def local_today(now_utc: datetime, timezone_str: Optional[str] = None) -> date:
        """Studio calendar date at the given instant."""
        return TimezoneService.utc_to_local(now_utc, timezone_str).date()
