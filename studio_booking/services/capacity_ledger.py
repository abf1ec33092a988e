# studio_booking/services/capacity_ledger.py
"""
Capacity ledger: enrolled-vs-capacity arbitration for one class.

Callers hold the class lock and have loaded the ClassSlot row for update.
The ledger only changes ``ClassSlot.enrolled``; booking rows are written by
the lifecycle service in the same transaction.
"""

from enum import Enum
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import CapacityInvariantViolation
from ..models.class_slot import ClassSlot
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)


class ReserveResult(str, Enum):
    RESERVED = "reserved"
    FULL = "full"


class CapacityLedger:
    def __init__(self, db: Session, booking_repository: Optional[BookingRepository] = None):
        self.db = db
        self.booking_repository = booking_repository or RepositoryFactory.create_booking_repository(
            db
        )

    def reconcile(self, class_slot: ClassSlot) -> int:
        """
        Bring ``enrolled`` back in line with the confirmed bookings.

        The counter is derived state; if it ever drifts from the bookings it
        is recomputed from them and the drift is logged.
        """
        self.db.flush()
        confirmed = self.booking_repository.count_confirmed(class_slot.id)
        if confirmed > class_slot.capacity:
            logger.error(
                "Confirmed bookings exceed class capacity",
                extra={
                    "class_id": class_slot.id,
                    "confirmed": confirmed,
                    "capacity": class_slot.capacity,
                },
            )
            raise CapacityInvariantViolation(class_slot.id, confirmed, class_slot.capacity)
        if confirmed != class_slot.enrolled:
            logger.error(
                "Enrolled counter drifted from confirmed bookings, resyncing",
                extra={
                    "class_id": class_slot.id,
                    "enrolled": class_slot.enrolled,
                    "confirmed": confirmed,
                },
            )
            class_slot.enrolled = confirmed
        return confirmed

    def try_reserve(self, class_slot: ClassSlot) -> ReserveResult:
        enrolled = self.reconcile(class_slot)
        if enrolled >= class_slot.capacity:
            return ReserveResult.FULL
        class_slot.enrolled = enrolled + 1
        return ReserveResult.RESERVED

    def release(self, class_slot: ClassSlot) -> int:
        """Give back one seat; returns the enrolled count before the release."""
        previous = class_slot.enrolled or 0
        if previous <= 0:
            logger.error(
                "Release on a class with no enrolled seats",
                extra={"class_id": class_slot.id},
            )
            return 0
        class_slot.enrolled = previous - 1
        return previous

    @staticmethod
    def was_full(class_slot: ClassSlot, previous_enrolled: int) -> bool:
        return previous_enrolled >= class_slot.capacity
