# studio_booking/repositories/booking_repository.py
"""Booking lookups used by the lifecycle service."""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import BookingStatus
from ..models.booking import Booking
from .base_repository import BaseRepository


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_confirmed_for_pair(self, subscriber_id: str, class_id: str) -> Optional[Booking]:
        query = self._build_query().filter(
            Booking.subscriber_id == subscriber_id,
            Booking.class_id == class_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        return self._execute_first(query)

    def list_confirmed_for_class(self, class_id: str, for_update: bool = False) -> List[Booking]:
        query = (
            self._build_query()
            .filter(
                Booking.class_id == class_id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
            .order_by(Booking.created_at, Booking.id)
        )
        if for_update:
            query = query.with_for_update().populate_existing()
        return self._execute_query(query)

    def count_confirmed(self, class_id: str) -> int:
        return self.count(class_id=class_id, status=BookingStatus.CONFIRMED.value)
