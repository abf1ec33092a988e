# studio_booking/repositories/waitlist_repository.py
"""Waitlist queries. Ordering is always by ``position`` within a class."""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.enums import WaitlistStatus
from ..models.waitlist import WaitlistEntry
from .base_repository import BaseRepository


class WaitlistRepository(BaseRepository[WaitlistEntry]):
    def __init__(self, db: Session):
        super().__init__(db, WaitlistEntry)

    def max_position(self, class_id: str) -> int:
        """Highest position ever assigned for the class, across all statuses."""
        query = self.db.query(func.max(WaitlistEntry.position)).filter(
            WaitlistEntry.class_id == class_id
        )
        return self._execute_scalar(query) or 0

    def get_waiting_for_pair(self, subscriber_id: str, class_id: str) -> Optional[WaitlistEntry]:
        query = self._build_query().filter(
            WaitlistEntry.subscriber_id == subscriber_id,
            WaitlistEntry.class_id == class_id,
            WaitlistEntry.status == WaitlistStatus.WAITING.value,
        )
        return self._execute_first(query)

    def list_waiting(self, class_id: str, for_update: bool = False) -> List[WaitlistEntry]:
        query = (
            self._build_query()
            .filter(
                WaitlistEntry.class_id == class_id,
                WaitlistEntry.status == WaitlistStatus.WAITING.value,
            )
            .order_by(WaitlistEntry.position)
        )
        if for_update:
            query = query.with_for_update().populate_existing()
        return self._execute_query(query)

    def get_head(self, class_id: str) -> Optional[WaitlistEntry]:
        """Lowest-position waiting entry, locked for the caller's transaction."""
        query = (
            self._build_query()
            .filter(
                WaitlistEntry.class_id == class_id,
                WaitlistEntry.status == WaitlistStatus.WAITING.value,
            )
            .order_by(WaitlistEntry.position)
            .with_for_update()
            .populate_existing()
        )
        return self._execute_first(query)
