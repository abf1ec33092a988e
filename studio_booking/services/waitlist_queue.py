# studio_booking/services/waitlist_queue.py
"""
Per-class FIFO waitlist.

Positions come from ``max(position) + 1`` over every entry the class ever
had, so they strictly increase and are never handed out twice. Mutating
calls must run inside the class lock.
"""

from datetime import datetime
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import WaitlistExitReason
from ..models.waitlist import WaitlistEntry
from ..repositories.factory import RepositoryFactory
from ..repositories.waitlist_repository import WaitlistRepository

logger = logging.getLogger(__name__)

# Returns None when the entry may be promoted, otherwise why it is skipped.
PromotionCheck = Callable[[WaitlistEntry], Optional[WaitlistExitReason]]


class WaitlistQueue:
    def __init__(self, db: Session, waitlist_repository: Optional[WaitlistRepository] = None):
        self.db = db
        self.repository = waitlist_repository or RepositoryFactory.create_waitlist_repository(db)

    def enqueue(self, class_id: str, subscriber_id: str, now: datetime) -> WaitlistEntry:
        position = self.repository.max_position(class_id) + 1
        return self.repository.create(
            class_id=class_id,
            subscriber_id=subscriber_id,
            position=position,
            created_at=now,
        )

    def promote_next(
        self, class_id: str, check: PromotionCheck, now: datetime
    ) -> Optional[WaitlistEntry]:
        """
        Claim the first promotable entry in position order.

        Entries that fail ``check`` leave the queue with the returned reason
        and the walk continues with the next one. Returns None once the queue
        is exhausted.
        """
        while True:
            head = self.repository.get_head(class_id)
            if head is None:
                return None

            skip_reason = check(head)
            if skip_reason is None:
                head.promote(now)
                self.repository.flush()
                return head

            head.leave(skip_reason, now)
            self.repository.flush()
            logger.info(
                "Skipped waitlist entry during promotion",
                extra={
                    "class_id": class_id,
                    "entry_id": head.id,
                    "subscriber_id": head.subscriber_id,
                    "reason": skip_reason.value,
                },
            )

    def leave(self, entry: WaitlistEntry, reason: WaitlistExitReason, now: datetime) -> None:
        entry.leave(reason, now)
        self.repository.flush()

    def position_of(self, subscriber_id: str, class_id: str) -> Optional[int]:
        entry = self.repository.get_waiting_for_pair(subscriber_id, class_id)
        return entry.position if entry is not None else None

    def place_in_line(self, subscriber_id: str, class_id: str) -> Optional[int]:
        entry = self.repository.get_waiting_for_pair(subscriber_id, class_id)
        return self.rank_of(entry) if entry is not None else None

    def rank_of(self, entry: WaitlistEntry) -> int:
        """1-based place in line among entries still waiting."""
        ahead = [
            other for other in self.repository.list_waiting(entry.class_id)
            if other.position < entry.position
        ]
        return len(ahead) + 1

    def list_waiting(self, class_id: str) -> List[WaitlistEntry]:
        return self.repository.list_waiting(class_id)
