# studio_booking/models/waitlist.py
"""WaitlistEntry model: one row per enqueue, ordered by ``position`` within a class."""

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)

from ..core.enums import WaitlistExitReason, WaitlistStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base

_WAITING = text("status = 'waiting'")


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    class_id = Column(String(26), ForeignKey("class_slots.id"), nullable=False, index=True)
    subscriber_id = Column(String(26), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=WaitlistStatus.WAITING.value)
    exit_reason = Column(String(30), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("class_id", "position", name="uq_waitlist_class_position"),
        CheckConstraint("position >= 1", name="ck_waitlist_position_positive"),
        CheckConstraint(
            "status IN ('waiting', 'promoted', 'left')", name="ck_waitlist_entries_status"
        ),
        Index(
            "uq_waitlist_waiting_pair",
            "subscriber_id",
            "class_id",
            unique=True,
            postgresql_where=_WAITING,
            sqlite_where=_WAITING,
        ),
    )

    def promote(self, now: datetime) -> None:
        self.status = WaitlistStatus.PROMOTED.value
        self.resolved_at = now

    def leave(self, reason: WaitlistExitReason, now: datetime) -> None:
        self.status = WaitlistStatus.LEFT.value
        self.exit_reason = reason.value
        self.resolved_at = now

    def __repr__(self) -> str:
        return (
            f"<WaitlistEntry {self.id}: class={self.class_id} "
            f"subscriber={self.subscriber_id} position={self.position} status={self.status}>"
        )
