# studio_booking/models/reminder.py
"""Reminder tasks and per-member notification preferences."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)

from ..core.enums import ReminderStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base

_SCHEDULED = text("status = 'scheduled'")


class ReminderTask(Base):
    __tablename__ = "reminder_tasks"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    subscriber_id = Column(String(26), nullable=False, index=True)
    class_id = Column(String(26), ForeignKey("class_slots.id"), nullable=False, index=True)

    fire_at = Column(DateTime(timezone=True), nullable=False, index=True)
    lead_minutes = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=ReminderStatus.SCHEDULED.value)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    fired_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'fired', 'cancelled', 'failed')",
            name="ck_reminder_tasks_status",
        ),
        Index(
            "uq_reminder_tasks_scheduled_pair",
            "subscriber_id",
            "class_id",
            unique=True,
            postgresql_where=_SCHEDULED,
            sqlite_where=_SCHEDULED,
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ReminderTask {self.id}: subscriber={self.subscriber_id} "
            f"class={self.class_id} fire_at={self.fire_at} status={self.status}>"
        )


class NotificationPreference(Base):
    """Per-member notification settings; absent row means defaults."""

    __tablename__ = "notification_preferences"

    subscriber_id = Column(String(26), primary_key=True)
    notifications_enabled = Column(Boolean, nullable=False, default=True)
    reminder_lead_minutes = Column(Integer, nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "reminder_lead_minutes IS NULL OR reminder_lead_minutes >= 0",
            name="ck_notification_preferences_lead_non_negative",
        ),
    )
