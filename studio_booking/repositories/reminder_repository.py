# studio_booking/repositories/reminder_repository.py
"""Reminder tasks and notification preferences."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ReminderStatus
from ..core.exceptions import RepositoryException
from ..models.reminder import NotificationPreference, ReminderTask
from .base_repository import BaseRepository


class ReminderRepository(BaseRepository[ReminderTask]):
    def __init__(self, db: Session):
        super().__init__(db, ReminderTask)

    def list_scheduled_for_pair(self, subscriber_id: str, class_id: str) -> List[ReminderTask]:
        query = self._build_query().filter(
            ReminderTask.subscriber_id == subscriber_id,
            ReminderTask.class_id == class_id,
            ReminderTask.status == ReminderStatus.SCHEDULED.value,
        )
        return self._execute_query(query)

    def list_due(self, now: datetime, limit: int) -> List[ReminderTask]:
        query = (
            self._build_query()
            .filter(
                ReminderTask.status == ReminderStatus.SCHEDULED.value,
                ReminderTask.fire_at <= now,
            )
            .order_by(ReminderTask.fire_at, ReminderTask.id)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return self._execute_query(query)


class NotificationPreferenceRepository(BaseRepository[NotificationPreference]):
    def __init__(self, db: Session):
        super().__init__(db, NotificationPreference)

    def get_for_subscriber(self, subscriber_id: str) -> Optional[NotificationPreference]:
        try:
            return self.db.get(NotificationPreference, subscriber_id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading notification preference: {str(e)}")
            raise RepositoryException(f"Failed to load notification preference: {str(e)}")

    def upsert(
        self,
        subscriber_id: str,
        notifications_enabled: bool,
        reminder_lead_minutes: Optional[int] = None,
    ) -> NotificationPreference:
        preference = self.get_for_subscriber(subscriber_id)
        if preference is None:
            return self.create(
                subscriber_id=subscriber_id,
                notifications_enabled=notifications_enabled,
                reminder_lead_minutes=reminder_lead_minutes,
            )
        preference.notifications_enabled = notifications_enabled
        preference.reminder_lead_minutes = reminder_lead_minutes
        self.flush()
        return preference
