# studio_booking/services/reminder_scheduler.py
"""
Reminder scheduling.

Keeps at most one ``scheduled`` ReminderTask per (subscriber, class): every
reschedule cancels whatever is pending for the pair before deciding whether
a new task is due. Tasks are derived from the confirmed booking and the
notification settings of both the member and the class.
"""

from datetime import datetime, timedelta
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import ReminderStatus
from ..models.class_slot import ClassSlot
from ..models.reminder import ReminderTask
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .notification_gateway import (
    LoggingNotificationGateway,
    NotificationGateway,
    NotificationGatewayTemporaryError,
)
from .temporal_policy import TemporalPolicy
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)


class ReminderScheduler(BaseService):
    def __init__(
        self,
        db: Session,
        temporal_policy: Optional[TemporalPolicy] = None,
        gateway: Optional[NotificationGateway] = None,
    ):
        super().__init__(db)
        self.temporal_policy = temporal_policy or TemporalPolicy()
        self.gateway = gateway or LoggingNotificationGateway()
        self.reminder_repository = RepositoryFactory.create_reminder_repository(db)
        self.preference_repository = RepositoryFactory.create_notification_preference_repository(
            db
        )
        self.class_repository = RepositoryFactory.create_class_slot_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("reschedule_reminder")
    def reschedule(self, subscriber_id: str, class_id: str) -> Optional[ReminderTask]:
        """
        Replace the pending reminder for the pair.

        Returns the new task, or None when no reminder is due: no confirmed
        booking, notifications off, class inactive, or fire time already past.
        """
        with self.transaction():
            cancelled = self._cancel_pending(subscriber_id, class_id)

            class_slot = self.class_repository.get_by_id(class_id)
            if class_slot is None or not class_slot.is_active:
                return None
            if self.booking_repository.get_confirmed_for_pair(subscriber_id, class_id) is None:
                return None

            lead_minutes = self._lead_minutes(subscriber_id, class_slot)
            if lead_minutes is None:
                prometheus_metrics.record_reminder_action("skipped")
                return None

            fire_at = self.temporal_policy.class_start(class_slot) - timedelta(minutes=lead_minutes)
            now = self.temporal_policy.now()
            if fire_at <= now:
                prometheus_metrics.record_reminder_action("skipped")
                self.logger.info(
                    "Reminder not scheduled, fire time already passed",
                    extra={"subscriber_id": subscriber_id, "class_id": class_id},
                )
                return None

            task = self.reminder_repository.create(
                subscriber_id=subscriber_id,
                class_id=class_id,
                fire_at=fire_at,
                lead_minutes=lead_minutes,
                created_at=now,
            )

        prometheus_metrics.record_reminder_action("scheduled")
        self.logger.info(
            "Reminder scheduled",
            extra={
                "subscriber_id": subscriber_id,
                "class_id": class_id,
                "fire_at": fire_at.isoformat(),
                "replaced": cancelled,
            },
        )
        return task

    @BaseService.measure_operation("cancel_reminder")
    def cancel(self, subscriber_id: str, class_id: str) -> int:
        """Cancel the pending reminder for the pair; a no-op when there is none."""
        with self.transaction():
            cancelled = self._cancel_pending(subscriber_id, class_id)
        if cancelled:
            self.logger.info(
                "Reminder cancelled",
                extra={"subscriber_id": subscriber_id, "class_id": class_id},
            )
        return cancelled

    @BaseService.measure_operation("dispatch_due_reminders")
    def dispatch_due(self, limit: Optional[int] = None) -> int:
        """
        Hand every due reminder to the gateway and mark it fired.

        A reminder whose delivery fails with a temporary gateway error stays
        scheduled and is picked up by the next run. Any other delivery error
        marks that reminder failed without touching the rest of the batch.
        Reminders for classes that were cancelled or have already started are
        dropped unsent.
        """
        now = self.temporal_policy.now()
        batch = limit or settings.reminder_dispatch_batch_size
        fired = 0
        failed = 0
        dropped = 0

        with self.transaction():
            due: List[ReminderTask] = self.reminder_repository.list_due(now, batch)
            for task in due:
                class_slot = self.class_repository.get_by_id(task.class_id)
                if class_slot is None or not class_slot.is_active:
                    self._drop(task, now, "class no longer active")
                    dropped += 1
                    continue
                if self.temporal_policy.class_start(class_slot) <= now:
                    self._drop(task, now, "class already started")
                    dropped += 1
                    continue

                title, body = self._reminder_text(class_slot, task.lead_minutes)
                try:
                    self.gateway.send(task.subscriber_id, title, body)
                except NotificationGatewayTemporaryError as exc:
                    self.logger.warning(
                        "Reminder delivery failed, will retry",
                        extra={"reminder_id": task.id, "error": str(exc)},
                    )
                    continue
                except Exception:
                    self.logger.exception(
                        "Reminder delivery failed, giving up",
                        extra={"reminder_id": task.id, "subscriber_id": task.subscriber_id},
                    )
                    task.status = ReminderStatus.FAILED.value
                    task.failed_at = now
                    failed += 1
                    continue

                task.status = ReminderStatus.FIRED.value
                task.fired_at = now
                fired += 1

        prometheus_metrics.record_reminder_action("fired", fired)
        prometheus_metrics.record_reminder_action("failed", failed)
        prometheus_metrics.record_reminder_action("cancelled", dropped)
        if fired or failed or dropped:
            self.logger.info(
                "Dispatched %s due reminders",
                fired,
                extra={"failed": failed, "dropped": dropped},
            )
        return fired

    def _drop(self, task: ReminderTask, now: datetime, reason: str) -> None:
        task.status = ReminderStatus.CANCELLED.value
        task.cancelled_at = now
        self.logger.info(
            "Reminder dropped unsent",
            extra={"reminder_id": task.id, "class_id": task.class_id, "reason": reason},
        )

    def _cancel_pending(self, subscriber_id: str, class_id: str) -> int:
        now = self.temporal_policy.now()
        pending = self.reminder_repository.list_scheduled_for_pair(subscriber_id, class_id)
        for task in pending:
            task.status = ReminderStatus.CANCELLED.value
            task.cancelled_at = now
        if pending:
            # Free the partial unique index before a replacement row is inserted.
            self.reminder_repository.flush()
            prometheus_metrics.record_reminder_action("cancelled", len(pending))
        return len(pending)

    def _lead_minutes(self, subscriber_id: str, class_slot: ClassSlot) -> Optional[int]:
        """Lead time for the pair, or None when either side has notifications off."""
        if not class_slot.notifications_enabled:
            return None
        preference = self.preference_repository.get_for_subscriber(subscriber_id)
        if preference is None:
            return settings.default_reminder_lead_minutes
        if not preference.notifications_enabled:
            return None
        if preference.reminder_lead_minutes is None:
            return settings.default_reminder_lead_minutes
        return preference.reminder_lead_minutes

    def _reminder_text(self, class_slot: ClassSlot, lead_minutes: int) -> Tuple[str, str]:
        local_start = TimezoneService.utc_to_local(
            self.temporal_policy.class_start(class_slot), self.temporal_policy.timezone_str
        )
        return (
            "Class reminder",
            f"{class_slot.name} starts in {lead_minutes} minutes "
            f"({local_start.strftime('%H:%M')}).",
        )
