from contextlib import contextmanager
from datetime import timedelta
from unittest.mock import patch

import pytest

from studio_booking.services.reminder_scheduler import ReminderScheduler
from studio_booking.tasks import reminder_tasks
from studio_booking.tasks.beat_schedule import get_beat_schedule
from studio_booking.tasks.celery_app import celery_app


@pytest.mark.integration
class TestDispatchDueRemindersTask:
    def test_task_registered_on_notifications_queue(self):
        task = celery_app.tasks["reminders.dispatch_due"]
        assert task.queue == "notifications"

    def test_beat_runs_dispatcher_periodically(self):
        schedule = get_beat_schedule("production")
        entry = schedule["dispatch-due-reminders"]
        assert entry["task"] == "reminders.dispatch_due"
        assert isinstance(entry["schedule"], timedelta)

    def test_task_dispatches_through_scheduler(self, db):
        @contextmanager
        def fake_scope():
            yield db

        with patch.object(reminder_tasks, "session_scope", fake_scope), patch.object(
            reminder_tasks, "ReminderScheduler"
        ) as scheduler_cls:
            scheduler_cls.return_value.dispatch_due.return_value = 3
            fired = reminder_tasks.dispatch_due_reminders()

        assert fired == 3
        scheduler_cls.assert_called_once_with(db)
        scheduler_cls.return_value.dispatch_due.assert_called_once_with(limit=None)

    def test_task_fires_real_reminders(
        self, session_factory, scheduler, service, make_class, make_subscription, clock, gateway
    ):
        class_slot = make_class(starts_in=timedelta(hours=5))
        make_subscription("member-a")
        service.book("member-a", class_slot.id)
        scheduler.reschedule("member-a", class_slot.id)
        clock.advance(hours=4, minutes=50)

        @contextmanager
        def worker_scope():
            session = session_factory()
            try:
                yield session
                session.commit()
            finally:
                session.close()

        def build_scheduler(session):
            return ReminderScheduler(
                session, temporal_policy=scheduler.temporal_policy, gateway=gateway
            )

        with patch.object(reminder_tasks, "session_scope", worker_scope), patch.object(
            reminder_tasks, "ReminderScheduler", side_effect=build_scheduler
        ):
            assert reminder_tasks.dispatch_due_reminders() == 1

        assert [title for _, title, _ in gateway.sent] == ["Class reminder"]
