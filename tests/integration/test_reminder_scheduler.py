from datetime import timedelta

import pytest

from studio_booking.core.config import settings
from studio_booking.models import ReminderTask
from studio_booking.repositories import NotificationPreferenceRepository
from studio_booking.services.timezone_service import TimezoneService


def _scheduled(db, subscriber_id, class_id):
    return (
        db.query(ReminderTask)
        .filter(
            ReminderTask.subscriber_id == subscriber_id,
            ReminderTask.class_id == class_id,
            ReminderTask.status == "scheduled",
        )
        .all()
    )


@pytest.fixture
def booked_class(service, make_class, make_subscription):
    class_slot = make_class(starts_in=timedelta(hours=5))
    make_subscription("member-a")
    service.book("member-a", class_slot.id)
    return class_slot


@pytest.mark.integration
class TestReschedule:
    def test_default_lead_time(self, db, scheduler, policy, booked_class):
        task = scheduler.reschedule("member-a", booked_class.id)

        expected = policy.class_start(booked_class) - timedelta(
            minutes=settings.default_reminder_lead_minutes
        )
        assert TimezoneService.ensure_utc(task.fire_at) == expected
        assert task.status == "scheduled"

    def test_rescheduling_twice_leaves_one_scheduled_task(self, db, scheduler, booked_class):
        first = scheduler.reschedule("member-a", booked_class.id)
        second = scheduler.reschedule("member-a", booked_class.id)

        assert first.id != second.id
        assert [task.id for task in _scheduled(db, "member-a", booked_class.id)] == [second.id]
        db.refresh(first)
        assert first.status == "cancelled"

    def test_member_lead_time_preference(self, db, scheduler, policy, booked_class):
        NotificationPreferenceRepository(db).upsert("member-a", True, reminder_lead_minutes=60)
        db.commit()

        task = scheduler.reschedule("member-a", booked_class.id)

        assert TimezoneService.ensure_utc(task.fire_at) == policy.class_start(
            booked_class
        ) - timedelta(minutes=60)

    def test_member_opted_out(self, db, scheduler, booked_class):
        NotificationPreferenceRepository(db).upsert("member-a", False)
        db.commit()

        assert scheduler.reschedule("member-a", booked_class.id) is None
        assert _scheduled(db, "member-a", booked_class.id) == []

    def test_opting_out_cancels_pending_reminder(self, db, scheduler, booked_class):
        scheduler.reschedule("member-a", booked_class.id)
        NotificationPreferenceRepository(db).upsert("member-a", False)
        db.commit()

        scheduler.reschedule("member-a", booked_class.id)

        assert _scheduled(db, "member-a", booked_class.id) == []

    def test_class_with_notifications_disabled(
        self, db, service, scheduler, make_class, make_subscription
    ):
        class_slot = make_class(notifications_enabled=False)
        make_subscription("member-a")
        service.book("member-a", class_slot.id)

        assert scheduler.reschedule("member-a", class_slot.id) is None

    def test_no_booking_no_reminder(self, scheduler, make_class):
        class_slot = make_class()
        assert scheduler.reschedule("member-a", class_slot.id) is None

    def test_fire_time_already_passed(
        self, scheduler, service, make_class, make_subscription, clock
    ):
        class_slot = make_class(starts_in=timedelta(hours=1))
        make_subscription("member-a")
        service.book("member-a", class_slot.id)
        clock.advance(minutes=50)

        assert scheduler.reschedule("member-a", class_slot.id) is None

    def test_cancel_pending(self, db, scheduler, booked_class):
        scheduler.reschedule("member-a", booked_class.id)

        assert scheduler.cancel("member-a", booked_class.id) == 1
        assert scheduler.cancel("member-a", booked_class.id) == 0
        assert _scheduled(db, "member-a", booked_class.id) == []


@pytest.mark.integration
class TestDispatch:
    def test_due_reminder_sent_once(self, db, scheduler, gateway, clock, booked_class):
        scheduler.reschedule("member-a", booked_class.id)
        clock.advance(hours=4, minutes=50)

        assert scheduler.dispatch_due() == 1
        assert scheduler.dispatch_due() == 0

        subscriber_id, title, body = gateway.sent[0]
        assert subscriber_id == "member-a"
        assert title == "Class reminder"
        assert "Mat Flow" in body
        assert "14:00" in body

    def test_reminder_not_sent_early(self, scheduler, gateway, clock, booked_class):
        scheduler.reschedule("member-a", booked_class.id)
        clock.advance(hours=4)

        assert scheduler.dispatch_due() == 0
        assert gateway.sent == []

    def test_temporary_gateway_failure_retried_next_run(
        self, db, scheduler, gateway, clock, booked_class
    ):
        scheduler.reschedule("member-a", booked_class.id)
        clock.advance(hours=4, minutes=50)
        gateway.failures_left = 1

        assert scheduler.dispatch_due() == 0
        assert len(_scheduled(db, "member-a", booked_class.id)) == 1
        assert scheduler.dispatch_due() == 1
        assert len(gateway.sent) == 1

    def test_rejected_delivery_does_not_resend_the_rest_of_the_batch(
        self, db, scheduler, service, gateway, clock, make_subscription, booked_class
    ):
        make_subscription("member-b")
        service.book("member-b", booked_class.id)
        # member-b fires first and is the one the gateway rejects
        NotificationPreferenceRepository(db).upsert("member-b", True, reminder_lead_minutes=60)
        db.commit()
        scheduler.reschedule("member-a", booked_class.id)
        scheduler.reschedule("member-b", booked_class.id)
        gateway.rejected["member-b"] = ValueError("invalid push token")
        clock.advance(hours=4, minutes=50)

        assert scheduler.dispatch_due() == 1
        assert scheduler.dispatch_due() == 0
        assert scheduler.dispatch_due() == 0

        assert [subscriber_id for subscriber_id, _, _ in gateway.sent] == ["member-a"]
        db.expire_all()
        statuses = {
            task.subscriber_id: task.status
            for task in db.query(ReminderTask)
            .filter(ReminderTask.class_id == booked_class.id)
            .all()
        }
        assert statuses == {"member-a": "fired", "member-b": "failed"}

    @pytest.mark.parametrize("hours_later", [5, 9])
    def test_reminder_for_started_class_dropped(
        self, db, scheduler, gateway, clock, booked_class, hours_later
    ):
        scheduler.reschedule("member-a", booked_class.id)
        clock.advance(hours=hours_later)

        assert scheduler.dispatch_due() == 0
        assert gateway.sent == []
        db.expire_all()
        task = db.query(ReminderTask).filter(ReminderTask.class_id == booked_class.id).one()
        assert task.status == "cancelled"

    def test_reminder_for_cancelled_class_dropped(
        self, db, scheduler, service, gateway, clock, booked_class
    ):
        scheduler.reschedule("member-a", booked_class.id)
        service.cancel_class(booked_class.id)
        clock.advance(hours=4, minutes=50)

        assert scheduler.dispatch_due() == 0
        assert gateway.sent == []
        assert _scheduled(db, "member-a", booked_class.id) == []


@pytest.mark.integration
class TestLifecycleDrivesReminders:
    def test_booking_schedules_and_cancellation_clears(
        self, db, make_service, make_class, make_subscription
    ):
        class_slot = make_class()
        make_subscription("member-a")
        service = make_service(db, with_handlers=True)

        confirmed = service.book("member-a", class_slot.id)
        assert len(_scheduled(db, "member-a", class_slot.id)) == 1

        service.cancel(confirmed.booking_id)
        assert _scheduled(db, "member-a", class_slot.id) == []

    def test_promoted_member_notified_and_reminded(
        self, db, make_service, make_class, make_subscription, gateway
    ):
        class_slot = make_class(capacity=1)
        make_subscription("member-a")
        make_subscription("member-b")
        service = make_service(db, with_handlers=True)
        holder = service.book("member-a", class_slot.id)
        service.book("member-b", class_slot.id)
        assert _scheduled(db, "member-b", class_slot.id) == []

        service.cancel(holder.booking_id)

        assert gateway.titles_for("member-b") == ["A spot opened up"]
        assert len(_scheduled(db, "member-b", class_slot.id)) == 1
        assert gateway.titles_for("member-a") == []
