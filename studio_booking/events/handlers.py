"""Default lifecycle event handlers: reminders and immediate notices."""
import logging

from ..core.enums import CancelledBy
from ..services.notification_gateway import NotificationGateway
from ..services.reminder_scheduler import ReminderScheduler
from .booking_events import BookingCancelled, BookingConfirmed, WaitlistPromoted
from .publisher import EventPublisher

logger = logging.getLogger(__name__)


def register_default_handlers(
    publisher: EventPublisher,
    reminder_scheduler: ReminderScheduler,
    gateway: NotificationGateway,
) -> EventPublisher:
    """
    Wire the standard reactions onto ``publisher``.

    BookingConfirmed and WaitlistPromoted schedule the class reminder,
    BookingCancelled cancels it, a promotion tells the member a spot opened,
    and a studio cancellation tells the member their class is off.
    """

    def reschedule_reminder(event: BookingConfirmed) -> None:
        reminder_scheduler.reschedule(event.subscriber_id, event.class_id)

    def cancel_reminder(event: BookingCancelled) -> None:
        reminder_scheduler.cancel(event.subscriber_id, event.class_id)

    def notify_spot_opened(event: WaitlistPromoted) -> None:
        gateway.send(
            event.subscriber_id,
            "A spot opened up",
            "You have been moved from the waitlist into the class. See you there!",
        )
        logger.info(
            "Sent promotion notice",
            extra={"subscriber_id": event.subscriber_id, "class_id": event.class_id},
        )

    def notify_studio_cancellation(event: BookingCancelled) -> None:
        if event.cancelled_by != CancelledBy.STUDIO:
            return
        body = "Your class has been cancelled by the studio."
        if event.refunded:
            body += " Your credit has been returned."
        gateway.send(event.subscriber_id, "Class cancelled", body)

    publisher.subscribe(BookingConfirmed, reschedule_reminder)
    publisher.subscribe(WaitlistPromoted, reschedule_reminder)
    publisher.subscribe(WaitlistPromoted, notify_spot_opened)
    publisher.subscribe(BookingCancelled, cancel_reminder)
    publisher.subscribe(BookingCancelled, notify_studio_cancellation)
    return publisher
