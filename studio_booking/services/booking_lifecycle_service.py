# studio_booking/services/booking_lifecycle_service.py
"""
Booking lifecycle for the studio.

Orchestrates entitlement, temporal policy, the capacity ledger and the
waitlist into atomic operations:

- book: confirm a seat, or join the waitlist when the class is full
- cancel: free the seat, refund the credit, promote the waitlist head
- leave_waitlist / cancel_class / position_of / list_waitlist

Every mutation of a class's seats or queue runs inside ``class_lock`` and a
single transaction that commits before the lock is released. Lifecycle events
go to the publisher only after that commit.
"""

from contextlib import contextmanager
from datetime import date, datetime
import logging
from typing import (
    Callable,
    ContextManager,
    Dict,
    Iterator,
    List,
    NoReturn,
    Optional,
    Tuple,
    Union,
)

from sqlalchemy.orm import Session

from ..core.class_lock import class_lock
from ..core.enums import (
    CancelledBy,
    ClassStatus,
    DenialReason,
    WaitlistExitReason,
    WaitlistStatus,
)
from ..core.exceptions import (
    BookingDeniedException,
    CapacityInvariantViolation,
    NotFoundException,
    WaitlistEntryNotWaitingException,
)
from ..events.booking_events import (
    BookingCancelled,
    BookingConfirmed,
    ClassCancelled,
    WaitlistJoined,
    WaitlistLeft,
    WaitlistPromoted,
)
from ..events.publisher import EventPublisher
from ..models.booking import Booking
from ..models.class_slot import ClassSlot
from ..models.subscription import Subscription
from ..models.waitlist import WaitlistEntry
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .capacity_ledger import CapacityLedger, ReserveResult
from .entitlement_evaluator import EntitlementEvaluator
from .temporal_policy import TemporalPolicy
from .waitlist_queue import WaitlistQueue

logger = logging.getLogger(__name__)

BookOutcome = Union[BookingConfirmed, WaitlistJoined]
LockFactory = Callable[[str], ContextManager[None]]


class BookingLifecycleService(BaseService):
    """
    Service layer for booking, cancelling and waitlist operations.

    Denials raise ``BookingDeniedException`` carrying a ``DenialReason``;
    nothing is written when an operation is denied.
    """

    def __init__(
        self,
        db: Session,
        temporal_policy: Optional[TemporalPolicy] = None,
        entitlement_evaluator: Optional[EntitlementEvaluator] = None,
        event_publisher: Optional[EventPublisher] = None,
        lock: LockFactory = class_lock,
    ):
        super().__init__(db)
        self.temporal_policy = temporal_policy or TemporalPolicy()
        self.entitlement_evaluator = entitlement_evaluator or EntitlementEvaluator()
        self.event_publisher = event_publisher or EventPublisher()
        self._lock = lock

        self.class_repository = RepositoryFactory.create_class_slot_repository(db)
        self.subscription_repository = RepositoryFactory.create_subscription_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.waitlist_repository = RepositoryFactory.create_waitlist_repository(db)

        self.ledger = CapacityLedger(db, self.booking_repository)
        self.waitlist = WaitlistQueue(db, self.waitlist_repository)

    @contextmanager
    def _critical_section(self, class_id: str) -> Iterator[None]:
        """Class lock around a transaction; the commit happens before the lock is released."""
        with self._lock(class_id):
            with self.transaction():
                yield

    # Book

    @BaseService.measure_operation("book")
    def book(self, subscriber_id: str, class_id: str) -> BookOutcome:
        """
        Book a class for a member.

        Returns ``BookingConfirmed`` when a seat was reserved, or
        ``WaitlistJoined`` (with the assigned position) when the class is full.

        Raises:
            BookingDeniedException: entitlement, temporal or duplicate denial
        """
        # Fast rejection outside the lock; everything is checked again inside.
        class_slot = self._get_active_class(class_id, operation="book")
        subscription = self.subscription_repository.get_current_for_subscriber(subscriber_id)
        self._require_entitlement(subscription, class_slot, subscriber_id, operation="book")
        class_start = self.temporal_policy.class_start(class_slot)
        self._require_bookable(class_start, subscriber_id, class_id)

        with self._critical_section(class_id):
            class_slot = self._get_active_class(class_id, operation="book", for_update=True)
            subscription = self.subscription_repository.get_current_for_subscriber(
                subscriber_id, for_update=True
            )
            self._require_entitlement(subscription, class_slot, subscriber_id, operation="book")
            self._require_bookable(class_start, subscriber_id, class_id)
            self._require_not_holding(subscriber_id, class_id)

            now = self.temporal_policy.now()
            remaining_seconds = int(
                self.temporal_policy.time_remaining(class_start).total_seconds()
            )

            if self.ledger.try_reserve(class_slot) is ReserveResult.RESERVED:
                booking, remaining = self._create_booking(subscription, class_slot, now)
                outcome: BookOutcome = BookingConfirmed(
                    booking_id=booking.id,
                    subscriber_id=subscriber_id,
                    class_id=class_id,
                    subscription_id=subscription.id,
                    class_start=class_start,
                    created_at=now,
                    remaining_classes=remaining,
                    time_remaining_seconds=remaining_seconds,
                )
            else:
                entry = self.waitlist.enqueue(class_id, subscriber_id, now)
                outcome = WaitlistJoined(
                    entry_id=entry.id,
                    subscriber_id=subscriber_id,
                    class_id=class_id,
                    position=entry.position,
                    class_start=class_start,
                    joined_at=now,
                    time_remaining_seconds=remaining_seconds,
                )

        if isinstance(outcome, BookingConfirmed):
            prometheus_metrics.record_booking_outcome("confirmed")
            self.logger.info(
                "Booking confirmed",
                extra={
                    "booking_id": outcome.booking_id,
                    "subscriber_id": subscriber_id,
                    "class_id": class_id,
                    "remaining_classes": outcome.remaining_classes,
                },
            )
        else:
            prometheus_metrics.record_booking_outcome("waitlisted")
            self.logger.info(
                "Class full, member waitlisted",
                extra={
                    "entry_id": outcome.entry_id,
                    "subscriber_id": subscriber_id,
                    "class_id": class_id,
                    "position": outcome.position,
                },
            )

        self.event_publisher.publish(outcome)
        return outcome

    # Cancel

    @BaseService.measure_operation("cancel")
    def cancel(
        self, booking_id: str, cancelled_by: CancelledBy = CancelledBy.MEMBER
    ) -> BookingCancelled:
        """
        Cancel a confirmed booking.

        Frees the seat, refunds the credit that was charged and, when the class
        had been full, promotes the first eligible waitlist entry in the same
        critical section.

        Raises:
            NotFoundException: unknown booking
            BookingDeniedException: TooLateToCancel or BookingAlreadyCancelled
        """
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        self._require_confirmed(booking)

        class_slot = self.class_repository.get_by_id(booking.class_id)
        if class_slot is None:
            raise NotFoundException("Class not found", details={"class_id": booking.class_id})
        class_start = self.temporal_policy.class_start(class_slot)
        self._require_cancellable(class_start, booking)

        promoted: Optional[WaitlistPromoted] = None
        with self._critical_section(booking.class_id):
            booking = self.booking_repository.get_by_id(booking_id, for_update=True)
            self._require_confirmed(booking)
            class_slot = self.class_repository.get_by_id(booking.class_id, for_update=True)

            now = self.temporal_policy.now()
            booking.cancel(cancelled_by, now)
            previous_enrolled = self.ledger.release(class_slot)
            refunded, remaining = self._refund(booking)

            if class_slot.is_active and self.ledger.was_full(class_slot, previous_enrolled):
                promoted = self._promote_next(class_slot, class_start, now)

            cancelled = BookingCancelled(
                booking_id=booking.id,
                subscriber_id=booking.subscriber_id,
                class_id=booking.class_id,
                cancelled_by=cancelled_by.value,
                cancelled_at=now,
                refunded=refunded,
                remaining_classes=remaining,
                promoted_booking_id=promoted.booking_id if promoted else None,
                promoted_subscriber_id=promoted.subscriber_id if promoted else None,
            )

        self.logger.info(
            "Booking cancelled",
            extra={
                "booking_id": booking_id,
                "subscriber_id": cancelled.subscriber_id,
                "class_id": cancelled.class_id,
                "refunded": refunded,
                "promoted_subscriber_id": cancelled.promoted_subscriber_id,
            },
        )
        self.event_publisher.publish(cancelled)
        if promoted is not None:
            self.event_publisher.publish(promoted)
        return cancelled

    # Waitlist

    @BaseService.measure_operation("leave_waitlist")
    def leave_waitlist(self, entry_id: str) -> WaitlistLeft:
        """
        Take a member off a waitlist.

        Leaving twice is a no-op that reports the original exit. A promoted
        entry already holds a booking and cannot leave; cancel the booking.
        """
        entry = self.waitlist_repository.get_by_id(entry_id)
        if entry is None:
            raise NotFoundException("Waitlist entry not found", details={"entry_id": entry_id})

        with self._critical_section(entry.class_id):
            entry = self.waitlist_repository.get_by_id(entry_id, for_update=True)
            if entry.status == WaitlistStatus.LEFT:
                return self._left_event(entry)
            if entry.status == WaitlistStatus.PROMOTED:
                raise WaitlistEntryNotWaitingException(entry.id, entry.status)
            self.waitlist.leave(entry, WaitlistExitReason.MEMBER_LEFT, self.temporal_policy.now())
            event = self._left_event(entry)

        self.logger.info(
            "Member left waitlist",
            extra={
                "entry_id": entry.id,
                "subscriber_id": entry.subscriber_id,
                "class_id": entry.class_id,
            },
        )
        self.event_publisher.publish(event)
        return event

    def position_of(self, subscriber_id: str, class_id: str) -> Optional[int]:
        """Assigned waitlist position of the member's waiting entry, if any."""
        return self.waitlist.position_of(subscriber_id, class_id)

    def place_in_line(self, subscriber_id: str, class_id: str) -> Optional[int]:
        """Live 1-based place among the entries still waiting for the class."""
        return self.waitlist.place_in_line(subscriber_id, class_id)

    def list_waitlist(self, class_id: str) -> List[WaitlistEntry]:
        """Waiting entries for a class in promotion order."""
        return self.waitlist.list_waiting(class_id)

    # Studio operations

    @BaseService.measure_operation("cancel_class")
    def cancel_class(self, class_id: str) -> ClassCancelled:
        """
        Cancel a class on behalf of the studio.

        Every confirmed booking is cancelled and refunded regardless of the
        notice window, and every waiting entry leaves the queue.
        """
        if self.class_repository.get_by_id(class_id) is None:
            raise NotFoundException("Class not found", details={"class_id": class_id})

        booking_events: List[BookingCancelled] = []
        with self._critical_section(class_id):
            class_slot = self.class_repository.get_by_id(class_id, for_update=True)
            if class_slot.status == ClassStatus.CANCELLED:
                return ClassCancelled(
                    class_id=class_id,
                    cancelled_at=class_slot.cancelled_at,
                    already_cancelled=True,
                )

            now = self.temporal_policy.now()
            class_slot.status = ClassStatus.CANCELLED.value
            class_slot.cancelled_at = now

            for booking in self.booking_repository.list_confirmed_for_class(
                class_id, for_update=True
            ):
                booking.cancel(CancelledBy.STUDIO, now)
                refunded, remaining = self._refund(booking)
                booking_events.append(
                    BookingCancelled(
                        booking_id=booking.id,
                        subscriber_id=booking.subscriber_id,
                        class_id=class_id,
                        cancelled_by=CancelledBy.STUDIO.value,
                        cancelled_at=now,
                        refunded=refunded,
                        remaining_classes=remaining,
                    )
                )

            released: List[str] = []
            for entry in self.waitlist_repository.list_waiting(class_id, for_update=True):
                self.waitlist.leave(entry, WaitlistExitReason.CLASS_CANCELLED, now)
                released.append(entry.id)

            class_slot.enrolled = 0
            class_event = ClassCancelled(
                class_id=class_id,
                cancelled_at=now,
                cancelled_booking_ids=[event.booking_id for event in booking_events],
                released_entry_ids=released,
            )

        self.logger.info(
            "Class cancelled by studio",
            extra={
                "class_id": class_id,
                "bookings_cancelled": len(booking_events),
                "waitlist_released": len(class_event.released_entry_ids),
            },
        )
        self.event_publisher.publish_all(booking_events)
        self.event_publisher.publish(class_event)
        return class_event

    # Internals

    def _promote_next(
        self, class_slot: ClassSlot, class_start: datetime, now: datetime
    ) -> Optional[WaitlistPromoted]:
        """
        Move the first eligible waitlist entry into the freed seat.

        Entries whose member already holds a booking, or whose entitlement no
        longer allows the class, leave the queue and the next one is tried.
        """
        today = self.temporal_policy.studio_today()
        claimed: Dict[str, Tuple[Subscription, bool]] = {}

        def claim(entry: WaitlistEntry) -> Optional[WaitlistExitReason]:
            if self.booking_repository.get_confirmed_for_pair(entry.subscriber_id, class_slot.id):
                return WaitlistExitReason.ALREADY_BOOKED

            subscription = self.subscription_repository.get_current_for_subscriber(
                entry.subscriber_id, for_update=True
            )
            decision = self.entitlement_evaluator.evaluate(subscription, class_slot, today)
            if not decision.allowed:
                prometheus_metrics.record_waitlist_promotion("skipped")
                self.logger.info(
                    "Waitlist promotion skipped, entitlement lapsed",
                    extra={
                        "entry_id": entry.id,
                        "subscriber_id": entry.subscriber_id,
                        "class_id": class_slot.id,
                        "reason": decision.reason.value,
                    },
                )
                return WaitlistExitReason.ENTITLEMENT_LAPSED

            charged = not subscription.is_unlimited
            if charged and not self.subscription_repository.consume_credit(subscription):
                prometheus_metrics.record_waitlist_promotion("skipped")
                return WaitlistExitReason.ENTITLEMENT_LAPSED

            claimed[entry.id] = (subscription, charged)
            return None

        entry = self.waitlist.promote_next(class_slot.id, claim, now)
        if entry is None:
            prometheus_metrics.record_waitlist_promotion("empty")
            return None

        if self.ledger.try_reserve(class_slot) is not ReserveResult.RESERVED:
            logger.error(
                "Freed seat vanished before promotion",
                extra={"class_id": class_slot.id, "entry_id": entry.id},
            )
            raise CapacityInvariantViolation(
                class_slot.id, class_slot.enrolled, class_slot.capacity
            )

        subscription, charged = claimed[entry.id]
        booking = self.booking_repository.create(
            class_id=class_slot.id,
            subscriber_id=entry.subscriber_id,
            subscription_id=subscription.id,
            credit_charged=charged,
            waitlist_entry_id=entry.id,
            created_at=now,
        )
        prometheus_metrics.record_waitlist_promotion("promoted")
        self.logger.info(
            "Waitlist entry promoted",
            extra={
                "entry_id": entry.id,
                "booking_id": booking.id,
                "subscriber_id": entry.subscriber_id,
                "class_id": class_slot.id,
                "position": entry.position,
            },
        )
        return WaitlistPromoted(
            entry_id=entry.id,
            booking_id=booking.id,
            subscriber_id=entry.subscriber_id,
            class_id=class_slot.id,
            class_start=class_start,
            promoted_at=now,
            remaining_classes=subscription.remaining_classes if charged else None,
        )

    def _create_booking(
        self, subscription: Subscription, class_slot: ClassSlot, now: datetime
    ) -> Tuple[Booking, Optional[int]]:
        charged = not subscription.is_unlimited
        if charged and not self.subscription_repository.consume_credit(subscription):
            # Balance spent by a concurrent booking on another class; the
            # raise rolls back the seat reservation.
            self._deny(
                DenialReason.NO_REMAINING_CREDITS,
                operation="book",
                subscriber_id=subscription.subscriber_id,
                class_id=class_slot.id,
            )
        booking = self.booking_repository.create(
            class_id=class_slot.id,
            subscriber_id=subscription.subscriber_id,
            subscription_id=subscription.id,
            credit_charged=charged,
            created_at=now,
        )
        return booking, subscription.remaining_classes if charged else None

    def _refund(self, booking: Booking) -> Tuple[bool, Optional[int]]:
        if not booking.credit_charged:
            return False, None
        subscription = self.subscription_repository.get_by_id(
            booking.subscription_id, for_update=True
        )
        if subscription is None:
            self.logger.error(
                "Subscription missing for refund",
                extra={"booking_id": booking.id, "subscription_id": booking.subscription_id},
            )
            return False, None
        self.subscription_repository.refund_credit(subscription)
        return True, subscription.remaining_classes

    def _get_active_class(
        self, class_id: str, operation: str, for_update: bool = False
    ) -> ClassSlot:
        class_slot = self.class_repository.get_by_id(class_id, for_update=for_update)
        if class_slot is None or not class_slot.is_active:
            self._deny(DenialReason.CLASS_NOT_AVAILABLE, operation=operation, class_id=class_id)
        return class_slot

    def _require_entitlement(
        self,
        subscription: Optional[Subscription],
        class_slot: ClassSlot,
        subscriber_id: str,
        operation: str,
    ) -> None:
        today: date = self.temporal_policy.studio_today()
        decision = self.entitlement_evaluator.evaluate(subscription, class_slot, today)
        if not decision.allowed:
            self._deny(
                decision.reason,
                operation=operation,
                subscriber_id=subscriber_id,
                class_id=class_slot.id,
            )

    def _require_bookable(self, class_start: datetime, subscriber_id: str, class_id: str) -> None:
        reason = self.temporal_policy.booking_denial(class_start)
        if reason is not None:
            self._deny(reason, operation="book", subscriber_id=subscriber_id, class_id=class_id)

    def _require_cancellable(self, class_start: datetime, booking: Booking) -> None:
        reason = self.temporal_policy.cancellation_denial(class_start)
        if reason is not None:
            self._deny(
                reason,
                operation="cancel",
                booking_id=booking.id,
                class_id=booking.class_id,
            )

    def _require_confirmed(self, booking: Booking) -> None:
        if not booking.is_confirmed:
            self._deny(
                DenialReason.BOOKING_ALREADY_CANCELLED,
                operation="cancel",
                booking_id=booking.id,
            )

    def _require_not_holding(self, subscriber_id: str, class_id: str) -> None:
        if self.booking_repository.get_confirmed_for_pair(subscriber_id, class_id) is not None:
            self._deny(
                DenialReason.ALREADY_BOOKED,
                operation="book",
                subscriber_id=subscriber_id,
                class_id=class_id,
            )
        if self.waitlist_repository.get_waiting_for_pair(subscriber_id, class_id) is not None:
            self._deny(
                DenialReason.ALREADY_WAITLISTED,
                operation="book",
                subscriber_id=subscriber_id,
                class_id=class_id,
            )

    def _deny(self, reason: DenialReason, operation: str, **context: str) -> NoReturn:
        prometheus_metrics.record_denial(operation, reason.value)
        if operation == "book":
            prometheus_metrics.record_booking_outcome("denied")
        self.logger.info(
            f"{operation} denied: {reason.value}",
            extra={"operation": operation, "reason": reason.value, **context},
        )
        raise BookingDeniedException(reason, details=dict(context))

    @staticmethod
    def _left_event(entry: WaitlistEntry) -> WaitlistLeft:
        return WaitlistLeft(
            entry_id=entry.id,
            subscriber_id=entry.subscriber_id,
            class_id=entry.class_id,
            reason=entry.exit_reason or WaitlistExitReason.MEMBER_LEFT.value,
            left_at=entry.resolved_at,
        )
