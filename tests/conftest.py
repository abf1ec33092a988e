"""
Shared fixtures for the studio booking test-suite.

Every test gets its own sqlite file so threaded tests can open independent
connections, plus a controllable clock pinned to a Tuesday morning in March
(before the spring DST switch in the studio timezone).
"""

from datetime import date, datetime, timedelta, timezone
import itertools
from typing import Callable, Dict, List, Optional, Tuple

import pytest

# Import models so Base.metadata is populated for create_all.
import studio_booking.models  # noqa: F401
from studio_booking.database import Base, build_engine, build_session_factory
from studio_booking.events.handlers import register_default_handlers
from studio_booking.events.publisher import EventPublisher
from studio_booking.models import ClassSlot, Subscription
from studio_booking.services.booking_lifecycle_service import BookingLifecycleService
from studio_booking.services.notification_gateway import NotificationGatewayTemporaryError
from studio_booking.services.reminder_scheduler import ReminderScheduler
from studio_booking.services.temporal_policy import TemporalPolicy
from studio_booking.services.timezone_service import TimezoneService

STUDIO_TZ = "Europe/Tirane"
BASE_NOW = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)

_created_seq = itertools.count()


def _next_created_at() -> datetime:
    """Strictly increasing creation stamps so 'latest subscription' is deterministic."""
    return BASE_NOW - timedelta(days=30) + timedelta(seconds=next(_created_seq))


class FixedClock:
    """Callable clock for TemporalPolicy; tests move it explicitly."""

    def __init__(self, now: datetime = BASE_NOW):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)

    def set(self, when: datetime) -> None:
        self.current = when


class RecordingGateway:
    """Notification gateway double that keeps every message it was handed."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []
        self.failures_left = 0
        self.rejected: Dict[str, Exception] = {}

    def send(
        self,
        subscriber_id: str,
        title: str,
        body: str,
        fire_at: Optional[datetime] = None,
    ) -> None:
        if self.failures_left:
            self.failures_left -= 1
            raise NotificationGatewayTemporaryError("provider unavailable")
        if subscriber_id in self.rejected:
            raise self.rejected[subscriber_id]
        self.sent.append((subscriber_id, title, body))

    def titles_for(self, subscriber_id: str) -> List[str]:
        return [title for sid, title, _ in self.sent if sid == subscriber_id]


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'studio.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def policy(clock) -> TemporalPolicy:
    return TemporalPolicy(
        now_fn=clock, timezone_str=STUDIO_TZ, lockout_minutes=15, notice_minutes=120
    )


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def make_class(db) -> Callable[..., ClassSlot]:
    """Persist a class starting ``starts_in`` after the base clock reading."""

    def _make(
        starts_in: timedelta = timedelta(hours=5),
        capacity: int = 10,
        category: str = "group",
        equipment: str = "mat",
        notifications_enabled: bool = True,
        name: str = "Mat Flow",
    ) -> ClassSlot:
        local_start = TimezoneService.utc_to_local(BASE_NOW + starts_in, STUDIO_TZ)
        class_slot = ClassSlot(
            name=name,
            class_date=local_start.date(),
            start_time=local_start.time(),
            duration_minutes=50,
            capacity=capacity,
            category=category,
            equipment=equipment,
            enrolled=0,
            status="active",
            notifications_enabled=notifications_enabled,
        )
        db.add(class_slot)
        db.commit()
        return class_slot

    return _make


@pytest.fixture
def make_subscription(db) -> Callable[..., Subscription]:
    def _make(
        subscriber_id: str,
        remaining: int = 5,
        allotment: int = 8,
        category: str = "group",
        equipment: str = "mat",
        status: str = "active",
        duration: int = 1,
        duration_unit: str = "months",
        end_date: Optional[date] = None,
    ) -> Subscription:
        subscription = Subscription(
            subscriber_id=subscriber_id,
            plan_name=f"{category} {equipment}",
            category=category,
            equipment_access=equipment,
            monthly_allotment=allotment,
            remaining_classes=remaining,
            duration=duration,
            duration_unit=duration_unit,
            start_date=date(2026, 3, 1),
            end_date=end_date,
            status=status,
            created_at=_next_created_at(),
        )
        db.add(subscription)
        db.commit()
        return subscription

    return _make


@pytest.fixture
def make_service(policy, gateway) -> Callable[..., BookingLifecycleService]:
    def _make(session, publisher: Optional[EventPublisher] = None, with_handlers: bool = False):
        publisher = publisher or EventPublisher()
        if with_handlers:
            scheduler = ReminderScheduler(session, temporal_policy=policy, gateway=gateway)
            register_default_handlers(publisher, scheduler, gateway)
        return BookingLifecycleService(session, temporal_policy=policy, event_publisher=publisher)

    return _make


@pytest.fixture
def service(db, make_service) -> BookingLifecycleService:
    return make_service(db)


@pytest.fixture
def scheduler(db, policy, gateway) -> ReminderScheduler:
    return ReminderScheduler(db, temporal_policy=policy, gateway=gateway)
