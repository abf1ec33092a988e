# studio_booking/models/subscription.py
"""
Subscription model.

Owned by the member; created by administrative flows. Only the booking
lifecycle service changes ``remaining_classes``.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Index, Integer, String

from ..core.config import settings
from ..core.enums import DurationUnit, EquipmentType, SubscriptionCategory, SubscriptionStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    subscriber_id = Column(String(26), nullable=False, index=True)
    plan_name = Column(String(120), nullable=False, default="Membership")

    category = Column(String(20), nullable=False, default=SubscriptionCategory.GROUP.value)
    equipment_access = Column(String(20), nullable=False, default=EquipmentType.MAT.value)

    monthly_allotment = Column(Integer, nullable=False)
    remaining_classes = Column(Integer, nullable=False, default=0)

    duration = Column(Integer, nullable=False, default=1)
    duration_unit = Column(String(10), nullable=False, default=DurationUnit.MONTHS.value)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    status = Column(String(20), nullable=False, default=SubscriptionStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("monthly_allotment >= 0", name="ck_subscriptions_allotment_non_negative"),
        CheckConstraint("remaining_classes >= 0", name="ck_subscriptions_remaining_non_negative"),
        CheckConstraint(
            "category IN ('group', 'personal', 'personal_duo', 'personal_trio')",
            name="ck_subscriptions_category",
        ),
        CheckConstraint(
            "equipment_access IN ('mat', 'reformer', 'both')",
            name="ck_subscriptions_equipment",
        ),
        CheckConstraint("status IN ('active', 'inactive')", name="ck_subscriptions_status"),
        Index("ix_subscriptions_subscriber_created", "subscriber_id", "created_at"),
    )

    @property
    def is_unlimited(self) -> bool:
        return self.monthly_allotment >= settings.unlimited_allotment_sentinel

    @property
    def is_day_pass(self) -> bool:
        return self.duration == 1 and self.duration_unit == DurationUnit.DAYS

    def is_active_on(self, today: Optional[date]) -> bool:
        """Active status, and not past its end date when ``today`` is known."""
        if self.status != SubscriptionStatus.ACTIVE:
            return False
        if today is not None and self.end_date is not None and self.end_date < today:
            return False
        return True

    def __repr__(self) -> str:
        return (
            f"<Subscription {self.id}: subscriber={self.subscriber_id} "
            f"{self.category}/{self.equipment_access} remaining={self.remaining_classes} "
            f"status={self.status}>"
        )
