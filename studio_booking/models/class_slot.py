# studio_booking/models/class_slot.py
"""
ClassSlot model.

A scheduled class. The start is stored as studio-local civil time
(``class_date`` + ``start_time``); conversion to an instant happens once, in
the temporal policy, using the canonical studio timezone.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Time,
)

from ..core.enums import ClassCategory, ClassStatus, EquipmentType
from ..core.ulid_helper import generate_ulid
from ..database import Base


class ClassSlot(Base):
    __tablename__ = "class_slots"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    name = Column(String(120), nullable=False, default="Class")

    # Studio-local civil time
    class_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=50)

    capacity = Column(Integer, nullable=False)
    category = Column(String(20), nullable=False, default=ClassCategory.GROUP.value)
    equipment = Column(String(20), nullable=False, default=EquipmentType.MAT.value)

    # Mutated only inside the class lock, in the same transaction as the booking row
    enrolled = Column(Integer, nullable=False, default=0)

    status = Column(String(20), nullable=False, default=ClassStatus.ACTIVE.value)
    notifications_enabled = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("capacity >= 1", name="ck_class_slots_capacity_positive"),
        CheckConstraint(
            "enrolled >= 0 AND enrolled <= capacity", name="ck_class_slots_enrolled_bounds"
        ),
        CheckConstraint("duration_minutes > 0", name="ck_class_slots_duration_positive"),
        CheckConstraint("category IN ('group', 'personal')", name="ck_class_slots_category"),
        CheckConstraint(
            "equipment IN ('mat', 'reformer', 'both')", name="ck_class_slots_equipment"
        ),
        CheckConstraint("status IN ('active', 'cancelled')", name="ck_class_slots_status"),
        Index("ix_class_slots_date_time", "class_date", "start_time"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == ClassStatus.ACTIVE

    def __repr__(self) -> str:
        return (
            f"<ClassSlot {self.id}: {self.category}/{self.equipment} "
            f"{self.class_date} {self.start_time} enrolled={self.enrolled}/{self.capacity} "
            f"status={self.status}>"
        )
