# studio_booking/repositories/class_slot_repository.py
from sqlalchemy.orm import Session

from ..models.class_slot import ClassSlot
from .base_repository import BaseRepository


class ClassSlotRepository(BaseRepository[ClassSlot]):
    def __init__(self, db: Session):
        super().__init__(db, ClassSlot)
