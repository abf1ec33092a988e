# studio_booking/services/entitlement_evaluator.py
"""
Entitlement evaluation: may this subscription book this class?

Pure decision function. Rules run in a fixed order and the first failing
rule names the denial:

1. subscription active (and not past its end date)
2. credits remaining, unless the allotment is unlimited
3. category compatible with the class
4. equipment access covers the class requirement
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..core.enums import (
    PERSONAL_CATEGORY_BY_CAPACITY,
    PERSONAL_SUBSCRIPTION_CATEGORIES,
    ClassCategory,
    DenialReason,
    EquipmentType,
)
from ..models.class_slot import ClassSlot
from ..models.subscription import Subscription


@dataclass(frozen=True)
class EntitlementDecision:
    allowed: bool
    reason: DenialReason | None = None

    @classmethod
    def allow(cls) -> "EntitlementDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason) -> "EntitlementDecision":
        return cls(allowed=False, reason=reason)


class EntitlementEvaluator:
    """Decides booking eligibility from subscription and class attributes only."""

    def evaluate(
        self,
        subscription: Subscription | None,
        class_slot: ClassSlot,
        today: date | None = None,
    ) -> EntitlementDecision:
        if subscription is None or not subscription.is_active_on(today):
            return EntitlementDecision.deny(DenialReason.INACTIVE_SUBSCRIPTION)

        if not subscription.is_unlimited and subscription.remaining_classes <= 0:
            return EntitlementDecision.deny(DenialReason.NO_REMAINING_CREDITS)

        if not self.category_matches(subscription, class_slot):
            return EntitlementDecision.deny(DenialReason.CATEGORY_MISMATCH)

        if not self.equipment_matches(subscription.equipment_access, class_slot.equipment):
            return EntitlementDecision.deny(DenialReason.EQUIPMENT_MISMATCH)

        return EntitlementDecision.allow()

    @staticmethod
    def category_matches(subscription: Subscription, class_slot: ClassSlot) -> bool:
        if class_slot.category == ClassCategory.GROUP:
            if subscription.is_day_pass:
                return True
            return subscription.category not in PERSONAL_SUBSCRIPTION_CATEGORIES

        # Personal sessions: the head count picks the one plan that fits, no substitution.
        required = PERSONAL_CATEGORY_BY_CAPACITY.get(class_slot.capacity)
        return required is not None and subscription.category == required

    @staticmethod
    def equipment_matches(access: str, required: str) -> bool:
        if access == EquipmentType.BOTH:
            return True
        return access == required
