from datetime import date, time

import pytest

from studio_booking.core.enums import DenialReason
from studio_booking.models import ClassSlot, Subscription
from studio_booking.services.entitlement_evaluator import EntitlementEvaluator

TODAY = date(2026, 3, 10)


def _subscription(**overrides) -> Subscription:
    values = dict(
        subscriber_id="member-a",
        plan_name="Group mat",
        category="group",
        equipment_access="mat",
        monthly_allotment=8,
        remaining_classes=5,
        duration=1,
        duration_unit="months",
        status="active",
        end_date=None,
    )
    values.update(overrides)
    return Subscription(**values)


def _class(**overrides) -> ClassSlot:
    values = dict(
        id="01HZZZZZZZZZZZZZZZZZZZZZZZ",
        name="Mat Flow",
        class_date=TODAY,
        start_time=time(18, 0),
        duration_minutes=50,
        capacity=10,
        category="group",
        equipment="mat",
        enrolled=0,
        status="active",
    )
    values.update(overrides)
    return ClassSlot(**values)


@pytest.fixture
def evaluator() -> EntitlementEvaluator:
    return EntitlementEvaluator()


@pytest.mark.unit
class TestEntitlementRules:
    def test_group_mat_member_may_book_group_mat_class(self, evaluator):
        decision = evaluator.evaluate(_subscription(), _class(), TODAY)
        assert decision.allowed is True
        assert decision.reason is None

    def test_missing_subscription_is_inactive(self, evaluator):
        decision = evaluator.evaluate(None, _class(), TODAY)
        assert decision.reason is DenialReason.INACTIVE_SUBSCRIPTION

    def test_inactive_status_denied(self, evaluator):
        decision = evaluator.evaluate(_subscription(status="inactive"), _class(), TODAY)
        assert decision.reason is DenialReason.INACTIVE_SUBSCRIPTION

    def test_subscription_past_end_date_denied(self, evaluator):
        expired = _subscription(end_date=date(2026, 3, 9))
        decision = evaluator.evaluate(expired, _class(), TODAY)
        assert decision.reason is DenialReason.INACTIVE_SUBSCRIPTION

    def test_subscription_ending_today_still_active(self, evaluator):
        decision = evaluator.evaluate(_subscription(end_date=TODAY), _class(), TODAY)
        assert decision.allowed is True

    def test_zero_credits_denied(self, evaluator):
        decision = evaluator.evaluate(_subscription(remaining_classes=0), _class(), TODAY)
        assert decision.reason is DenialReason.NO_REMAINING_CREDITS

    def test_unlimited_plan_ignores_balance(self, evaluator):
        unlimited = _subscription(monthly_allotment=999, remaining_classes=0)
        assert evaluator.evaluate(unlimited, _class(), TODAY).allowed is True

    def test_inactive_reported_before_credits(self, evaluator):
        subscription = _subscription(status="inactive", remaining_classes=0)
        decision = evaluator.evaluate(subscription, _class(), TODAY)
        assert decision.reason is DenialReason.INACTIVE_SUBSCRIPTION

    def test_credits_reported_before_category(self, evaluator):
        subscription = _subscription(category="personal", remaining_classes=0)
        decision = evaluator.evaluate(subscription, _class(), TODAY)
        assert decision.reason is DenialReason.NO_REMAINING_CREDITS

    def test_category_reported_before_equipment(self, evaluator):
        subscription = _subscription(category="personal", equipment_access="mat")
        decision = evaluator.evaluate(subscription, _class(equipment="reformer"), TODAY)
        assert decision.reason is DenialReason.CATEGORY_MISMATCH


@pytest.mark.unit
class TestCategoryMatching:
    @pytest.mark.parametrize("category", ["personal", "personal_duo", "personal_trio"])
    def test_personal_plans_cannot_book_group_classes(self, evaluator, category):
        decision = evaluator.evaluate(_subscription(category=category), _class(), TODAY)
        assert decision.reason is DenialReason.CATEGORY_MISMATCH

    @pytest.mark.parametrize(
        "capacity, category",
        [(1, "personal"), (2, "personal_duo"), (3, "personal_trio")],
    )
    def test_personal_session_requires_plan_for_head_count(self, evaluator, capacity, category):
        personal_class = _class(category="personal", capacity=capacity)
        decision = evaluator.evaluate(_subscription(category=category), personal_class, TODAY)
        assert decision.allowed is True

    def test_solo_personal_plan_denied_for_duo_session(self, evaluator):
        duo_class = _class(category="personal", capacity=2)
        decision = evaluator.evaluate(_subscription(category="personal"), duo_class, TODAY)
        assert decision.reason is DenialReason.CATEGORY_MISMATCH

    def test_trio_plan_does_not_cover_duo_session(self, evaluator):
        duo_class = _class(category="personal", capacity=2)
        decision = evaluator.evaluate(_subscription(category="personal_trio"), duo_class, TODAY)
        assert decision.reason is DenialReason.CATEGORY_MISMATCH

    def test_group_plan_cannot_book_personal_session(self, evaluator):
        solo_class = _class(category="personal", capacity=1)
        decision = evaluator.evaluate(_subscription(category="group"), solo_class, TODAY)
        assert decision.reason is DenialReason.CATEGORY_MISMATCH

    def test_personal_session_with_unsupported_head_count(self, evaluator):
        big_class = _class(category="personal", capacity=4)
        decision = evaluator.evaluate(_subscription(category="personal"), big_class, TODAY)
        assert decision.reason is DenialReason.CATEGORY_MISMATCH

    def test_day_pass_may_book_group_class(self, evaluator):
        day_pass = _subscription(category="personal", duration=1, duration_unit="days")
        assert day_pass.is_day_pass is True
        assert evaluator.evaluate(day_pass, _class(), TODAY).allowed is True

    def test_two_day_pass_is_not_a_day_pass(self):
        assert _subscription(duration=2, duration_unit="days").is_day_pass is False


@pytest.mark.unit
class TestEquipmentMatching:
    def test_mat_access_denied_for_reformer_class(self, evaluator):
        decision = evaluator.evaluate(
            _subscription(equipment_access="mat"), _class(equipment="reformer"), TODAY
        )
        assert decision.reason is DenialReason.EQUIPMENT_MISMATCH

    def test_both_access_covers_reformer_class(self, evaluator):
        decision = evaluator.evaluate(
            _subscription(equipment_access="both"), _class(equipment="reformer"), TODAY
        )
        assert decision.allowed is True

    @pytest.mark.parametrize(
        "access, required, expected",
        [
            ("mat", "mat", True),
            ("reformer", "reformer", True),
            ("reformer", "mat", False),
            ("both", "mat", True),
            ("both", "both", True),
            ("mat", "both", False),
        ],
    )
    def test_equipment_matrix(self, access, required, expected):
        assert EntitlementEvaluator.equipment_matches(access, required) is expected
