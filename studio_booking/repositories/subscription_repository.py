# studio_booking/repositories/subscription_repository.py
from typing import Optional

from sqlalchemy import case, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import SubscriptionStatus
from ..core.exceptions import RepositoryException
from ..models.subscription import Subscription
from .base_repository import BaseRepository


class SubscriptionRepository(BaseRepository[Subscription]):
    def __init__(self, db: Session):
        super().__init__(db, Subscription)

    def get_current_for_subscriber(
        self, subscriber_id: str, for_update: bool = False
    ) -> Optional[Subscription]:
        """
        The subscription a member books with.

        Latest subscription owned by the member, preferring active ones; an
        inactive row is returned only when no active one exists so the
        entitlement check can report it.
        """
        active_first = case((Subscription.status == SubscriptionStatus.ACTIVE.value, 0), else_=1)
        query = (
            self._build_query()
            .filter(Subscription.subscriber_id == subscriber_id)
            .order_by(active_first, Subscription.created_at.desc(), Subscription.id.desc())
        )
        if for_update:
            query = query.with_for_update().populate_existing()
        return self._execute_first(query)

    def consume_credit(self, subscription: Subscription) -> bool:
        """
        Take one class off the balance in a single guarded UPDATE.

        Returns False, leaving the balance untouched, when nothing is left.
        The instance is refreshed so callers see the stored balance.
        """
        stmt = (
            update(Subscription)
            .where(Subscription.id == subscription.id, Subscription.remaining_classes > 0)
            .values(remaining_classes=Subscription.remaining_classes - 1)
            .execution_options(synchronize_session=False)
        )
        return self._apply_balance_change(subscription, stmt)

    def refund_credit(self, subscription: Subscription) -> bool:
        stmt = (
            update(Subscription)
            .where(Subscription.id == subscription.id)
            .values(remaining_classes=Subscription.remaining_classes + 1)
            .execution_options(synchronize_session=False)
        )
        return self._apply_balance_change(subscription, stmt)

    def _apply_balance_change(self, subscription: Subscription, stmt) -> bool:
        try:
            result = self.db.execute(stmt)
            self.db.refresh(subscription)
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating balance of subscription {subscription.id}: {str(e)}")
            raise RepositoryException(f"Failed to update subscription balance: {str(e)}")
        return result.rowcount == 1
