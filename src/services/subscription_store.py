"""Lookup and pruning of push subscriptions."""

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.orm import Session

from src.models import PushSubscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushTarget:
    """Read-only snapshot of one subscription used during delivery."""

    id: int
    endpoint: str
    p256dh_key: str
    auth_key: str
    owner_id: int
    group_id: int


class SubscriptionStore(Protocol):
    """Keyed collection of push targets read and pruned by the delivery service."""

    def list_for_group(self, group_id: int, exclude_owner_id: int) -> list[PushTarget]: ...

    def delete(self, subscription_id: int) -> bool: ...


class SqlSubscriptionStore:
    """Subscription store backed by the push_subscriptions table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def list_for_group(self, group_id: int, exclude_owner_id: int) -> list[PushTarget]:
        """Get every subscription in the couple not owned by the given user."""
        rows = (
            self.db.query(PushSubscription)
            .filter(
                PushSubscription.couple_id == group_id,
                PushSubscription.user_id != exclude_owner_id,
            )
            .order_by(PushSubscription.id)
            .all()
        )
        return [
            PushTarget(
                id=row.id,
                endpoint=row.endpoint,
                p256dh_key=row.p256dh_key,
                auth_key=row.auth_key,
                owner_id=row.user_id,
                group_id=row.couple_id,
            )
            for row in rows
        ]

    def delete(self, subscription_id: int) -> bool:
        """Delete a subscription by id. Returns False if it was already gone."""
        deleted = (
            self.db.query(PushSubscription)
            .filter(PushSubscription.id == subscription_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if deleted:
            logger.info(f"Removed push subscription {subscription_id}")
        return bool(deleted)
