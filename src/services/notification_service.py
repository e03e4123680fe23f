"""Notification service: fans a push notification out to a couple's other member."""

import asyncio
import json
import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass

import httpx

from src.config import Settings, get_settings
from src.services.push_dispatcher import DeliveryOutcome, PushDispatcher
from src.services.push_encryption import (
    MAX_RECORD_SIZE,
    KeyFormatError,
    PayloadTooLargeError,
    PushEncryptionError,
    encrypt_payload,
    encrypted_length,
)
from src.services.subscription_store import PushTarget, SubscriptionStore
from src.services.vapid import VapidAuthenticator, VapidIdentity, VapidSigningError

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Our Journey 💕"
DEFAULT_ICON = "/icon-192x192.png"
DEFAULT_BADGE = "/icon-96x96.png"


@dataclass(frozen=True)
class NotificationPayload:
    """Content rendered by the recipient's service worker."""

    title: str
    body: str = ""
    url: str = "/"
    tag: str = "general"
    icon: str | None = DEFAULT_ICON
    badge: str | None = DEFAULT_BADGE

    @classmethod
    def for_event(
        cls,
        type: str | None = None,
        title: str | None = None,
        body: str | None = None,
        url: str | None = None,
        tag: str | None = None,
    ) -> "NotificationPayload":
        """Build a payload from an app event, filling in defaults for blank fields."""
        return cls(
            title=title or DEFAULT_TITLE,
            body=body or "",
            url=url or "/",
            tag=tag or type or "general",
        )

    def to_json(self) -> bytes:
        """Serialize to compact UTF-8 JSON, omitting unset fields."""
        data = {key: value for key, value in asdict(self).items() if value is not None}
        return json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True)
class DeliverySummary:
    """Aggregate counts of one delivery run."""

    sent: int = 0
    failed: int = 0
    total: int = 0

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[DeliveryOutcome]) -> "DeliverySummary":
        outcomes = list(outcomes)
        sent = sum(1 for outcome in outcomes if outcome.delivered)
        return cls(sent=sent, failed=len(outcomes) - sent, total=len(outcomes))


class NotificationService:
    """Service for delivering web push notifications to every device of a partner."""

    def __init__(
        self,
        store: SubscriptionStore,
        authenticator: VapidAuthenticator,
        dispatcher: PushDispatcher,
        max_concurrency: int = 10,
        max_record_size: int = MAX_RECORD_SIZE,
    ) -> None:
        self.store = store
        self.authenticator = authenticator
        self.dispatcher = dispatcher
        self.max_concurrency = max_concurrency
        self.max_record_size = max_record_size

    async def deliver(
        self,
        group_id: int,
        exclude_owner_id: int,
        payload: NotificationPayload,
    ) -> DeliverySummary:
        """
        Send a notification to all subscriptions in the group except the sender's.

        Individual subscription failures are counted, never raised.

        Raises:
            PayloadTooLargeError: if the encrypted payload cannot fit in one record.
        """
        body = payload.to_json()
        size = encrypted_length(len(body))
        if size > self.max_record_size:
            raise PayloadTooLargeError(
                f"Encrypted payload would be {size} bytes (limit {self.max_record_size})"
            )

        targets = self.store.list_for_group(group_id, exclude_owner_id)
        if not targets:
            logger.info(f"No push subscriptions for partner in couple {group_id}")
            return DeliverySummary()

        logger.info(f"Sending push to {len(targets)} device(s) in couple {group_id}")

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(target: PushTarget) -> DeliveryOutcome:
            async with semaphore:
                return await self._deliver_one(target, body)

        results = await asyncio.gather(
            *(bounded(target) for target in targets), return_exceptions=True
        )

        outcomes = []
        for target, result in zip(targets, results, strict=True):
            if isinstance(result, DeliveryOutcome):
                outcomes.append(result)
            elif isinstance(result, Exception):
                logger.error(f"Unexpected error delivering to subscription {target.id}: {result!r}")
                outcomes.append(DeliveryOutcome(subscription_id=target.id, delivered=False))
            else:
                raise result

        summary = DeliverySummary.from_outcomes(outcomes)
        logger.info(f"Sent push to {summary.sent}/{summary.total} devices in couple {group_id}")
        return summary

    async def _deliver_one(self, target: PushTarget, body: bytes) -> DeliveryOutcome:
        """Encrypt, sign and dispatch for one subscription, pruning it if gone."""
        try:
            encrypted = encrypt_payload(body, target.p256dh_key, target.auth_key)
        except KeyFormatError as e:
            logger.warning(f"Skipping subscription {target.id} with malformed keys: {e}")
            return DeliveryOutcome(subscription_id=target.id, delivered=False)
        except PushEncryptionError as e:
            logger.error(f"Encryption failed for subscription {target.id}: {e}")
            return DeliveryOutcome(subscription_id=target.id, delivered=False)

        try:
            authorization = self.authenticator.authorization_header(target.endpoint)
        except VapidSigningError as e:
            logger.error(f"VAPID signing failed for subscription {target.id}: {e}")
            return DeliveryOutcome(subscription_id=target.id, delivered=False)

        outcome = await self.dispatcher.send(target.id, target.endpoint, encrypted, authorization)

        if outcome.should_prune:
            logger.info(f"Removing expired subscription {target.id}: {target.endpoint[:60]}")
            try:
                self.store.delete(target.id)
            except Exception as e:
                # Outcome is already a failure either way
                logger.error(f"Failed to remove subscription {target.id}: {e}")

        return outcome


def build_notification_service(
    store: SubscriptionStore,
    identity: VapidIdentity,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
) -> NotificationService:
    """Get a notification service configured from application settings."""
    settings = settings or get_settings()
    return NotificationService(
        store=store,
        authenticator=VapidAuthenticator(identity, settings.vapid_token_expiry_seconds),
        dispatcher=PushDispatcher(
            ttl=settings.push_ttl_seconds,
            urgency=settings.push_urgency,
            timeout=settings.push_timeout_seconds,
            client=client,
        ),
        max_concurrency=settings.push_max_concurrency,
        max_record_size=settings.push_max_record_size,
    )
