"""HTTP delivery of encrypted Web Push messages to push service endpoints."""

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

URGENCIES = ("very-low", "low", "normal", "high")
GONE_STATUSES = (404, 410)


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one delivery attempt to one subscription."""

    subscription_id: int
    delivered: bool
    http_status: int | None = None
    should_prune: bool = False


class PushDispatcher:
    """Sends one encrypted body per call and classifies the push service response.

    A single attempt is made; failed deliveries are not retried.
    """

    def __init__(
        self,
        ttl: int = 86400,
        urgency: str = "high",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if urgency not in URGENCIES:
            raise ValueError(f"Invalid urgency: {urgency}")
        self.ttl = ttl
        self.urgency = urgency
        self.timeout = timeout
        self._client = client

    def build_headers(self, authorization: str) -> dict[str, str]:
        """Headers required by the Web Push protocol for an aes128gcm body."""
        return {
            "Content-Type": "application/octet-stream",
            "Content-Encoding": "aes128gcm",
            "Authorization": authorization,
            "TTL": str(self.ttl),
            "Urgency": self.urgency,
        }

    async def send(
        self,
        subscription_id: int,
        endpoint: str,
        body: bytes,
        authorization: str,
    ) -> DeliveryOutcome:
        """POST an encrypted body to a subscription endpoint."""
        headers = self.build_headers(authorization)
        try:
            if self._client is not None:
                response = await self._client.post(
                    endpoint, content=body, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(endpoint, content=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Push transport error for subscription {subscription_id}: {e!r}")
            return DeliveryOutcome(subscription_id=subscription_id, delivered=False)

        return self.classify(subscription_id, endpoint, response)

    def classify(
        self,
        subscription_id: int,
        endpoint: str,
        response: httpx.Response,
    ) -> DeliveryOutcome:
        """Map a push service response onto a delivery outcome."""
        status = response.status_code

        if 200 <= status < 300:
            return DeliveryOutcome(subscription_id, delivered=True, http_status=status)

        if status in GONE_STATUSES:
            logger.info(f"Push endpoint gone for subscription {subscription_id} ({status})")
            return DeliveryOutcome(
                subscription_id, delivered=False, http_status=status, should_prune=True
            )

        logger.error(
            f"Push failed for subscription {subscription_id} "
            f"{endpoint[:60]} -> {status}: {response.text[:200]}"
        )
        return DeliveryOutcome(subscription_id, delivered=False, http_status=status)
