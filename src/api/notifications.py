"""Notification API endpoints for push subscriptions and partner notifications."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user, get_notification_service
from src.database import get_db
from src.models import PushSubscription
from src.models.user import User
from src.schemas.notification import (
    DeliverySummaryResponse,
    PartnerNotificationRequest,
    PushSubscriptionCreate,
    PushSubscriptionResponse,
    VapidPublicKeyResponse,
)
from src.services.notification_service import NotificationPayload, NotificationService
from src.services.push_encryption import PayloadTooLargeError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


def _require_couple(user: User) -> int:
    if user.couple_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No couple found")
    return user.couple_id


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
async def get_vapid_public_key(request: Request) -> VapidPublicKeyResponse:
    """Get the VAPID public key for push notification subscription."""
    identity = getattr(request.app.state, "vapid_identity", None)
    return VapidPublicKeyResponse(public_key=identity.public_key_b64 if identity else None)


@router.post("/subscribe", response_model=PushSubscriptionResponse)
async def subscribe_push(
    subscription: PushSubscriptionCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> PushSubscription:
    """Register this device for push notifications (upsert by endpoint)."""
    couple_id = _require_couple(current_user)

    push_sub = (
        db.query(PushSubscription)
        .filter(PushSubscription.endpoint == subscription.endpoint)
        .first()
    )
    if push_sub is None:
        push_sub = PushSubscription(endpoint=subscription.endpoint)
        db.add(push_sub)

    # An endpoint belongs to one browser; the latest login owns it
    push_sub.user_id = current_user.id
    push_sub.couple_id = couple_id
    push_sub.p256dh_key = subscription.keys.p256dh
    push_sub.auth_key = subscription.keys.auth
    push_sub.user_agent = subscription.user_agent

    db.commit()
    db.refresh(push_sub)
    return push_sub


@router.delete("/subscribe")
async def unsubscribe_push(
    endpoint: str,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    """Unsubscribe this device from push notifications."""
    subscription = (
        db.query(PushSubscription)
        .filter(
            PushSubscription.user_id == current_user.id,
            PushSubscription.endpoint == endpoint,
        )
        .first()
    )

    if subscription:
        db.delete(subscription)
        db.commit()
        return {"message": "Unsubscribed successfully"}

    return {"message": "Subscription not found"}


@router.post("/partner", response_model=DeliverySummaryResponse)
async def notify_partner(
    request: PartnerNotificationRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[NotificationService, Depends(get_notification_service)],
) -> DeliverySummaryResponse:
    """Send a push notification to every device of the caller's partner."""
    couple_id = _require_couple(current_user)
    payload = NotificationPayload.for_event(
        type=request.type,
        title=request.title,
        body=request.body,
        url=request.url,
        tag=request.tag,
    )

    logger.info(f"User {current_user.id} sending '{payload.tag}' notification")
    try:
        summary = await service.deliver(couple_id, current_user.id, payload)
    except PayloadTooLargeError as e:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(e),
        ) from e

    return DeliverySummaryResponse.model_validate(summary)
