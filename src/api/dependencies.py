"""FastAPI dependencies for authentication, database and push delivery."""

from typing import Annotated

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.database import get_db
from src.models.user import User
from src.services.auth import decode_access_token
from src.services.notification_service import NotificationService, build_notification_service
from src.services.subscription_store import SqlSubscriptionStore
from src.services.vapid import VapidIdentity

security = HTTPBearer()


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    payload = decode_access_token(credentials.credentials)
    user_id = payload.get("sub") if payload else None

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def get_vapid_identity(request: Request) -> VapidIdentity:
    """Get the VAPID identity loaded at startup."""
    identity = getattr(request.app.state, "vapid_identity", None)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Push notifications are not configured",
        )
    return identity


def get_push_client() -> httpx.AsyncClient | None:
    """HTTP client shared by push deliveries; None opens one per request."""
    return None


def get_notification_service(
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[VapidIdentity, Depends(get_vapid_identity)],
    client: Annotated[httpx.AsyncClient | None, Depends(get_push_client)],
) -> NotificationService:
    """Get notification service with dependencies."""
    return build_notification_service(SqlSubscriptionStore(db), identity, client=client)
