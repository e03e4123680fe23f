"""Pydantic schemas for API requests and responses."""

from src.schemas.auth import AuthResponse, UserLogin, UserRegister, UserResponse
from src.schemas.couple import CoupleCreate, CoupleJoin, CoupleResponse
from src.schemas.notification import (
    DeliverySummaryResponse,
    PartnerNotificationRequest,
    PushSubscriptionCreate,
    PushSubscriptionResponse,
    VapidPublicKeyResponse,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "AuthResponse",
    "CoupleCreate",
    "CoupleJoin",
    "CoupleResponse",
    "PushSubscriptionCreate",
    "PushSubscriptionResponse",
    "VapidPublicKeyResponse",
    "PartnerNotificationRequest",
    "DeliverySummaryResponse",
]
