"""Notification-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.services.push_encryption import KeyFormatError, decode_recipient_keys


class PushKeys(BaseModel):
    """Keys issued by the browser's PushManager (base64url)."""

    p256dh: str = Field(..., max_length=200)
    auth: str = Field(..., max_length=100)


class PushSubscriptionCreate(BaseModel):
    """Schema for registering a push subscription."""

    endpoint: str = Field(..., min_length=1, max_length=1000)
    keys: PushKeys
    user_agent: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def validate_keys(self) -> "PushSubscriptionCreate":
        """Reject keys the encryptor could never use."""
        if not self.endpoint.startswith("https://"):
            raise ValueError("endpoint must be an https URL")
        try:
            decode_recipient_keys(self.keys.p256dh, self.keys.auth)
        except KeyFormatError as e:
            raise ValueError(f"invalid subscription keys: {e}") from e
        return self


class PushSubscriptionResponse(BaseModel):
    """Schema for push subscription response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    endpoint: str
    created_at: datetime


class VapidPublicKeyResponse(BaseModel):
    """Schema for VAPID public key response."""

    public_key: str | None


class PartnerNotificationRequest(BaseModel):
    """Schema for notifying the other member of the caller's couple."""

    type: str | None = Field(None, max_length=50)
    title: str | None = Field(None, max_length=200)
    body: str | None = None
    url: str | None = Field(None, max_length=500)
    tag: str | None = Field(None, max_length=100)


class DeliverySummaryResponse(BaseModel):
    """Schema for the per-request delivery counts."""

    model_config = ConfigDict(from_attributes=True)

    sent: int
    failed: int
    total: int
