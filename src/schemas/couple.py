"""Couple pairing schemas."""

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.auth import UserResponse


class CoupleCreate(BaseModel):
    """Schema for creating a couple."""

    name: str | None = Field(None, max_length=255)


class CoupleJoin(BaseModel):
    """Schema for joining a couple by invite code."""

    invite_code: str = Field(..., min_length=1, max_length=32)


class CoupleResponse(BaseModel):
    """Schema for couple response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None
    invite_code: str
    members: list[UserResponse]
