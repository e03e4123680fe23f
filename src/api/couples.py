"""Couple pairing API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user
from src.database import get_db
from src.models import Couple
from src.models.user import User
from src.schemas.couple import CoupleCreate, CoupleJoin, CoupleResponse
from src.services.couple_service import CoupleError, create_couple, join_couple

router = APIRouter(prefix="/api/v1/couples", tags=["couples"])


@router.post("", response_model=CoupleResponse, status_code=status.HTTP_201_CREATED)
async def create(
    data: CoupleCreate,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> Couple:
    """Create a couple and become its first member."""
    try:
        return create_couple(db, current_user, data.name)
    except CoupleError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.post("/join", response_model=CoupleResponse)
async def join(
    data: CoupleJoin,
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> Couple:
    """Join a couple using its invite code."""
    try:
        couple = join_couple(db, current_user, data.invite_code)
    except CoupleError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    if couple is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite code not found")
    return couple


@router.get("/me", response_model=CoupleResponse)
async def get_my_couple(
    current_user: Annotated[User, Depends(get_current_user)],
) -> Couple:
    """Get the current user's couple."""
    if current_user.couple is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No couple found")
    return current_user.couple
