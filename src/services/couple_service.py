"""Couple pairing: creating a couple and joining it by invite code."""

import logging
import secrets

from sqlalchemy.orm import Session

from src.models import Couple, User

logger = logging.getLogger(__name__)


class CoupleError(Exception):
    """Raised when a pairing request cannot be honoured."""


def _new_invite_code(db: Session) -> str:
    while True:
        code = secrets.token_urlsafe(6)
        if not db.query(Couple).filter(Couple.invite_code == code).first():
            return code


def create_couple(db: Session, user: User, name: str | None = None) -> Couple:
    """Create a couple with the user as its first member."""
    if user.couple_id is not None:
        raise CoupleError("Already part of a couple")

    couple = Couple(name=name, invite_code=_new_invite_code(db))
    db.add(couple)
    db.flush()
    user.couple_id = couple.id
    db.commit()
    db.refresh(couple)
    logger.info(f"User {user.id} created couple {couple.id}")
    return couple


def join_couple(db: Session, user: User, invite_code: str) -> Couple | None:
    """Add the user to the couple with the given invite code.

    Returns None when no couple has that code.
    """
    couple = db.query(Couple).filter(Couple.invite_code == invite_code).first()
    if couple is None:
        return None
    if user.couple_id is not None:
        raise CoupleError("Already part of a couple")
    if couple.is_full:
        raise CoupleError("Couple already has two members")

    user.couple_id = couple.id
    db.commit()
    db.refresh(couple)
    logger.info(f"User {user.id} joined couple {couple.id}")
    return couple
