"""Couple model: the two-member group notifications are exchanged within."""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin

MAX_COUPLE_MEMBERS = 2


class Couple(Base, TimestampMixin):
    """A pair of users sharing one journey."""

    __tablename__ = "couples"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=True)
    invite_code = Column(String(32), unique=True, nullable=False, index=True)

    # Relationships
    members = relationship("User", back_populates="couple")

    @property
    def is_full(self) -> bool:
        """Check if the couple already has both members."""
        return len(self.members) >= MAX_COUPLE_MEMBERS
