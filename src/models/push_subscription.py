"""Push subscription model for web push notifications."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin


class PushSubscription(Base, TimestampMixin):
    """Stores web push notification subscriptions, one row per device."""

    __tablename__ = "push_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    couple_id = Column(Integer, ForeignKey("couples.id"), nullable=False, index=True)
    endpoint = Column(String(1000), nullable=False, unique=True)
    p256dh_key = Column(String(200), nullable=False)
    auth_key = Column(String(100), nullable=False)
    user_agent = Column(String(500), nullable=True)

    # Relationships
    user = relationship("User", backref="push_subscriptions")
