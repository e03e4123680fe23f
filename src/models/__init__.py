"""SQLAlchemy models."""

from src.models.couple import Couple
from src.models.push_subscription import PushSubscription
from src.models.user import User

__all__ = [
    "User",
    "Couple",
    "PushSubscription",
]
