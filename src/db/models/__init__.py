# SQLAlchemy models
from .base import Base
from .profile import UserProfileRecord

__all__ = [
    "Base",
    "UserProfileRecord",
]
