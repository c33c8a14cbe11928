"""
Profile storage model.

Profiles are stored as a single JSON payload per user; the engine owns
the schema of that payload (UserProfile.to_dict / from_dict).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserProfileRecord(Base):
    """One serialized UserProfile per user."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=func.now(), onupdate=func.now())
