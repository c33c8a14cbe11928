"""
SQLAlchemy-backed profile store.

Profiles live in the `user_profiles` table as a JSON payload. SQLAlchemy
sessions are synchronous, so every operation runs in a worker thread.
"""
from __future__ import annotations

import asyncio

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from src.db.database import create_db_engine, init_db, make_session_factory, session_scope
from src.db.models import UserProfileRecord
from src.engine.exceptions import ProfileStoreError
from src.engine.models import UserProfile


class SqlProfileStore:
    """Profile store over any SQLAlchemy-supported database."""

    def __init__(self, database_url: str | None = None, create_tables: bool = True):
        self.engine = create_db_engine(database_url)
        self._session_factory = make_session_factory(self.engine)
        if create_tables:
            init_db(self.engine)

    async def load(self, user_id: str) -> UserProfile | None:
        return await asyncio.to_thread(self._load, user_id)

    async def save(self, user_id: str, profile: UserProfile) -> None:
        await asyncio.to_thread(self._save, user_id, profile)

    async def delete(self, user_id: str) -> None:
        await asyncio.to_thread(self._delete, user_id)

    def list_users(self) -> list[str]:
        with session_scope(self._session_factory) as session:
            return list(session.scalars(select(UserProfileRecord.user_id).order_by(UserProfileRecord.user_id)))

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Blocking implementations
    # ------------------------------------------------------------------

    def _load(self, user_id: str) -> UserProfile | None:
        try:
            with session_scope(self._session_factory) as session:
                record = session.get(UserProfileRecord, user_id)
                if record is None:
                    return None
                return UserProfile.from_dict(record.payload)
        except SQLAlchemyError as e:
            raise ProfileStoreError(user_id, "load", str(e)) from e
        except (KeyError, TypeError, ValueError) as e:
            raise ProfileStoreError(user_id, "load", f"corrupt payload: {e}") from e

    def _save(self, user_id: str, profile: UserProfile) -> None:
        try:
            with session_scope(self._session_factory) as session:
                record = session.get(UserProfileRecord, user_id)
                payload = profile.to_dict()
                if record is None:
                    session.add(UserProfileRecord(user_id=user_id, payload=payload))
                else:
                    record.payload = payload
            logger.debug(f"Saved profile {user_id}")
        except SQLAlchemyError as e:
            raise ProfileStoreError(user_id, "save", str(e)) from e

    def _delete(self, user_id: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.execute(delete(UserProfileRecord).where(UserProfileRecord.user_id == user_id))
        except SQLAlchemyError as e:
            raise ProfileStoreError(user_id, "delete", str(e)) from e
