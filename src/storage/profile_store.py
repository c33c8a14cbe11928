"""
Profile store contract and in-memory implementation.

The engine only needs three awaitable operations:

    load(user_id)  -> UserProfile | None
    save(user_id, profile) -> None
    delete(user_id) -> None

Implementations raise ProfileStoreError on failure; the engine decides
whether that is fatal.
"""
from __future__ import annotations

import copy
from typing import Protocol, runtime_checkable

from src.engine.models import UserProfile


@runtime_checkable
class ProfileStore(Protocol):
    async def load(self, user_id: str) -> UserProfile | None: ...

    async def save(self, user_id: str, profile: UserProfile) -> None: ...

    async def delete(self, user_id: str) -> None: ...


class InMemoryProfileStore:
    """Dict-backed store for tests and simulations. Stores deep copies."""

    def __init__(self, profiles: dict[str, UserProfile] | None = None):
        self._profiles: dict[str, UserProfile] = {
            user_id: copy.deepcopy(profile) for user_id, profile in (profiles or {}).items()
        }

    async def load(self, user_id: str) -> UserProfile | None:
        profile = self._profiles.get(user_id)
        return copy.deepcopy(profile) if profile is not None else None

    async def save(self, user_id: str, profile: UserProfile) -> None:
        self._profiles[user_id] = copy.deepcopy(profile)

    async def delete(self, user_id: str) -> None:
        self._profiles.pop(user_id, None)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)
