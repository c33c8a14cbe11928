"""
Profile persistence.

- ProfileStore: async load/save/delete contract
- InMemoryProfileStore: tests and simulations
- SqlProfileStore: SQLAlchemy-backed store (src.storage.sql_store)
"""
from src.storage.profile_store import InMemoryProfileStore, ProfileStore

__all__ = [
    "InMemoryProfileStore",
    "ProfileStore",
]
