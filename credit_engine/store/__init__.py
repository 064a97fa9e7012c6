"""Account stores with per-record atomic updates."""

from credit_engine.store.base import AccountStore
from credit_engine.store.memory import InMemoryAccountStore
from credit_engine.store.postgres import PostgresAccountStore

__all__ = ["AccountStore", "InMemoryAccountStore", "PostgresAccountStore"]
