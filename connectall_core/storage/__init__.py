# connectall_core/storage/__init__.py

from .provider import SecureStore
from .providers.memory_provider import InMemorySecureStore
from .providers.sqlite_provider import SQLiteSecureStore
import os


def load_secure_store(config: dict | None = None) -> SecureStore:
    """
    Factory resolver for selecting the secure store backend.

    For now:
        - sqlite (default)
        - memory
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("CONNECTALL_STORE_PROVIDER", "sqlite")

    if provider == "memory":
        return InMemorySecureStore()

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("CONNECTALL_DB_PATH", "db/connectall_keystore.db")
        return SQLiteSecureStore(db_path)

    raise ValueError(f"Unknown storage provider: {provider}")


__all__ = [
    "SecureStore",
    "InMemorySecureStore",
    "SQLiteSecureStore",
    "load_secure_store",
]
