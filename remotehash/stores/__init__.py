"""Storage backends for remote hash maps."""

from .base import Connection, Store
from .memory import MemoryConnection, MemoryStore

__all__ = ["Connection", "Store", "MemoryConnection", "MemoryStore", "RedisStore"]


def __getattr__(name: str) -> type:
    if name == "RedisStore":
        from .redis import RedisStore

        return RedisStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
