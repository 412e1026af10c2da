"""Remote Hash - Atomic map operations over a remote key-value store.

Gives a dict-like view of a store hash, with compare-and-set style
operations implemented through WATCH/MULTI/EXEC optimistic transactions
and HSETNX.

Example:
    client = Client(RedisStore(Redis()))
    inventory = client.get_map("inventory")
    inventory["widget"] = 5
    inventory.replace_if_same("widget", 5, 3)  # True
    inventory.replace_if_same("widget", 5, 10)  # False, still 3
"""

from .client import Client
from .exceptions import (
    ClientShutdownError,
    ConnectionClosedError,
    MapDestroyedError,
    RemoteHashError,
    RetryLimitExceededError,
    SerializationError,
)
from .map import RemoteMap
from .retry import UNBOUNDED, RetryPolicy
from .scope import scoped_connection
from .stores import Connection, MemoryStore, Store

__version__ = "0.1.0"

__all__ = [
    "Client",
    "RemoteMap",
    "RetryPolicy",
    "UNBOUNDED",
    "scoped_connection",
    "RemoteHashError",
    "RetryLimitExceededError",
    "MapDestroyedError",
    "ConnectionClosedError",
    "ClientShutdownError",
    "SerializationError",
    "Store",
    "Connection",
    "MemoryStore",
]
