"""In-memory store implementation."""

import itertools
import threading
from collections.abc import Mapping

from ..exceptions import ConnectionClosedError, RemoteHashError
from .base import Connection, Store

# Commands that are queued instead of applied while a transaction is open
_MUTATIONS = frozenset({"hset", "hdel", "hsetnx", "hmset", "delete"})


class MemoryStore(Store):
    """Thread-safe in-memory store with watch/transaction semantics.

    Every hash carries a version that changes on each modification;
    a connection watching a hash remembers the version it saw and its
    transaction aborts if the version moved before execute().

    Note: This store does NOT persist across processes or restarts.
    Use RedisStore to share maps between processes.
    """

    def __init__(self) -> None:
        self._hashes: dict[str, dict[object, object]] = {}
        self._versions: dict[str, int] = {}
        self._version_counter = itertools.count(1)
        self._global_lock = threading.Lock()
        self.connections_opened = 0
        self.connections_closed = 0

    @property
    def open_connections(self) -> int:
        """Number of connections handed out and not yet released."""
        with self._global_lock:
            return self.connections_opened - self.connections_closed

    def connect(self) -> "MemoryConnection":
        self._opened()
        return MemoryConnection(self)

    def clear(self) -> None:
        """Clear all hashes (useful for testing)."""
        with self._global_lock:
            for name in list(self._hashes):
                self._touch(name)
            self._hashes.clear()

    def _opened(self) -> None:
        with self._global_lock:
            self.connections_opened += 1

    def _released(self) -> None:
        with self._global_lock:
            self.connections_closed += 1

    def _version(self, name: str) -> int:
        return self._versions.get(name, 0)

    def _touch(self, name: str) -> None:
        self._versions[name] = next(self._version_counter)

    # Command implementations, always called with _global_lock held

    def _apply(self, command: str, args: tuple[object, ...]) -> object:
        return getattr(self, f"_cmd_{command}")(*args)

    def _cmd_hexists(self, name: str, key: object) -> bool:
        return key in self._hashes.get(name, {})

    def _cmd_hget(self, name: str, key: object) -> object | None:
        return self._hashes.get(name, {}).get(key)

    def _cmd_hset(self, name: str, key: object, value: object) -> int:
        fields = self._hashes.setdefault(name, {})
        created = key not in fields
        fields[key] = value
        self._touch(name)
        return int(created)

    def _cmd_hdel(self, name: str, key: object) -> int:
        fields = self._hashes.get(name)
        if not fields or key not in fields:
            return 0
        del fields[key]
        if not fields:
            del self._hashes[name]
        self._touch(name)
        return 1

    def _cmd_hsetnx(self, name: str, key: object, value: object) -> bool:
        fields = self._hashes.setdefault(name, {})
        if key in fields:
            return False
        fields[key] = value
        self._touch(name)
        return True

    def _cmd_hlen(self, name: str) -> int:
        return len(self._hashes.get(name, {}))

    def _cmd_hkeys(self, name: str) -> list[object]:
        return list(self._hashes.get(name, {}))

    def _cmd_hvals(self, name: str) -> list[object]:
        return list(self._hashes.get(name, {}).values())

    def _cmd_hgetall(self, name: str) -> dict[object, object]:
        return dict(self._hashes.get(name, {}))

    def _cmd_hmset(self, name: str, mapping: Mapping[object, object]) -> bool:
        if mapping:
            self._hashes.setdefault(name, {}).update(mapping)
            self._touch(name)
        return True

    def _cmd_delete(self, name: str) -> int:
        if name not in self._hashes:
            return 0
        del self._hashes[name]
        self._touch(name)
        return 1


class MemoryConnection(Connection):
    """Connection to a MemoryStore.

    Holds its own watch snapshot and transaction queue, like a socket
    to a real server would.
    """

    def __init__(self, store: MemoryStore) -> None:
        self._store = store
        self._watched: dict[str, int] = {}
        self._queue: list[tuple[str, tuple[object, ...]]] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _run(self, command: str, *args: object) -> object:
        self._check_open()
        if self._queue is not None and command in _MUTATIONS:
            self._queue.append((command, args))
            return None
        with self._store._global_lock:
            return self._store._apply(command, args)

    def _check_open(self) -> None:
        if self._closed:
            raise ConnectionClosedError("Connection has already been released")

    def hexists(self, name: str, key: object) -> bool:
        return bool(self._run("hexists", name, key))

    def hget(self, name: str, key: object) -> object | None:
        return self._run("hget", name, key)

    def hset(self, name: str, key: object, value: object) -> None:
        self._run("hset", name, key, value)

    def hdel(self, name: str, key: object) -> int | None:
        return self._run("hdel", name, key)  # type: ignore[return-value]

    def hsetnx(self, name: str, key: object, value: object) -> bool | None:
        return self._run("hsetnx", name, key, value)  # type: ignore[return-value]

    def hlen(self, name: str) -> int:
        return self._run("hlen", name)  # type: ignore[return-value]

    def hkeys(self, name: str) -> list[object]:
        return self._run("hkeys", name)  # type: ignore[return-value]

    def hvals(self, name: str) -> list[object]:
        return self._run("hvals", name)  # type: ignore[return-value]

    def hgetall(self, name: str) -> dict[object, object]:
        return self._run("hgetall", name)  # type: ignore[return-value]

    def hmset(self, name: str, mapping: Mapping[object, object]) -> None:
        self._run("hmset", name, dict(mapping))

    def delete(self, name: str) -> None:
        self._run("delete", name)

    def watch(self, name: str) -> None:
        self._check_open()
        if self._queue is not None:
            raise RemoteHashError("WATCH inside MULTI is not allowed")
        with self._store._global_lock:
            self._watched.setdefault(name, self._store._version(name))

    def unwatch(self) -> None:
        self._check_open()
        self._watched.clear()

    def multi(self) -> None:
        self._check_open()
        if self._queue is not None:
            raise RemoteHashError("MULTI calls can not be nested")
        self._queue = []

    def execute(self) -> list[object]:
        self._check_open()
        if self._queue is None:
            raise RemoteHashError("EXEC without MULTI")

        queue, self._queue = self._queue, None
        watched, self._watched = self._watched, {}

        with self._store._global_lock:
            for name, version in watched.items():
                if self._store._version(name) != version:
                    return []
            return [self._store._apply(command, args) for command, args in queue]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue = None
        self._watched.clear()
        self._store._released()
