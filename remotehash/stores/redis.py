"""Redis-based store implementation using WATCH/MULTI/EXEC."""

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING

from redis.exceptions import WatchError

from ..exceptions import ConnectionClosedError, SerializationError
from .base import Connection, Store

if TYPE_CHECKING:
    from redis import Redis
    from redis.client import Pipeline


class RedisStore(Store):
    """Redis-based store for remote hash maps.

    Each map is one Redis hash. Fields and values are stored as JSON,
    so keys and values must be JSON-serializable.

    Args:
        client: Redis client instance
        prefix: Key prefix for namespacing (default: "")
    """

    def __init__(self, client: "Redis", prefix: str = "") -> None:
        self.client = client
        self.prefix = prefix

    def connect(self) -> "RedisConnection":
        return RedisConnection(self.client, self.prefix)

    def close(self) -> None:
        self.client.close()


class RedisConnection(Connection):
    """Connection backed by a redis-py transactional pipeline.

    Plain commands go through the client's connection pool. Once watch()
    or multi() has been called they go through the pipeline, which pins a
    single pooled socket so that the WATCH, the reads and the EXEC all
    happen on it.
    """

    def __init__(self, client: "Redis", prefix: str = "") -> None:
        self._client = client
        self._prefix = prefix
        self._pipe: "Pipeline" = client.pipeline(transaction=True)
        self._closed = False

    def _key(self, name: str) -> str:
        """Add prefix to hash name."""
        return f"{self._prefix}{name}"

    def _check_open(self) -> None:
        if self._closed:
            raise ConnectionClosedError("Connection has already been released")

    def _target(self) -> "Redis | Pipeline":
        self._check_open()
        if self._pipe.watching or self._pipe.explicit_transaction:
            return self._pipe
        return self._client

    def _queued(self) -> bool:
        return bool(self._pipe.explicit_transaction)

    def _encode(self, value: object) -> str:
        """Encode a key or value as JSON.

        Raises:
            SerializationError: If the value is not JSON-serializable or
                would not decode back to an equal value (tuples, sets,
                non-string dict keys, NaN)
        """
        try:
            encoded = json.dumps(value, separators=(",", ":"), sort_keys=True)
        except (TypeError, ValueError) as e:
            raise SerializationError(value, str(e)) from e
        if json.loads(encoded) != value:
            raise SerializationError(value, "it would not read back as an equal value")
        return encoded

    def _encode_key(self, key: object) -> str:
        try:
            hash(key)
        except TypeError as e:
            raise SerializationError(key, "hash keys must be hashable") from e
        return self._encode(key)

    def _decode(self, raw: object) -> object | None:
        if raw is None:
            return None
        return json.loads(raw)  # type: ignore[arg-type]

    def hexists(self, name: str, key: object) -> bool:
        return bool(self._target().hexists(self._key(name), self._encode_key(key)))

    def hget(self, name: str, key: object) -> object | None:
        return self._decode(self._target().hget(self._key(name), self._encode_key(key)))

    def hset(self, name: str, key: object, value: object) -> None:
        self._target().hset(self._key(name), self._encode_key(key), self._encode(value))

    def hdel(self, name: str, key: object) -> int | None:
        result = self._target().hdel(self._key(name), self._encode_key(key))
        return None if self._queued() else int(result)

    def hsetnx(self, name: str, key: object, value: object) -> bool | None:
        result = self._target().hsetnx(
            self._key(name), self._encode_key(key), self._encode(value)
        )
        return None if self._queued() else bool(result)

    def hlen(self, name: str) -> int:
        return int(self._target().hlen(self._key(name)))

    def hkeys(self, name: str) -> list[object]:
        return [self._decode(raw) for raw in self._target().hkeys(self._key(name))]

    def hvals(self, name: str) -> list[object]:
        return [self._decode(raw) for raw in self._target().hvals(self._key(name))]

    def hgetall(self, name: str) -> dict[object, object]:
        raw = self._target().hgetall(self._key(name))
        return {self._decode(field): self._decode(value) for field, value in raw.items()}

    def hmset(self, name: str, mapping: Mapping[object, object]) -> None:
        if not mapping:
            return
        encoded = {self._encode_key(k): self._encode(v) for k, v in mapping.items()}
        self._target().hset(self._key(name), mapping=encoded)

    def delete(self, name: str) -> None:
        self._target().delete(self._key(name))

    def watch(self, name: str) -> None:
        self._check_open()
        self._pipe.watch(self._key(name))

    def unwatch(self) -> None:
        self._check_open()
        # reset() sends UNWATCH and hands the pinned socket back to the pool
        self._pipe.reset()

    def multi(self) -> None:
        self._check_open()
        self._pipe.multi()

    def execute(self) -> list[object]:
        self._check_open()
        try:
            return list(self._pipe.execute())
        except WatchError:
            return []

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pipe.reset()
