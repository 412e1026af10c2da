"""Hash map backed by a remote store hash."""

from collections.abc import Iterator, Mapping, MutableMapping
from typing import TYPE_CHECKING

from . import protocol
from .exceptions import MapDestroyedError
from .retry import UNBOUNDED, RetryPolicy
from .scope import scoped_connection
from .stores.base import Connection, Store

if TYPE_CHECKING:
    from .client import Client


def _check_value(value: object) -> None:
    if value is None:
        raise ValueError("None can not be stored, it marks an absent field")


class RemoteMap(MutableMapping):
    """A dict-like view of one hash in a remote store.

    Nothing is cached locally: every call goes to the store, and other
    clients may change the hash at any time. Plain reads and writes run
    on the map's own connection. The conditional operations
    (remove_if_same, replace_if_same, replace, put_if_absent) are atomic
    with respect to every other client; each runs on a dedicated
    connection that is released when the call returns.

    Args:
        store: Store holding the hash
        name: Name of the hash
        retry: Policy for conflicting conditional operations
            (default: retry until the operation goes through)

    Example:
        inventory = RemoteMap(MemoryStore(), "inventory")
        inventory["widget"] = 5
        inventory.replace_if_same("widget", 5, 3)  # True
    """

    def __init__(
        self,
        store: Store,
        name: str,
        retry: RetryPolicy | None = None,
        client: "Client | None" = None,
    ) -> None:
        self.store = store
        self._name = name
        self.retry = retry or UNBOUNDED
        self._client = client
        self._connection: Connection | None = store.connect()

    @property
    def name(self) -> str:
        return self._name

    @property
    def destroyed(self) -> bool:
        return self._connection is None

    def _ambient(self) -> Connection:
        if self._connection is None:
            raise MapDestroyedError(self._name)
        return self._connection

    def _check_alive(self) -> None:
        if self._connection is None:
            raise MapDestroyedError(self._name)

    # -- Pass-through operations --

    def size(self) -> int:
        return self._ambient().hlen(self._name)

    def __len__(self) -> int:
        return self.size()

    def is_empty(self) -> bool:
        return self.size() == 0

    def contains_key(self, key: object) -> bool:
        return self._ambient().hexists(self._name, key)

    def __contains__(self, key: object) -> bool:
        return self.contains_key(key)

    def contains_value(self, value: object) -> bool:
        return value in self._ambient().hvals(self._name)

    def get(self, key: object, default: object = None) -> object:
        value = self._ambient().hget(self._name, key)
        return default if value is None else value

    def __getitem__(self, key: object) -> object:
        value = self._ambient().hget(self._name, key)
        if value is None:
            raise KeyError(key)
        return value

    def put(self, key: object, value: object) -> object | None:
        """Set a field and return the value it held before, if any.

        The read and the write are two separate commands; use replace()
        when the previous value must be exactly the one overwritten.
        """
        _check_value(value)
        connection = self._ambient()
        previous = connection.hget(self._name, key)
        connection.hset(self._name, key, value)
        return previous

    def __setitem__(self, key: object, value: object) -> None:
        _check_value(value)
        self._ambient().hset(self._name, key, value)

    def remove(self, key: object) -> object | None:
        """Delete a field and return the value it held, if any."""
        connection = self._ambient()
        previous = connection.hget(self._name, key)
        connection.hdel(self._name, key)
        return previous

    def __delitem__(self, key: object) -> None:
        if not self._ambient().hdel(self._name, key):
            raise KeyError(key)

    def put_all(self, mapping: Mapping[object, object]) -> None:
        for value in mapping.values():
            _check_value(value)
        self._ambient().hmset(self._name, mapping)

    def clear(self) -> None:
        self._ambient().delete(self._name)

    def keys(self) -> set[object]:  # type: ignore[override]
        return set(self._ambient().hkeys(self._name))

    def values(self) -> list[object]:  # type: ignore[override]
        return self._ambient().hvals(self._name)

    def items(self) -> list[tuple[object, object]]:  # type: ignore[override]
        return list(self._ambient().hgetall(self._name).items())

    def __iter__(self) -> Iterator[object]:
        return iter(self._ambient().hkeys(self._name))

    # -- Conditional operations --

    def remove_if_same(
        self, key: object, expected: object, retry: RetryPolicy | None = None
    ) -> bool:
        """Remove ``key`` only if it currently maps to ``expected``.

        Returns:
            True if the field was removed

        Raises:
            RetryLimitExceededError: If the retry policy gives up
        """
        self._check_alive()
        with scoped_connection(self.store) as connection:
            return protocol.remove_if_same(
                connection, self._name, key, expected, retry or self.retry
            )

    def replace_if_same(
        self,
        key: object,
        old_value: object,
        new_value: object,
        retry: RetryPolicy | None = None,
    ) -> bool:
        """Set ``key`` to ``new_value`` only if it currently maps to ``old_value``.

        Returns:
            True if the value was replaced
        """
        _check_value(new_value)
        self._check_alive()
        with scoped_connection(self.store) as connection:
            return protocol.replace_if_same(
                connection,
                self._name,
                key,
                old_value,
                new_value,
                retry or self.retry,
            )

    def replace(
        self, key: object, value: object, retry: RetryPolicy | None = None
    ) -> object | None:
        """Set ``key`` to ``value`` only if the key is present.

        Returns:
            The replaced value, None if the key was absent
        """
        _check_value(value)
        self._check_alive()
        with scoped_connection(self.store) as connection:
            return protocol.replace(
                connection, self._name, key, value, retry or self.retry
            )

    def put_if_absent(
        self, key: object, value: object, retry: RetryPolicy | None = None
    ) -> object | None:
        """Set ``key`` to ``value`` only if the key is absent.

        Returns:
            None if the value was stored, otherwise the existing value
        """
        _check_value(value)
        self._check_alive()
        with scoped_connection(self.store) as connection:
            return protocol.put_if_absent(
                connection, self._name, key, value, retry or self.retry
            )

    def setdefault(self, key: object, default: object = None) -> object:
        previous = self.put_if_absent(key, default)
        return default if previous is None else previous

    # -- Lifecycle --

    def destroy(self) -> None:
        """Release the map's connection and detach it from its client.

        The remote hash itself is left untouched; use clear() to delete it.
        """
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        try:
            connection.close()
        finally:
            if self._client is not None:
                self._client.remove(self)

    close = destroy

    def __enter__(self) -> "RemoteMap":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"
