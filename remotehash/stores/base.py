"""Base store interface for remote hashes."""

from abc import ABC, abstractmethod
from collections.abc import Mapping


class Connection(ABC):
    """A single conversation with the remote store.

    Watch and transaction state belong to the connection, so a connection
    must never be shared by two operations that watch at the same time.

    After multi(), the mutation commands (hset, hdel, hsetnx, hmset, delete)
    are queued instead of applied and return None. execute() then applies
    the queue atomically, or nothing at all if a watched hash was modified
    by someone else since watch().
    """

    @abstractmethod
    def hexists(self, name: str, key: object) -> bool:
        """Check whether a field exists in the hash."""
        pass

    @abstractmethod
    def hget(self, name: str, key: object) -> object | None:
        """Read a field.

        Returns:
            The stored value, None if the field is absent
        """
        pass

    @abstractmethod
    def hset(self, name: str, key: object, value: object) -> None:
        """Set a field, overwriting any current value."""
        pass

    @abstractmethod
    def hdel(self, name: str, key: object) -> int | None:
        """Delete a field.

        Returns:
            Number of fields removed (0 or 1)
        """
        pass

    @abstractmethod
    def hsetnx(self, name: str, key: object, value: object) -> bool | None:
        """Atomically set a field only if it does not exist yet.

        Returns:
            True if the field was created, False if it already existed
        """
        pass

    @abstractmethod
    def hlen(self, name: str) -> int:
        """Count the fields of the hash."""
        pass

    @abstractmethod
    def hkeys(self, name: str) -> list[object]:
        """List the field keys of the hash."""
        pass

    @abstractmethod
    def hvals(self, name: str) -> list[object]:
        """List the field values of the hash."""
        pass

    @abstractmethod
    def hgetall(self, name: str) -> dict[object, object]:
        """Read the whole hash."""
        pass

    @abstractmethod
    def hmset(self, name: str, mapping: Mapping[object, object]) -> None:
        """Set several fields at once."""
        pass

    @abstractmethod
    def delete(self, name: str) -> None:
        """Delete the whole hash."""
        pass

    @abstractmethod
    def watch(self, name: str) -> None:
        """Watch a hash for modification until the next execute() or unwatch()."""
        pass

    @abstractmethod
    def unwatch(self) -> None:
        """Forget every watch on this connection."""
        pass

    @abstractmethod
    def multi(self) -> None:
        """Start queueing mutation commands."""
        pass

    @abstractmethod
    def execute(self) -> list[object]:
        """Commit the queued commands.

        Returns:
            One result per queued command if the transaction committed,
            an empty list if it was aborted by a watch conflict
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the connection. Calling it again has no effect."""
        pass


class Store(ABC):
    """Abstract base class for remote hash stores.

    Stores are responsible for:
    - Handing out dedicated connections
    - Providing the watch/multi/execute transaction primitives
    - Providing atomic set-if-absent on hash fields
    """

    @abstractmethod
    def connect(self) -> Connection:
        """Open a dedicated connection.

        Returns:
            A connection the caller owns until it calls close()
        """
        pass

    def close(self) -> None:
        """Release resources held by the store itself."""
