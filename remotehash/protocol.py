"""Conditional hash operations built on watch/multi/execute.

The store has no compare-and-swap on hash fields. Each operation here
watches the hash, checks its precondition with fresh reads on the same
connection, queues the write in a transaction and commits. A commit
aborted by a foreign write sends the operation back to a fresh watch.

All functions expect a connection nobody else is using, normally one
obtained from ``scoped_connection``. Transport errors are never caught:
a commit may have been applied before the error surfaced, so retrying
across one could apply a mutation twice.
"""

import logging
from collections.abc import Callable

from .equality import values_equal
from .exceptions import RemoteHashError
from .retry import UNBOUNDED, RetryPolicy
from .stores.base import Connection

_LOGGER = logging.getLogger(__name__)


class Watch:
    """An active watch on one hash over one connection.

    Reads made through a Watch are covered by the conflict check of the
    transaction it opens. Create one with ``watch()``.
    """

    def __init__(self, connection: Connection, name: str) -> None:
        self.connection = connection
        self.name = name
        self.active = True

    def exists(self, key: object) -> bool:
        return self.connection.hexists(self.name, key)

    def get(self, key: object) -> object | None:
        return self.connection.hget(self.name, key)

    def holds(self, key: object, expected: object) -> bool:
        """Check that ``key`` exists and currently equals ``expected``."""
        return self.exists(key) and values_equal(
            self.connection, self.name, key, expected
        )

    def transaction(self) -> "Transaction":
        """Open a transaction guarded by this watch."""
        if not self.active:
            raise RemoteHashError(f"Watch on '{self.name}' is no longer active")
        return Transaction(self)

    def release(self) -> None:
        """Drop the watch without writing anything."""
        if self.active:
            self.active = False
            self.connection.unwatch()


class Transaction:
    """Mutations queued under a watch, applied all-or-nothing by commit()."""

    def __init__(self, watch: Watch) -> None:
        self._watch = watch
        self._queued = 0
        watch.connection.multi()

    def set(self, key: object, value: object) -> None:
        self._watch.connection.hset(self._watch.name, key, value)
        self._queued += 1

    def delete(self, key: object) -> None:
        self._watch.connection.hdel(self._watch.name, key)
        self._queued += 1

    def commit(self) -> bool:
        """Execute the queued mutations.

        Returns:
            True if every queued mutation was applied, False if the
            transaction was aborted because the watched hash changed
        """
        self._watch.active = False
        results = self._watch.connection.execute()
        return len(results) == self._queued


def watch(connection: Connection, name: str) -> Watch:
    """Start watching a hash on the given connection."""
    connection.watch(name)
    return Watch(connection, name)


def _mutate_if_same(
    connection: Connection,
    name: str,
    key: object,
    expected: object,
    mutate: Callable[[Transaction], None],
    retry: RetryPolicy,
) -> bool:
    attempts = retry.attempts(name, key)
    while True:
        attempt = next(attempts)

        current = watch(connection, name)
        if not current.holds(key, expected):
            # Observed under watch, so this is a correct answer right now
            current.release()
            return False

        transaction = current.transaction()
        mutate(transaction)
        if transaction.commit():
            return True

        _LOGGER.debug(
            "Commit conflict on key %r of map %r (attempt %d), retrying",
            key,
            name,
            attempt,
        )


def remove_if_same(
    connection: Connection,
    name: str,
    key: object,
    expected: object,
    retry: RetryPolicy = UNBOUNDED,
) -> bool:
    """Remove a field only if it currently holds the expected value.

    Args:
        connection: Dedicated connection
        name: Hash name
        key: Field to remove
        expected: Value the field must hold
        retry: Policy for commit conflicts

    Returns:
        True if the field was removed, False if it was absent or held
        another value

    Raises:
        RetryLimitExceededError: If ``retry`` gives up under contention
    """
    return _mutate_if_same(
        connection, name, key, expected, lambda tx: tx.delete(key), retry
    )


def replace_if_same(
    connection: Connection,
    name: str,
    key: object,
    old_value: object,
    new_value: object,
    retry: RetryPolicy = UNBOUNDED,
) -> bool:
    """Replace a field's value only if it currently holds ``old_value``.

    Returns:
        True if the value was replaced, False if the field was absent or
        held another value
    """
    return _mutate_if_same(
        connection, name, key, old_value, lambda tx: tx.set(key, new_value), retry
    )


def replace(
    connection: Connection,
    name: str,
    key: object,
    value: object,
    retry: RetryPolicy = UNBOUNDED,
) -> object | None:
    """Replace a field's value only if the field exists.

    A commit conflict is retried like in the compare-and-set variants,
    so None always means the field was absent under watch.

    Returns:
        The value that was replaced, None if the field was absent
    """
    attempts = retry.attempts(name, key)
    while True:
        attempt = next(attempts)

        current = watch(connection, name)
        if not current.exists(key):
            current.release()
            return None
        previous = current.get(key)

        transaction = current.transaction()
        transaction.set(key, value)
        if transaction.commit():
            return previous

        _LOGGER.debug(
            "Commit conflict on key %r of map %r (attempt %d), retrying",
            key,
            name,
            attempt,
        )


def put_if_absent(
    connection: Connection,
    name: str,
    key: object,
    value: object,
    retry: RetryPolicy = UNBOUNDED,
) -> object | None:
    """Set a field only if it does not exist yet.

    HSETNX decides atomically whether the field was created. When it was
    not, the current value is read back; if that read finds nothing the
    field was deleted in between and HSETNX is tried again.

    Returns:
        None if the field was created, otherwise the value it already held
    """
    attempts = retry.attempts(name, key)
    while True:
        attempt = next(attempts)

        if connection.hsetnx(name, key, value):
            return None

        previous = connection.hget(name, key)
        if previous is not None:
            return previous

        _LOGGER.debug(
            "Key %r of map %r vanished after HSETNX (attempt %d), retrying",
            key,
            name,
            attempt,
        )
