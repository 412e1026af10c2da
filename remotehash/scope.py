"""Dedicated connections for operations that watch."""

from collections.abc import Iterator
from contextlib import contextmanager

from .stores.base import Connection, Store


@contextmanager
def scoped_connection(store: Store) -> Iterator[Connection]:
    """Open a connection that is released on every exit path.

    Watches live on the connection, so each conditional operation gets
    its own and never touches the map's shared one.

    Example:
        with scoped_connection(store) as connection:
            remove_if_same(connection, "inventory", "widget", 5)
    """
    connection = store.connect()
    try:
        yield connection
    finally:
        connection.close()
