"""Value comparison against the live contents of a watched hash."""

from .stores.base import Connection


def values_equal(
    connection: Connection, name: str, key: object, expected: object
) -> bool:
    """Read a field afresh and compare it with an expected value.

    Only meaningful while ``name`` is watched on ``connection``: the read
    is then covered by the conflict check of the following execute().

    Args:
        connection: Connection holding the watch
        name: Hash name
        key: Field to read
        expected: Value to compare with (None = field must be absent)

    Returns:
        True if the current value equals ``expected``
    """
    current = connection.hget(name, key)
    if expected is None:
        return current is None
    return expected == current
