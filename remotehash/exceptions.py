"""Exceptions for remote hash maps."""


class RemoteHashError(Exception):
    """Base exception for remote hash map errors."""


class RetryLimitExceededError(RemoteHashError):
    """Raise when a conditional operation keeps conflicting past its retry limit."""

    def __init__(self, name: str, key: object, attempts: int) -> None:
        self.name = name
        self.key = key
        self.attempts = attempts
        super().__init__(
            f"Gave up on key {key!r} of map '{name}' after {attempts} attempts"
        )


class MapDestroyedError(RemoteHashError):
    """Raise when a map is used after destroy()."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Map '{name}' has been destroyed")


class ConnectionClosedError(RemoteHashError):
    """Raise when a command is issued on a released connection."""


class SerializationError(RemoteHashError):
    """Raise when a key or value can not be stored without changing it."""

    def __init__(self, value: object, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Cannot store {value!r}: {reason}")


class ClientShutdownError(RemoteHashError):
    """Raise when a client is used after shutdown()."""

    def __init__(self) -> None:
        super().__init__("Client has been shut down")
