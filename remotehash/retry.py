"""Retry policy for optimistic transactions."""

import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass

from .exceptions import RetryLimitExceededError

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How often a conflicting operation is attempted again.

    Attributes:
        max_attempts: Upper bound on attempts (None = retry forever)
        backoff: Seconds to sleep between attempts (0 = spin)
    """

    max_attempts: int | None = None
    backoff: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError(
                f"max_attempts must be at least 1, got {self.max_attempts}"
            )
        if self.backoff < 0:
            raise ValueError(f"backoff must not be negative, got {self.backoff}")

    def attempts(self, name: str, key: object) -> Iterator[int]:
        """Yield attempt numbers, sleeping between them.

        Args:
            name: Map name, for error reporting
            key: Field being operated on, for error reporting

        Yields:
            1, 2, 3, ... for as long as the policy allows

        Raises:
            RetryLimitExceededError: When the caller asks for one attempt
                more than max_attempts
        """
        attempt = 1
        while True:
            yield attempt

            if self.max_attempts is not None and attempt >= self.max_attempts:
                _LOGGER.warning(
                    "Retry limit reached for key %r of map %r after %d attempts",
                    key,
                    name,
                    attempt,
                )
                raise RetryLimitExceededError(name, key, attempt)

            if self.backoff:
                time.sleep(self.backoff)
            attempt += 1


UNBOUNDED = RetryPolicy()
