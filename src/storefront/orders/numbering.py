"""
Order number generation.

Order numbers look like ``ORD-1760870400123-K3Z9Q0W1B``: a prefix, the
creation time in milliseconds and nine random base-36 characters. The
ledger enforces uniqueness; the engine retries with a fresh number when an
insert collides.
"""

from __future__ import annotations

import secrets
import string
import threading
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

_ALPHABET = string.digits + string.ascii_uppercase


@runtime_checkable
class OrderNumberGenerator(Protocol):
    """Anything that can produce candidate order numbers."""

    def next(self) -> str:
        """Return a new candidate order number."""
        ...


class TimestampOrderNumberGenerator:
    """
    Generates ``{prefix}-{millis}-{suffix}`` order numbers.

    The millisecond component never goes backwards within one generator,
    even if the wall clock does.

    Example:
        >>> generator = TimestampOrderNumberGenerator()
        >>> generator.next()  # doctest: +SKIP
        'ORD-1760870400123-K3Z9Q0W1B'
    """

    def __init__(
        self,
        prefix: str = "ORD",
        suffix_length: int = 9,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if suffix_length < 1:
            raise ValueError("suffix_length must be at least 1")
        self._prefix = prefix
        self._suffix_length = suffix_length
        self._clock = clock
        self._last_millis = 0
        self._lock = threading.Lock()

    @property
    def prefix(self) -> str:
        return self._prefix

    def _millis(self) -> int:
        with self._lock:
            millis = max(int(self._clock() * 1000), self._last_millis)
            self._last_millis = millis
            return millis

    def next(self) -> str:
        suffix = "".join(secrets.choice(_ALPHABET) for _ in range(self._suffix_length))
        return f"{self._prefix}-{self._millis()}-{suffix}"


__all__ = [
    "OrderNumberGenerator",
    "TimestampOrderNumberGenerator",
]
