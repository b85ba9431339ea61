"""Capacity-bounded, arrival-ordered row store."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Iterator
from typing import Deque

from .stream_schema import CanonicalRow

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class BoundedStreamBuffer:
    """Ordered store of canonical rows holding at most ``max_items`` entries.

    Eviction is strict FIFO: the oldest surviving rows are dropped first,
    regardless of their field values. The buffer performs no locking; its
    owner serializes ``append``/``replace``/``clear`` calls.

    Parameters
    ----------
    max_items : int
        Capacity, at least 1.
    """

    def __init__(self, max_items: int) -> None:
        if isinstance(max_items, bool) or not isinstance(max_items, int) or max_items < 1:
            raise ValueError(f"max_items must be a positive integer, got {max_items!r}")
        self._max_items = max_items
        self._rows: Deque[CanonicalRow] = deque()

    @property
    def max_items(self) -> int:
        return self._max_items

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[CanonicalRow]:
        return iter(self._rows)

    def __repr__(self) -> str:
        return f"BoundedStreamBuffer(len={len(self._rows)}, max_items={self._max_items})"

    def append(self, rows: Iterable[CanonicalRow]) -> int:
        """Insert ``rows`` at the tail, then evict from the head.

        Returns
        -------
        int
            Number of evicted rows.
        """
        self._rows.extend(rows)
        evicted = 0
        while len(self._rows) > self._max_items:
            self._rows.popleft()
            evicted += 1
        if evicted:
            logger.debug(f"evicted {evicted} rows (max_items={self._max_items})")
        return evicted

    def replace(self, rows: Iterable[CanonicalRow]) -> int:
        """Discard current contents and insert ``rows`` in caller order.

        When the batch alone exceeds capacity, only its last ``max_items`` rows
        are kept. Returns the number of batch rows dropped.
        """
        batch = list(rows)
        dropped = max(0, len(batch) - self._max_items)
        self._rows = deque(batch[dropped:])
        return dropped

    def clear(self) -> None:
        self._rows.clear()

    def snapshot(self) -> tuple[CanonicalRow, ...]:
        """Return the current rows as an immutable, arrival-ordered tuple."""
        return tuple(self._rows)


__all__ = ["BoundedStreamBuffer"]
