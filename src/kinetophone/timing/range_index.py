"""
Range Index - overlap queries over closed intervals

Stores (start, end, payload) entries in parallel numpy arrays and answers
"which entries overlap this point / this range" with a vectorized mask.
Entries are returned in insertion order, which keeps resolution output
deterministic for a given sequence of inserts.

The index grows on demand: ``capacity_hint`` only sizes the initial
buffers and is never a limit.
"""

import logging
from typing import Any, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

MIN_CAPACITY = 16


class RangeIndex:
    """
    Interval index with closed-interval overlap semantics.

    An entry [s, e] overlaps point p when s <= p <= e, and overlaps the
    range [a, b] when s <= b and e >= a.
    """

    def __init__(self, capacity_hint: Optional[float] = None):
        """
        Initialize an empty index.

        Args:
            capacity_hint: Expected number of entries (sizes initial buffers)
        """
        capacity = MIN_CAPACITY
        if capacity_hint is not None and capacity_hint > 0:
            capacity = max(MIN_CAPACITY, int(capacity_hint))

        self._starts = np.zeros(capacity, dtype=np.float64)
        self._ends = np.zeros(capacity, dtype=np.float64)
        self._payloads: List[Any] = []

    def __len__(self) -> int:
        return len(self._payloads)

    @property
    def capacity(self) -> int:
        return len(self._starts)

    def _grow(self):
        new_capacity = self.capacity * 2
        logger.debug(f"RangeIndex growing {self.capacity} -> {new_capacity}")
        self._starts = np.resize(self._starts, new_capacity)
        self._ends = np.resize(self._ends, new_capacity)

    def insert(self, start: float, end: float, payload: Any):
        """Add an interval [start, end] carrying ``payload``."""
        if end < start:
            raise ValueError(f"Interval end {end} precedes start {start}")

        n = len(self._payloads)
        if n == self.capacity:
            self._grow()

        self._starts[n] = start
        self._ends[n] = end
        self._payloads.append(payload)

    def query(self, start: float, end: Optional[float] = None) -> List[Any]:
        """
        Find payloads overlapping a point or a closed range.

        Args:
            start: Query point, or range start when ``end`` is given
            end: Range end (inclusive)

        Returns:
            Matching payloads in insertion order
        """
        if end is None:
            end = start

        n = len(self._payloads)
        if n == 0:
            return []

        mask = (self._starts[:n] <= end) & (self._ends[:n] >= start)
        return [self._payloads[i] for i in np.flatnonzero(mask)]
