"""
index_source.py - Interest index infrastructure for share accounting

Provides the external interest index that converts raw amounts to shares
and back. The index of a token starts at RAY (1.0) and never decreases.

Classes:
- IndexSource: Protocol defining the index interface
- StaticIndexSource: Indices that change only when explicitly updated
- TimeSeriesIndexSource: Index paths with point-in-time lookup

Functions:
- read_index: Read and validate one index observation
"""

from __future__ import annotations
from bisect import bisect_right
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .core import RAY, InvalidIndex


@runtime_checkable
class IndexSource(Protocol):
    """
    Protocol for interest index sources.

    current_index() returns the token's index at RAY scale. Callers must not
    assume two reads return the same value.
    """

    def current_index(self, token: str) -> int:
        """Return the current index of a token."""
        ...


def read_index(source: IndexSource, token: str) -> int:
    """
    Read a token's index and validate it.

    A value below RAY is a fault of the source and is never clamped.

    Raises:
        InvalidIndex: If the value is not an int or is below RAY
    """
    index = source.current_index(token)
    if isinstance(index, bool) or not isinstance(index, int):
        raise InvalidIndex(f"Index for {token} must be int, got {type(index).__name__}")
    if index < RAY:
        raise InvalidIndex(f"Index for {token} below RAY: {index}")
    return index


def _check_monotonic(token: str, previous: Optional[int], index: int) -> None:
    if previous is not None and index < previous:
        raise ValueError(
            f"Index for {token} cannot decrease: {index} < {previous}"
        )


class StaticIndexSource:
    """
    Index source with explicitly updated indices.

    Indices stay fixed until update_index() is called. Updates may only move
    an index up.
    """

    def __init__(self, indices: Optional[Dict[str, int]] = None):
        """
        Initialize with a static index map.

        Args:
            indices: Dictionary mapping token ids to indices at RAY scale
        """
        self.indices: Dict[str, int] = dict(indices or {})

    def current_index(self, token: str) -> int:
        """Get the index of a token."""
        if token not in self.indices:
            raise InvalidIndex(f"No index for token {token}")
        return self.indices[token]

    def update_index(self, token: str, index: int) -> None:
        """
        Update the index of a token.

        Raises:
            ValueError: If the new index is below the current one
        """
        _check_monotonic(token, self.indices.get(token), index)
        self.indices[token] = index

    def update_indices(self, indices: Dict[str, int]) -> None:
        """Update multiple indices at once (all or nothing)."""
        for token, index in indices.items():
            _check_monotonic(token, self.indices.get(token), index)
        self.indices.update(indices)

    def __repr__(self):
        return f"StaticIndexSource({len(self.indices)} tokens)"


class TimeSeriesIndexSource:
    """
    Index source with time-varying indices.

    Stores index observations per token and answers with the most recent
    observation at or before the source's current time. The clock only
    moves forward.

    Example:
        source = TimeSeriesIndexSource({
            'aUSDC': [(t0, RAY), (t1, RAY * 101 // 100)],
        }, start_time=t0)
        source.advance_time(t1)
        source.current_index('aUSDC')  # RAY * 101 // 100
    """

    def __init__(
        self,
        index_paths: Optional[Dict[str, List[Tuple[datetime, int]]]] = None,
        start_time: Optional[datetime] = None,
    ):
        """
        Initialize index source.

        Args:
            index_paths: Optional dict mapping tokens to (timestamp, index) lists.
                         Each path must be non-decreasing in time order.
            start_time: Initial clock (default: 1970-01-01)
        """
        self._current_time: datetime = start_time or datetime(1970, 1, 1)
        self.index_history: Dict[str, List[Tuple[datetime, int]]] = {}

        if index_paths:
            for token, path in index_paths.items():
                if not path:
                    continue
                ordered = sorted(path, key=lambda x: x[0])
                for (_, before), (_, after) in zip(ordered, ordered[1:]):
                    _check_monotonic(token, before, after)
                self.index_history[token] = ordered

    @property
    def current_time(self) -> datetime:
        return self._current_time

    def advance_time(self, new_time: datetime) -> None:
        """
        Move the clock forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    def add_index(self, token: str, timestamp: datetime, index: int) -> None:
        """
        Add an index observation for a token.

        Raises:
            ValueError: If the observation would make the path decrease
        """
        history = self.index_history.setdefault(token, [])
        timestamps = [ts for ts, _ in history]
        pos = bisect_right(timestamps, timestamp)
        if pos > 0:
            _check_monotonic(token, history[pos - 1][1], index)
        if pos < len(history):
            _check_monotonic(token, index, history[pos][1])
        history.insert(pos, (timestamp, index))

    def get_index(self, token: str, timestamp: datetime) -> Optional[int]:
        """
        Get the index at or before a timestamp.

        Returns None if there is no observation at or before the timestamp.
        """
        history = self.index_history.get(token)
        if not history:
            return None
        timestamps = [ts for ts, _ in history]
        idx = bisect_right(timestamps, timestamp)
        if idx == 0:
            return None
        return history[idx - 1][1]

    def current_index(self, token: str) -> int:
        """Get the index of a token at the current time."""
        index = self.get_index(token, self._current_time)
        if index is None:
            raise InvalidIndex(f"No index for token {token} at {self._current_time}")
        return index

    def __repr__(self):
        total = sum(len(h) for h in self.index_history.values())
        return f"TimeSeriesIndexSource({len(self.index_history)} tokens, {total} observations)"
