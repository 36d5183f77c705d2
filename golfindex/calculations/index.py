"""Handicap Index selection.

Selection happens in two separate steps: the most recent 20 differentials
are taken by round date, then the lowest K of that window are averaged.
Callers pass differentials ordered most recent first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from .rounding import round1

WINDOW_SIZE = 20
MIN_DIFFERENTIALS = 3
MAX_HANDICAP_INDEX = 54.0

# (max count, differentials used, adjustment), first match wins
_SELECTION_TABLE: tuple[tuple[int, int, float], ...] = (
    (3, 1, -2.0),
    (4, 1, -1.0),
    (5, 1, 0.0),
    (6, 2, -1.0),
    (8, 2, 0.0),
    (11, 3, 0.0),
    (14, 4, 0.0),
    (16, 5, 0.0),
    (18, 6, 0.0),
    (19, 7, 0.0),
)


@dataclass(frozen=True)
class IndexSelection:
    window: tuple[float, ...]
    used: tuple[float, ...]
    adjustment: float
    index: Optional[float]

    @property
    def count(self) -> int:
        return len(self.window)


def _table_row(count: int) -> tuple[int, float]:
    if count < MIN_DIFFERENTIALS:
        return 0, 0.0
    for max_count, used, adjustment in _SELECTION_TABLE:
        if count <= max_count:
            return used, adjustment
    return 8, 0.0


def differentials_used_count(count: int) -> int:
    return _table_row(min(count, WINDOW_SIZE))[0]


def handicap_adjustment(count: int) -> float:
    return _table_row(min(count, WINDOW_SIZE))[1]


def select_differentials(differentials: Sequence[float]) -> IndexSelection:
    window = tuple(differentials[:WINDOW_SIZE])
    used_count, adjustment = _table_row(len(window))
    if used_count == 0:
        return IndexSelection(window=window, used=(), adjustment=0.0, index=None)

    used = tuple(sorted(window)[:used_count])
    average = sum(used) / len(used)
    index = min(round1(average + adjustment), MAX_HANDICAP_INDEX)
    return IndexSelection(window=window, used=used, adjustment=adjustment, index=index)


def compute_handicap_index(differentials: Sequence[float]) -> Optional[float]:
    """Return the Handicap Index, or ``None`` when fewer than 3 differentials exist."""

    return select_differentials(differentials).index


def format_handicap(handicap: Optional[float]) -> str:
    if handicap is None:
        return "N/A"
    if handicap < 0:
        return f"+{abs(handicap):.1f}"
    return f"{handicap:.1f}"


__all__ = [
    "IndexSelection",
    "MAX_HANDICAP_INDEX",
    "MIN_DIFFERENTIALS",
    "WINDOW_SIZE",
    "compute_handicap_index",
    "differentials_used_count",
    "format_handicap",
    "handicap_adjustment",
    "select_differentials",
]
