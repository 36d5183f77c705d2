"""Rounding helpers shared by the handicap formulas.

Python's ``round`` uses banker's rounding on the binary float value, which
turns ``2.25`` into ``2.2``. Handicap values are rounded half away from
zero on the shortest decimal form of the float instead.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

_TENTH = Decimal("0.1")
_ONE = Decimal("1")


def round1(value: float) -> float:
    # "+ 0.0" folds -0.0 into 0.0
    return float(Decimal(repr(value)).quantize(_TENTH, rounding=ROUND_HALF_UP)) + 0.0


def round_half_away(value: float) -> int:
    return int(Decimal(repr(value)).quantize(_ONE, rounding=ROUND_HALF_UP))


__all__ = ["round1", "round_half_away"]
