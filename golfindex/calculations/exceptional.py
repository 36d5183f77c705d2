from __future__ import annotations

from .rounding import round1

EXCEPTIONAL_THRESHOLD = 7.0
LARGE_EXCEPTIONAL_THRESHOLD = 10.0


def _improvement(differential: float, handicap_index: float) -> float:
    # both inputs carry one decimal, so the difference does too
    return round1(handicap_index - differential)


def is_exceptional_score(differential: float, handicap_index: float) -> bool:
    """True when the differential beats the index by at least 7.0 strokes."""

    return _improvement(differential, handicap_index) >= EXCEPTIONAL_THRESHOLD


def exceptional_score_reduction(differential: float, handicap_index: float) -> float:
    improvement = _improvement(differential, handicap_index)
    if improvement >= LARGE_EXCEPTIONAL_THRESHOLD:
        return 2.0
    if improvement >= EXCEPTIONAL_THRESHOLD:
        return 1.0
    return 0.0


__all__ = [
    "EXCEPTIONAL_THRESHOLD",
    "LARGE_EXCEPTIONAL_THRESHOLD",
    "exceptional_score_reduction",
    "is_exceptional_score",
]
