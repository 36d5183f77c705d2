from __future__ import annotations

from .differentials import STANDARD_SLOPE
from .errors import InvalidRating
from .rounding import round_half_away


def _check_slope(slope_rating: float) -> None:
    if slope_rating is None or slope_rating <= 0:
        raise InvalidRating(f"slope rating must be positive, got {slope_rating!r}")


def course_handicap(handicap_index: float, slope_rating: float) -> int:
    """Handicap Index x (Slope / 113), rounded to the nearest stroke."""

    _check_slope(slope_rating)
    return round_half_away(handicap_index * (slope_rating / STANDARD_SLOPE))


def playing_handicap(
    handicap_index: float, slope_rating: float, course_rating: float, par: int
) -> int:
    """Course Handicap adjusted by (Course Rating - Par)."""

    _check_slope(slope_rating)
    return round_half_away(
        handicap_index * (slope_rating / STANDARD_SLOPE) + (course_rating - par)
    )


def net_score(gross: int, playing: int) -> int:
    return gross - playing


__all__ = ["course_handicap", "net_score", "playing_handicap"]
