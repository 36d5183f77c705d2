from __future__ import annotations

from .errors import InvalidRating
from .rounding import round1

STANDARD_SLOPE = 113


def validate_ratings(course_rating: float, slope_rating: float) -> None:
    if slope_rating is None or slope_rating <= 0:
        raise InvalidRating(f"slope rating must be positive, got {slope_rating!r}")
    if course_rating is None or course_rating <= 0:
        raise InvalidRating(f"course rating must be positive, got {course_rating!r}")


def compute_differential(
    adjusted_gross: float, course_rating: float, slope_rating: float
) -> float:
    """(113 / slope) * (adjusted gross - course rating), to one decimal."""

    validate_ratings(course_rating, slope_rating)
    return round1((STANDARD_SLOPE / slope_rating) * (adjusted_gross - course_rating))


def compute_nine_hole_differential(
    adjusted_gross: float, course_rating: float, slope_rating: float
) -> float:
    """18-hole equivalent differential for a nine-hole score.

    ``course_rating`` and ``slope_rating`` are the 18-hole values; the rating
    is halved and the nine-hole differential doubled before rounding.
    """

    validate_ratings(course_rating, slope_rating)
    nine_hole = (STANDARD_SLOPE / slope_rating) * (adjusted_gross - course_rating / 2)
    return round1(nine_hole * 2)


__all__ = [
    "STANDARD_SLOPE",
    "compute_differential",
    "compute_nine_hole_differential",
    "validate_ratings",
]
