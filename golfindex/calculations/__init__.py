"""Pure WHS handicap formulas."""

from .differentials import compute_differential, compute_nine_hole_differential
from .errors import (
    AmbiguousCourseHandicap,
    HandicapError,
    InsufficientData,
    InvalidRating,
    ScoreDataError,
    TimelineCorruption,
)
from .esc import UnknownHandicapPolicy, apply_esc, esc_max_per_hole
from .exceptional import exceptional_score_reduction, is_exceptional_score
from .index import (
    compute_handicap_index,
    differentials_used_count,
    format_handicap,
    handicap_adjustment,
    select_differentials,
)
from .projection import course_handicap, net_score, playing_handicap
from .rounding import round1

__all__ = [
    "AmbiguousCourseHandicap",
    "HandicapError",
    "InsufficientData",
    "InvalidRating",
    "ScoreDataError",
    "TimelineCorruption",
    "UnknownHandicapPolicy",
    "apply_esc",
    "compute_differential",
    "compute_handicap_index",
    "compute_nine_hole_differential",
    "course_handicap",
    "differentials_used_count",
    "esc_max_per_hole",
    "exceptional_score_reduction",
    "format_handicap",
    "handicap_adjustment",
    "is_exceptional_score",
    "net_score",
    "playing_handicap",
    "round1",
    "select_differentials",
]
