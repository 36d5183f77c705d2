"""Equitable Stroke Control.

ESC caps each hole at a maximum that depends on the player's course
handicap, so a single blow-up hole cannot inflate the differential.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional, Protocol

from .errors import AmbiguousCourseHandicap, ScoreDataError


class UnknownHandicapPolicy(str, Enum):
    """How ESC treats a player whose course handicap is unknown."""

    MOST_LENIENT = "most_lenient"
    STRICTEST = "strictest"
    REJECT = "reject"


DEFAULT_UNKNOWN_HANDICAP_POLICY = UnknownHandicapPolicy.MOST_LENIENT

MAX_COURSE_HANDICAP = 54


class HoleLike(Protocol):
    @property
    def strokes(self) -> Optional[int]: ...

    @property
    def par(self) -> Optional[int]: ...


def resolve_course_handicap(
    course_handicap: int | None,
    policy: UnknownHandicapPolicy = DEFAULT_UNKNOWN_HANDICAP_POLICY,
) -> int:
    if course_handicap is not None:
        return course_handicap
    policy = UnknownHandicapPolicy(policy)
    if policy is UnknownHandicapPolicy.MOST_LENIENT:
        return MAX_COURSE_HANDICAP
    if policy is UnknownHandicapPolicy.STRICTEST:
        return 0
    raise AmbiguousCourseHandicap(
        "course handicap is unknown and the configured policy rejects a default"
    )


def esc_max_per_hole(course_handicap: int, par: int | None = None) -> int:
    """Return the most strokes that count on one hole."""

    if course_handicap <= 9:
        if par is None:
            raise ScoreDataError("par is required for the double bogey ESC band")
        return par + 2
    if course_handicap <= 19:
        return 7
    if course_handicap <= 29:
        return 8
    if course_handicap <= 39:
        return 9
    return 10


def apply_esc(
    hole_scores: Iterable[HoleLike],
    course_handicap: int | None,
    policy: UnknownHandicapPolicy = DEFAULT_UNKNOWN_HANDICAP_POLICY,
) -> int:
    """Sum the hole scores after capping each one at its ESC maximum.

    Holes without strokes are skipped. ``course_handicap=None`` is resolved
    through ``policy``.
    """

    effective = resolve_course_handicap(course_handicap, policy)
    adjusted = 0
    for hole in hole_scores:
        if hole.strokes is None:
            continue
        if hole.strokes < 1:
            raise ScoreDataError(f"invalid stroke count {hole.strokes}")
        adjusted += min(hole.strokes, esc_max_per_hole(effective, hole.par))
    return adjusted


def gross_score(hole_scores: Iterable[HoleLike]) -> int:
    return sum(hole.strokes for hole in hole_scores if hole.strokes is not None)


__all__ = [
    "DEFAULT_UNKNOWN_HANDICAP_POLICY",
    "MAX_COURSE_HANDICAP",
    "HoleLike",
    "UnknownHandicapPolicy",
    "apply_esc",
    "esc_max_per_hole",
    "gross_score",
    "resolve_course_handicap",
]
