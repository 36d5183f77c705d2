from __future__ import annotations


class HandicapError(Exception):
    """Base class for handicap calculation failures."""

    kind = "handicap_error"


class InsufficientData(HandicapError):
    """Raised by lookups that need an index when fewer than 3 differentials exist."""

    kind = "insufficient_data"

    def __init__(self, available: int, required: int = 3):
        self.available = available
        self.required = required
        super().__init__(
            f"insufficient rounds to calculate handicap (minimum {required} required,"
            f" {available} available)"
        )


class InvalidRating(HandicapError):
    kind = "invalid_rating"


class AmbiguousCourseHandicap(HandicapError):
    kind = "ambiguous_course_handicap"


class ScoreDataError(HandicapError):
    kind = "score_data"


class TimelineCorruption(HandicapError):
    """A round could not be scored while replaying a player's timeline."""

    kind = "timeline_corruption"

    def __init__(self, round_id: str | None, message: str, cause_kind: str | None = None):
        self.round_id = round_id
        self.cause_kind = cause_kind
        prefix = f"round {round_id}: " if round_id else ""
        super().__init__(f"{prefix}{message}")


__all__ = [
    "HandicapError",
    "InsufficientData",
    "InvalidRating",
    "AmbiguousCourseHandicap",
    "ScoreDataError",
    "TimelineCorruption",
]
