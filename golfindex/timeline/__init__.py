"""Handicap timeline: snapshot models and the replay engine.

The storage-backed service lives in ``golfindex.timeline.service`` and is
imported from there directly.
"""

from .engine import ReplayConfig, ReplayState, replay
from .models import (
    HandicapSnapshot,
    ManualSource,
    RoundSource,
    ScoreDifferentialRecord,
    TimelineError,
    TimelineResult,
)

__all__ = [
    "HandicapSnapshot",
    "ManualSource",
    "ReplayConfig",
    "ReplayState",
    "RoundSource",
    "ScoreDifferentialRecord",
    "TimelineError",
    "TimelineResult",
    "replay",
]
