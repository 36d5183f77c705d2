from .models import HoleScore, Round, RoundScores, RoundStatus, ScoredRound
from .service import (
    CorruptRoundData,
    IncompleteRound,
    RoundNotFound,
    RoundOwnershipError,
    RoundService,
    RoundStateError,
    get_round_service,
)

__all__ = [
    "CorruptRoundData",
    "HoleScore",
    "IncompleteRound",
    "Round",
    "RoundNotFound",
    "RoundOwnershipError",
    "RoundScores",
    "RoundService",
    "RoundStateError",
    "RoundStatus",
    "ScoredRound",
    "get_round_service",
]
