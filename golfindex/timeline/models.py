from __future__ import annotations

import datetime as dt
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ScoreDifferentialRecord(BaseModel):
    date: dt.date
    round_id: str = Field(serialization_alias="roundId")
    course_name: Optional[str] = Field(default=None, serialization_alias="courseName")
    gross_score: int = Field(serialization_alias="grossScore")
    adjusted_gross_score: int = Field(serialization_alias="adjustedGrossScore")
    course_rating: float = Field(serialization_alias="courseRating")
    slope_rating: int = Field(serialization_alias="slopeRating")
    differential: float
    is_nine_hole: bool = Field(default=False, serialization_alias="isNineHole")
    course_handicap_used: int = Field(serialization_alias="courseHandicapUsed")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ManualSource(BaseModel):
    kind: Literal["manual"] = "manual"
    note: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class RoundSource(BaseModel):
    kind: Literal["round"] = "round"
    round_id: str = Field(serialization_alias="roundId")
    course_name: Optional[str] = Field(default=None, serialization_alias="courseName")
    differential: float
    gross_score: int = Field(serialization_alias="grossScore")
    adjusted_gross_score: int = Field(serialization_alias="adjustedGrossScore")
    course_rating: float = Field(serialization_alias="courseRating")
    slope_rating: int = Field(serialization_alias="slopeRating")
    is_nine_hole: bool = Field(default=False, serialization_alias="isNineHole")
    course_handicap_used: int = Field(serialization_alias="courseHandicapUsed")
    # index carried into this round and used for its ESC cap
    prior_index: float = Field(serialization_alias="priorIndex")
    # None until three differentials exist
    computed_index: Optional[float] = Field(serialization_alias="computedIndex")
    differentials_used: int = Field(serialization_alias="differentialsUsed")
    window_size: int = Field(serialization_alias="windowSize")
    exceptional_reduction: float = Field(
        default=0.0, serialization_alias="exceptionalReduction"
    )
    # digests of the round's scored inputs and of the replay settings;
    # a stored snapshot is only reused while both still match
    inputs_fingerprint: Optional[str] = Field(
        default=None, serialization_alias="inputsFingerprint"
    )
    config_fingerprint: Optional[str] = Field(
        default=None, serialization_alias="configFingerprint"
    )

    model_config = ConfigDict(populate_by_name=True, frozen=True)


SnapshotSource = Annotated[Union[ManualSource, RoundSource], Field(discriminator="kind")]


class HandicapSnapshot(BaseModel):
    player_id: str = Field(serialization_alias="playerId")
    effective_date: dt.date = Field(serialization_alias="effectiveDate")
    handicap_index: float = Field(serialization_alias="handicapIndex")
    source: SnapshotSource

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def is_manual(self) -> bool:
        return isinstance(self.source, ManualSource)

    @property
    def source_round_id(self) -> Optional[str]:
        if isinstance(self.source, RoundSource):
            return self.source.round_id
        return None

    @property
    def sort_key(self) -> tuple[dt.date, str]:
        return (self.effective_date, self.source_round_id or "")

    def to_differential(self) -> ScoreDifferentialRecord:
        if not isinstance(self.source, RoundSource):
            raise ValueError("manual snapshots carry no differential")
        src = self.source
        return ScoreDifferentialRecord(
            date=self.effective_date,
            round_id=src.round_id,
            course_name=src.course_name,
            gross_score=src.gross_score,
            adjusted_gross_score=src.adjusted_gross_score,
            course_rating=src.course_rating,
            slope_rating=src.slope_rating,
            differential=src.differential,
            is_nine_hole=src.is_nine_hole,
            course_handicap_used=src.course_handicap_used,
        )


class TimelineError(BaseModel):
    player_id: str = Field(serialization_alias="playerId")
    round_id: Optional[str] = Field(default=None, serialization_alias="roundId")
    kind: str
    message: str

    model_config = ConfigDict(populate_by_name=True)


class TimelineResult(BaseModel):
    player_id: str = Field(serialization_alias="playerId")
    snapshots: List[HandicapSnapshot] = Field(default_factory=list)
    differentials: List[ScoreDifferentialRecord] = Field(default_factory=list)
    errors: List[TimelineError] = Field(default_factory=list)
    strategy: str = "full"
    recomputed_from: Optional[dt.date] = Field(
        default=None, serialization_alias="recomputedFrom"
    )

    model_config = ConfigDict(populate_by_name=True)

    @property
    def ok(self) -> bool:
        return not self.errors


class HandicapStatistics(BaseModel):
    total_rounds: int = Field(serialization_alias="totalRounds")
    rounds_in_window: int = Field(serialization_alias="roundsInWindow")
    differentials_used: int = Field(serialization_alias="differentialsUsed")
    adjustment: float = 0.0
    lowest_differential: Optional[float] = Field(
        default=None, serialization_alias="lowestDifferential"
    )
    highest_differential: Optional[float] = Field(
        default=None, serialization_alias="highestDifferential"
    )
    average_differential: Optional[float] = Field(
        default=None, serialization_alias="averageDifferential"
    )

    model_config = ConfigDict(populate_by_name=True)


class HandicapProjection(BaseModel):
    player_id: str = Field(serialization_alias="playerId")
    tee_set_id: str = Field(serialization_alias="teeSetId")
    handicap_index: float = Field(serialization_alias="handicapIndex")
    formatted: str
    course_handicap: int = Field(serialization_alias="courseHandicap")
    playing_handicap: int = Field(serialization_alias="playingHandicap")
    course_rating: float = Field(serialization_alias="courseRating")
    slope_rating: int = Field(serialization_alias="slopeRating")
    par: int

    model_config = ConfigDict(populate_by_name=True)


__all__ = [
    "HandicapProjection",
    "HandicapSnapshot",
    "HandicapStatistics",
    "ManualSource",
    "RoundSource",
    "ScoreDifferentialRecord",
    "SnapshotSource",
    "TimelineError",
    "TimelineResult",
]
