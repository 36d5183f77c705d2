from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

NineHoleMode = Literal["front", "back"]


class RoundStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Round(BaseModel):
    id: str
    player_id: str = Field(serialization_alias="playerId")
    tee_set_id: str = Field(serialization_alias="teeSetId")
    course_name: str | None = Field(default=None, serialization_alias="courseName")
    tee_name: str | None = Field(default=None, serialization_alias="teeName")
    course_rating: float = Field(serialization_alias="courseRating")
    slope_rating: int = Field(serialization_alias="slopeRating")
    total_par: int = Field(serialization_alias="totalPar")
    holes: int = 18
    date_played: date = Field(serialization_alias="datePlayed")
    status: RoundStatus = RoundStatus.IN_PROGRESS
    nine_hole_mode: Optional[NineHoleMode] = Field(
        default=None, serialization_alias="nineHoleMode"
    )
    started_at: datetime = Field(serialization_alias="startedAt")
    completed_at: datetime | None = Field(default=None, serialization_alias="completedAt")

    model_config = ConfigDict(populate_by_name=True)


class HoleScore(BaseModel):
    hole_number: int = Field(
        ge=1,
        le=27,
        serialization_alias="holeNumber",
        validation_alias=AliasChoices("hole_number", "holeNumber"),
    )
    par: Optional[int] = None
    strokes: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class RoundScores(BaseModel):
    round_id: str = Field(serialization_alias="roundId")
    player_id: str = Field(serialization_alias="playerId")
    holes: Dict[int, HoleScore] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


def hole_in_scope(hole_number: int, nine_hole_mode: Optional[str]) -> bool:
    if nine_hole_mode == "front":
        return hole_number <= 9
    if nine_hole_mode == "back":
        return hole_number > 9
    return True


@dataclass(frozen=True)
class ScoredRound:
    """A completed round as the timeline engine consumes it."""

    round_id: str
    player_id: str
    date_played: date
    course_rating: float
    slope_rating: int
    holes: tuple[HoleScore, ...]
    course_name: str | None = None
    is_nine_hole: bool = False

    @property
    def sort_key(self) -> tuple[date, str]:
        return (self.date_played, self.round_id)

    @property
    def gross_score(self) -> int:
        return sum(h.strokes for h in self.holes if h.strokes is not None)

    @property
    def fingerprint(self) -> str:
        """Digest of everything the round's differential is computed from."""

        return hash_value(
            {
                "holes": [[h.hole_number, h.par, h.strokes] for h in self.holes],
                "course_rating": self.course_rating,
                "slope_rating": self.slope_rating,
                "is_nine_hole": self.is_nine_hole,
            }
        )


class ScoreEdit(BaseModel):
    """One changed hole on a completed round."""

    id: str
    round_id: str = Field(serialization_alias="roundId")
    player_id: str = Field(serialization_alias="playerId")
    hole_number: int = Field(serialization_alias="holeNumber")
    old_strokes: Optional[int] = Field(default=None, serialization_alias="oldStrokes")
    new_strokes: Optional[int] = Field(default=None, serialization_alias="newStrokes")
    reason: Optional[str] = None
    edited_by: str = Field(serialization_alias="editedBy")
    edited_at: datetime = Field(serialization_alias="editedAt")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


def hash_value(value: object) -> str:
    serialized = json.dumps(value, sort_keys=True, separators=(",", ":")).encode()
    return hashlib.sha256(serialized).hexdigest()


@dataclass
class RoundRecord:
    id: str
    player_id: str
    tee_set_id: str
    course_name: str | None
    tee_name: str | None
    course_rating: float
    slope_rating: int
    date_played: date
    started_at: datetime
    pars: Dict[int, int] = field(default_factory=dict)
    status: RoundStatus = RoundStatus.IN_PROGRESS
    nine_hole_mode: Optional[str] = None
    completed_at: datetime | None = None

    @property
    def scoped_pars(self) -> Dict[int, int]:
        return {
            number: par
            for number, par in self.pars.items()
            if hole_in_scope(number, self.nine_hole_mode)
        }

    def to_round(self) -> Round:
        scoped = self.scoped_pars
        return Round(
            id=self.id,
            player_id=self.player_id,
            tee_set_id=self.tee_set_id,
            course_name=self.course_name,
            tee_name=self.tee_name,
            course_rating=self.course_rating,
            slope_rating=self.slope_rating,
            total_par=sum(scoped.values()),
            holes=len(scoped),
            date_played=self.date_played,
            status=self.status,
            nine_hole_mode=self.nine_hole_mode,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "player_id": self.player_id,
            "tee_set_id": self.tee_set_id,
            "course_name": self.course_name,
            "tee_name": self.tee_name,
            "course_rating": self.course_rating,
            "slope_rating": self.slope_rating,
            "date_played": self.date_played.isoformat(),
            "started_at": self.started_at.isoformat(),
            "pars": {str(number): par for number, par in sorted(self.pars.items())},
            "status": self.status.value,
            "nine_hole_mode": self.nine_hole_mode,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @staticmethod
    def from_dict(data: dict) -> "RoundRecord":
        return RoundRecord(
            id=data["id"],
            player_id=data["player_id"],
            tee_set_id=data["tee_set_id"],
            course_name=data.get("course_name"),
            tee_name=data.get("tee_name"),
            course_rating=float(data["course_rating"]),
            slope_rating=int(data["slope_rating"]),
            date_played=date.fromisoformat(data["date_played"]),
            started_at=_parse_dt(data["started_at"]),
            pars={int(k): int(v) for k, v in (data.get("pars") or {}).items()},
            status=RoundStatus(data.get("status", RoundStatus.IN_PROGRESS.value)),
            nine_hole_mode=data.get("nine_hole_mode"),
            completed_at=(
                _parse_dt(data["completed_at"]) if data.get("completed_at") else None
            ),
        )


def _parse_dt(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


ROUNDS_DIR = Path("data/rounds")

__all__ = [
    "HoleScore",
    "NineHoleMode",
    "ROUNDS_DIR",
    "Round",
    "RoundRecord",
    "RoundScores",
    "RoundStatus",
    "ScoreEdit",
    "ScoredRound",
    "hash_value",
    "hole_in_scope",
]
