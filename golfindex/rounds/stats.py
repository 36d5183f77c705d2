from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from golfindex.calculations.projection import net_score

from .models import RoundScores, hole_in_scope


class HoleResult(BaseModel):
    hole_number: int = Field(serialization_alias="holeNumber")
    par: int
    strokes: int
    to_par: int = Field(serialization_alias="toPar")

    model_config = ConfigDict(populate_by_name=True)


class ScoringDistribution(BaseModel):
    birdies_or_better: int = Field(default=0, serialization_alias="birdiesOrBetter")
    pars: int = 0
    bogeys: int = 0
    double_plus: int = Field(default=0, serialization_alias="doublePlus")

    model_config = ConfigDict(populate_by_name=True)


class RoundSummary(BaseModel):
    round_id: str = Field(serialization_alias="roundId")
    player_id: str = Field(serialization_alias="playerId")

    total_strokes: Optional[int] = Field(
        default=None, serialization_alias="totalStrokes"
    )
    total_par: Optional[int] = Field(default=None, serialization_alias="totalPar")
    total_to_par: Optional[int] = Field(default=None, serialization_alias="totalToPar")

    front_strokes: Optional[int] = Field(
        default=None, serialization_alias="frontStrokes"
    )
    front_par: Optional[int] = Field(default=None, serialization_alias="frontPar")
    back_strokes: Optional[int] = Field(default=None, serialization_alias="backStrokes")
    back_par: Optional[int] = Field(default=None, serialization_alias="backPar")

    net_score: Optional[int] = Field(default=None, serialization_alias="netScore")
    playing_handicap: Optional[int] = Field(
        default=None, serialization_alias="playingHandicap"
    )

    distribution: ScoringDistribution = Field(default_factory=ScoringDistribution)
    best_holes: List[HoleResult] = Field(
        default_factory=list, serialization_alias="bestHoles"
    )
    worst_holes: List[HoleResult] = Field(
        default_factory=list, serialization_alias="worstHoles"
    )

    holes_played: int = Field(serialization_alias="holesPlayed")

    model_config = ConfigDict(populate_by_name=True)


def _safe_sum(values: list[int | None]) -> int | None:
    filtered = [v for v in values if v is not None]
    if not filtered:
        return None
    return sum(filtered)


def compute_round_summary(
    scores: RoundScores,
    *,
    nine_hole_mode: Optional[str] = None,
    playing_handicap: Optional[int] = None,
) -> RoundSummary:
    strokes: list[int | None] = []
    pars: list[int | None] = []
    front_strokes: list[int | None] = []
    front_pars: list[int | None] = []
    back_strokes: list[int | None] = []
    back_pars: list[int | None] = []
    results: list[HoleResult] = []
    distribution = ScoringDistribution()

    for number, hole in sorted(scores.holes.items()):
        if not hole_in_scope(number, nine_hole_mode):
            continue
        strokes.append(hole.strokes)
        pars.append(hole.par)

        if number <= 9:
            front_strokes.append(hole.strokes)
            front_pars.append(hole.par)
        else:
            back_strokes.append(hole.strokes)
            back_pars.append(hole.par)

        if hole.strokes is None or hole.par is None:
            continue

        diff = hole.strokes - hole.par
        results.append(
            HoleResult(hole_number=number, par=hole.par, strokes=hole.strokes, to_par=diff)
        )
        if diff <= -1:
            distribution.birdies_or_better += 1
        elif diff == 0:
            distribution.pars += 1
        elif diff == 1:
            distribution.bogeys += 1
        else:
            distribution.double_plus += 1

    total_strokes = _safe_sum(strokes)
    total_par = _safe_sum(pars)

    total_to_par = None
    if total_strokes is not None and total_par is not None:
        total_to_par = total_strokes - total_par

    net = None
    if total_strokes is not None and playing_handicap is not None:
        net = net_score(total_strokes, playing_handicap)

    # stable sort keeps hole order among equal results
    ranked = sorted(results, key=lambda r: r.to_par)

    return RoundSummary(
        round_id=scores.round_id,
        player_id=scores.player_id,
        total_strokes=total_strokes,
        total_par=total_par,
        total_to_par=total_to_par,
        front_strokes=_safe_sum(front_strokes),
        front_par=_safe_sum(front_pars),
        back_strokes=_safe_sum(back_strokes),
        back_par=_safe_sum(back_pars),
        net_score=net,
        playing_handicap=playing_handicap,
        distribution=distribution,
        best_holes=ranked[:3],
        worst_holes=list(reversed(ranked[-3:])),
        holes_played=len(results),
    )


__all__ = [
    "HoleResult",
    "RoundSummary",
    "ScoringDistribution",
    "compute_round_summary",
]
