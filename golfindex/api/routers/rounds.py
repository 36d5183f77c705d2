from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Sequence

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from golfindex.api.security import require_api_key
from golfindex.api.user_header import UserIdHeader, derive_player_id
from golfindex.calculations.index import format_handicap
from golfindex.calculations.projection import playing_handicap
from golfindex.calculations.rounding import round1
from golfindex.courses import CourseStore, TeeSetNotFound, get_course_store
from golfindex.rounds.models import NineHoleMode, Round, RoundScores, ScoreEdit
from golfindex.rounds.service import (
    RoundNotFound,
    RoundOwnershipError,
    RoundService,
    RoundStateError,
    get_round_service,
)
from golfindex.rounds.stats import RoundSummary, compute_round_summary
from golfindex.timeline.models import (
    HandicapSnapshot,
    RoundSource,
    TimelineError,
    TimelineResult,
)
from golfindex.timeline.service import HandicapService, get_handicap_service
from golfindex.timeline.store import CorruptHistory

router = APIRouter(
    prefix="/api/rounds", tags=["rounds"], dependencies=[Depends(require_api_key)]
)

logger = logging.getLogger(__name__)


class StartRoundRequest(BaseModel):
    tee_set_id: str = Field(
        validation_alias=AliasChoices("tee_set_id", "teeSetId"),
        serialization_alias="teeSetId",
    )
    date_played: date | None = Field(
        default=None,
        validation_alias=AliasChoices("date_played", "datePlayed"),
        serialization_alias="datePlayed",
    )

    model_config = ConfigDict(populate_by_name=True)


class UpdateHoleScoreRequest(BaseModel):
    strokes: int | None = Field(default=None, ge=1)


class CompleteRoundRequest(BaseModel):
    nine_hole_mode: Optional[NineHoleMode] = Field(
        default=None,
        validation_alias=AliasChoices("nine_hole_mode", "nineHoleMode"),
        serialization_alias="nineHoleMode",
    )

    model_config = ConfigDict(populate_by_name=True)


class HoleStrokesUpdate(BaseModel):
    hole_number: int = Field(
        ge=1,
        le=27,
        validation_alias=AliasChoices("hole_number", "holeNumber"),
        serialization_alias="holeNumber",
    )
    strokes: int | None = Field(default=None, ge=1)

    model_config = ConfigDict(populate_by_name=True)


class EditScoresRequest(BaseModel):
    scores: List[HoleStrokesUpdate] = Field(min_length=1)
    reason: str | None = Field(default=None, max_length=500)


class RoundHandicapResult(BaseModel):
    differential: float | None = None
    adjusted_gross_score: int | None = Field(
        default=None, serialization_alias="adjustedGrossScore"
    )
    course_handicap_used: int | None = Field(
        default=None, serialization_alias="courseHandicapUsed"
    )
    handicap_index: float | None = Field(
        default=None, serialization_alias="handicapIndex"
    )
    formatted: str = "N/A"
    ratable: bool = False
    exceptional_reduction: float = Field(
        default=0.0, serialization_alias="exceptionalReduction"
    )
    errors: List[TimelineError] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class CompleteRoundResponse(BaseModel):
    round: Round
    summary: RoundSummary
    handicap: RoundHandicapResult


class EditScoresResponse(BaseModel):
    scores: RoundScores
    changes_count: int = Field(default=0, serialization_alias="changesCount")
    edits: List[ScoreEdit] = Field(default_factory=list)
    handicap: RoundHandicapResult

    model_config = ConfigDict(populate_by_name=True)


class ScoreEditHistory(BaseModel):
    round_id: str = Field(serialization_alias="roundId")
    edit_count: int = Field(serialization_alias="editCount")
    edits: List[ScoreEdit] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


def _round_snapshot(
    snapshots: Sequence[HandicapSnapshot], round_id: str
) -> Optional[RoundSource]:
    for snapshot in snapshots:
        src = snapshot.source
        if isinstance(src, RoundSource) and src.round_id == round_id:
            return src
    return None


def _handicap_result(result: TimelineResult, round_id: str) -> RoundHandicapResult:
    if not result.ok:
        return RoundHandicapResult(errors=result.errors)
    src = _round_snapshot(result.snapshots, round_id)
    if src is None:
        return RoundHandicapResult()
    return RoundHandicapResult(
        differential=src.differential,
        adjusted_gross_score=src.adjusted_gross_score,
        course_handicap_used=src.course_handicap_used,
        handicap_index=src.computed_index,
        formatted=format_handicap(src.computed_index),
        ratable=src.computed_index is not None,
        exceptional_reduction=src.exceptional_reduction,
    )


def _summary_for(
    round_info: Round,
    scores: RoundScores,
    snapshots: Sequence[HandicapSnapshot],
) -> RoundSummary:
    # the index the round was played off, or the current one for open rounds
    src = _round_snapshot(snapshots, round_info.id)
    if src is not None:
        index: float | None = src.prior_index
    else:
        latest = snapshots[-1].source if snapshots else None
        index = latest.computed_index if isinstance(latest, RoundSource) else None

    playing = None
    if index is not None:
        if round_info.nine_hole_mode is None:
            playing = playing_handicap(
                index,
                round_info.slope_rating,
                round_info.course_rating,
                round_info.total_par,
            )
        else:
            playing = playing_handicap(
                round1(index / 2),
                round_info.slope_rating,
                round_info.course_rating / 2,
                round_info.total_par,
            )

    return compute_round_summary(
        scores,
        nine_hole_mode=round_info.nine_hole_mode,
        playing_handicap=playing,
    )


@router.post("", response_model=Round)
def start_round(
    payload: StartRoundRequest,
    api_key: str | None = Depends(require_api_key),
    user_id: UserIdHeader = None,
    service: RoundService = Depends(get_round_service),
    courses: CourseStore = Depends(get_course_store),
) -> Round:
    player_id = derive_player_id(api_key, user_id)
    try:
        tee_set = courses.get_tee_set(payload.tee_set_id)
        return service.start_round(
            player_id=player_id, tee_set=tee_set, date_played=payload.date_played
        )
    except TeeSetNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="tee set not found"
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/{round_id}", response_model=Round)
def get_round(
    round_id: str,
    api_key: str | None = Depends(require_api_key),
    user_id: UserIdHeader = None,
    service: RoundService = Depends(get_round_service),
) -> Round:
    player_id = derive_player_id(api_key, user_id)
    try:
        return service.get_round(round_id=round_id, player_id=player_id)
    except RoundNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="round not found"
        )
    except RoundOwnershipError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="round not owned by player"
        )


@router.get("/{round_id}/scores", response_model=RoundScores)
def get_scorecard(
    round_id: str,
    api_key: str | None = Depends(require_api_key),
    user_id: UserIdHeader = None,
    service: RoundService = Depends(get_round_service),
) -> RoundScores:
    player_id = derive_player_id(api_key, user_id)
    try:
        return service.get_scores(round_id=round_id, player_id=player_id)
    except RoundNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="round not found"
        )
    except RoundOwnershipError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="round not owned by player"
        )


@router.put("/{round_id}/scores/{hole_number}", response_model=RoundScores)
def upsert_hole_score(
    round_id: str,
    hole_number: int,
    payload: UpdateHoleScoreRequest,
    api_key: str | None = Depends(require_api_key),
    user_id: UserIdHeader = None,
    service: RoundService = Depends(get_round_service),
) -> RoundScores:
    player_id = derive_player_id(api_key, user_id)
    try:
        return service.upsert_hole_score(
            round_id=round_id,
            hole_number=hole_number,
            strokes=payload.strokes,
            player_id=player_id,
        )
    except RoundNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="round not found"
        )
    except RoundOwnershipError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="round not owned by player"
        )
    except RoundStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/{round_id}/complete", response_model=CompleteRoundResponse)
def complete_round(
    round_id: str,
    payload: Optional[CompleteRoundRequest] = None,
    api_key: str | None = Depends(require_api_key),
    user_id: UserIdHeader = None,
    service: RoundService = Depends(get_round_service),
    handicap: HandicapService = Depends(get_handicap_service),
) -> CompleteRoundResponse:
    player_id = derive_player_id(api_key, user_id)
    nine_hole_mode = payload.nine_hole_mode if payload else None
    try:
        with handicap.player_lock(player_id):
            round_out = service.complete_round(
                round_id=round_id, player_id=player_id, nine_hole_mode=nine_hole_mode
            )
            result = handicap.recompute_player_timeline(
                player_id, since=round_out.date_played
            )
            scores = service.get_scores(round_id=round_id, player_id=player_id)
    except RoundNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="round not found"
        )
    except RoundOwnershipError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="round not owned by player"
        )
    except RoundStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    if not result.ok:
        logger.warning(
            "round completed but handicap timeline was not updated",
            extra={"round_id": round_id, "player_id": player_id},
        )

    return CompleteRoundResponse(
        round=round_out,
        summary=_summary_for(round_out, scores, result.snapshots),
        handicap=_handicap_result(result, round_id),
    )


@router.post("/{round_id}/edit-scores", response_model=EditScoresResponse)
def edit_scores(
    round_id: str,
    payload: EditScoresRequest,
    api_key: str | None = Depends(require_api_key),
    user_id: UserIdHeader = None,
    service: RoundService = Depends(get_round_service),
    handicap: HandicapService = Depends(get_handicap_service),
) -> EditScoresResponse:
    player_id = derive_player_id(api_key, user_id)
    updates = {item.hole_number: item.strokes for item in payload.scores}
    try:
        with handicap.player_lock(player_id):
            round_info = service.get_round(round_id=round_id, player_id=player_id)
            scores, edits = service.edit_completed_scores(
                round_id=round_id,
                updates=updates,
                player_id=player_id,
                reason=payload.reason,
                edited_by=player_id,
            )
            result = handicap.recompute_player_timeline(
                player_id, since=round_info.date_played
            )
    except RoundNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="round not found"
        )
    except RoundOwnershipError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="round not owned by player"
        )
    except RoundStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    if edits:
        logger.info(
            "completed round edited",
            extra={"round_id": round_id, "player_id": player_id, "changes": len(edits)},
        )
    return EditScoresResponse(
        scores=scores,
        changes_count=len(edits),
        edits=edits,
        handicap=_handicap_result(result, round_id),
    )


@router.get("/{round_id}/edit-scores", response_model=ScoreEditHistory)
def get_edit_history(
    round_id: str,
    api_key: str | None = Depends(require_api_key),
    user_id: UserIdHeader = None,
    service: RoundService = Depends(get_round_service),
) -> ScoreEditHistory:
    player_id = derive_player_id(api_key, user_id)
    try:
        edits = service.list_score_edits(round_id=round_id, player_id=player_id)
    except RoundNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="round not found"
        )
    except RoundOwnershipError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="round not owned by player"
        )
    return ScoreEditHistory(round_id=round_id, edit_count=len(edits), edits=edits)


@router.get("/{round_id}/summary", response_model=RoundSummary)
def get_round_summary(
    round_id: str,
    api_key: str | None = Depends(require_api_key),
    user_id: UserIdHeader = None,
    service: RoundService = Depends(get_round_service),
    handicap: HandicapService = Depends(get_handicap_service),
) -> RoundSummary:
    player_id = derive_player_id(api_key, user_id)
    try:
        round_info = service.get_round(round_id=round_id, player_id=player_id)
        scores = service.get_scores(round_id=round_id, player_id=player_id)
        snapshots = handicap.round_snapshots(player_id)
    except RoundNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="round not found"
        )
    except RoundOwnershipError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="round not owned by player"
        )
    except CorruptHistory:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"handicap history for player {player_id} is unreadable",
        )
    return _summary_for(round_info, scores, snapshots)
