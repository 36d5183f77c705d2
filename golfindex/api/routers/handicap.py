from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from golfindex.api.security import require_api_key
from golfindex.api.user_header import UserIdHeader, derive_player_id
from golfindex.calculations.errors import InsufficientData
from golfindex.calculations.index import format_handicap
from golfindex.config import RecomputeStrategy
from golfindex.courses import CourseStore, TeeSetNotFound, get_course_store
from golfindex.timeline.models import (
    HandicapProjection,
    HandicapSnapshot,
    HandicapStatistics,
    ScoreDifferentialRecord,
    TimelineResult,
)
from golfindex.timeline.service import HandicapService, get_handicap_service
from golfindex.timeline.store import CorruptHistory

router = APIRouter(
    prefix="/api/players",
    tags=["handicap"],
    dependencies=[Depends(require_api_key)],
)

logger = logging.getLogger(__name__)


class CurrentHandicap(BaseModel):
    index: float | None = None
    formatted: str = "N/A"
    ratable: bool = False
    effective_date: date | None = Field(
        default=None, serialization_alias="effectiveDate"
    )

    model_config = ConfigDict(populate_by_name=True)


class HandicapOverview(BaseModel):
    player_id: str = Field(serialization_alias="playerId")
    current_handicap: CurrentHandicap = Field(serialization_alias="currentHandicap")
    statistics: HandicapStatistics
    recent_differentials: Optional[List[ScoreDifferentialRecord]] = Field(
        default=None, serialization_alias="recentDifferentials"
    )
    history: Optional[List[HandicapSnapshot]] = None

    model_config = ConfigDict(populate_by_name=True)


class CalculateRequest(BaseModel):
    tee_set_id: str = Field(
        validation_alias=AliasChoices("tee_set_id", "teeSetId"),
        serialization_alias="teeSetId",
    )

    model_config = ConfigDict(populate_by_name=True)


class ManualIndexRequest(BaseModel):
    handicap_index: float = Field(
        validation_alias=AliasChoices("handicap_index", "handicapIndex"),
        serialization_alias="handicapIndex",
    )
    effective_date: date | None = Field(
        default=None,
        validation_alias=AliasChoices("effective_date", "effectiveDate"),
        serialization_alias="effectiveDate",
    )
    note: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class ManualIndexResponse(BaseModel):
    snapshot: HandicapSnapshot
    timeline: TimelineResult


class RecomputeRequest(BaseModel):
    since: date | None = None
    strategy: RecomputeStrategy | None = None


@router.get("/{player_id}/handicap", response_model=HandicapOverview)
def get_handicap(
    player_id: str,
    limit: int = Query(default=20, ge=1, le=200),
    include_details: bool = Query(default=True),
    handicap: HandicapService = Depends(get_handicap_service),
) -> HandicapOverview:
    try:
        index = handicap.current_handicap(player_id)
        latest = handicap.latest_round_snapshot(player_id)
        overview = HandicapOverview(
            player_id=player_id,
            current_handicap=CurrentHandicap(
                index=index,
                formatted=format_handicap(index),
                ratable=index is not None,
                effective_date=latest.effective_date if latest else None,
            ),
            statistics=handicap.statistics(player_id),
        )
        if include_details:
            overview.recent_differentials = handicap.recent_differentials(player_id)
            overview.history = handicap.history(player_id, limit=limit)
        return overview
    except CorruptHistory as exc:
        logger.warning(
            "handicap history unreadable",
            extra={"player_id": player_id, "error": str(exc)},
        )
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"handicap history for player {player_id} is unreadable",
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/{player_id}/handicap/calculate", response_model=HandicapProjection)
def calculate_for_tee_set(
    player_id: str,
    payload: CalculateRequest,
    handicap: HandicapService = Depends(get_handicap_service),
    courses: CourseStore = Depends(get_course_store),
) -> HandicapProjection:
    try:
        tee_set = courses.get_tee_set(payload.tee_set_id)
        return handicap.project_for_tee_set(player_id, tee_set)
    except TeeSetNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="tee set not found"
        )
    except InsufficientData as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        )
    except CorruptHistory:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"handicap history for player {player_id} is unreadable",
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/{player_id}/handicap/manual", response_model=ManualIndexResponse)
def add_manual_index(
    player_id: str,
    payload: ManualIndexRequest,
    api_key: str | None = Depends(require_api_key),
    user_id: UserIdHeader = None,
    handicap: HandicapService = Depends(get_handicap_service),
) -> ManualIndexResponse:
    if derive_player_id(api_key, user_id) != player_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="manual index can only be set by the player",
        )
    try:
        snapshot, result = handicap.add_manual_index(
            player_id,
            payload.handicap_index,
            effective_date=payload.effective_date,
            note=payload.note,
        )
    except CorruptHistory:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"handicap history for player {player_id} is unreadable",
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return ManualIndexResponse(snapshot=snapshot, timeline=result)


@router.post("/{player_id}/handicap/recompute", response_model=TimelineResult)
def recompute_handicap(
    player_id: str,
    payload: Optional[RecomputeRequest] = None,
    handicap: HandicapService = Depends(get_handicap_service),
) -> TimelineResult:
    request = payload or RecomputeRequest()
    try:
        result = handicap.recompute_player_timeline(
            player_id, since=request.since, strategy=request.strategy
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    if not result.ok:
        logger.warning(
            "on-demand handicap recompute failed",
            extra={"player_id": player_id, "errors": len(result.errors)},
        )
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": "handicap timeline could not be recomputed",
                "errors": [e.model_dump(by_alias=True) for e in result.errors],
            },
        )
    return result
