from __future__ import annotations

import json
import re
import uuid
from datetime import date, datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import List, Mapping, Optional

from golfindex.config import get_settings
from golfindex.courses.models import TeeSet

from .models import (
    HoleScore,
    Round,
    RoundRecord,
    RoundScores,
    RoundStatus,
    ScoreEdit,
    ScoredRound,
    hole_in_scope,
)


class RoundNotFound(Exception):
    pass


class RoundOwnershipError(Exception):
    pass


class RoundStateError(Exception):
    """The round is not in the state the operation requires."""


class IncompleteRound(ValueError):
    def __init__(self, round_id: str, holes_completed: int, total_holes: int):
        self.round_id = round_id
        self.holes_completed = holes_completed
        self.total_holes = total_holes
        super().__init__(
            f"only {holes_completed} of {total_holes} holes have strokes recorded"
        )


class CorruptRoundData(Exception):
    def __init__(self, round_id: str, message: str):
        self.round_id = round_id
        super().__init__(message)


SAFE_PLAYER_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def _sanitize_player_id(player_id: str) -> str:
    """
    Restrict player ids to filesystem-safe characters to prevent path traversal.

    Only allow ASCII letters, digits, underscores, and dashes. Reject anything else.
    """

    if not SAFE_PLAYER_ID_RE.match(player_id):
        raise ValueError(f"Invalid player_id for filesystem usage: {player_id!r}")
    return player_id


class RoundService:
    def __init__(self, base_dir: Path | str | None = None):
        base = Path(base_dir or get_settings().rounds_dir).expanduser()
        self._base_dir = base.resolve()

    # Round lifecycle
    def start_round(
        self, *, player_id: str, tee_set: TeeSet, date_played: date | None = None
    ) -> Round:
        _sanitize_player_id(player_id)
        now = datetime.now(timezone.utc)
        record = RoundRecord(
            id=str(uuid.uuid4()),
            player_id=player_id,
            tee_set_id=tee_set.id,
            course_name=tee_set.course_name,
            tee_name=tee_set.name,
            course_rating=tee_set.course_rating,
            slope_rating=tee_set.slope_rating,
            date_played=date_played or now.date(),
            started_at=now,
            pars=tee_set.pars(),
        )
        self._write_round(record)
        self._write_scores(
            RoundScores(
                round_id=record.id,
                player_id=player_id,
                holes={
                    number: HoleScore(hole_number=number, par=par)
                    for number, par in record.pars.items()
                },
            )
        )
        return record.to_round()

    def get_round(self, *, round_id: str, player_id: str | None = None) -> Round:
        return self._require_round(round_id, player_id).to_round()

    def complete_round(
        self,
        *,
        round_id: str,
        player_id: str | None = None,
        nine_hole_mode: Optional[str] = None,
    ) -> Round:
        record = self._require_round(round_id, player_id)
        if record.status is not RoundStatus.IN_PROGRESS:
            raise RoundStateError("round is not in progress")

        scores = self._read_scores(record)
        relevant = [n for n in record.pars if hole_in_scope(n, nine_hole_mode)]
        completed = [
            n
            for n in relevant
            if n in scores.holes and scores.holes[n].strokes is not None
        ]
        if len(completed) < len(relevant):
            raise IncompleteRound(record.id, len(completed), len(relevant))

        record.status = RoundStatus.COMPLETED
        record.nine_hole_mode = nine_hole_mode
        record.completed_at = datetime.now(timezone.utc)
        self._write_round(record)
        return record.to_round()

    # Scoring
    def get_scores(self, *, round_id: str, player_id: str | None = None) -> RoundScores:
        return self._read_scores(self._require_round(round_id, player_id))

    def upsert_hole_score(
        self,
        *,
        round_id: str,
        hole_number: int,
        strokes: int | None,
        player_id: str | None = None,
    ) -> RoundScores:
        record = self._require_round(round_id, player_id)
        if record.status is not RoundStatus.IN_PROGRESS:
            raise RoundStateError("completed rounds are edited through edit-scores")
        return self._apply_strokes(record, {hole_number: strokes})

    def edit_completed_scores(
        self,
        *,
        round_id: str,
        updates: Mapping[int, int | None],
        player_id: str | None = None,
        reason: str | None = None,
        edited_by: str | None = None,
    ) -> tuple[RoundScores, List[ScoreEdit]]:
        """Change strokes on a completed round and log one edit per changed hole.

        A posted hole cannot be cleared, so every update must carry strokes.
        """

        record = self._require_round(round_id, player_id)
        if record.status is not RoundStatus.COMPLETED:
            raise RoundStateError("round is not completed")
        cleared = sorted(n for n, strokes in updates.items() if strokes is None)
        if cleared:
            raise ValueError(
                f"strokes cannot be removed from a completed round: {cleared}"
            )

        before = self._read_scores(record)
        changed = {
            number: strokes
            for number, strokes in updates.items()
            if number not in before.holes or before.holes[number].strokes != strokes
        }
        if not changed:
            return before, []

        scores = self._apply_strokes(record, changed)
        now = datetime.now(timezone.utc)
        edits = [
            ScoreEdit(
                id=str(uuid.uuid4()),
                round_id=record.id,
                player_id=record.player_id,
                hole_number=number,
                old_strokes=(
                    before.holes[number].strokes if number in before.holes else None
                ),
                new_strokes=strokes,
                reason=reason,
                edited_by=edited_by or record.player_id,
                edited_at=now,
            )
            for number, strokes in sorted(changed.items())
        ]
        self._write_edits(record, [*self._read_edits(record), *edits])
        return scores, edits

    def list_score_edits(
        self, *, round_id: str, player_id: str | None = None
    ) -> List[ScoreEdit]:
        """Edit history for a round, newest first."""

        record = self._require_round(round_id, player_id)
        return list(reversed(self._read_edits(record)))

    # Queries
    def list_player_ids(self) -> List[str]:
        if not self._base_dir.exists():
            return []
        return sorted(
            p.name
            for p in self._base_dir.iterdir()
            if p.is_dir() and SAFE_PLAYER_ID_RE.match(p.name)
        )

    def list_rounds(self, *, player_id: str) -> List[Round]:
        records = self._list_round_records(player_id=player_id)
        return [record.to_round() for record in records]

    def list_completed_rounds(self, *, player_id: str) -> List[ScoredRound]:
        """Completed rounds for the player, oldest first, ties broken by round id.

        Unreadable round data raises ``CorruptRoundData`` instead of being skipped.
        """

        scored: List[ScoredRound] = []
        for record in self._list_round_records(player_id=player_id, strict=True):
            if record.status is not RoundStatus.COMPLETED:
                continue
            scores = self._read_scores(record, strict=True)
            holes = tuple(
                hole
                for number, hole in sorted(scores.holes.items())
                if hole_in_scope(number, record.nine_hole_mode)
            )
            scored.append(
                ScoredRound(
                    round_id=record.id,
                    player_id=record.player_id,
                    date_played=record.date_played,
                    course_rating=record.course_rating,
                    slope_rating=record.slope_rating,
                    holes=holes,
                    course_name=record.course_name,
                    is_nine_hole=record.nine_hole_mode is not None,
                )
            )
        scored.sort(key=lambda r: r.sort_key)
        return scored

    def _list_round_records(
        self, *, player_id: str, strict: bool = False
    ) -> list[RoundRecord]:
        player_dir = self._player_dir(player_id)
        if not player_dir.exists():
            return []

        round_records: list[RoundRecord] = []
        for round_path in player_dir.iterdir():
            meta_path = round_path / "round.json"
            if not meta_path.exists():
                continue
            try:
                data = json.loads(meta_path.read_text())
                round_records.append(RoundRecord.from_dict(data))
            except Exception as exc:
                if strict:
                    raise CorruptRoundData(round_path.name, str(exc)) from exc
                continue

        round_records.sort(key=lambda r: (r.date_played, r.id))
        return round_records

    # Internal helpers
    def _require_round(self, round_id: str, player_id: str | None) -> RoundRecord:
        record = self._load_round(round_id)
        if record is None:
            raise RoundNotFound(round_id)
        if player_id is not None and record.player_id != player_id:
            raise RoundOwnershipError(round_id)
        return record

    def _apply_strokes(
        self, record: RoundRecord, updates: Mapping[int, int | None]
    ) -> RoundScores:
        scores = self._read_scores(record)
        for hole_number, strokes in updates.items():
            if hole_number not in record.pars:
                raise ValueError(f"hole {hole_number} is not part of this tee set")
            if strokes is not None and strokes < 1:
                raise ValueError("strokes must be at least 1")
            scores.holes[hole_number] = HoleScore(
                hole_number=hole_number,
                par=record.pars[hole_number],
                strokes=strokes,
            )
        self._write_scores(scores)
        return scores

    def _player_dir(self, player_id: str) -> Path:
        safe_id = _sanitize_player_id(player_id)
        return self._base_dir / safe_id

    def _round_dir(self, player_id: str, round_id: str) -> Path:
        return self._player_dir(player_id) / round_id

    def _write_round(self, record: RoundRecord) -> None:
        round_dir = self._round_dir(record.player_id, record.id)
        round_dir.mkdir(parents=True, exist_ok=True)
        (round_dir / "round.json").write_text(json.dumps(record.to_dict(), indent=2))

    def _load_round(self, round_id: str) -> RoundRecord | None:
        for player_dir in self._base_dir.glob("*"):
            meta_path = player_dir / round_id / "round.json"
            if meta_path.exists():
                try:
                    data = json.loads(meta_path.read_text())
                    return RoundRecord.from_dict(data)
                except Exception:
                    return None
        return None

    def _scores_path(self, record: RoundRecord) -> Path:
        return self._round_dir(record.player_id, record.id) / "scores.json"

    def _read_scores(self, record: RoundRecord, strict: bool = False) -> RoundScores:
        path = self._scores_path(record)
        holes: dict[int, HoleScore] = {}
        if path.exists():
            try:
                data = json.loads(path.read_text())
                for hole_key, hole_payload in data.get("holes", {}).items():
                    payload = dict(hole_payload or {})
                    payload.setdefault("hole_number", int(hole_key))
                    holes[int(hole_key)] = HoleScore(**payload)
            except Exception as exc:
                if strict:
                    raise CorruptRoundData(record.id, f"unreadable scores: {exc}") from exc
                holes = {}

        return RoundScores(round_id=record.id, player_id=record.player_id, holes=holes)

    def _write_scores(self, scores: RoundScores) -> None:
        round_dir = self._round_dir(scores.player_id, scores.round_id)
        round_dir.mkdir(parents=True, exist_ok=True)
        holes_payload = {
            str(hole): hole_score.model_dump(by_alias=True, exclude_none=True)
            for hole, hole_score in sorted(scores.holes.items())
        }
        payload = {
            "round_id": scores.round_id,
            "player_id": scores.player_id,
            "holes": holes_payload,
        }
        path = round_dir / "scores.json"
        path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _edits_path(self, record: RoundRecord) -> Path:
        return self._round_dir(record.player_id, record.id) / "edits.json"

    def _read_edits(self, record: RoundRecord) -> List[ScoreEdit]:
        path = self._edits_path(record)
        if not path.exists():
            return []
        data = json.loads(path.read_text())
        return [ScoreEdit.model_validate(item) for item in data.get("edits", [])]

    def _write_edits(self, record: RoundRecord, edits: List[ScoreEdit]) -> None:
        payload = {
            "round_id": record.id,
            "edits": [edit.model_dump(mode="json") for edit in edits],
        }
        self._edits_path(record).write_text(json.dumps(payload, indent=2))


@lru_cache(maxsize=1)
def get_round_service() -> RoundService:
    return RoundService()


__all__ = [
    "CorruptRoundData",
    "IncompleteRound",
    "RoundNotFound",
    "RoundOwnershipError",
    "RoundService",
    "RoundStateError",
    "get_round_service",
]
