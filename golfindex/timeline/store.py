from __future__ import annotations

import json
import logging
from datetime import date
from functools import lru_cache
from pathlib import Path
from threading import RLock
from typing import List, Optional, Sequence

from golfindex.config import get_settings
from golfindex.rounds.service import SAFE_PLAYER_ID_RE, _sanitize_player_id

from .models import HandicapSnapshot, ManualSource

logger = logging.getLogger(__name__)


class CorruptHistory(Exception):
    def __init__(self, player_id: str, message: str):
        self.player_id = player_id
        super().__init__(message)


def _write_json_atomic(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(content, encoding="utf-8")
    tmp_path.replace(path)


def _ordered(snapshots: Sequence[HandicapSnapshot]) -> List[HandicapSnapshot]:
    # manual entries sort ahead of round snapshots on the same date
    return sorted(
        snapshots, key=lambda s: (s.effective_date, not s.is_manual, s.sort_key[1])
    )


class HandicapHistoryStore:
    """Per-player handicap history, one JSON file per player.

    Every write replaces the whole file atomically, so a reader sees either
    the previous timeline or the new one.
    """

    def __init__(self, base_dir: Path | str | None = None):
        base = Path(base_dir or get_settings().history_dir).expanduser()
        self._base_dir = base.resolve()
        self._lock = RLock()

    def load(self, player_id: str) -> List[HandicapSnapshot]:
        path = self._path(player_id)
        if not path.exists():
            return []
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            items = payload.get("snapshots", [])
            return _ordered([HandicapSnapshot.model_validate(item) for item in items])
        except Exception as exc:
            raise CorruptHistory(player_id, f"unreadable history: {exc}") from exc

    def manual_entries(self, player_id: str) -> List[HandicapSnapshot]:
        return [s for s in self.load(player_id) if s.is_manual]

    def round_snapshots(self, player_id: str) -> List[HandicapSnapshot]:
        return [s for s in self.load(player_id) if not s.is_manual]

    def replace_round_snapshots(
        self, player_id: str, snapshots: Sequence[HandicapSnapshot]
    ) -> List[HandicapSnapshot]:
        """Swap the round-derived part of the history, keeping manual entries."""

        for snapshot in snapshots:
            if snapshot.is_manual or snapshot.player_id != player_id:
                raise ValueError("only the player's round snapshots can be replaced")
        with self._lock:
            combined = _ordered([*self.manual_entries(player_id), *snapshots])
            self._write(player_id, combined)
        logger.info(
            "handicap history replaced",
            extra={"player_id": player_id, "snapshots": len(snapshots)},
        )
        return combined

    def add_manual_entry(
        self,
        player_id: str,
        handicap_index: float,
        effective_date: date,
        note: Optional[str] = None,
    ) -> HandicapSnapshot:
        snapshot = HandicapSnapshot(
            player_id=player_id,
            effective_date=effective_date,
            handicap_index=handicap_index,
            source=ManualSource(note=note),
        )
        with self._lock:
            self._write(player_id, _ordered([*self.load(player_id), snapshot]))
        return snapshot

    def list_player_ids(self) -> List[str]:
        if not self._base_dir.exists():
            return []
        return sorted(
            p.stem
            for p in self._base_dir.glob("*.json")
            if SAFE_PLAYER_ID_RE.match(p.stem)
        )

    def _path(self, player_id: str) -> Path:
        return self._base_dir / f"{_sanitize_player_id(player_id)}.json"

    def _write(self, player_id: str, snapshots: Sequence[HandicapSnapshot]) -> None:
        payload = {
            "player_id": player_id,
            "snapshots": [s.model_dump(mode="json") for s in snapshots],
        }
        _write_json_atomic(self._path(player_id), json.dumps(payload, indent=2))


@lru_cache(maxsize=1)
def get_history_store() -> HandicapHistoryStore:
    return HandicapHistoryStore()


__all__ = [
    "CorruptHistory",
    "HandicapHistoryStore",
    "get_history_store",
]
