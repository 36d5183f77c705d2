from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import date, datetime, timezone
from functools import lru_cache
from threading import Lock, RLock
from typing import Dict, Iterator, List, Optional, Sequence, Set
from weakref import WeakValueDictionary

from golfindex.calculations.errors import InsufficientData, TimelineCorruption
from golfindex.calculations.index import (
    MAX_HANDICAP_INDEX,
    WINDOW_SIZE,
    format_handicap,
    select_differentials,
)
from golfindex.calculations.projection import course_handicap, playing_handicap
from golfindex.calculations.rounding import round1
from golfindex.config import RecomputeStrategy, Settings, get_settings
from golfindex.courses.models import TeeSet
from golfindex.metrics import record_recompute
from golfindex.rounds.service import CorruptRoundData, RoundService, get_round_service

from .engine import ReplayConfig, replay, reusable_prefix
from .models import (
    HandicapProjection,
    HandicapSnapshot,
    HandicapStatistics,
    RoundSource,
    ScoreDifferentialRecord,
    TimelineError,
    TimelineResult,
)
from .store import CorruptHistory, HandicapHistoryStore, get_history_store

logger = logging.getLogger(__name__)

# lowest plus index accepted for a manual entry
MIN_MANUAL_INDEX = -10.0


class HandicapService:
    """Recomputes and queries handicap timelines.

    All writes for one player go through ``player_lock`` so that a round
    edit and the recompute it triggers cannot interleave with another
    recompute for the same player.
    """

    def __init__(
        self,
        round_service: RoundService | None = None,
        store: HandicapHistoryStore | None = None,
        settings: Settings | None = None,
    ):
        self._rounds = round_service or get_round_service()
        self._store = store or get_history_store()
        self._settings = settings or get_settings()
        # entries drop out once no thread holds or waits on the player lock
        self._locks: WeakValueDictionary[str, RLock] = WeakValueDictionary()
        self._locks_guard = Lock()
        # players whose last recompute failed; their next run replays in full
        self._needs_full: Set[str] = set()

    @property
    def store(self) -> HandicapHistoryStore:
        return self._store

    @contextmanager
    def player_lock(self, player_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.get(player_id)
            if lock is None:
                lock = RLock()
                self._locks[player_id] = lock
        with lock:
            yield

    def replay_config(self) -> ReplayConfig:
        return ReplayConfig(
            default_starting_index=self._settings.default_starting_index,
            unknown_policy=self._settings.unknown_handicap_policy,
            apply_exceptional=self._settings.apply_exceptional_scores,
        )

    # Recompute
    def recompute_player_timeline(
        self,
        player_id: str,
        since: Optional[date] = None,
        strategy: RecomputeStrategy | str | None = None,
    ) -> TimelineResult:
        """Replay the player's rounds and replace their round snapshots.

        ``since`` is the earliest date whose rounds changed. With the
        incremental strategy, stored snapshots for rounds before it are kept
        when they still line up with the round list. On any scoring failure
        the stored timeline is left as it was and the result carries the error.
        """

        requested = RecomputeStrategy(strategy or self._settings.recompute_strategy)
        start = time.perf_counter()
        with self.player_lock(player_id):
            try:
                rounds = self._rounds.list_completed_rounds(player_id=player_id)
                stored = self._store.load(player_id)
            except (CorruptRoundData, CorruptHistory) as exc:
                return self._failed(
                    player_id,
                    requested,
                    start,
                    TimelineError(
                        player_id=player_id,
                        round_id=getattr(exc, "round_id", None),
                        kind=(
                            "corrupt_round_data"
                            if isinstance(exc, CorruptRoundData)
                            else "corrupt_history"
                        ),
                        message=str(exc),
                    ),
                )

            manual = [s for s in stored if s.is_manual]
            previous = [s for s in stored if not s.is_manual]

            config = self.replay_config()
            kept = 0
            if (
                requested is RecomputeStrategy.INCREMENTAL
                and since is not None
                and player_id not in self._needs_full
            ):
                expected = sum(1 for r in rounds if r.date_played < since)
                kept = reusable_prefix(previous, rounds, since, config)
                if kept < expected:
                    logger.info(
                        "stored timeline diverges from rounds, replaying in full",
                        extra={"player_id": player_id, "kept": kept, "expected": expected},
                    )
                    kept = 0
            effective = (
                RecomputeStrategy.INCREMENTAL if kept else RecomputeStrategy.FULL
            )

            try:
                output = replay(rounds, manual, config, prefix=previous[:kept])
            except TimelineCorruption as exc:
                return self._failed(
                    player_id,
                    effective,
                    start,
                    TimelineError(
                        player_id=player_id,
                        round_id=exc.round_id,
                        kind=exc.cause_kind or exc.kind,
                        message=str(exc),
                    ),
                )

            self._store.replace_round_snapshots(player_id, output.snapshots)
            self._needs_full.discard(player_id)

        record_recompute(effective.value, "success", time.perf_counter() - start)
        return TimelineResult(
            player_id=player_id,
            snapshots=output.snapshots,
            differentials=output.differentials,
            strategy=effective.value,
            recomputed_from=rounds[kept].date_played if kept < len(rounds) else None,
        )

    def _failed(
        self,
        player_id: str,
        strategy: RecomputeStrategy,
        start: float,
        error: TimelineError,
    ) -> TimelineResult:
        self._needs_full.add(player_id)
        logger.warning(
            "handicap recompute failed",
            extra={
                "player_id": player_id,
                "round_id": error.round_id,
                "kind": error.kind,
                "error": error.message,
            },
        )
        record_recompute(strategy.value, "failure", time.perf_counter() - start)
        return TimelineResult(player_id=player_id, errors=[error], strategy=strategy.value)

    def recompute_all(
        self,
        player_ids: Optional[Sequence[str]] = None,
        *,
        since: Optional[date] = None,
        strategy: RecomputeStrategy | str | None = None,
    ) -> Dict[str, TimelineResult]:
        """Recompute every player independently; one failure never stops the rest."""

        if player_ids is None:
            ids = sorted(
                set(self._rounds.list_player_ids()) | set(self._store.list_player_ids())
            )
        else:
            ids = list(dict.fromkeys(player_ids))

        results: Dict[str, TimelineResult] = {}
        workers = max(1, min(self._settings.recompute_workers, len(ids) or 1))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                player_id: pool.submit(
                    self.recompute_player_timeline, player_id, since, strategy
                )
                for player_id in ids
            }
            for player_id, future in futures.items():
                try:
                    results[player_id] = future.result()
                except Exception as exc:
                    logger.exception(
                        "unexpected failure recomputing handicap",
                        extra={"player_id": player_id},
                    )
                    results[player_id] = TimelineResult(
                        player_id=player_id,
                        errors=[
                            TimelineError(
                                player_id=player_id,
                                kind=type(exc).__name__,
                                message=str(exc),
                            )
                        ],
                    )
        return results

    def add_manual_index(
        self,
        player_id: str,
        handicap_index: float,
        effective_date: Optional[date] = None,
        note: Optional[str] = None,
    ) -> tuple[HandicapSnapshot, TimelineResult]:
        if not MIN_MANUAL_INDEX <= handicap_index <= MAX_HANDICAP_INDEX:
            raise ValueError(
                f"handicap index must be between {MIN_MANUAL_INDEX}"
                f" and {MAX_HANDICAP_INDEX}"
            )
        when = effective_date or datetime.now(timezone.utc).date()
        with self.player_lock(player_id):
            snapshot = self._store.add_manual_entry(
                player_id, round1(handicap_index), when, note
            )
            # a new seed can shift every ESC cap, so nothing stored is reusable
            result = self.recompute_player_timeline(
                player_id, strategy=RecomputeStrategy.FULL
            )
        return snapshot, result

    # Queries
    def history(
        self, player_id: str, limit: Optional[int] = None
    ) -> List[HandicapSnapshot]:
        """Snapshots newest first, manual entries included."""

        snapshots = list(reversed(self._store.load(player_id)))
        return snapshots[:limit] if limit is not None else snapshots

    def round_snapshots(self, player_id: str) -> List[HandicapSnapshot]:
        return self._store.round_snapshots(player_id)

    def latest_round_snapshot(self, player_id: str) -> Optional[HandicapSnapshot]:
        snapshots = self.round_snapshots(player_id)
        return snapshots[-1] if snapshots else None

    def snapshot_for_round(
        self, player_id: str, round_id: str
    ) -> Optional[HandicapSnapshot]:
        for snapshot in self.round_snapshots(player_id):
            if snapshot.source_round_id == round_id:
                return snapshot
        return None

    def recent_differentials(
        self, player_id: str, limit: int = WINDOW_SIZE
    ) -> List[ScoreDifferentialRecord]:
        snapshots = self.round_snapshots(player_id)
        return [s.to_differential() for s in reversed(snapshots)][:limit]

    def current_handicap(self, player_id: str) -> Optional[float]:
        """The index computed after the latest round, or None when not ratable."""

        latest = self.latest_round_snapshot(player_id)
        if latest is None:
            return None
        if not isinstance(latest.source, RoundSource):
            raise ValueError("manual entry found among round snapshots")
        return latest.source.computed_index

    def statistics(self, player_id: str) -> HandicapStatistics:
        total = len(self.round_snapshots(player_id))
        window = [d.differential for d in self.recent_differentials(player_id)]
        selection = select_differentials(window)
        return HandicapStatistics(
            total_rounds=total,
            rounds_in_window=len(window),
            differentials_used=len(selection.used),
            adjustment=selection.adjustment,
            lowest_differential=min(window) if window else None,
            highest_differential=max(window) if window else None,
            average_differential=round1(sum(window) / len(window)) if window else None,
        )

    def project_for_tee_set(self, player_id: str, tee_set: TeeSet) -> HandicapProjection:
        index = self.current_handicap(player_id)
        if index is None:
            raise InsufficientData(len(self.recent_differentials(player_id)))
        return HandicapProjection(
            player_id=player_id,
            tee_set_id=tee_set.id,
            handicap_index=index,
            formatted=format_handicap(index),
            course_handicap=course_handicap(index, tee_set.slope_rating),
            playing_handicap=playing_handicap(
                index, tee_set.slope_rating, tee_set.course_rating, tee_set.total_par
            ),
            course_rating=tee_set.course_rating,
            slope_rating=tee_set.slope_rating,
            par=tee_set.total_par,
        )


@lru_cache(maxsize=1)
def get_handicap_service() -> HandicapService:
    return HandicapService()


__all__ = [
    "HandicapService",
    "MIN_MANUAL_INDEX",
    "get_handicap_service",
]
