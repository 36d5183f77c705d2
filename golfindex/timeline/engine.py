"""Pure replay of a player's handicap timeline.

The timeline is a left-to-right fold over completed rounds ordered by
``(date_played, round_id)``. The only state carried between rounds is
``ReplayState``: the index used for the next round's ESC cap and the
chronological list of differentials produced so far. Nothing here touches
storage; ``golfindex.timeline.service`` owns persistence and locking.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence

from golfindex.calculations.differentials import (
    compute_differential,
    compute_nine_hole_differential,
)
from golfindex.calculations.errors import (
    HandicapError,
    ScoreDataError,
    TimelineCorruption,
)
from golfindex.calculations.esc import (
    DEFAULT_UNKNOWN_HANDICAP_POLICY,
    UnknownHandicapPolicy,
    apply_esc,
)
from golfindex.calculations.exceptional import exceptional_score_reduction
from golfindex.calculations.index import WINDOW_SIZE, select_differentials
from golfindex.calculations.projection import course_handicap
from golfindex.calculations.rounding import round1
from golfindex.config import DEFAULT_STARTING_INDEX
from golfindex.rounds.models import ScoredRound, hash_value

from .models import HandicapSnapshot, RoundSource, ScoreDifferentialRecord


@dataclass(frozen=True)
class ReplayConfig:
    default_starting_index: float = DEFAULT_STARTING_INDEX
    unknown_policy: UnknownHandicapPolicy = DEFAULT_UNKNOWN_HANDICAP_POLICY
    apply_exceptional: bool = False

    @property
    def fingerprint(self) -> str:
        return hash_value(
            {
                "default_starting_index": self.default_starting_index,
                "unknown_policy": UnknownHandicapPolicy(self.unknown_policy).value,
                "apply_exceptional": self.apply_exceptional,
            }
        )


@dataclass(frozen=True)
class ReplayState:
    prior_index: float
    differentials: tuple[ScoreDifferentialRecord, ...] = ()
    last_computed_index: Optional[float] = None

    def window(self) -> List[ScoreDifferentialRecord]:
        """Most recent differentials first, at most ``WINDOW_SIZE`` of them."""

        return list(reversed(self.differentials[-WINDOW_SIZE:]))


@dataclass(frozen=True)
class ReplayOutput:
    snapshots: List[HandicapSnapshot] = field(default_factory=list)
    reused: int = 0

    @property
    def differentials(self) -> List[ScoreDifferentialRecord]:
        return [s.to_differential() for s in self.snapshots]


def order_rounds(rounds: Iterable[ScoredRound]) -> List[ScoredRound]:
    return sorted(rounds, key=lambda r: r.sort_key)


def seed_prior_index(
    manual_snapshots: Iterable[HandicapSnapshot],
    first_round_date: Optional[date],
    default_index: float,
) -> float:
    """Latest manual index dated before the first round, else the default."""

    candidates = [
        s
        for s in manual_snapshots
        if s.is_manual
        and (first_round_date is None or s.effective_date < first_round_date)
    ]
    if not candidates:
        return default_index
    return max(candidates, key=lambda s: s.effective_date).handicap_index


def score_round(
    scored_round: ScoredRound,
    prior_index: float,
    policy: UnknownHandicapPolicy = DEFAULT_UNKNOWN_HANDICAP_POLICY,
) -> ScoreDifferentialRecord:
    if not scored_round.holes:
        raise ScoreDataError("no hole scores recorded")
    missing = [h.hole_number for h in scored_round.holes if h.strokes is None]
    if missing:
        raise ScoreDataError(f"holes without strokes: {missing}")

    handicap = course_handicap(prior_index, scored_round.slope_rating)
    adjusted = apply_esc(scored_round.holes, handicap, policy)
    if scored_round.is_nine_hole:
        differential = compute_nine_hole_differential(
            adjusted, scored_round.course_rating, scored_round.slope_rating
        )
    else:
        differential = compute_differential(
            adjusted, scored_round.course_rating, scored_round.slope_rating
        )

    return ScoreDifferentialRecord(
        date=scored_round.date_played,
        round_id=scored_round.round_id,
        course_name=scored_round.course_name,
        gross_score=scored_round.gross_score,
        adjusted_gross_score=adjusted,
        course_rating=scored_round.course_rating,
        slope_rating=scored_round.slope_rating,
        differential=differential,
        is_nine_hole=scored_round.is_nine_hole,
        course_handicap_used=handicap,
    )


def step(
    state: ReplayState, scored_round: ScoredRound, config: ReplayConfig
) -> tuple[ReplayState, HandicapSnapshot]:
    """Fold one round into the state and emit its snapshot."""

    try:
        record = score_round(scored_round, state.prior_index, config.unknown_policy)
    except HandicapError as exc:
        raise TimelineCorruption(scored_round.round_id, str(exc), exc.kind) from exc

    differentials = state.differentials + (record,)
    next_state = ReplayState(prior_index=state.prior_index, differentials=differentials)
    selection = select_differentials([d.differential for d in next_state.window()])
    new_index = selection.index

    reduction = 0.0
    if (
        config.apply_exceptional
        and new_index is not None
        and state.last_computed_index is not None
    ):
        reduction = exceptional_score_reduction(
            record.differential, state.last_computed_index
        )
        if reduction:
            new_index = round1(new_index - reduction)

    snapshot = HandicapSnapshot(
        player_id=scored_round.player_id,
        effective_date=scored_round.date_played,
        handicap_index=new_index if new_index is not None else record.differential,
        source=RoundSource(
            round_id=record.round_id,
            course_name=record.course_name,
            differential=record.differential,
            gross_score=record.gross_score,
            adjusted_gross_score=record.adjusted_gross_score,
            course_rating=record.course_rating,
            slope_rating=record.slope_rating,
            is_nine_hole=record.is_nine_hole,
            course_handicap_used=record.course_handicap_used,
            prior_index=state.prior_index,
            computed_index=new_index,
            differentials_used=len(selection.used),
            window_size=selection.count,
            exceptional_reduction=reduction,
            inputs_fingerprint=scored_round.fingerprint,
            config_fingerprint=config.fingerprint,
        ),
    )
    return (
        ReplayState(
            prior_index=new_index if new_index is not None else state.prior_index,
            differentials=differentials,
            last_computed_index=new_index,
        ),
        snapshot,
    )


def state_from_snapshots(snapshots: Sequence[HandicapSnapshot]) -> ReplayState:
    """Rebuild the fold state that existed right after ``snapshots``.

    ``snapshots`` must be round-sourced and in replay order.
    """

    if not snapshots:
        raise ValueError("cannot rebuild replay state from an empty prefix")
    sources = [s.source for s in snapshots]
    if not all(isinstance(src, RoundSource) for src in sources):
        raise ValueError("manual snapshots cannot be part of a replay prefix")

    prior = sources[0].prior_index
    last_computed: Optional[float] = None
    for src in sources:
        last_computed = src.computed_index
        if src.computed_index is not None:
            prior = src.computed_index
    return ReplayState(
        prior_index=prior,
        differentials=tuple(s.to_differential() for s in snapshots),
        last_computed_index=last_computed,
    )


def reusable_prefix(
    stored: Sequence[HandicapSnapshot],
    rounds: Sequence[ScoredRound],
    since: Optional[date],
    config: ReplayConfig = ReplayConfig(),
) -> int:
    """Count leading stored snapshots that a replay from ``since`` may keep.

    A stored snapshot is kept only while its round was played before
    ``since`` and it still lines up with the current ordered round list:
    same round, same scored inputs, same replay settings.
    """

    if since is None:
        return 0
    config_fingerprint = config.fingerprint
    kept = 0
    for snapshot, scored_round in zip(stored, rounds):
        if scored_round.date_played >= since:
            break
        src = snapshot.source
        if (
            not isinstance(src, RoundSource)
            or src.round_id != scored_round.round_id
            or snapshot.effective_date != scored_round.date_played
            or src.inputs_fingerprint != scored_round.fingerprint
            or src.config_fingerprint != config_fingerprint
        ):
            break
        kept += 1
    return kept


def replay(
    rounds: Iterable[ScoredRound],
    manual_snapshots: Iterable[HandicapSnapshot] = (),
    config: ReplayConfig = ReplayConfig(),
    *,
    prefix: Sequence[HandicapSnapshot] = (),
) -> ReplayOutput:
    """Replay ``rounds`` into a snapshot sequence.

    With ``prefix`` (the stored snapshots for the first ``len(prefix)``
    ordered rounds) only the remaining rounds are scored. The result is the
    same as a full replay as long as the prefix rounds are unchanged.
    Raises ``TimelineCorruption`` naming the first round that cannot be scored.
    """

    ordered = order_rounds(rounds)
    if len(prefix) > len(ordered):
        raise ValueError("replay prefix is longer than the round list")

    if prefix:
        state = state_from_snapshots(prefix)
    else:
        first_date = ordered[0].date_played if ordered else None
        state = ReplayState(
            prior_index=seed_prior_index(
                manual_snapshots, first_date, config.default_starting_index
            )
        )

    snapshots: List[HandicapSnapshot] = list(prefix)
    for scored_round in ordered[len(prefix):]:
        state, snapshot = step(state, scored_round, config)
        snapshots.append(snapshot)
    return ReplayOutput(snapshots=snapshots, reused=len(prefix))


__all__ = [
    "ReplayConfig",
    "ReplayOutput",
    "ReplayState",
    "order_rounds",
    "replay",
    "reusable_prefix",
    "score_round",
    "seed_prior_index",
    "state_from_snapshots",
    "step",
]
