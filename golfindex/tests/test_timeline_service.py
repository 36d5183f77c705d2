import json
import threading
from datetime import date

import pytest

from golfindex.calculations.errors import InsufficientData
from golfindex.courses import get_course_store
from golfindex.metrics import REGISTRY
from golfindex.timeline.engine import replay
from golfindex.tests.factories import DEMO_PARS, play_round, strokes_for


def _history_file(tmp_path, player_id: str):
    return tmp_path / "history" / f"{player_id}.json"


def _play_season(round_service, player_id: str = "p1") -> list:
    return [
        play_round(round_service, player_id, date(2024, 1, 1), strokes_for(DEMO_PARS, 90)),
        play_round(round_service, player_id, date(2024, 1, 2), strokes_for(DEMO_PARS, 85)),
        play_round(round_service, player_id, date(2024, 1, 3), strokes_for(DEMO_PARS, 80)),
    ]


def _recomputes(strategy: str, outcome: str) -> float:
    value = REGISTRY.get_sample_value(
        "handicap_recomputes_total", {"strategy": strategy, "outcome": outcome}
    )
    return value or 0.0


def test_full_recompute_builds_and_stores_timeline(round_service, handicap_service):
    _play_season(round_service)

    result = handicap_service.recompute_player_timeline("p1", strategy="full")

    assert result.ok
    assert result.strategy == "full"
    assert [s.handicap_index for s in result.snapshots] == [20.0, 15.0, 8.0]
    assert handicap_service.current_handicap("p1") == 8.0
    assert handicap_service.store.load("p1") == result.snapshots


def test_current_handicap_is_none_until_three_rounds(round_service, handicap_service):
    play_round(round_service, "p1", date(2024, 1, 1), strokes_for(DEMO_PARS, 90))
    handicap_service.recompute_player_timeline("p1")

    assert handicap_service.current_handicap("p1") is None
    with pytest.raises(InsufficientData) as excinfo:
        handicap_service.project_for_tee_set(
            "p1", get_course_store().get_tee_set("pebble-beach-white")
        )
    assert "minimum 3 required" in str(excinfo.value)


def test_recompute_is_idempotent(tmp_path, round_service, handicap_service):
    _play_season(round_service)

    handicap_service.recompute_player_timeline("p1")
    first = _history_file(tmp_path, "p1").read_bytes()
    handicap_service.recompute_player_timeline("p1")

    assert _history_file(tmp_path, "p1").read_bytes() == first


def test_incremental_recompute_reuses_prefix(round_service, handicap_service):
    _play_season(round_service)
    handicap_service.recompute_player_timeline("p1", strategy="full")

    play_round(round_service, "p1", date(2024, 1, 4), strokes_for(DEMO_PARS, 78))
    incremental = handicap_service.recompute_player_timeline(
        "p1", since=date(2024, 1, 4), strategy="incremental"
    )
    full = replay(round_service.list_completed_rounds(player_id="p1"))

    assert incremental.ok
    assert incremental.strategy == "incremental"
    assert incremental.recomputed_from == date(2024, 1, 4)
    assert incremental.snapshots == full.snapshots


def test_out_of_order_round_matches_chronological_entry(
    round_service, make_handicap_service
):
    service = make_handicap_service(recompute_strategy="incremental")
    play_round(round_service, "late", date(2024, 1, 1), strokes_for(DEMO_PARS, 90))
    play_round(round_service, "late", date(2024, 1, 3), strokes_for(DEMO_PARS, 80))
    service.recompute_player_timeline("late")

    play_round(round_service, "late", date(2024, 1, 2), strokes_for(DEMO_PARS, 85))
    late = service.recompute_player_timeline("late", since=date(2024, 1, 2))

    _play_season(round_service, "ontime")
    service.recompute_player_timeline("ontime")

    assert late.ok
    assert [
        (s.effective_date, s.handicap_index, s.source.differential)
        for s in late.snapshots
    ] == [
        (s.effective_date, s.handicap_index, s.source.differential)
        for s in service.store.load("ontime")
    ]


def test_stale_prefix_falls_back_to_full_replay(round_service, handicap_service):
    play_round(round_service, "p1", date(2024, 1, 1), strokes_for(DEMO_PARS, 90))
    play_round(round_service, "p1", date(2024, 1, 3), strokes_for(DEMO_PARS, 80))
    handicap_service.recompute_player_timeline("p1")
    play_round(round_service, "p1", date(2024, 1, 2), strokes_for(DEMO_PARS, 85))

    # since is later than the inserted round, so the stored prefix no longer lines up
    result = handicap_service.recompute_player_timeline(
        "p1", since=date(2024, 1, 3), strategy="incremental"
    )

    assert result.strategy == "full"
    assert result.snapshots == replay(
        round_service.list_completed_rounds(player_id="p1")
    ).snapshots


def _zero_hole(tmp_path, player_id: str, round_id: str, hole: str = "1") -> None:
    scores_path = tmp_path / "rounds" / player_id / round_id / "scores.json"
    payload = json.loads(scores_path.read_text())
    payload["holes"][hole]["strokes"] = 0
    scores_path.write_text(json.dumps(payload))


def test_failed_round_is_not_reused_by_later_incremental_recompute(
    tmp_path, round_service, handicap_service
):
    rounds = _play_season(round_service)
    handicap_service.recompute_player_timeline("p1", strategy="full")
    before = _history_file(tmp_path, "p1").read_bytes()

    _zero_hole(tmp_path, "p1", rounds[0].id)
    assert not handicap_service.recompute_player_timeline(
        "p1", since=date(2024, 1, 1), strategy="incremental"
    ).ok

    play_round(round_service, "p1", date(2024, 1, 4), strokes_for(DEMO_PARS, 78))
    incremental = handicap_service.recompute_player_timeline(
        "p1", since=date(2024, 1, 4), strategy="incremental"
    )
    full = handicap_service.recompute_player_timeline("p1", strategy="full")

    assert not incremental.ok
    assert incremental.errors == full.errors
    assert incremental.errors[0].round_id == rounds[0].id
    assert _history_file(tmp_path, "p1").read_bytes() == before


def test_new_service_does_not_reuse_snapshot_of_changed_round(
    tmp_path, round_service, make_handicap_service
):
    rounds = _play_season(round_service)
    make_handicap_service().recompute_player_timeline("p1", strategy="full")
    _zero_hole(tmp_path, "p1", rounds[1].id)
    play_round(round_service, "p1", date(2024, 1, 4), strokes_for(DEMO_PARS, 78))

    result = make_handicap_service().recompute_player_timeline(
        "p1", since=date(2024, 1, 4), strategy="incremental"
    )

    assert not result.ok
    assert result.errors[0].round_id == rounds[1].id


def test_edited_round_before_since_is_replayed(round_service, handicap_service):
    rounds = _play_season(round_service)
    handicap_service.recompute_player_timeline("p1", strategy="full")
    round_service.edit_completed_scores(round_id=rounds[1].id, updates={1: 3})
    play_round(round_service, "p1", date(2024, 1, 4), strokes_for(DEMO_PARS, 78))

    result = handicap_service.recompute_player_timeline(
        "p1", since=date(2024, 1, 4), strategy="incremental"
    )

    assert result.ok
    assert result.strategy == "full"
    assert result.snapshots == replay(
        round_service.list_completed_rounds(player_id="p1")
    ).snapshots


def test_changed_settings_force_full_replay(round_service, make_handicap_service):
    _play_season(round_service)
    make_handicap_service().recompute_player_timeline("p1", strategy="full")
    play_round(round_service, "p1", date(2024, 1, 4), strokes_for(DEMO_PARS, 78))

    result = make_handicap_service(
        default_starting_index=10.0
    ).recompute_player_timeline("p1", since=date(2024, 1, 4), strategy="incremental")

    assert result.ok
    assert result.strategy == "full"
    assert result.snapshots[0].source.prior_index == 10.0


def test_corrupt_scores_leave_stored_timeline_intact(
    tmp_path, round_service, handicap_service
):
    rounds = _play_season(round_service)
    handicap_service.recompute_player_timeline("p1")
    before = _history_file(tmp_path, "p1").read_bytes()
    failures = _recomputes("full", "failure")

    scores_path = tmp_path / "rounds" / "p1" / rounds[1].id / "scores.json"
    payload = json.loads(scores_path.read_text())
    payload["holes"]["1"]["strokes"] = 0
    scores_path.write_text(json.dumps(payload))

    result = handicap_service.recompute_player_timeline("p1", strategy="full")

    assert not result.ok
    (error,) = result.errors
    assert error.round_id == rounds[1].id
    assert error.kind == "score_data"
    assert result.snapshots == []
    assert _history_file(tmp_path, "p1").read_bytes() == before
    assert _recomputes("full", "failure") == failures + 1


def test_unreadable_round_is_reported(tmp_path, round_service, handicap_service):
    rounds = _play_season(round_service)
    (tmp_path / "rounds" / "p1" / rounds[0].id / "round.json").write_text("{not json")

    result = handicap_service.recompute_player_timeline("p1")

    assert result.errors[0].kind == "corrupt_round_data"
    assert result.errors[0].round_id == rounds[0].id


def test_failure_for_one_player_leaves_others_untouched(
    tmp_path, round_service, handicap_service
):
    _play_season(round_service, "good")
    bad_rounds = _play_season(round_service, "bad")
    handicap_service.recompute_all()
    good_before = _history_file(tmp_path, "good").read_bytes()

    scores_path = tmp_path / "rounds" / "bad" / bad_rounds[0].id / "scores.json"
    payload = json.loads(scores_path.read_text())
    payload["holes"]["2"]["strokes"] = 0
    scores_path.write_text(json.dumps(payload))

    results = handicap_service.recompute_all()

    assert set(results) == {"good", "bad"}
    assert results["good"].ok
    assert not results["bad"].ok
    assert _history_file(tmp_path, "good").read_bytes() == good_before


def test_recompute_all_limits_to_named_players(round_service, handicap_service):
    _play_season(round_service, "a")
    _play_season(round_service, "b")

    results = handicap_service.recompute_all(["b", "b"])

    assert list(results) == ["b"]
    assert handicap_service.store.load("a") == []


def test_manual_index_seeds_replay_and_is_preserved(round_service, handicap_service):
    snapshot, initial = handicap_service.add_manual_index(
        "p1", 12.04, effective_date=date(2023, 12, 31), note="club card"
    )
    assert snapshot.handicap_index == 12.0
    assert initial.ok and initial.snapshots == []

    strokes = list(DEMO_PARS)
    strokes[0] = 9
    play_round(round_service, "p1", date(2024, 1, 1), strokes)
    result = handicap_service.recompute_player_timeline("p1", since=date(2024, 1, 1))

    assert result.snapshots[0].source.prior_index == 12.0
    assert result.snapshots[0].source.differential == 5.0
    history = handicap_service.history("p1")
    assert [s.is_manual for s in history] == [False, True]
    assert history[1].source.note == "club card"


def test_manual_index_only_seeds_does_not_make_player_ratable(handicap_service):
    handicap_service.add_manual_index("p1", 9.5, effective_date=date(2024, 1, 1))

    assert handicap_service.current_handicap("p1") is None


@pytest.mark.parametrize("value", [-10.5, 54.1])
def test_manual_index_out_of_range(handicap_service, value):
    with pytest.raises(ValueError):
        handicap_service.add_manual_index("p1", value)


def test_projection_and_statistics(round_service, handicap_service):
    _play_season(round_service)
    handicap_service.recompute_player_timeline("p1")

    projection = handicap_service.project_for_tee_set(
        "p1", get_course_store().get_tee_set("pebble-beach-white")
    )
    stats = handicap_service.statistics("p1")

    assert projection.handicap_index == 8.0
    assert projection.formatted == "8.0"
    assert projection.course_handicap == 10
    assert projection.playing_handicap == 10
    assert projection.par == 72
    assert stats.total_rounds == 3
    assert stats.rounds_in_window == 3
    assert stats.differentials_used == 1
    assert stats.adjustment == -2.0
    assert stats.lowest_differential == 10.0
    assert stats.highest_differential == 20.0
    assert stats.average_differential == 15.0


def test_recent_differentials_are_newest_first(round_service, handicap_service):
    rounds = _play_season(round_service)
    handicap_service.recompute_player_timeline("p1")

    recent = handicap_service.recent_differentials("p1", limit=2)

    assert [d.round_id for d in recent] == [rounds[2].id, rounds[1].id]


def test_concurrent_recomputes_for_one_player_converge(round_service, handicap_service):
    _play_season(round_service)
    errors: list[Exception] = []

    def worker() -> None:
        try:
            result = handicap_service.recompute_player_timeline("p1")
            assert result.ok
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert handicap_service.store.load("p1") == replay(
        round_service.list_completed_rounds(player_id="p1")
    ).snapshots


def test_player_lock_registry_does_not_grow(round_service, handicap_service):
    _play_season(round_service)

    handicap_service.recompute_player_timeline("p1")
    with handicap_service.player_lock("p2"):
        assert "p2" in handicap_service._locks

    assert "p1" not in handicap_service._locks
    assert "p2" not in handicap_service._locks


def test_current_handicap_rejects_manual_entry_among_round_snapshots(
    monkeypatch, handicap_service
):
    manual, _ = handicap_service.add_manual_index(
        "p1", 12.0, effective_date=date(2024, 1, 1)
    )
    monkeypatch.setattr(
        handicap_service.store, "round_snapshots", lambda player_id: [manual]
    )

    with pytest.raises(ValueError):
        handicap_service.current_handicap("p1")
