import json
from datetime import date

import pytest

from golfindex.jobs import recompute_handicaps
from golfindex.tests.factories import DEMO_PARS, play_round, strokes_for


def _season(round_service, player_id):
    return [
        play_round(round_service, player_id, date(2024, 1, day), strokes_for(DEMO_PARS, total))
        for day, total in ((1, 90), (2, 85), (3, 80))
    ]


def test_run_recomputes_every_player(round_service, handicap_service, capsys):
    _season(round_service, "a")
    _season(round_service, "b")

    exit_code = recompute_handicaps.run(handicap_service)

    assert exit_code == 0
    assert handicap_service.current_handicap("a") == 8.0
    assert handicap_service.current_handicap("b") == 8.0
    assert "Recomputed 2 of 2 players" in capsys.readouterr().out


def test_run_reports_failures_and_keeps_going(
    tmp_path, round_service, handicap_service, caplog
):
    _season(round_service, "a")
    bad = _season(round_service, "b")
    scores_path = tmp_path / "rounds" / "b" / bad[2].id / "scores.json"
    payload = json.loads(scores_path.read_text())
    payload["holes"]["4"]["strokes"] = 0
    scores_path.write_text(json.dumps(payload))

    with caplog.at_level("ERROR"):
        exit_code = recompute_handicaps.run(handicap_service)

    assert exit_code == 1
    assert handicap_service.current_handicap("a") == 8.0
    assert handicap_service.store.load("b") == []
    assert any(bad[2].id in record.getMessage() for record in caplog.records)


def test_main_parses_arguments(monkeypatch, round_service, handicap_service):
    _season(round_service, "a")
    _season(round_service, "b")
    monkeypatch.setattr(
        recompute_handicaps, "get_handicap_service", lambda: handicap_service
    )

    exit_code = recompute_handicaps.main(["--player", "b", "--strategy", "full"])

    assert exit_code == 0
    assert handicap_service.store.load("a") == []
    assert handicap_service.current_handicap("b") == 8.0


def test_main_rejects_unknown_strategy():
    with pytest.raises(SystemExit):
        recompute_handicaps.main(["--strategy", "sometimes"])


def test_since_argument_is_a_date():
    args = recompute_handicaps.build_parser().parse_args(["--since", "2024-01-02"])

    assert args.since == date(2024, 1, 2)
