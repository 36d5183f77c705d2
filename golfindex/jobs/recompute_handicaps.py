#!/usr/bin/env python3
"""Recompute handicap timelines for every player, or the ones named.

Usage: python -m golfindex.jobs.recompute_handicaps [--player ID ...]
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from typing import Optional, Sequence

from golfindex.config import RecomputeStrategy
from golfindex.timeline.service import HandicapService, get_handicap_service

logger = logging.getLogger("golfindex.jobs.recompute_handicaps")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Recompute handicap timelines from completed rounds"
    )
    parser.add_argument(
        "--player",
        dest="players",
        action="append",
        default=None,
        help="Player id to recompute (repeatable, default: all players)",
    )
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in RecomputeStrategy],
        default=None,
        help="Replay strategy (default: HANDICAP_RECOMPUTE_STRATEGY)",
    )
    parser.add_argument(
        "--since",
        type=date.fromisoformat,
        default=None,
        help="Earliest changed round date (YYYY-MM-DD) for incremental replays",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def run(
    service: HandicapService,
    players: Optional[Sequence[str]] = None,
    strategy: Optional[str] = None,
    since: Optional[date] = None,
) -> int:
    results = service.recompute_all(players, since=since, strategy=strategy)

    failed = 0
    for player_id, result in results.items():
        if result.ok:
            logger.info(
                "recomputed %s: %d snapshots (%s)",
                player_id,
                len(result.snapshots),
                result.strategy,
            )
            continue
        failed += 1
        for error in result.errors:
            logger.error(
                "failed %s: %s",
                player_id,
                error.message,
                extra={"player_id": player_id, "round_id": error.round_id},
            )

    print(f"Recomputed {len(results) - failed} of {len(results)} players")
    return 1 if failed else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run(
        get_handicap_service(),
        players=args.players,
        strategy=args.strategy,
        since=args.since,
    )


if __name__ == "__main__":
    sys.exit(main())
