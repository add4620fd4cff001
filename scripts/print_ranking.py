#!/usr/bin/env python3
"""Compute the handicap ranking for one course and print it."""

from __future__ import annotations

import argparse
import json
import random

from scoreboard.db import fetch_ranking_inputs
from scoreboard.ranking import RankingResult, calculate_ranking
from scoreboard.settings import load_settings

GROUP_TITLES = (("groupA", "Group A"), ("groupB", "Group B"), ("groupC", "Group C"))


def format_ranking(location: str, ranking: RankingResult) -> str:
    payload = ranking.as_dict()
    lines = [f"{location} (par {ranking.total_par})"]
    for key, title in GROUP_TITLES:
        lines.append("")
        lines.append(title)
        players = payload[key]
        if not players:
            lines.append("  (no players)")
            continue
        for player in players:
            lines.append(
                f"  {player['rank']:>3}. {player['name']:<30} "
                f"diff {player['difference']:>6.1f}  hcp {player['confirmed']:>5.1f}"
            )
    return "\n".join(lines)


def main() -> None:
    parser = argparse.ArgumentParser(description="Print the handicap ranking for a course.")
    parser.add_argument("--location", "-l", required=True, help="Course name scores were submitted for.")
    parser.add_argument("--json", action="store_true", help="Print the ranking as JSON.")
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed the hole exclusion draw so the output can be reproduced.",
    )
    args = parser.parse_args()

    inputs = fetch_ranking_inputs(load_settings().database_url, args.location)
    if inputs is None:
        raise SystemExit(f"No course named {args.location!r}.")
    pars, players = inputs
    rng = random.Random(args.seed) if args.seed is not None else None
    ranking = calculate_ranking(pars, players, rng=rng)

    if args.json:
        print(json.dumps(ranking.as_dict(), indent=2))
    else:
        print(format_ranking(args.location, ranking))


if __name__ == "__main__":
    main()
