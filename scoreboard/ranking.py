"""Handicap ranking for a single course.

Each player's differential is computed from their 18 hole scores after one hole
per par value (5, 4 and 3) has been dropped at random from each nine. The
confirmed handicap decides the ranking group, the differential decides the
order inside it.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Iterable, Protocol, Sequence

from scoreboard.settings import HOLES_PER_ROUND

FRONT_NINE = range(0, 9)
BACK_NINE = range(9, 18)
EXCLUDED_PAR_VALUES = (5, 4, 3)

SCORE_MULTIPLIER = 1.5
DIFFERENTIAL_ADJUSTMENT = 0.8
HANDICAP_FLOOR = -50.0
HANDICAP_CEILING = 36.0

GROUP_A_MAX = 12
GROUP_B_MAX = 24
GROUP_C_MAX = 36


class RankingInputError(ValueError):
    pass


class ChoiceSource(Protocol):
    def choice(self, seq: Sequence[int]) -> int: ...


@dataclass
class PlayerRound:
    name: str
    scores: list[int]


@dataclass
class RankingEntry:
    name: str
    differential: float
    confirmed: float
    exclusion_mask: list[int]
    masked_scores: list[int]
    rank: int = 0

    def as_dict(self) -> dict:
        """Response shape used by the standings front-end.

        ``difference`` is ``differential`` rounded half-up to one decimal,
        ``randomizedPar`` is ``exclusion_mask`` and ``randomizedScores`` is
        ``masked_scores``.
        """
        return {
            "name": self.name,
            "difference": round_half_up(self.differential),
            "confirmed": self.confirmed,
            "rank": self.rank,
            "randomizedPar": list(self.exclusion_mask),
            "randomizedScores": list(self.masked_scores),
        }


@dataclass
class RankingGroups:
    group_a: list[RankingEntry] = field(default_factory=list)
    group_b: list[RankingEntry] = field(default_factory=list)
    group_c: list[RankingEntry] = field(default_factory=list)


@dataclass
class RankingResult:
    groups: RankingGroups
    total_par: int

    @property
    def group_a(self) -> list[RankingEntry]:
        return self.groups.group_a

    @property
    def group_b(self) -> list[RankingEntry]:
        return self.groups.group_b

    @property
    def group_c(self) -> list[RankingEntry]:
        return self.groups.group_c

    def entries(self) -> list[RankingEntry]:
        return [*self.group_a, *self.group_b, *self.group_c]

    def as_dict(self) -> dict:
        return {
            "groupA": [entry.as_dict() for entry in self.group_a],
            "groupB": [entry.as_dict() for entry in self.group_b],
            "groupC": [entry.as_dict() for entry in self.group_c],
            "totalPar": self.total_par,
        }


def round_half_up(value: float, digits: int = 1) -> float:
    """Round to ``digits`` decimals with halves going towards +infinity."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def _require_round(values: Sequence[int], label: str) -> None:
    if len(values) != HOLES_PER_ROUND:
        raise RankingInputError(
            f"{label} must have exactly {HOLES_PER_ROUND} values, got {len(values)}"
        )


def select_exclusions(pars: Sequence[int], rng: ChoiceSource | None = None) -> list[int]:
    """Return a copy of ``pars`` with one hole per par value zeroed in each nine.

    Par values are handled in the order 5, 4, 3; a nine without a hole of a
    given par simply skips that value.
    """
    _require_round(pars, "Par profile")
    source = rng if rng is not None else random.SystemRandom()
    mask = list(pars)
    for half in (FRONT_NINE, BACK_NINE):
        for par_value in EXCLUDED_PAR_VALUES:
            candidates = [idx for idx in half if pars[idx] == par_value]
            if candidates:
                mask[source.choice(candidates)] = 0
    return mask


def mask_scores(scores: Sequence[int], exclusion_mask: Sequence[int]) -> list[int]:
    _require_round(scores, "Scores")
    _require_round(exclusion_mask, "Exclusion mask")
    return [0 if excluded == 0 else score for score, excluded in zip(scores, exclusion_mask)]


def compute_differential(
    scores: Sequence[int],
    exclusion_mask: Sequence[int],
    total_par: float,
) -> float:
    # total_par is the full course par, excluded holes are not taken off it.
    masked = mask_scores(scores, exclusion_mask)
    return (sum(masked) * SCORE_MULTIPLIER - total_par) * DIFFERENTIAL_ADJUSTMENT


def confirm_handicap(differential: float) -> float:
    if not math.isfinite(differential):
        raise RankingInputError(f"Differential must be a finite number, got {differential!r}")
    if differential < HANDICAP_FLOOR:
        return HANDICAP_FLOOR
    if differential > HANDICAP_CEILING:
        return HANDICAP_CEILING
    return round_half_up(differential)


def _ranked(entries: Iterable[RankingEntry]) -> list[RankingEntry]:
    ordered = sorted(entries, key=lambda entry: entry.differential)
    for position, entry in enumerate(ordered, start=1):
        entry.rank = position
    return ordered


def rank_players(entries: Sequence[RankingEntry]) -> RankingGroups:
    """Bucket entries into groups A/B/C and rank each group by differential.

    Equal differentials keep their input order.
    """
    group_a = [entry for entry in entries if entry.confirmed <= GROUP_A_MAX]
    group_b = [entry for entry in entries if GROUP_A_MAX < entry.confirmed <= GROUP_B_MAX]
    group_c = [entry for entry in entries if GROUP_B_MAX < entry.confirmed <= GROUP_C_MAX]
    return RankingGroups(
        group_a=_ranked(group_a),
        group_b=_ranked(group_b),
        group_c=_ranked(group_c),
    )


def score_player(
    player: PlayerRound,
    pars: Sequence[int],
    total_par: int,
    rng: ChoiceSource | None = None,
) -> RankingEntry:
    if len(player.scores) != HOLES_PER_ROUND:
        raise RankingInputError(
            f"Scores for {player.name!r} must have exactly {HOLES_PER_ROUND} values, "
            f"got {len(player.scores)}"
        )
    exclusion_mask = select_exclusions(pars, rng)
    masked = mask_scores(player.scores, exclusion_mask)
    differential = compute_differential(player.scores, exclusion_mask, total_par)
    return RankingEntry(
        name=player.name,
        differential=differential,
        confirmed=confirm_handicap(differential),
        exclusion_mask=exclusion_mask,
        masked_scores=masked,
    )


def calculate_ranking(
    pars: Sequence[int],
    players: Iterable[PlayerRound],
    rng: ChoiceSource | None = None,
) -> RankingResult:
    _require_round(pars, "Par profile")
    total_par = sum(pars)
    entries = [score_player(player, pars, total_par, rng) for player in players]
    return RankingResult(groups=rank_players(entries), total_par=total_par)
