"""
Elo rating updates for team-vs-team results.

- Expected score: E = 1 / (1 + 10^((R_opp - R_self) / 400))
- Team delta: K * (S - E), split evenly across the team's members
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from statistics import fmean

from .models import DEFAULT_RATING
from .validation import InvalidConfigurationError, validate_k_factor

DEFAULT_K_FACTOR = 28


def expected_score(rating_a: float, rating_b: float) -> float:
    """Expected score for side A against side B."""
    return 1 / (1 + math.pow(10, (rating_b - rating_a) / 400))


def team_average(player_ids: Sequence[str], rating_lookup: Mapping[str, int]) -> float:
    if not player_ids:
        raise InvalidConfigurationError("Team must contain at least one player")
    return fmean(rating_lookup.get(pid, DEFAULT_RATING) for pid in player_ids)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def update_team_rating(
    winner_ids: Sequence[str],
    loser_ids: Sequence[str],
    rating_lookup: Mapping[str, int],
    k: float = DEFAULT_K_FACTOR,
) -> dict[str, int]:
    """Return the per-player rating delta for one decided result.

    Each player's share of the team delta is rounded on its own, so a team's
    summed deltas may drift from the team delta by the rounding remainder.
    """
    validate_k_factor(k)
    winner_avg = team_average(winner_ids, rating_lookup)
    loser_avg = team_average(loser_ids, rating_lookup)

    expected_win = expected_score(winner_avg, loser_avg)
    expected_lose = 1 - expected_win

    win_per_player = k * (1 - expected_win) / len(winner_ids)
    lose_per_player = k * (0 - expected_lose) / len(loser_ids)

    deltas: dict[str, int] = {}
    for pid in winner_ids:
        deltas[pid] = _round_half_up(win_per_player)
    for pid in loser_ids:
        deltas[pid] = _round_half_up(lose_per_player)
    return deltas


def rated_ratings(
    deltas: Mapping[str, int], rating_lookup: Mapping[str, int]
) -> dict[str, int]:
    """New absolute ratings for the players named in ``deltas``."""
    return {
        pid: rating_lookup.get(pid, DEFAULT_RATING) + delta
        for pid, delta in deltas.items()
    }


__all__ = [
    "DEFAULT_K_FACTOR",
    "expected_score",
    "team_average",
    "update_team_rating",
    "rated_ratings",
]
