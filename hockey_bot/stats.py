"""Match stat CSV ingestion and winner inference.

Rows carry 14 comma-separated fields::

    team,accountId,steals/turnovers,goals,assists,shots,pickups,passes,
    passes received,possession,shots allowed,saves,goalie time,skater time
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .models import SIDE_A, SIDE_B, ActionResult, AggregatedStats, StatLine
from .rating import DEFAULT_K_FACTOR, update_team_rating
from .registry import PlayerRegistry

log = logging.getLogger(__name__)

FIELD_COUNT = 14


def parse_stats_csv(text: str) -> list[StatLine]:
    rows: list[StatLine] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith(","):
            line = line[1:]
        parts = [part.strip() for part in line.split(",")]
        if len(parts) < FIELD_COUNT:
            log.debug("Skipping short stat row: %s", raw_line)
            continue
        rows.append(StatLine.from_row(parts))
    return rows


def aggregate_stats(lines: Iterable[StatLine]) -> dict[str, AggregatedStats]:
    aggregated: dict[str, AggregatedStats] = {}
    for line in lines:
        existing = aggregated.get(line.account_id)
        if existing is None:
            aggregated[line.account_id] = AggregatedStats.from_line(line)
        else:
            existing.merge(line)
    return aggregated


@dataclass(slots=True, frozen=True)
class InferredMatch:
    team_a: str
    team_b: str
    goals_a: float
    goals_b: float
    player_ids_a: tuple[str, ...]
    player_ids_b: tuple[str, ...]

    @property
    def winner_side(self) -> str | None:
        if self.goals_a > self.goals_b:
            return SIDE_A
        if self.goals_b > self.goals_a:
            return SIDE_B
        return None

    def summary(self) -> str:
        text = f"Teams {self.team_a}({self.goals_a}) vs {self.team_b}({self.goals_b})"
        side = self.winner_side
        if side is None:
            return f"{text} • Tie (no rating change)"
        winner = self.team_a if side == SIDE_A else self.team_b
        return f"{text} • Winner: {winner}"


def infer_match(lines: Iterable[StatLine]) -> InferredMatch | None:
    """Pick the two best-attended teams and compare their goal totals."""
    goals: dict[str, float] = {}
    members: dict[str, list[str]] = {}
    for line in lines:
        goals[line.team] = goals.get(line.team, 0) + line.goals
        roster = members.setdefault(line.team, [])
        if line.account_id not in roster:
            roster.append(line.account_id)
    if len(members) < 2:
        return None
    by_count = sorted(members, key=lambda team: len(members[team]), reverse=True)
    team_a, team_b = by_count[0], by_count[1]
    return InferredMatch(
        team_a=team_a,
        team_b=team_b,
        goals_a=goals[team_a],
        goals_b=goals[team_b],
        player_ids_a=tuple(members[team_a]),
        player_ids_b=tuple(members[team_b]),
    )


def apply_match_csv(
    registry: PlayerRegistry, text: str, *, k: float = DEFAULT_K_FACTOR
) -> ActionResult:
    """Import a match's stat rows, then rate the inferred result."""
    lines = parse_stats_csv(text)
    if not lines:
        return ActionResult.rejected("No valid CSV data found")
    match = infer_match(lines)
    if match is None:
        return ActionResult.rejected("Need at least two teams in CSV to infer result")

    registry.merge_stats(aggregate_stats(lines))
    deltas: dict[str, int] = {}
    side = match.winner_side
    if side is not None:
        winners, losers = match.player_ids_a, match.player_ids_b
        if side == SIDE_B:
            winners, losers = losers, winners
        deltas = update_team_rating(winners, losers, registry.ratings(), k=k)
        registry.apply_rating_deltas(deltas)
    log.info("Imported %s stat rows: %s", len(lines), match.summary())
    return ActionResult.ok(
        f"Imported {len(lines)} rows • {match.summary()}", data=deltas
    )


__all__ = [
    "FIELD_COUNT",
    "parse_stats_csv",
    "aggregate_stats",
    "InferredMatch",
    "infer_match",
    "apply_match_csv",
]
