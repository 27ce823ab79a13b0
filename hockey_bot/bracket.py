from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence

from .models import BYE, ActionResult, BracketNode, MatchResult
from .validation import InvalidConfigurationError

log = logging.getLogger(__name__)


def _next_power_of_two(value: int) -> int:
    if value <= 0:
        raise ValueError("Value must be positive")
    return 1 << (value - 1).bit_length()


def _round_name(round_index: int, total_rounds: int) -> str:
    remaining = total_rounds - round_index
    if remaining == 1:
        return "Final"
    if remaining == 2:
        return "Semifinals"
    if remaining == 3:
        return "Quarterfinals"
    return f"Round of {2**remaining}"


def _node_id(round_number: int, index: int) -> str:
    return f"R{round_number}-{index}"


def _resolve(node: BracketNode, results: Mapping[str, MatchResult]) -> None:
    if not node.inputs_ready:
        return
    if node.team_a == BYE or node.team_b == BYE:
        real = node.team_b if node.team_a == BYE else node.team_a
        node.winner = real
        node.score = ""
        return
    result = results.get(node.node_id)
    if result is None:
        return
    if result.winner not in (node.team_a, node.team_b):
        # Recorded against inputs that have since changed upstream.
        return
    node.winner = result.winner
    node.score = result.score


def derive_bracket(
    team_names: Sequence[str], results: Mapping[str, MatchResult]
) -> list[list[BracketNode]]:
    """Build every node from the team list and accumulated results.

    Nothing is cached between calls, so a changed result anywhere flows
    through all later rounds.
    """
    if len(team_names) < 2:
        raise InvalidConfigurationError("At least two teams are required to create a bracket")

    slots = _next_power_of_two(len(team_names))
    padded = list(team_names) + [BYE] * (slots - len(team_names))

    rounds: list[list[BracketNode]] = []
    first_round: list[BracketNode] = []
    for index in range(0, slots, 2):
        node = BracketNode(
            node_id=_node_id(1, index // 2),
            round_number=1,
            team_a=padded[index],
            team_b=padded[index + 1],
        )
        _resolve(node, results)
        first_round.append(node)
    rounds.append(first_round)

    previous = first_round
    round_number = 2
    while len(previous) > 1:
        current: list[BracketNode] = []
        for index in range(len(previous) // 2):
            left = previous[2 * index]
            right = previous[2 * index + 1]
            node = BracketNode(
                node_id=_node_id(round_number, index),
                round_number=round_number,
                team_a=left.winner,
                team_b=right.winner,
            )
            _resolve(node, results)
            current.append(node)
        rounds.append(current)
        previous = current
        round_number += 1
    return rounds


def champion_of(rounds: Sequence[Sequence[BracketNode]]) -> str | None:
    if not rounds or not rounds[-1]:
        return None
    winner = rounds[-1][0].winner
    if winner == BYE:
        return None
    return winner


class Bracket:
    """Single-elimination bracket driven by external result entry."""

    def __init__(
        self,
        team_names: Sequence[str],
        *,
        on_champion: Callable[[str], None] | None = None,
    ) -> None:
        if len(set(team_names)) != len(team_names):
            raise InvalidConfigurationError("Team names must be unique")
        if BYE in team_names:
            raise InvalidConfigurationError(f"{BYE} is reserved and cannot be a team name")
        self._teams = list(team_names)
        self._results: dict[str, MatchResult] = {}
        self._on_champion = on_champion
        self._announced: str | None = None
        # Validates the team count up front.
        derive_bracket(self._teams, self._results)

    @property
    def teams(self) -> list[str]:
        return list(self._teams)

    @property
    def results(self) -> dict[str, MatchResult]:
        return dict(self._results)

    def rounds(self) -> list[list[BracketNode]]:
        return derive_bracket(self._teams, self._results)

    def find_node(self, node_id: str) -> BracketNode | None:
        for round_ in self.rounds():
            for node in round_:
                if node.node_id == node_id:
                    return node
        return None

    def champion(self) -> str | None:
        return champion_of(self.rounds())

    def record_result(self, node_id: str, winner: str, score: str = "") -> ActionResult:
        node = self.find_node(node_id)
        if node is None:
            return ActionResult.rejected(f"Match {node_id} not found")
        if not node.inputs_ready:
            return ActionResult.rejected(f"Match {node_id} is still waiting on earlier rounds")
        if BYE in (node.team_a, node.team_b):
            return ActionResult.rejected(f"Match {node_id} is decided by a bye")
        if winner not in (node.team_a, node.team_b):
            return ActionResult.rejected(f"{winner} is not playing in match {node_id}")

        self._results[node_id] = MatchResult(winner=winner, score=score.strip())
        log.info("Recorded %s winner %s (%s)", node_id, winner, score or "no score")
        self.check_champion()
        return ActionResult.ok(f"{winner} wins {node_id}", data=node)

    def check_champion(self) -> str | None:
        """Announce the champion once per distinct new value."""
        champion = self.champion()
        if champion is not None and champion != self._announced:
            self._announced = champion
            log.info("Champion decided: %s", champion)
            if self._on_champion is not None:
                self._on_champion(champion)
        return champion


def render_bracket(rounds: Sequence[Sequence[BracketNode]]) -> str:
    lines: list[str] = []
    total_rounds = len(rounds)
    for round_index, round_ in enumerate(rounds):
        lines.append(_round_name(round_index, total_rounds))
        for node in round_:
            lines.append(f"  [{node.node_id}] {node.display()}")
            if node.is_resolved:
                score = f" ({node.score})" if node.score else ""
                lines.append(f"    -> Winner: {node.winner}{score}")
            else:
                lines.append("    -> Winner: TBD")
        lines.append("")
    if lines and not lines[-1]:
        lines.pop()
    champion = champion_of(rounds)
    if champion:
        lines.append(f"Champion: {champion}")
    return "\n".join(line.rstrip() for line in lines)


__all__ = [
    "derive_bracket",
    "champion_of",
    "Bracket",
    "render_bracket",
]
