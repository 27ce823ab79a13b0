from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from typing import ClassVar

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

DEFAULT_RATING = 1000
DEFAULT_WALLET = 1000
BYE = "BYE"
PENDING = "—"
SIDE_A = "A"
SIDE_B = "B"


def utc_now_iso() -> str:
    """Return current UTC timestamp in ISO-8601 format (ms precision)."""
    return datetime.now(UTC).strftime(ISO_FORMAT)


def _to_number(value: object) -> float:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return 0
    if number != number:  # NaN
        return 0
    return int(number) if number.is_integer() else number


@dataclass(slots=True)
class StatLine:
    team: str
    account_id: str
    steals_or_turnovers: float = 0
    goals: float = 0
    assists: float = 0
    shots: float = 0
    pickups: float = 0
    passes: float = 0
    passes_received: float = 0
    possession: float = 0.0
    shots_allowed: float = 0
    saves: float = 0
    goalie_time: float = 0
    skater_time: float = 0

    NUMERIC_FIELDS: ClassVar[tuple[str, ...]] = (
        "steals_or_turnovers",
        "goals",
        "assists",
        "shots",
        "pickups",
        "passes",
        "passes_received",
        "possession",
        "shots_allowed",
        "saves",
        "goalie_time",
        "skater_time",
    )

    @classmethod
    def from_row(cls, parts: list[str]) -> StatLine:
        team, account_id, *numbers = parts[:14]
        values = {
            name: _to_number(raw) for name, raw in zip(cls.NUMERIC_FIELDS, numbers)
        }
        return cls(team=str(team), account_id=str(account_id), **values)


@dataclass(slots=True)
class AggregatedStats(StatLine):
    entries: int = 1

    @classmethod
    def from_line(cls, line: StatLine) -> AggregatedStats:
        values = {f.name: getattr(line, f.name) for f in fields(StatLine)}
        return cls(**values, entries=1)

    def merge(self, other: StatLine) -> None:
        for name in self.NUMERIC_FIELDS:
            setattr(self, name, getattr(self, name) + getattr(other, name))
        self.possession = round(self.possession, 2)
        self.team = other.team
        if isinstance(other, AggregatedStats):
            self.entries += other.entries
        else:
            self.entries += 1

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {f.name: getattr(self, f.name) for f in fields(self)}
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> AggregatedStats:
        values = {name: _to_number(data.get(name, 0)) for name in cls.NUMERIC_FIELDS}
        return cls(
            team=str(data.get("team", "")),
            account_id=str(data.get("account_id", "")),
            entries=int(data.get("entries", 1)),
            **values,
        )


@dataclass(slots=True)
class Player:
    player_id: str
    name: str
    rating: int = DEFAULT_RATING
    wallet: int = DEFAULT_WALLET
    stats: AggregatedStats | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "player_id": self.player_id,
            "name": self.name,
            "rating": self.rating,
            "wallet": self.wallet,
        }
        if self.stats is not None:
            data["stats"] = self.stats.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Player:
        player_id = str(data["player_id"])
        stats_data = data.get("stats")
        return cls(
            player_id=player_id,
            name=str(data.get("name") or player_id),
            rating=int(data.get("rating", DEFAULT_RATING)),
            wallet=max(0, int(data.get("wallet", DEFAULT_WALLET))),
            stats=(
                AggregatedStats.from_dict(stats_data)  # type: ignore[arg-type]
                if isinstance(stats_data, dict)
                else None
            ),
        )


@dataclass(slots=True)
class Owner:
    player_id: str
    name: str
    team_name: str
    budget: int = 0
    player_ids: list[str] = field(default_factory=list)

    def roster(self) -> list[str]:
        """Owner plus drafted players, in pick order."""
        return [self.player_id, *self.player_ids]


@dataclass(slots=True, frozen=True)
class Bet:
    bettor_id: str
    side: str
    amount: int


@dataclass(slots=True, frozen=True)
class MatchResult:
    winner: str
    score: str = ""


@dataclass(slots=True)
class BracketNode:
    node_id: str
    round_number: int
    team_a: str | None = None
    team_b: str | None = None
    winner: str | None = None
    score: str | None = None

    @property
    def inputs_ready(self) -> bool:
        return self.team_a is not None and self.team_b is not None

    @property
    def is_resolved(self) -> bool:
        return self.winner is not None

    def display(self) -> str:
        team_a = self.team_a if self.team_a is not None else PENDING
        team_b = self.team_b if self.team_b is not None else PENDING
        return f"{team_a} vs {team_b}"


@dataclass(slots=True, frozen=True)
class ActionResult:
    """Outcome of a state-changing request; rejections leave state untouched."""

    accepted: bool
    message: str
    data: object | None = None

    @classmethod
    def ok(cls, message: str = "OK", data: object | None = None) -> ActionResult:
        return cls(accepted=True, message=message, data=data)

    @classmethod
    def rejected(cls, reason: str) -> ActionResult:
        return cls(accepted=False, message=reason)

    def __bool__(self) -> bool:
        return self.accepted


@dataclass(slots=True, frozen=True)
class MatchReport:
    winner_side: str
    winner_ids: tuple[str, ...]
    loser_ids: tuple[str, ...]
    rating_deltas: dict[str, int]
    payouts: dict[str, int]


__all__ = [
    "ISO_FORMAT",
    "DEFAULT_RATING",
    "DEFAULT_WALLET",
    "BYE",
    "PENDING",
    "SIDE_A",
    "SIDE_B",
    "StatLine",
    "AggregatedStats",
    "Player",
    "Owner",
    "Bet",
    "MatchResult",
    "BracketNode",
    "ActionResult",
    "MatchReport",
    "utc_now_iso",
]
