"""Shared player set: ratings, wallets and the connected identity."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping

from .models import DEFAULT_RATING, DEFAULT_WALLET, AggregatedStats, Player
from .validation import InvalidValueError

log = logging.getLogger(__name__)

ROLE_ALL = "all"
ROLE_GOALIE = "goalie"
ROLE_SKATER = "skater"
ROLES = (ROLE_ALL, ROLE_GOALIE, ROLE_SKATER)
LEADERBOARD_METRICS = (
    "elo",
    "goals",
    "assists",
    "shots",
    "passes",
    "passes_received",
    "pickups",
    "saves",
    "possession",
    "steals_or_turnovers",
)


class PlayerRegistry:
    """Players are created on first sight and only ever accumulated.

    Wallet and rating mutations go through the registry lock so two lobbies,
    drafts or markets touching the same player never interleave a
    read-then-write of the same balance.
    """

    def __init__(self, players: Iterable[Player] | None = None) -> None:
        self._players: dict[str, Player] = {}
        self._lock = threading.RLock()
        self._connected_id: str | None = None
        for player in players or ():
            self._players[player.player_id] = player

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._players

    def __len__(self) -> int:
        return len(self._players)

    def get(self, player_id: str) -> Player | None:
        return self._players.get(player_id)

    def players(self) -> list[Player]:
        return list(self._players.values())

    def ensure(self, player_id: str, name: str | None = None) -> Player:
        with self._lock:
            player = self._players.get(player_id)
            if player is None:
                player = Player(
                    player_id=player_id,
                    name=name or player_id,
                    rating=DEFAULT_RATING,
                    wallet=DEFAULT_WALLET,
                )
                self._players[player_id] = player
                log.debug("Registered new player %s", player_id)
            return player

    def rating_of(self, player_id: str) -> int:
        player = self._players.get(player_id)
        return player.rating if player is not None else DEFAULT_RATING

    def ratings(self) -> dict[str, int]:
        return {pid: player.rating for pid, player in self._players.items()}

    # ----- Identity -----
    @property
    def connected_id(self) -> str | None:
        return self._connected_id

    def connect(self, player_id: str | None) -> bool:
        if player_id is not None and player_id not in self._players:
            return False
        self._connected_id = player_id
        return True

    # ----- Wallets -----
    def balance(self, player_id: str) -> int:
        player = self._players.get(player_id)
        return player.wallet if player is not None else 0

    def debit(self, player_id: str, amount: int) -> bool:
        """Atomically check and take ``amount`` from the player's wallet."""
        if amount <= 0:
            return False
        with self._lock:
            player = self._players.get(player_id)
            if player is None or player.wallet < amount:
                return False
            player.wallet -= amount
            return True

    def credit(self, player_id: str, amount: int) -> None:
        if amount <= 0:
            return
        with self._lock:
            player = self._players.get(player_id)
            if player is None:
                log.warning("Dropping credit of %s for unknown player %s", amount, player_id)
                return
            player.wallet += amount

    # ----- Ratings & stats -----
    def apply_rating_deltas(self, deltas: Mapping[str, int]) -> None:
        with self._lock:
            for player_id, delta in deltas.items():
                player = self._players.get(player_id)
                if player is None:
                    continue
                player.rating += delta

    def merge_stats(self, aggregated: Mapping[str, AggregatedStats]) -> None:
        with self._lock:
            for account_id, stats in aggregated.items():
                player = self.ensure(account_id)
                if player.stats is None:
                    player.stats = AggregatedStats.from_dict(stats.to_dict())
                else:
                    player.stats.merge(stats)

    # ----- Leaderboards -----
    def elo_leaderboard(self, limit: int = 20) -> list[Player]:
        """Every player by rating, highest first; ties keep registration order."""
        ranked = sorted(self._players.values(), key=lambda player: player.rating, reverse=True)
        return ranked[:limit]

    def leaderboard(
        self,
        metric: str = "elo",
        *,
        team: str | None = None,
        role: str = ROLE_ALL,
        limit: int = 10,
    ) -> list[tuple[Player, float]]:
        """Top players with imported stats, optionally narrowed by team and role.

        A goalie is anyone with goalie time and a skater anyone with skater
        time, so one player can appear under both roles.
        """
        if metric not in LEADERBOARD_METRICS:
            raise InvalidValueError(f"Unknown leaderboard metric: {metric}")
        if role not in ROLES:
            raise InvalidValueError(f"Unknown role filter: {role}")
        rows: list[tuple[Player, float]] = []
        for player in self._players.values():
            stats = player.stats
            if stats is None:
                continue
            if team and str(stats.team) != str(team):
                continue
            if role == ROLE_GOALIE and stats.goalie_time <= 0:
                continue
            if role == ROLE_SKATER and stats.skater_time <= 0:
                continue
            value = player.rating if metric == "elo" else getattr(stats, metric)
            rows.append((player, value))
        rows.sort(key=lambda row: row[1], reverse=True)
        return rows[:limit]

    # ----- Snapshots -----
    def snapshot(self) -> dict[str, object]:
        with self._lock:
            return {
                "players": [player.to_dict() for player in self._players.values()],
                "connected_id": self._connected_id,
            }

    @classmethod
    def from_snapshot(cls, data: Mapping[str, object]) -> PlayerRegistry:
        players_data: Iterable[dict[str, object]] = data.get(  # type: ignore[assignment]
            "players", []
        )
        registry = cls(Player.from_dict(item) for item in players_data)
        connected = data.get("connected_id")
        if connected is not None:
            registry.connect(str(connected))
        return registry


__all__ = [
    "ROLE_ALL",
    "ROLE_GOALIE",
    "ROLE_SKATER",
    "ROLES",
    "LEADERBOARD_METRICS",
    "PlayerRegistry",
]
