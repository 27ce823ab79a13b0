"""Clans: membership, scheduled clan-vs-clan matches and their betting pools."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from .models import ISO_FORMAT, ActionResult, utc_now_iso
from .rating import DEFAULT_K_FACTOR, expected_score, update_team_rating
from .registry import PlayerRegistry
from .settlement import BettingMarket
from .validation import InvalidValueError, validate_clan_name, validate_clan_tag

log = logging.getLogger(__name__)

DEFAULT_CLAN_ELO = 1200
DEFAULT_CLAN_COLOR = "#3b82f6"
MATCH_LEAD_TIME = timedelta(hours=24)


class ClanMatchStatus(StrEnum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class Clan:
    clan_id: str
    name: str
    tag: str
    leader_id: str
    member_ids: list[str] = field(default_factory=list)
    wins: int = 0
    losses: int = 0
    draws: int = 0
    elo: int = DEFAULT_CLAN_ELO
    color: str = DEFAULT_CLAN_COLOR
    created_at: str = field(default_factory=utc_now_iso)

    def display(self) -> str:
        return f"[{self.tag}] {self.name}"


@dataclass(slots=True)
class ClanMatch:
    match_id: str
    clan_a_id: str
    clan_b_id: str
    scheduled_at: str
    status: ClanMatchStatus = ClanMatchStatus.SCHEDULED
    winner_clan_id: str | None = None
    score: str = ""
    market: BettingMarket = field(default_factory=BettingMarket)

    @property
    def is_draw(self) -> bool:
        return self.status is ClanMatchStatus.COMPLETED and self.winner_clan_id is None

    @property
    def is_open(self) -> bool:
        return self.status in (ClanMatchStatus.SCHEDULED, ClanMatchStatus.LIVE)


@dataclass(slots=True, frozen=True)
class ClanStats:
    clan_id: str
    total_matches: int
    win_rate: float


class ClanLeague:
    """Clans and their matches; bets debit wallets through the shared registry.

    Bets are taken only while a match is scheduled. A decided match pays the
    winning side's bettors from the whole pool, while a draw or a cancellation
    refunds every stake.
    """

    def __init__(self, registry: PlayerRegistry, *, k_factor: float = DEFAULT_K_FACTOR) -> None:
        self._registry = registry
        self._k_factor = k_factor
        self._lock = threading.RLock()
        self._clans: dict[str, Clan] = {}
        self._matches: dict[str, ClanMatch] = {}
        self._next_clan = 1
        self._next_match = 1

    def clans(self) -> list[Clan]:
        return list(self._clans.values())

    def matches(self) -> list[ClanMatch]:
        return list(self._matches.values())

    def get(self, clan_id: str) -> Clan | None:
        return self._clans.get(clan_id)

    def get_match(self, match_id: str) -> ClanMatch | None:
        return self._matches.get(match_id)

    def clan_of(self, player_id: str) -> Clan | None:
        for clan in self._clans.values():
            if player_id in clan.member_ids:
                return clan
        return None

    def find_by_tag(self, tag: str) -> Clan | None:
        wanted = tag.strip().upper()
        for clan in self._clans.values():
            if clan.tag == wanted:
                return clan
        return None

    # ----- Membership -----
    def create_clan(
        self, leader_id: str, name: str, tag: str, *, color: str = DEFAULT_CLAN_COLOR
    ) -> ActionResult:
        with self._lock:
            try:
                clean_name = validate_clan_name(name)
                clean_tag = validate_clan_tag(tag)
            except InvalidValueError as exc:
                return ActionResult.rejected(str(exc))
            if leader_id not in self._registry:
                return ActionResult.rejected("Connect a player before creating a clan")
            current = self.clan_of(leader_id)
            if current is not None:
                return ActionResult.rejected(f"Already a member of {current.display()}")
            if self.find_by_tag(clean_tag) is not None:
                return ActionResult.rejected(f"Clan tag {clean_tag} is taken")
            clan = Clan(
                clan_id=f"clan-{self._next_clan}",
                name=clean_name,
                tag=clean_tag,
                leader_id=leader_id,
                member_ids=[leader_id],
                color=color,
            )
            self._next_clan += 1
            self._clans[clan.clan_id] = clan
            log.info("%s created clan %s", leader_id, clan.display())
            return ActionResult.ok(f"Created {clan.display()}", data=clan)

    def join(self, player_id: str, clan_id: str) -> ActionResult:
        with self._lock:
            clan = self._clans.get(clan_id)
            if clan is None:
                return ActionResult.rejected(f"Unknown clan: {clan_id}")
            if player_id not in self._registry:
                return ActionResult.rejected(f"Unknown player: {player_id}")
            current = self.clan_of(player_id)
            if current is not None:
                return ActionResult.rejected(f"Already a member of {current.display()}")
            clan.member_ids.append(player_id)
            return ActionResult.ok(f"Joined {clan.display()}", data=clan)

    def leave(self, player_id: str) -> ActionResult:
        with self._lock:
            clan = self.clan_of(player_id)
            if clan is None:
                return ActionResult.rejected("Not a member of any clan")
            if clan.leader_id == player_id and len(clan.member_ids) > 1:
                return ActionResult.rejected("Clan leaders cannot leave while members remain")
            clan.member_ids.remove(player_id)
            if not clan.member_ids:
                del self._clans[clan.clan_id]
                log.info("Clan %s disbanded", clan.display())
                return ActionResult.ok(f"{clan.display()} disbanded", data=clan)
            return ActionResult.ok(f"Left {clan.display()}", data=clan)

    # ----- Matches -----
    def schedule_match(
        self, clan_a_id: str, clan_b_id: str, *, now: datetime | None = None
    ) -> ActionResult:
        with self._lock:
            if clan_a_id == clan_b_id:
                return ActionResult.rejected("A clan cannot play itself")
            for clan_id in (clan_a_id, clan_b_id):
                if clan_id not in self._clans:
                    return ActionResult.rejected(f"Unknown clan: {clan_id}")
            start = (now or datetime.now(UTC)) + MATCH_LEAD_TIME
            match = ClanMatch(
                match_id=f"match-{self._next_match}",
                clan_a_id=clan_a_id,
                clan_b_id=clan_b_id,
                scheduled_at=start.strftime(ISO_FORMAT),
                market=BettingMarket(sides=(clan_a_id, clan_b_id)),
            )
            self._next_match += 1
            self._matches[match.match_id] = match
            log.info("Scheduled %s: %s vs %s", match.match_id, clan_a_id, clan_b_id)
            return ActionResult.ok(f"Scheduled {match.match_id}", data=match)

    def start_match(self, match_id: str) -> ActionResult:
        with self._lock:
            match = self._matches.get(match_id)
            if match is None:
                return ActionResult.rejected(f"Unknown match: {match_id}")
            if match.status is not ClanMatchStatus.SCHEDULED:
                return ActionResult.rejected(f"Match {match_id} is {match.status.value}")
            match.status = ClanMatchStatus.LIVE
            return ActionResult.ok(f"{match_id} is live; betting closed", data=match)

    def place_bet(self, match_id: str, bettor_id: str, clan_id: str, amount: int) -> ActionResult:
        with self._lock:
            match = self._matches.get(match_id)
            if match is None:
                return ActionResult.rejected(f"Unknown match: {match_id}")
            if match.status is not ClanMatchStatus.SCHEDULED:
                return ActionResult.rejected("Betting is only open before the match starts")
            return match.market.place(self._registry, bettor_id, clan_id, amount)

    def odds(self, match_id: str) -> dict[str, float]:
        """Share of the pool on each clan; an empty pool reads 50/50."""
        match = self._matches.get(match_id)
        if match is None:
            return {}
        sides = (match.clan_a_id, match.clan_b_id)
        pool = match.market.pool
        if pool <= 0:
            return {side: 50.0 for side in sides}
        stakes = match.market.stake_by_side()
        return {side: round(stakes.get(side, 0) / pool * 100, 1) for side in sides}

    def complete_match(
        self, match_id: str, winner_clan_id: str | None, score: str = ""
    ) -> ActionResult:
        """Record the result; ``winner_clan_id=None`` is a draw."""
        with self._lock:
            match = self._matches.get(match_id)
            if match is None:
                return ActionResult.rejected(f"Unknown match: {match_id}")
            if not match.is_open:
                return ActionResult.rejected(f"Match {match_id} is {match.status.value}")
            sides = (match.clan_a_id, match.clan_b_id)
            if winner_clan_id is not None and winner_clan_id not in sides:
                return ActionResult.rejected(f"{winner_clan_id} is not playing in {match_id}")
            clan_a = self._clans.get(match.clan_a_id)
            clan_b = self._clans.get(match.clan_b_id)
            if clan_a is None or clan_b is None:
                return ActionResult.rejected("A clan in this match has disbanded")

            if winner_clan_id is None:
                self._refund(match)
                payouts: dict[str, int] = {}
                clan_a.draws += 1
                clan_b.draws += 1
                self._rate_draw(clan_a, clan_b)
            else:
                if winner_clan_id == clan_a.clan_id:
                    winner, loser = clan_a, clan_b
                else:
                    winner, loser = clan_b, clan_a
                payouts = match.market.settle(self._registry, winner.clan_id)
                winner.wins += 1
                loser.losses += 1
                deltas = update_team_rating(
                    [winner.clan_id],
                    [loser.clan_id],
                    {winner.clan_id: winner.elo, loser.clan_id: loser.elo},
                    k=self._k_factor,
                )
                winner.elo += deltas[winner.clan_id]
                loser.elo += deltas[loser.clan_id]
            match.status = ClanMatchStatus.COMPLETED
            match.winner_clan_id = winner_clan_id
            match.score = score.strip()
            log.info("%s completed: winner=%s payouts=%s", match_id, winner_clan_id, payouts)
            return ActionResult.ok(f"{match_id} completed", data=payouts)

    def cancel_match(self, match_id: str) -> ActionResult:
        with self._lock:
            match = self._matches.get(match_id)
            if match is None:
                return ActionResult.rejected(f"Unknown match: {match_id}")
            if not match.is_open:
                return ActionResult.rejected(f"Match {match_id} is {match.status.value}")
            self._refund(match)
            match.status = ClanMatchStatus.CANCELLED
            return ActionResult.ok(f"{match_id} cancelled; bets refunded", data=match)

    def _refund(self, match: ClanMatch) -> None:
        for bet in match.market.bets:
            self._registry.credit(bet.bettor_id, bet.amount)
        match.market.clear()

    def _rate_draw(self, clan_a: Clan, clan_b: Clan) -> None:
        delta = math.floor(self._k_factor * (0.5 - expected_score(clan_a.elo, clan_b.elo)) + 0.5)
        clan_a.elo += delta
        clan_b.elo -= delta

    # ----- Standings -----
    def clan_stats(self, clan_id: str) -> ClanStats | None:
        clan = self._clans.get(clan_id)
        if clan is None:
            return None
        completed = [
            match
            for match in self._matches.values()
            if match.status is ClanMatchStatus.COMPLETED
            and clan_id in (match.clan_a_id, match.clan_b_id)
        ]
        win_rate = round(clan.wins / len(completed) * 100, 1) if completed else 0.0
        return ClanStats(clan_id=clan_id, total_matches=len(completed), win_rate=win_rate)

    def standings(self, limit: int = 5) -> list[Clan]:
        return sorted(self._clans.values(), key=lambda clan: clan.elo, reverse=True)[:limit]


__all__ = [
    "DEFAULT_CLAN_ELO",
    "DEFAULT_CLAN_COLOR",
    "ClanMatchStatus",
    "Clan",
    "ClanMatch",
    "ClanStats",
    "ClanLeague",
]
