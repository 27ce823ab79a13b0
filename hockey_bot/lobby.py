"""Public (auto-start) and pro (vote + captain draft) lobby state machines."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import StrEnum

from .clock import Clock, CountdownHandle
from .models import SIDE_A, SIDE_B, ActionResult, MatchReport
from .rating import DEFAULT_K_FACTOR, update_team_rating
from .registry import PlayerRegistry
from .settlement import BettingMarket
from .validation import validate_countdown_seconds

log = logging.getLogger(__name__)

TEAM_SIZE = 4
DEFAULT_COUNTDOWN_SECONDS = 5
PUBLIC_QUEUE_REQUIRED = 8
PRO_POOL_REQUIRED = 9
PRO_VOTES_REQUIRED = 5


class LobbyPhase(StrEnum):
    FORMING = "forming"
    COUNTDOWN = "countdown"
    DRAFTING = "drafting"
    LIVE = "live"


@dataclass(slots=True, frozen=True)
class LobbyStatus:
    phase: LobbyPhase
    countdown: int | None
    members: tuple[str, ...]
    team_a: tuple[str, ...]
    team_b: tuple[str, ...]
    pool_total: int
    odds: dict[str, float] = field(default_factory=dict)
    votes: tuple[str, ...] = ()
    current_turn: str | None = None


class _LobbyBase:
    """Session state shared by both lobby kinds.

    Every mutation and every countdown callback runs under ``_lock``.
    """

    name = "lobby"
    betting_phases: frozenset[LobbyPhase] = frozenset()

    def __init__(
        self,
        registry: PlayerRegistry,
        clock: Clock,
        *,
        countdown_seconds: int = DEFAULT_COUNTDOWN_SECONDS,
        k_factor: float = DEFAULT_K_FACTOR,
    ) -> None:
        self._registry = registry
        self._clock = clock
        self._countdown_seconds = validate_countdown_seconds(countdown_seconds)
        self._k_factor = k_factor
        self._lock = threading.RLock()
        self._phase = LobbyPhase.FORMING
        self._countdown: CountdownHandle | None = None
        self._team_a: list[str] = []
        self._team_b: list[str] = []
        self.market = BettingMarket(sides=(SIDE_A, SIDE_B))

    @property
    def phase(self) -> LobbyPhase:
        return self._phase

    @property
    def countdown(self) -> int | None:
        if self._countdown is None or not self._countdown.active:
            return None
        return self._countdown.remaining

    @property
    def team_a(self) -> list[str]:
        return list(self._team_a)

    @property
    def team_b(self) -> list[str]:
        return list(self._team_b)

    def _rank(self, player_ids: list[str]) -> list[str]:
        # sorted() is stable: equal ratings keep join order.
        return sorted(player_ids, key=self._registry.rating_of, reverse=True)

    # ----- Countdown -----
    def _start_countdown(self) -> None:
        self._cancel_countdown()
        self._phase = LobbyPhase.COUNTDOWN
        self._countdown = self._clock.start(
            self._countdown_seconds, on_expire=self._countdown_expired
        )
        log.info("%s countdown started (%ss)", self.name, self._countdown_seconds)

    def _cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None

    def _countdown_expired(self) -> None:
        with self._lock:
            if self._phase is not LobbyPhase.COUNTDOWN:
                return
            self._countdown = None
            self._on_countdown_complete()

    def _on_countdown_complete(self) -> None:
        raise NotImplementedError

    # ----- Betting -----
    def place_bet(self, bettor_id: str, side: str, amount: int) -> ActionResult:
        with self._lock:
            if self._phase not in self.betting_phases:
                return ActionResult.rejected("Betting is closed for this lobby")
            return self.market.place(self._registry, bettor_id, side, amount)

    # ----- Results -----
    def report_result(self, winner_side: str) -> ActionResult:
        with self._lock:
            if self._phase is not LobbyPhase.LIVE:
                return ActionResult.rejected("No live match to report")
            if winner_side not in (SIDE_A, SIDE_B):
                return ActionResult.rejected(f"Unknown side: {winner_side}")
            if len(self._team_a) != TEAM_SIZE or len(self._team_b) != TEAM_SIZE:
                return ActionResult.rejected("Result needs exactly 4 vs 4 locked players")

            if winner_side == SIDE_A:
                winners, losers = self._team_a, self._team_b
            else:
                winners, losers = self._team_b, self._team_a
            deltas = update_team_rating(
                winners, losers, self._registry.ratings(), k=self._k_factor
            )
            self._registry.apply_rating_deltas(deltas)
            payouts = self.market.settle(self._registry, winner_side)
            report = MatchReport(
                winner_side=winner_side,
                winner_ids=tuple(winners),
                loser_ids=tuple(losers),
                rating_deltas=deltas,
                payouts=payouts,
            )
            log.info("%s result: team %s wins; payouts=%s", self.name, winner_side, payouts)
            self._reset_state()
            return ActionResult.ok(f"Team {winner_side} wins", data=report)

    def reset(self) -> None:
        """Tear the lobby down, refunding any unsettled bets."""
        with self._lock:
            for bet in self.market.bets:
                self._registry.credit(bet.bettor_id, bet.amount)
            self._reset_state()

    def _reset_state(self) -> None:
        self._cancel_countdown()
        self._phase = LobbyPhase.FORMING
        self._team_a = []
        self._team_b = []
        self.market.clear()


def _toggle(members: list[str], player_id: str) -> bool:
    """Flip membership; returns True when the player is now a member."""
    if player_id in members:
        members.remove(player_id)
        return False
    members.append(player_id)
    return True


class PublicLobby(_LobbyBase):
    name = "public lobby"
    betting_phases = frozenset({LobbyPhase.COUNTDOWN, LobbyPhase.LIVE})

    def __init__(self, registry: PlayerRegistry, clock: Clock, **kwargs) -> None:
        super().__init__(registry, clock, **kwargs)
        self._queue: list[str] = []

    @property
    def queue(self) -> list[str]:
        return list(self._queue)

    def toggle_queue(self, player_id: str) -> ActionResult:
        with self._lock:
            if self._phase is LobbyPhase.LIVE:
                return ActionResult.rejected("Match is live; the queue is locked")
            if player_id not in self._registry:
                return ActionResult.rejected(f"Unknown player: {player_id}")
            joined = _toggle(self._queue, player_id)
            self._sync_countdown()
            verb = "joined" if joined else "left"
            return ActionResult.ok(f"{player_id} {verb} the queue", data=joined)

    def join(self, player_id: str) -> ActionResult:
        with self._lock:
            if player_id in self._queue:
                return ActionResult.rejected(f"{player_id} is already queued")
            return self.toggle_queue(player_id)

    def leave(self, player_id: str) -> ActionResult:
        with self._lock:
            if player_id not in self._queue:
                return ActionResult.rejected(f"{player_id} is not queued")
            return self.toggle_queue(player_id)

    def tentative_teams(self) -> tuple[list[str], list[str]]:
        if self._phase is LobbyPhase.LIVE:
            return self.team_a, self.team_b
        return self._split(self._rank(self._queue)[:PUBLIC_QUEUE_REQUIRED])

    @staticmethod
    def _split(ranked: list[str]) -> tuple[list[str], list[str]]:
        return ranked[0::2], ranked[1::2]

    def _sync_countdown(self) -> None:
        enough = len(self._queue) >= PUBLIC_QUEUE_REQUIRED
        if self._phase is LobbyPhase.FORMING and enough:
            self._start_countdown()
        elif self._phase is LobbyPhase.COUNTDOWN and not enough:
            self._cancel_countdown()
            self._phase = LobbyPhase.FORMING
            log.info("%s countdown cancelled; %s queued", self.name, len(self._queue))

    def _on_countdown_complete(self) -> None:
        self._team_a, self._team_b = self._split(
            self._rank(self._queue)[:PUBLIC_QUEUE_REQUIRED]
        )
        self._phase = LobbyPhase.LIVE
        log.info("%s live: A=%s B=%s", self.name, self._team_a, self._team_b)

    def _reset_state(self) -> None:
        super()._reset_state()
        self._queue = []

    def status(self) -> LobbyStatus:
        with self._lock:
            team_a, team_b = self.tentative_teams()
            return LobbyStatus(
                phase=self._phase,
                countdown=self.countdown,
                members=tuple(self._queue),
                team_a=tuple(team_a),
                team_b=tuple(team_b),
                pool_total=self.market.pool,
                odds=self.market.implied_odds(),
            )


class ProLobby(_LobbyBase):
    name = "pro lobby"
    betting_phases = frozenset(
        {LobbyPhase.COUNTDOWN, LobbyPhase.DRAFTING, LobbyPhase.LIVE}
    )

    def __init__(self, registry: PlayerRegistry, clock: Clock, **kwargs) -> None:
        super().__init__(registry, clock, **kwargs)
        self._pool: list[str] = []
        self._votes: list[str] = []
        self._turn = SIDE_A

    @property
    def pool(self) -> list[str]:
        return list(self._pool)

    @property
    def votes(self) -> list[str]:
        return list(self._votes)

    @property
    def captains(self) -> tuple[str, str] | None:
        if not self._team_a or not self._team_b:
            return None
        return self._team_a[0], self._team_b[0]

    @property
    def current_turn(self) -> str | None:
        if self._phase is not LobbyPhase.DRAFTING:
            return None
        return self._turn

    def _locked(self) -> bool:
        return self._phase in (LobbyPhase.DRAFTING, LobbyPhase.LIVE)

    def toggle_pool(self, player_id: str) -> ActionResult:
        with self._lock:
            if self._locked():
                return ActionResult.rejected("Draft in progress; the pool is locked")
            if player_id not in self._registry:
                return ActionResult.rejected(f"Unknown player: {player_id}")
            joined = _toggle(self._pool, player_id)
            if not joined and player_id in self._votes:
                self._votes.remove(player_id)
            self._sync_countdown()
            verb = "joined" if joined else "left"
            return ActionResult.ok(f"{player_id} {verb} the pool", data=joined)

    def toggle_vote(self, player_id: str) -> ActionResult:
        with self._lock:
            if self._locked():
                return ActionResult.rejected("Draft in progress; voting is closed")
            if player_id not in self._pool:
                return ActionResult.rejected("Join the pool before voting")
            voted = _toggle(self._votes, player_id)
            self._sync_countdown()
            verb = "voted to start" if voted else "withdrew their vote"
            return ActionResult.ok(f"{player_id} {verb}", data=voted)

    def available(self) -> list[str]:
        drafted = set(self._team_a) | set(self._team_b)
        return [pid for pid in self._pool if pid not in drafted]

    def draft_player(self, player_id: str) -> ActionResult:
        with self._lock:
            if self._phase is not LobbyPhase.DRAFTING:
                return ActionResult.rejected("No draft in progress")
            if len(self._team_a) >= TEAM_SIZE and len(self._team_b) >= TEAM_SIZE:
                return ActionResult.rejected("Both teams are full")
            if player_id not in self._pool:
                return ActionResult.rejected(f"{player_id} is not in the pool")
            if player_id in self._team_a or player_id in self._team_b:
                return ActionResult.rejected(f"{player_id} is already drafted")

            side = self._turn
            if side == SIDE_A:
                self._team_a.append(player_id)
                self._turn = SIDE_B
            else:
                self._team_b.append(player_id)
                self._turn = SIDE_A
            if len(self._team_a) >= TEAM_SIZE and len(self._team_b) >= TEAM_SIZE:
                self._phase = LobbyPhase.LIVE
                log.info("%s draft complete: A=%s B=%s", self.name, self._team_a, self._team_b)
            return ActionResult.ok(f"Team {side} drafts {player_id}", data=side)

    def _sync_countdown(self) -> None:
        ready = (
            len(self._pool) >= PRO_POOL_REQUIRED
            and len(self._votes) >= PRO_VOTES_REQUIRED
        )
        if self._phase is LobbyPhase.FORMING and ready:
            self._start_countdown()
        elif self._phase is LobbyPhase.COUNTDOWN and not ready:
            self._cancel_countdown()
            self._phase = LobbyPhase.FORMING
            log.info("%s countdown cancelled", self.name)

    def _on_countdown_complete(self) -> None:
        captain_a, captain_b = self._rank(self._pool)[:2]
        self._team_a = [captain_a]
        self._team_b = [captain_b]
        self._turn = SIDE_A
        self._phase = LobbyPhase.DRAFTING
        log.info("%s drafting: captains %s and %s", self.name, captain_a, captain_b)

    def _reset_state(self) -> None:
        super()._reset_state()
        self._pool = []
        self._votes = []
        self._turn = SIDE_A

    def status(self) -> LobbyStatus:
        with self._lock:
            return LobbyStatus(
                phase=self._phase,
                countdown=self.countdown,
                members=tuple(self._pool),
                team_a=tuple(self._team_a),
                team_b=tuple(self._team_b),
                pool_total=self.market.pool,
                odds=self.market.implied_odds(),
                votes=tuple(self._votes),
                current_turn=self.current_turn,
            )


__all__ = [
    "TEAM_SIZE",
    "DEFAULT_COUNTDOWN_SECONDS",
    "PUBLIC_QUEUE_REQUIRED",
    "PRO_POOL_REQUIRED",
    "PRO_VOTES_REQUIRED",
    "LobbyPhase",
    "LobbyStatus",
    "PublicLobby",
    "ProLobby",
]
