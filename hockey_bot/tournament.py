"""Tournament coordinator: owners, draft, bracket, ratings and champion bets."""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Iterable
from enum import StrEnum

from .auction import DEFAULT_BASE_SECONDS, DEFAULT_BUDGET, DEFAULT_EXTENSION_SECONDS, AuctionDraft
from .bracket import Bracket
from .clock import Clock
from .models import BYE, ActionResult, Owner
from .rating import DEFAULT_K_FACTOR, update_team_rating
from .registry import PlayerRegistry
from .settlement import BettingMarket
from .snake import SnakeDraft
from .validation import validate_team_count

log = logging.getLogger(__name__)


class DraftMode(StrEnum):
    SNAKE = "snake"
    AUCTION = "auction"


class TournamentSession:
    def __init__(
        self,
        registry: PlayerRegistry,
        clock: Clock,
        *,
        team_count: int = 4,
        buy_in: int = DEFAULT_BUDGET,
        k_factor: float = DEFAULT_K_FACTOR,
    ) -> None:
        self._registry = registry
        self._clock = clock
        self._team_count = validate_team_count(team_count)
        self._buy_in = buy_in
        self._k_factor = k_factor
        self._lock = threading.RLock()
        self._owners: list[Owner] = []
        self._pool: list[str] | None = None
        self.draft: SnakeDraft | AuctionDraft | None = None
        self.mode: DraftMode | None = None
        self.teams: dict[str, list[str]] = {}
        self.bracket: Bracket | None = None
        self.market = BettingMarket()
        self.champion_payouts: dict[str, int] | None = None
        self._rated: dict[str, tuple[str, dict[str, int]]] = {}
        self._paid: dict[str, int] = {}

    @property
    def owners(self) -> list[Owner]:
        return list(self._owners)

    @property
    def team_count(self) -> int:
        return self._team_count

    def _next_team_name(self) -> str:
        existing = {owner.team_name for owner in self._owners}
        number = 1
        while f"Team {number}" in existing:
            number += 1
        return f"Team {number}"

    def _setup_open(self) -> bool:
        return self.draft is None and self.bracket is None

    # ----- Owners & pool -----
    def buy_in(self, player_id: str) -> ActionResult:
        """Buy an owner spot; the buy-in becomes the owner's auction budget."""
        with self._lock:
            if not self._setup_open():
                return ActionResult.rejected("Owner spots are closed once the draft starts")
            if len(self._owners) >= self._team_count:
                return ActionResult.rejected("Team capacity reached")
            if any(owner.player_id == player_id for owner in self._owners):
                return ActionResult.rejected(f"{player_id} already owns a team")
            player = self._registry.get(player_id)
            if player is None:
                return ActionResult.rejected(f"Unknown player: {player_id}")
            if not self._registry.debit(player_id, self._buy_in):
                return ActionResult.rejected("Insufficient wallet to buy in")
            owner = Owner(
                player_id=player_id,
                name=player.name,
                team_name=self._next_team_name(),
                budget=self._buy_in,
            )
            self._owners.append(owner)
            self._paid[player_id] = self._buy_in
            log.info("%s bought in as %s", player_id, owner.team_name)
            return ActionResult.ok(f"{player.name} now owns {owner.team_name}", data=owner)

    def appoint_owners(self, player_ids: Iterable[str]) -> ActionResult:
        with self._lock:
            if not self._setup_open():
                return ActionResult.rejected("Owners are fixed once the draft starts")
            chosen = list(dict.fromkeys(player_ids))[: self._team_count]
            unknown = [pid for pid in chosen if pid not in self._registry]
            if unknown:
                return ActionResult.rejected(f"Unknown players: {', '.join(unknown)}")
            if len(chosen) < 2:
                return ActionResult.rejected("At least two owners are required")
            for pid, amount in list(self._paid.items()):
                if pid not in chosen:
                    self._registry.credit(pid, amount)
                    del self._paid[pid]
                    log.info("Refunded %s buy-in of %s after owners were replaced", pid, amount)
            self._owners = []
            for pid in chosen:
                player = self._registry.get(pid)
                assert player is not None
                self._owners.append(
                    Owner(
                        player_id=pid,
                        name=player.name,
                        team_name=self._next_team_name(),
                        budget=self._buy_in,
                    )
                )
            return ActionResult.ok(f"{len(self._owners)} owners appointed", data=self.owners)

    def random_owners(self, rng: random.Random | None = None) -> ActionResult:
        candidates = self.pool()
        if len(candidates) < self._team_count:
            return ActionResult.rejected("Select enough players for the pool first")
        randomizer = rng or random.Random()
        return self.appoint_owners(randomizer.sample(candidates, self._team_count))

    def set_pool(self, player_ids: Iterable[str] | None) -> None:
        with self._lock:
            self._pool = list(dict.fromkeys(player_ids)) if player_ids is not None else None

    def pool(self) -> list[str]:
        """Draftable players: the selected pool (default everyone) minus owners."""
        owner_ids = {owner.player_id for owner in self._owners}
        source = (
            self._pool
            if self._pool is not None
            else [player.player_id for player in self._registry.players()]
        )
        return [pid for pid in source if pid not in owner_ids]

    # ----- Draft -----
    def start_snake(self, roster_size: int = 3) -> ActionResult:
        with self._lock:
            rejection = self._check_can_draft()
            if rejection is not None:
                return rejection
            self.draft = SnakeDraft(self._owners, roster_size, pool=self.pool())
            self.mode = DraftMode.SNAKE
            return ActionResult.ok("Snake draft started", data=self.draft)

    def start_auction(
        self,
        roster_size: int = 3,
        *,
        base_seconds: int = DEFAULT_BASE_SECONDS,
        extension_seconds: int = DEFAULT_EXTENSION_SECONDS,
    ) -> ActionResult:
        with self._lock:
            rejection = self._check_can_draft()
            if rejection is not None:
                return rejection
            self.draft = AuctionDraft(
                self._owners,
                roster_size,
                self._clock,
                base_seconds=base_seconds,
                extension_seconds=extension_seconds,
                pool=self.pool(),
            )
            self.mode = DraftMode.AUCTION
            return ActionResult.ok("Auction draft started", data=self.draft)

    def _check_can_draft(self) -> ActionResult | None:
        if not self._setup_open():
            return ActionResult.rejected("A draft has already been started")
        if len(self._owners) < 2:
            return ActionResult.rejected("At least two owners are required")
        return None

    def complete_draft(self) -> ActionResult:
        with self._lock:
            draft = self.draft
            if draft is None:
                return ActionResult.rejected("No draft in progress")
            if self.bracket is not None:
                return ActionResult.rejected("Draft already completed")
            full = draft.is_full() if isinstance(draft, SnakeDraft) else draft.is_complete()
            if not full:
                return ActionResult.rejected("Every roster must be full to complete the draft")
            draft.finalize()
            self.teams = {owner.team_name: owner.roster() for owner in self._owners}
            self.bracket = Bracket(list(self.teams), on_champion=self._on_champion)
            self.market.set_sides(self.teams.keys())
            log.info("Draft complete; %s teams seeded into the bracket", len(self.teams))
            return ActionResult.ok("Draft complete", data=dict(self.teams))

    # ----- Bracket & betting -----
    def place_bet(self, bettor_id: str, team_name: str, amount: int) -> ActionResult:
        with self._lock:
            if self.bracket is None:
                return ActionResult.rejected("Betting opens once teams are locked")
            if self.champion_payouts is not None:
                return ActionResult.rejected("The tournament is already decided")
            return self.market.place(self._registry, bettor_id, team_name, amount)

    def record_result(self, node_id: str, winner: str, score: str = "") -> ActionResult:
        with self._lock:
            if self.bracket is None:
                return ActionResult.rejected("No bracket yet; complete the draft first")
            if self.champion_payouts is not None:
                return ActionResult.rejected("Champion bets are settled; results are final")
            result = self.bracket.record_result(node_id, winner, score)
            if result.accepted:
                self._reconcile_ratings()
            return result

    def _reconcile_ratings(self) -> None:
        """Make applied rating deltas match the winners the bracket derives now.

        Deltas for results that changed or went stale are reverted first, then
        every resolved match without deltas is rated in round order.
        """
        assert self.bracket is not None
        rounds = self.bracket.rounds()
        current = {node.node_id: node for round_ in rounds for node in round_}
        for node_id, (winner, deltas) in list(self._rated.items()):
            node = current.get(node_id)
            if node is None or node.winner != winner:
                self._revert(deltas)
                del self._rated[node_id]
        for round_ in rounds:
            for node in round_:
                if node.node_id in self._rated or not node.is_resolved:
                    continue
                if BYE in (node.team_a, node.team_b):
                    continue
                loser = node.team_b if node.winner == node.team_a else node.team_a
                assert node.winner is not None and loser is not None
                deltas = update_team_rating(
                    self.teams[node.winner],
                    self.teams[loser],
                    self._registry.ratings(),
                    k=self._k_factor,
                )
                self._registry.apply_rating_deltas(deltas)
                self._rated[node.node_id] = (node.winner, deltas)

    def _revert(self, deltas: dict[str, int]) -> None:
        self._registry.apply_rating_deltas({pid: -delta for pid, delta in deltas.items()})

    def _on_champion(self, team_name: str) -> None:
        if self.champion_payouts is not None:
            return
        self.champion_payouts = self.market.settle(self._registry, team_name)
        log.info("%s are champions; payouts=%s", team_name, self.champion_payouts)

    def close(self) -> None:
        """Tear down timers and refund bets that were never settled.

        Buy-ins are refunded too when the bracket was never seeded.
        """
        with self._lock:
            if isinstance(self.draft, AuctionDraft):
                self.draft.teardown()
            if self.bracket is None:
                for pid, amount in self._paid.items():
                    self._registry.credit(pid, amount)
                self._paid.clear()
            for bet in self.market.bets:
                self._registry.credit(bet.bettor_id, bet.amount)
            self.market.clear()


__all__ = ["DraftMode", "TournamentSession"]
