"""Nomination auction draft with a timer extended by every accepted bid."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from .clock import Clock, CountdownHandle
from .models import ActionResult, Owner
from .validation import (
    InvalidConfigurationError,
    validate_auction_seconds,
    validate_extension_seconds,
    validate_roster_size,
)

log = logging.getLogger(__name__)

DEFAULT_BASE_SECONDS = 15
DEFAULT_EXTENSION_SECONDS = 3
DEFAULT_BUDGET = 200


@dataclass(slots=True, frozen=True)
class BidEntry:
    team_name: str
    amount: int
    sequence: int


@dataclass(slots=True, frozen=True)
class AuctionOutcome:
    player_id: str
    nominated_by: str
    team_name: str | None
    price: int

    @property
    def sold(self) -> bool:
        return self.team_name is not None


@dataclass(slots=True)
class _Lot:
    player_id: str
    nominated_by: str
    timer: CountdownHandle
    bids: list[BidEntry]

    def current_bid(self, team_name: str) -> int:
        for entry in reversed(self.bids):
            if entry.team_name == team_name:
                return entry.amount
        return 0

    def leader(self) -> BidEntry | None:
        """Earliest bid that reached the top amount."""
        if not self.bids:
            return None
        top = max(entry.amount for entry in self.bids)
        return min(
            (entry for entry in self.bids if entry.amount == top),
            key=lambda entry: entry.sequence,
        )


class AuctionDraft:
    def __init__(
        self,
        owners: Sequence[Owner],
        roster_size: int,
        clock: Clock,
        *,
        base_seconds: int = DEFAULT_BASE_SECONDS,
        extension_seconds: int = DEFAULT_EXTENSION_SECONDS,
        budget: int | None = None,
        pool: Iterable[str] | None = None,
        on_resolved: Callable[[AuctionOutcome], None] | None = None,
    ) -> None:
        if not owners:
            raise InvalidConfigurationError("An auction needs at least one owner")
        team_names = [owner.team_name for owner in owners]
        if len(set(team_names)) != len(team_names):
            raise InvalidConfigurationError("Team names must be unique within a draft")
        self._owners = {owner.team_name: owner for owner in owners}
        self._order = team_names
        self._roster_size = validate_roster_size(roster_size)
        self._base_seconds = validate_auction_seconds(base_seconds)
        self._extension_seconds = validate_extension_seconds(extension_seconds)
        self._clock = clock
        self._owner_ids = {owner.player_id for owner in owners}
        self._pool = (
            [pid for pid in pool if pid not in self._owner_ids]
            if pool is not None
            else None
        )
        self._on_resolved = on_resolved
        self._lock = threading.RLock()
        self._nominator_index = 0
        self._sequence = 0
        self._lot: _Lot | None = None
        self.history: list[AuctionOutcome] = []
        if budget is not None:
            for owner in owners:
                owner.budget = budget

    # ----- Read side -----
    @property
    def nominator(self) -> Owner:
        return self._owners[self._order[self._nominator_index]]

    @property
    def current_player(self) -> str | None:
        return self._lot.player_id if self._lot is not None else None

    @property
    def remaining_seconds(self) -> int | None:
        if self._lot is None:
            return None
        return self._lot.timer.remaining

    def bids(self) -> list[BidEntry]:
        return list(self._lot.bids) if self._lot is not None else []

    def current_bid(self, team_name: str) -> int:
        return self._lot.current_bid(team_name) if self._lot is not None else 0

    def owner(self, team_name: str) -> Owner | None:
        return self._owners.get(team_name)

    def is_taken(self, player_id: str) -> bool:
        if player_id in self._owner_ids:
            return True
        return any(player_id in owner.player_ids for owner in self._owners.values())

    def available(self) -> list[str]:
        if self._pool is None:
            return []
        return [pid for pid in self._pool if not self.is_taken(pid)]

    def is_complete(self) -> bool:
        return all(
            len(owner.player_ids) >= self._roster_size for owner in self._owners.values()
        )

    # ----- Actions -----
    def nominate(self, player_id: str, team_name: str | None = None) -> ActionResult:
        with self._lock:
            nominator = self.nominator
            if team_name is not None and team_name != nominator.team_name:
                return ActionResult.rejected(
                    f"It is {nominator.team_name}'s turn to nominate"
                )
            if self.is_complete():
                return ActionResult.rejected("Every roster is already full")
            if self.is_taken(player_id):
                return ActionResult.rejected(f"{player_id} is already taken")
            if self._pool is not None and player_id not in self._pool:
                return ActionResult.rejected(f"{player_id} is not in the draft pool")
            if self._lot is not None:
                if self._lot.bids:
                    return ActionResult.rejected(
                        f"{self._lot.player_id} already has bids; award it first"
                    )
                self._lot.timer.cancel()

            timer = self._clock.start(self._base_seconds, on_expire=self._on_timer_expired)
            self._lot = _Lot(
                player_id=player_id,
                nominated_by=nominator.team_name,
                timer=timer,
                bids=[],
            )
            log.info("%s nominated %s", nominator.team_name, player_id)
            return ActionResult.ok(
                f"{nominator.team_name} nominates {player_id}", data=self._base_seconds
            )

    def bid(self, team_name: str, increment: int) -> ActionResult:
        with self._lock:
            lot = self._lot
            if lot is None:
                return ActionResult.rejected("No player is up for auction")
            owner = self._owners.get(team_name)
            if owner is None:
                return ActionResult.rejected(f"Unknown team: {team_name}")
            if increment <= 0:
                return ActionResult.rejected("Bid increment must be positive")
            if len(owner.player_ids) >= self._roster_size:
                return ActionResult.rejected(f"{team_name} roster is already full")
            new_bid = lot.current_bid(team_name) + increment
            if new_bid > owner.budget:
                return ActionResult.rejected(
                    f"{team_name} cannot bid {new_bid} with a budget of {owner.budget}"
                )
            self._sequence += 1
            lot.bids.append(BidEntry(team_name=team_name, amount=new_bid, sequence=self._sequence))
            remaining = lot.timer.extend(self._extension_seconds)
            log.debug("%s bids %s on %s (%ss left)", team_name, new_bid, lot.player_id, remaining)
            return ActionResult.ok(f"{team_name} bids {new_bid}", data=remaining)

    def award(self) -> ActionResult:
        """Resolve the open lot now, without waiting for the timer."""
        with self._lock:
            if self._lot is None:
                return ActionResult.rejected("No player is up for auction")
            outcome = self._resolve()
            return ActionResult.ok(self._describe(outcome), data=outcome)

    def teardown(self) -> None:
        with self._lock:
            if self._lot is not None:
                self._lot.timer.cancel()
                self._lot = None

    def finalize(self) -> dict[str, list[str]]:
        self.teardown()
        return {name: list(owner.player_ids) for name, owner in self._owners.items()}

    # ----- Internals -----
    def _on_timer_expired(self) -> None:
        with self._lock:
            if self._lot is None or self._lot.timer.cancelled:
                return
            self._resolve()

    def _resolve(self) -> AuctionOutcome:
        lot = self._lot
        assert lot is not None
        lot.timer.cancel()
        leader = lot.leader()
        if leader is None:
            outcome = AuctionOutcome(
                player_id=lot.player_id,
                nominated_by=lot.nominated_by,
                team_name=None,
                price=0,
            )
        else:
            owner = self._owners[leader.team_name]
            owner.budget -= leader.amount
            owner.player_ids.append(lot.player_id)
            outcome = AuctionOutcome(
                player_id=lot.player_id,
                nominated_by=lot.nominated_by,
                team_name=leader.team_name,
                price=leader.amount,
            )
        self._lot = None
        self._nominator_index = (self._nominator_index + 1) % len(self._order)
        self.history.append(outcome)
        log.info(self._describe(outcome))
        if self._on_resolved is not None:
            self._on_resolved(outcome)
        return outcome

    @staticmethod
    def _describe(outcome: AuctionOutcome) -> str:
        if outcome.team_name is None:
            return f"No bids for {outcome.player_id}; passed"
        return f"{outcome.player_id} sold to {outcome.team_name} for {outcome.price}"


__all__ = [
    "DEFAULT_BASE_SECONDS",
    "DEFAULT_EXTENSION_SECONDS",
    "DEFAULT_BUDGET",
    "BidEntry",
    "AuctionOutcome",
    "AuctionDraft",
]
