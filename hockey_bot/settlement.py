"""Pari-mutuel settlement of virtual-currency bets."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from .models import ActionResult, Bet
from .registry import PlayerRegistry

log = logging.getLogger(__name__)


def settle(bets: Iterable[Bet], winning_side: str) -> dict[str, int]:
    """Split the whole pool among winning bettors in proportion to stake.

    Nobody on the winning side means the pool is forfeited. Each winning bet is
    floored on its own; the unpaid remainder is not redistributed.
    """
    bets = list(bets)
    pool = sum(bet.amount for bet in bets)
    winners = [bet for bet in bets if bet.side == winning_side]
    winners_stake = sum(bet.amount for bet in winners)
    if pool <= 0 or winners_stake <= 0:
        return {}

    payouts: dict[str, int] = {}
    for bet in winners:
        share = (bet.amount * pool) // winners_stake
        payouts[bet.bettor_id] = payouts.get(bet.bettor_id, 0) + share
    return payouts


class BettingMarket:
    """Bets on one match or tournament, with wallet debits at placement."""

    def __init__(self, sides: Collection[str] | None = None) -> None:
        self._sides = set(sides) if sides is not None else None
        self._bets: list[Bet] = []

    @property
    def bets(self) -> list[Bet]:
        return list(self._bets)

    @property
    def pool(self) -> int:
        return sum(bet.amount for bet in self._bets)

    def set_sides(self, sides: Collection[str] | None) -> None:
        self._sides = set(sides) if sides is not None else None

    def stake_by_side(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for bet in self._bets:
            totals[bet.side] = totals.get(bet.side, 0) + bet.amount
        return totals

    def implied_odds(self) -> dict[str, float]:
        """Percentage of the pool resting on each side."""
        pool = self.pool
        if pool <= 0:
            return {side: 0.0 for side in self.stake_by_side()}
        return {
            side: round(amount / pool * 100, 1)
            for side, amount in self.stake_by_side().items()
        }

    def place(
        self, registry: PlayerRegistry, bettor_id: str, side: str, amount: int
    ) -> ActionResult:
        if amount <= 0:
            return ActionResult.rejected("Bet amount must be positive")
        if self._sides is not None and side not in self._sides:
            return ActionResult.rejected(f"Unknown side: {side}")
        if bettor_id not in registry:
            return ActionResult.rejected("Bettor is not a known player")
        if not registry.debit(bettor_id, amount):
            return ActionResult.rejected("Insufficient wallet balance")
        bet = Bet(bettor_id=bettor_id, side=side, amount=amount)
        self._bets.append(bet)
        log.info("Bet placed: %s on %s for %s", bettor_id, side, amount)
        return ActionResult.ok(f"Bet {amount} on {side}", data=bet)

    def settle(self, registry: PlayerRegistry, winning_side: str) -> dict[str, int]:
        payouts = settle(self._bets, winning_side)
        for bettor_id, payout in payouts.items():
            registry.credit(bettor_id, payout)
        if self._bets and not payouts:
            log.info("No stake on %s; pool of %s forfeited", winning_side, self.pool)
        self._bets.clear()
        return payouts

    def clear(self) -> None:
        self._bets.clear()


__all__ = ["settle", "BettingMarket"]
