"""Serpentine draft: pick order reverses every round."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .models import ActionResult, Owner
from .validation import InvalidConfigurationError, validate_roster_size

log = logging.getLogger(__name__)


class SnakeDraft:
    def __init__(
        self,
        owners: Sequence[Owner],
        roster_size: int,
        pool: Iterable[str] | None = None,
    ) -> None:
        if not owners:
            raise InvalidConfigurationError("A draft needs at least one owner")
        team_names = [owner.team_name for owner in owners]
        if len(set(team_names)) != len(team_names):
            raise InvalidConfigurationError("Team names must be unique within a draft")
        self._owners = list(owners)
        self._roster_size = validate_roster_size(roster_size)
        self._owner_ids = {owner.player_id for owner in owners}
        self._pool = (
            [pid for pid in pool if pid not in self._owner_ids]
            if pool is not None
            else None
        )
        self._picks: dict[str, list[str]] = {name: [] for name in team_names}

    @property
    def owners(self) -> list[Owner]:
        return list(self._owners)

    @property
    def roster_size(self) -> int:
        return self._roster_size

    @property
    def total_picks(self) -> int:
        return sum(len(picks) for picks in self._picks.values())

    def owner_for_pick(self, pick_index: int) -> Owner:
        count = len(self._owners)
        round_index, slot = divmod(pick_index, count)
        if round_index % 2 == 0:
            return self._owners[slot]
        return self._owners[count - 1 - slot]

    @property
    def current_owner(self) -> Owner:
        return self.owner_for_pick(self.total_picks)

    def picks_for(self, team_name: str) -> list[str]:
        return list(self._picks.get(team_name, []))

    def is_taken(self, player_id: str) -> bool:
        if player_id in self._owner_ids:
            return True
        return any(player_id in picks for picks in self._picks.values())

    def available(self) -> list[str]:
        if self._pool is None:
            return []
        return [pid for pid in self._pool if not self.is_taken(pid)]

    def is_full(self) -> bool:
        return all(len(picks) >= self._roster_size for picks in self._picks.values())

    def pick(self, player_id: str) -> ActionResult:
        owner = self.current_owner
        if self.is_taken(player_id):
            return ActionResult.rejected(f"{player_id} is already taken")
        if self._pool is not None and player_id not in self._pool:
            return ActionResult.rejected(f"{player_id} is not in the draft pool")
        picks = self._picks[owner.team_name]
        if len(picks) >= self._roster_size:
            return ActionResult.rejected(f"{owner.team_name} roster is already full")
        picks.append(player_id)
        log.debug("Pick %s: %s -> %s", self.total_picks, player_id, owner.team_name)
        return ActionResult.ok(f"{owner.team_name} drafts {player_id}", data=owner.team_name)

    def finalize(self) -> dict[str, list[str]]:
        """Hand back team assignments and copy them onto the owners."""
        for owner in self._owners:
            owner.player_ids = list(self._picks[owner.team_name])
        return {name: list(picks) for name, picks in self._picks.items()}


__all__ = ["SnakeDraft"]
