"""Configuration helpers for the matchmaking runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def env_bool(name: str, *, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def env_int(name: str, *, default: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class RuntimeConfig:
    discord_token: str | None
    table_name: str | None
    aws_region: str
    guild_id: int | None
    session_id: str
    countdown_seconds: int
    auction_base_seconds: int
    auction_extension_seconds: int
    buy_in: int
    persist_snapshots: bool

    def missing(self) -> list[str]:
        missing: list[str] = []
        if not self.discord_token:
            missing.append("DISCORD_TOKEN")
        if self.persist_snapshots and not self.table_name:
            missing.append("MATCHMAKING_TABLE_NAME")
        return missing


def read_runtime_config() -> RuntimeConfig:
    return RuntimeConfig(
        discord_token=os.getenv("DISCORD_TOKEN") or None,
        table_name=os.getenv("MATCHMAKING_TABLE_NAME") or None,
        aws_region=os.getenv("AWS_REGION", "us-east-1"),
        guild_id=env_int("MATCHMAKING_GUILD_ID"),
        session_id=os.getenv("MATCHMAKING_SESSION_ID") or "default",
        countdown_seconds=env_int("LOBBY_COUNTDOWN_SECONDS", default=5) or 5,
        auction_base_seconds=env_int("AUCTION_BASE_SECONDS", default=15) or 15,
        auction_extension_seconds=env_int("AUCTION_EXTENSION_SECONDS", default=3) or 0,
        buy_in=env_int("TOURNAMENT_BUY_IN", default=200) or 200,
        persist_snapshots=env_bool("PERSIST_SNAPSHOTS", default=True),
    )
