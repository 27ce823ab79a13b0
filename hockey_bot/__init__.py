"""Matchmaking, draft, bracket, rating and betting engines."""

from .auction import AuctionDraft, AuctionOutcome, BidEntry
from .bracket import Bracket, derive_bracket, render_bracket
from .clans import Clan, ClanLeague, ClanMatch, ClanMatchStatus, ClanStats
from .clock import AsyncioClock, CountdownHandle, ManualClock
from .lobby import LobbyPhase, LobbyStatus, ProLobby, PublicLobby
from .models import (
    BYE,
    DEFAULT_RATING,
    PENDING,
    SIDE_A,
    SIDE_B,
    ActionResult,
    AggregatedStats,
    Bet,
    BracketNode,
    MatchReport,
    MatchResult,
    Owner,
    Player,
    StatLine,
    utc_now_iso,
)
from .rating import expected_score, update_team_rating
from .registry import PlayerRegistry
from .settlement import BettingMarket, settle
from .snake import SnakeDraft
from .stats import aggregate_stats, apply_match_csv, infer_match, parse_stats_csv
from .storage import SnapshotStorage, read_snapshot_file, write_snapshot_file
from .tournament import DraftMode, TournamentSession
from .validation import InvalidConfigurationError, InvalidValueError

__all__ = [
    "AuctionDraft",
    "AuctionOutcome",
    "BidEntry",
    "Bracket",
    "derive_bracket",
    "render_bracket",
    "Clan",
    "ClanLeague",
    "ClanMatch",
    "ClanMatchStatus",
    "ClanStats",
    "AsyncioClock",
    "CountdownHandle",
    "ManualClock",
    "LobbyPhase",
    "LobbyStatus",
    "ProLobby",
    "PublicLobby",
    "BYE",
    "DEFAULT_RATING",
    "PENDING",
    "SIDE_A",
    "SIDE_B",
    "ActionResult",
    "AggregatedStats",
    "Bet",
    "BracketNode",
    "MatchReport",
    "MatchResult",
    "Owner",
    "Player",
    "StatLine",
    "utc_now_iso",
    "expected_score",
    "update_team_rating",
    "PlayerRegistry",
    "BettingMarket",
    "settle",
    "SnakeDraft",
    "aggregate_stats",
    "apply_match_csv",
    "infer_match",
    "parse_stats_csv",
    "SnapshotStorage",
    "read_snapshot_file",
    "write_snapshot_file",
    "DraftMode",
    "TournamentSession",
    "InvalidConfigurationError",
    "InvalidValueError",
]
