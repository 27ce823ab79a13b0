from __future__ import annotations


class InvalidValueError(ValueError):
    """Base exception for validation failures."""


class InvalidConfigurationError(InvalidValueError):
    """Raised when an engine is constructed or driven with impossible input."""


MIN_ROSTER_SIZE = 1
MAX_ROSTER_SIZE = 6
MIN_AUCTION_SECONDS = 5
MAX_AUCTION_SECONDS = 120
MAX_CLAN_TAG_LENGTH = 5
MAX_CLAN_NAME_LENGTH = 32


def validate_roster_size(roster_size: int) -> int:
    if roster_size < MIN_ROSTER_SIZE:
        raise InvalidConfigurationError("Roster size must be at least 1 player")
    if roster_size > MAX_ROSTER_SIZE:
        raise InvalidConfigurationError(
            f"Roster size above {MAX_ROSTER_SIZE} players is not supported"
        )
    return roster_size


def validate_team_count(team_count: int) -> int:
    if team_count < 2:
        raise InvalidConfigurationError("Team count must be at least 2")
    if team_count > 8:
        raise InvalidConfigurationError("Team count above 8 is not supported")
    return team_count


def validate_auction_seconds(seconds: int) -> int:
    if seconds < MIN_AUCTION_SECONDS or seconds > MAX_AUCTION_SECONDS:
        raise InvalidConfigurationError(
            f"Auction round timer must be between {MIN_AUCTION_SECONDS} "
            f"and {MAX_AUCTION_SECONDS} seconds"
        )
    return seconds


def validate_extension_seconds(seconds: int) -> int:
    if seconds < 0:
        raise InvalidConfigurationError("Bid extension cannot be negative")
    return seconds


def validate_countdown_seconds(seconds: int) -> int:
    if seconds <= 0:
        raise InvalidConfigurationError("Countdown must be at least 1 second")
    return seconds


def validate_clan_name(name: str) -> str:
    cleaned = " ".join(name.split())
    if not cleaned:
        raise InvalidValueError("Clan name cannot be empty")
    if len(cleaned) > MAX_CLAN_NAME_LENGTH:
        raise InvalidValueError(f"Clan name must be {MAX_CLAN_NAME_LENGTH} characters or fewer")
    return cleaned


def validate_clan_tag(tag: str) -> str:
    cleaned = tag.strip().upper()
    if not cleaned:
        raise InvalidValueError("Clan tag cannot be empty")
    if len(cleaned) > MAX_CLAN_TAG_LENGTH or not cleaned.isalnum():
        raise InvalidValueError(f"Clan tag must be 1-{MAX_CLAN_TAG_LENGTH} letters or digits")
    return cleaned


def validate_k_factor(k: float) -> float:
    if k <= 0:
        raise InvalidConfigurationError("K-factor must be positive")
    return k


__all__ = [
    "InvalidValueError",
    "InvalidConfigurationError",
    "MIN_ROSTER_SIZE",
    "MAX_ROSTER_SIZE",
    "MIN_AUCTION_SECONDS",
    "MAX_AUCTION_SECONDS",
    "MAX_CLAN_TAG_LENGTH",
    "MAX_CLAN_NAME_LENGTH",
    "validate_roster_size",
    "validate_team_count",
    "validate_auction_seconds",
    "validate_extension_seconds",
    "validate_countdown_seconds",
    "validate_clan_name",
    "validate_clan_tag",
    "validate_k_factor",
]
