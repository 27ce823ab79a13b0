"""Discord runtime for the hockey matchmaking engines.

`bots.matchmaking` wires slash commands onto the lobbies in `hockey_bot`;
`bots.config` reads the environment.
"""

__all__ = ["config", "matchmaking"]
