"""Discord slash-command surface for lobbies, tournaments, clans and stats."""

from __future__ import annotations

import logging
from typing import Literal

import boto3
import discord
from botocore.exceptions import BotoCoreError, ClientError
from discord import app_commands

from bots.config import RuntimeConfig, read_runtime_config
from hockey_bot import (
    SIDE_A,
    ActionResult,
    AsyncioClock,
    AuctionDraft,
    ClanLeague,
    InvalidConfigurationError,
    LobbyStatus,
    MatchReport,
    Player,
    PlayerRegistry,
    ProLobby,
    PublicLobby,
    SnakeDraft,
    SnapshotStorage,
    TournamentSession,
    apply_match_csv,
    render_bracket,
)
from hockey_bot.auction import DEFAULT_BASE_SECONDS, DEFAULT_BUDGET, DEFAULT_EXTENSION_SECONDS
from hockey_bot.clock import Clock
from hockey_bot.models import Owner
from hockey_bot.registry import ROLE_ALL

log = logging.getLogger("matchmaking-bot")

LobbyName = Literal["public", "pro"]
DraftKind = Literal["snake", "auction"]
Metric = Literal[
    "elo",
    "goals",
    "assists",
    "shots",
    "passes",
    "passes_received",
    "pickups",
    "saves",
    "possession",
    "steals_or_turnovers",
]
Role = Literal["all", "goalie", "skater"]
DRAW = "draw"


def _is_admin(interaction: discord.Interaction) -> bool:
    guild_perms = getattr(interaction.user, "guild_permissions", None)
    return bool(getattr(guild_perms, "administrator", False))


def format_status(title: str, status: LobbyStatus, registry: PlayerRegistry) -> str:
    def describe(player_ids: tuple[str, ...]) -> str:
        if not player_ids:
            return "—"
        parts = []
        for pid in player_ids:
            player = registry.get(pid)
            name = player.name if player is not None else pid
            parts.append(f"{name} ({registry.rating_of(pid)})")
        return ", ".join(parts)

    lines = [f"**{title}** — {status.phase.value}"]
    if status.countdown is not None:
        lines.append(f"Starting in {status.countdown}s")
    lines.append(f"Players ({len(status.members)}): {describe(status.members)}")
    if status.votes:
        lines.append(f"Votes: {len(status.votes)}/5")
    lines.append(f"Team A: {describe(status.team_a)}")
    lines.append(f"Team B: {describe(status.team_b)}")
    if status.current_turn is not None:
        lines.append(f"Team {status.current_turn} is picking")
    if status.pool_total:
        odds = " • ".join(f"{side} {pct}%" for side, pct in sorted(status.odds.items()))
        lines.append(f"Betting pool: {status.pool_total} ({odds})")
    return "\n".join(lines)


def format_report(report: MatchReport, registry: PlayerRegistry) -> str:
    lines = [f"Team {report.winner_side} wins!"]
    for pid, delta in report.rating_deltas.items():
        player = registry.get(pid)
        name = player.name if player is not None else pid
        lines.append(f"  {name}: {delta:+d} → {registry.rating_of(pid)}")
    if report.payouts:
        lines.append("Payouts:")
        for pid, payout in report.payouts.items():
            player = registry.get(pid)
            lines.append(f"  {player.name if player else pid}: +{payout}")
    return "\n".join(lines)


def _format_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def format_leaderboard(title: str, rows: list[tuple[Player, float]]) -> str:
    lines = [f"**{title}**"]
    if not rows:
        lines.append("No data.")
    for rank, (player, value) in enumerate(rows, start=1):
        lines.append(f"{rank}. {player.name} — {_format_value(value)}")
    return "\n".join(lines)


def format_clans(league: ClanLeague) -> str:
    lines = ["**Clans**"]
    standings = league.standings(limit=10)
    if not standings:
        lines.append("No clans yet.")
    for clan in standings:
        stats = league.clan_stats(clan.clan_id)
        win_rate = stats.win_rate if stats is not None else 0.0
        lines.append(
            f"{clan.display()} • {clan.elo} • {clan.wins}-{clan.losses}-{clan.draws}"
            f" • {win_rate}% • {len(clan.member_ids)} members"
        )
    open_matches = [match for match in league.matches() if match.is_open]
    if open_matches:
        lines.append("**Open matches**")
    for match in open_matches:
        odds = league.odds(match.match_id)
        clan_a = league.get(match.clan_a_id)
        clan_b = league.get(match.clan_b_id)
        tag_a = clan_a.tag if clan_a is not None else match.clan_a_id
        tag_b = clan_b.tag if clan_b is not None else match.clan_b_id
        lines.append(
            f"[{match.match_id}] {tag_a} {odds.get(match.clan_a_id, 0.0)}% vs "
            f"{tag_b} {odds.get(match.clan_b_id, 0.0)}% • {match.status.value}"
            f" • pool {match.market.pool}"
        )
    return "\n".join(lines)


class MatchmakingRuntime:
    def __init__(
        self,
        registry: PlayerRegistry,
        public_lobby: PublicLobby,
        pro_lobby: ProLobby,
        *,
        storage: SnapshotStorage | None = None,
        session_id: str = "default",
        clock: Clock | None = None,
        clans: ClanLeague | None = None,
        buy_in: int = DEFAULT_BUDGET,
        auction_base_seconds: int = DEFAULT_BASE_SECONDS,
        auction_extension_seconds: int = DEFAULT_EXTENSION_SECONDS,
    ) -> None:
        self.registry = registry
        self.public_lobby = public_lobby
        self.pro_lobby = pro_lobby
        self.storage = storage
        self.session_id = session_id
        self.clock = clock if clock is not None else AsyncioClock()
        self.clans = clans if clans is not None else ClanLeague(registry)
        self.buy_in = buy_in
        self.auction_base_seconds = auction_base_seconds
        self.auction_extension_seconds = auction_extension_seconds
        self.tournament: TournamentSession | None = None

    @classmethod
    def create(
        cls,
        config: RuntimeConfig,
        clock: Clock,
        *,
        storage: SnapshotStorage | None = None,
    ) -> MatchmakingRuntime:
        registry = None
        if storage is not None:
            try:
                registry = storage.get_snapshot(config.session_id)
            except (BotoCoreError, ClientError) as exc:
                log.warning("Could not load snapshot %s: %s", config.session_id, exc)
        if registry is None:
            registry = PlayerRegistry()
        lobby_kwargs = {"countdown_seconds": config.countdown_seconds}
        return cls(
            registry,
            PublicLobby(registry, clock, **lobby_kwargs),
            ProLobby(registry, clock, **lobby_kwargs),
            storage=storage,
            session_id=config.session_id,
            clock=clock,
            buy_in=config.buy_in,
            auction_base_seconds=config.auction_base_seconds,
            auction_extension_seconds=config.auction_extension_seconds,
        )

    def lobby(self, name: LobbyName) -> PublicLobby | ProLobby:
        return self.public_lobby if name == "public" else self.pro_lobby

    def player_for(self, interaction: discord.Interaction) -> str:
        user = interaction.user
        player_id = str(user.id)
        display = getattr(user, "display_name", None) or str(user)
        self.registry.ensure(player_id, display)
        self.registry.connect(player_id)
        return player_id

    async def reply(self, interaction: discord.Interaction, result: ActionResult) -> None:
        await interaction.response.send_message(result.message, ephemeral=not result.accepted)

    def persist(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.save_snapshot(self.session_id, self.registry)
        except (BotoCoreError, ClientError, RuntimeError) as exc:
            log.warning("Failed to persist snapshot %s: %s", self.session_id, exc)

    # ----- Handlers -----
    async def handle_queue(self, interaction: discord.Interaction) -> None:
        player_id = self.player_for(interaction)
        await self.reply(interaction, self.public_lobby.toggle_queue(player_id))

    async def handle_pool(self, interaction: discord.Interaction) -> None:
        player_id = self.player_for(interaction)
        await self.reply(interaction, self.pro_lobby.toggle_pool(player_id))

    async def handle_vote(self, interaction: discord.Interaction) -> None:
        player_id = self.player_for(interaction)
        await self.reply(interaction, self.pro_lobby.toggle_vote(player_id))

    async def handle_draft(self, interaction: discord.Interaction, member_id: str) -> None:
        player_id = self.player_for(interaction)
        captains = self.pro_lobby.captains
        turn = self.pro_lobby.current_turn
        if captains is None or turn is None:
            await self.reply(interaction, ActionResult.rejected("No draft in progress"))
            return
        picking = captains[0] if turn == SIDE_A else captains[1]
        if player_id != picking:
            await self.reply(
                interaction, ActionResult.rejected(f"It is Team {turn}'s captain's pick")
            )
            return
        await self.reply(interaction, self.pro_lobby.draft_player(member_id))

    async def handle_bet(
        self,
        interaction: discord.Interaction,
        lobby: LobbyName,
        side: str,
        amount: int,
    ) -> None:
        player_id = self.player_for(interaction)
        result = self.lobby(lobby).place_bet(player_id, side, amount)
        await self.reply(interaction, result)
        if result.accepted:
            self.persist()

    async def handle_report(
        self, interaction: discord.Interaction, lobby: LobbyName, winner: str
    ) -> None:
        player_id = self.player_for(interaction)
        target = self.lobby(lobby)
        if not _is_admin(interaction) and player_id not in (target.team_a + target.team_b):
            await self.reply(
                interaction,
                ActionResult.rejected("Only match players or admins can report results"),
            )
            return
        result = target.report_result(winner)
        if not result.accepted:
            await self.reply(interaction, result)
            return
        self.persist()
        report = result.data
        assert isinstance(report, MatchReport)
        await interaction.response.send_message(format_report(report, self.registry))

    async def handle_status(self, interaction: discord.Interaction, lobby: LobbyName) -> None:
        target = self.lobby(lobby)
        title = "Public Lobby" if lobby == "public" else "Pro Lobby"
        await interaction.response.send_message(
            format_status(title, target.status(), self.registry), ephemeral=True
        )

    async def handle_wallet(self, interaction: discord.Interaction) -> None:
        player_id = self.player_for(interaction)
        player = self.registry.get(player_id)
        assert player is not None
        await interaction.response.send_message(
            f"Wallet: {player.wallet} • Rating: {player.rating}", ephemeral=True
        )

    # ----- Tournament -----
    def _require_admin(self, interaction: discord.Interaction) -> ActionResult | None:
        if _is_admin(interaction):
            return None
        return ActionResult.rejected("Only server administrators can do that")

    def _owner_for(self, player_id: str) -> Owner | None:
        if self.tournament is None:
            return None
        for owner in self.tournament.owners:
            if owner.player_id == player_id:
                return owner
        return None

    async def reply_and_persist(
        self, interaction: discord.Interaction, result: ActionResult
    ) -> None:
        await self.reply(interaction, result)
        if result.accepted:
            self.persist()

    async def handle_tournament_open(
        self, interaction: discord.Interaction, team_count: int
    ) -> None:
        rejection = self._require_admin(interaction)
        if rejection is not None:
            await self.reply(interaction, rejection)
            return
        try:
            session = TournamentSession(
                self.registry, self.clock, team_count=team_count, buy_in=self.buy_in
            )
        except InvalidConfigurationError as exc:
            await self.reply(interaction, ActionResult.rejected(str(exc)))
            return
        if self.tournament is not None:
            self.tournament.close()
        self.tournament = session
        log.info("Tournament opened for %s teams", team_count)
        await self.reply(
            interaction,
            ActionResult.ok(f"Tournament open for {team_count} teams • buy-in {self.buy_in}"),
        )

    async def handle_buyin(self, interaction: discord.Interaction) -> None:
        player_id = self.player_for(interaction)
        if self.tournament is None:
            await self.reply(interaction, ActionResult.rejected("No tournament is open"))
            return
        await self.reply_and_persist(interaction, self.tournament.buy_in(player_id))

    async def handle_start_draft(
        self, interaction: discord.Interaction, kind: DraftKind, roster_size: int
    ) -> None:
        rejection = self._require_admin(interaction)
        if rejection is None and self.tournament is None:
            rejection = ActionResult.rejected("No tournament is open")
        if rejection is not None:
            await self.reply(interaction, rejection)
            return
        assert self.tournament is not None
        try:
            if kind == "snake":
                result = self.tournament.start_snake(roster_size)
            else:
                result = self.tournament.start_auction(
                    roster_size,
                    base_seconds=self.auction_base_seconds,
                    extension_seconds=self.auction_extension_seconds,
                )
        except InvalidConfigurationError as exc:
            result = ActionResult.rejected(str(exc))
        await self.reply(interaction, result)

    async def handle_pick(self, interaction: discord.Interaction, member_id: str) -> None:
        player_id = self.player_for(interaction)
        draft = self.tournament.draft if self.tournament is not None else None
        if not isinstance(draft, SnakeDraft):
            await self.reply(interaction, ActionResult.rejected("No snake draft in progress"))
            return
        on_turn = draft.current_owner
        if on_turn.player_id != player_id:
            await self.reply(
                interaction, ActionResult.rejected(f"It is {on_turn.team_name}'s pick")
            )
            return
        await self.reply(interaction, draft.pick(member_id))

    async def handle_nominate(self, interaction: discord.Interaction, member_id: str) -> None:
        player_id = self.player_for(interaction)
        draft = self.tournament.draft if self.tournament is not None else None
        if not isinstance(draft, AuctionDraft):
            await self.reply(interaction, ActionResult.rejected("No auction in progress"))
            return
        owner = self._owner_for(player_id)
        if owner is None:
            await self.reply(interaction, ActionResult.rejected("Only team owners can nominate"))
            return
        await self.reply(interaction, draft.nominate(member_id, owner.team_name))

    async def handle_bid(self, interaction: discord.Interaction, increment: int) -> None:
        player_id = self.player_for(interaction)
        draft = self.tournament.draft if self.tournament is not None else None
        if not isinstance(draft, AuctionDraft):
            await self.reply(interaction, ActionResult.rejected("No auction in progress"))
            return
        owner = self._owner_for(player_id)
        if owner is None:
            await self.reply(interaction, ActionResult.rejected("Only team owners can bid"))
            return
        await self.reply(interaction, draft.bid(owner.team_name, increment))

    async def handle_complete_draft(self, interaction: discord.Interaction) -> None:
        rejection = self._require_admin(interaction)
        if rejection is None and self.tournament is None:
            rejection = ActionResult.rejected("No tournament is open")
        if rejection is not None:
            await self.reply(interaction, rejection)
            return
        assert self.tournament is not None
        result = self.tournament.complete_draft()
        if not result.accepted:
            await self.reply(interaction, result)
            return
        assert self.tournament.bracket is not None
        await interaction.response.send_message(render_bracket(self.tournament.bracket.rounds()))

    async def handle_tournament_bet(
        self, interaction: discord.Interaction, team_name: str, amount: int
    ) -> None:
        player_id = self.player_for(interaction)
        if self.tournament is None:
            await self.reply(interaction, ActionResult.rejected("No tournament is open"))
            return
        await self.reply_and_persist(
            interaction, self.tournament.place_bet(player_id, team_name, amount)
        )

    async def handle_tournament_result(
        self,
        interaction: discord.Interaction,
        match_id: str,
        team_name: str,
        score: str = "",
    ) -> None:
        rejection = self._require_admin(interaction)
        if rejection is None and self.tournament is None:
            rejection = ActionResult.rejected("No tournament is open")
        if rejection is not None:
            await self.reply(interaction, rejection)
            return
        assert self.tournament is not None
        result = self.tournament.record_result(match_id, team_name, score)
        if not result.accepted:
            await self.reply(interaction, result)
            return
        self.persist()
        message = result.message
        payouts = self.tournament.champion_payouts
        if payouts is not None:
            assert self.tournament.bracket is not None
            champion = self.tournament.bracket.champion()
            message += f"\n{champion} are champions! Bets paid: {len(payouts)}"
        await interaction.response.send_message(message)

    async def handle_bracket(self, interaction: discord.Interaction) -> None:
        if self.tournament is None or self.tournament.bracket is None:
            await self.reply(interaction, ActionResult.rejected("No bracket yet"))
            return
        await interaction.response.send_message(
            render_bracket(self.tournament.bracket.rounds()), ephemeral=True
        )

    # ----- Stats -----
    async def handle_import_stats(self, interaction: discord.Interaction, text: str) -> None:
        rejection = self._require_admin(interaction)
        if rejection is not None:
            await self.reply(interaction, rejection)
            return
        await self.reply_and_persist(interaction, apply_match_csv(self.registry, text))

    async def handle_leaderboard(
        self,
        interaction: discord.Interaction,
        metric: Metric = "elo",
        role: Role = "all",
        team: str | None = None,
    ) -> None:
        if metric == "elo" and role == ROLE_ALL and not team:
            rows = [(player, player.rating) for player in self.registry.elo_leaderboard(10)]
            title = "Top Elo"
        else:
            rows = self.registry.leaderboard(metric, team=team, role=role)
            title = f"Top {metric.replace('_', ' ')}"
        await interaction.response.send_message(format_leaderboard(title, rows), ephemeral=True)

    # ----- Clans -----
    def _clan_by_tag(self, tag: str) -> tuple[str | None, ActionResult | None]:
        clan = self.clans.find_by_tag(tag)
        if clan is None:
            return None, ActionResult.rejected(f"No clan with tag {tag.upper()}")
        return clan.clan_id, None

    async def handle_clan_create(
        self, interaction: discord.Interaction, name: str, tag: str
    ) -> None:
        player_id = self.player_for(interaction)
        await self.reply(interaction, self.clans.create_clan(player_id, name, tag))

    async def handle_clan_join(self, interaction: discord.Interaction, tag: str) -> None:
        player_id = self.player_for(interaction)
        clan_id, rejection = self._clan_by_tag(tag)
        if rejection is not None:
            await self.reply(interaction, rejection)
            return
        assert clan_id is not None
        await self.reply(interaction, self.clans.join(player_id, clan_id))

    async def handle_clan_leave(self, interaction: discord.Interaction) -> None:
        player_id = self.player_for(interaction)
        await self.reply(interaction, self.clans.leave(player_id))

    async def handle_clan_match(
        self, interaction: discord.Interaction, tag_a: str, tag_b: str
    ) -> None:
        rejection = self._require_admin(interaction)
        if rejection is not None:
            await self.reply(interaction, rejection)
            return
        clan_a, rejection = self._clan_by_tag(tag_a)
        if rejection is None:
            clan_b, rejection = self._clan_by_tag(tag_b)
        if rejection is not None:
            await self.reply(interaction, rejection)
            return
        assert clan_a is not None and clan_b is not None
        await self.reply(interaction, self.clans.schedule_match(clan_a, clan_b))

    async def handle_clan_bet(
        self, interaction: discord.Interaction, match_id: str, tag: str, amount: int
    ) -> None:
        player_id = self.player_for(interaction)
        clan_id, rejection = self._clan_by_tag(tag)
        if rejection is not None:
            await self.reply(interaction, rejection)
            return
        assert clan_id is not None
        await self.reply_and_persist(
            interaction, self.clans.place_bet(match_id, player_id, clan_id, amount)
        )

    async def handle_clan_result(
        self,
        interaction: discord.Interaction,
        match_id: str,
        winner_tag: str,
        score: str = "",
    ) -> None:
        rejection = self._require_admin(interaction)
        if rejection is not None:
            await self.reply(interaction, rejection)
            return
        winner_id: str | None = None
        if winner_tag.strip().lower() != DRAW:
            winner_id, rejection = self._clan_by_tag(winner_tag)
            if rejection is not None:
                await self.reply(interaction, rejection)
                return
        await self.reply_and_persist(
            interaction, self.clans.complete_match(match_id, winner_id, score)
        )

    async def handle_clans(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(format_clans(self.clans), ephemeral=True)


def register_commands(
    tree: app_commands.CommandTree,
    runtime: MatchmakingRuntime,
    *,
    guild: discord.abc.Snowflake | None = None,
) -> None:
    """Register every slash command, scoped to ``guild`` when given."""

    def command(**kwargs):
        if guild is not None:
            kwargs["guild"] = guild
        return tree.command(**kwargs)

    @command(name="queue", description="Join or leave the public lobby queue")
    async def queue_command(interaction: discord.Interaction) -> None:  # pragma: no cover
        await runtime.handle_queue(interaction)

    @command(name="pool", description="Join or leave the pro lobby pool")
    async def pool_command(interaction: discord.Interaction) -> None:  # pragma: no cover
        await runtime.handle_pool(interaction)

    @command(name="vote", description="Vote to start the pro lobby")
    async def vote_command(interaction: discord.Interaction) -> None:  # pragma: no cover
        await runtime.handle_vote(interaction)

    @command(name="draft", description="Draft a pool player onto your team")
    async def draft_command(  # pragma: no cover
        interaction: discord.Interaction, player: discord.Member
    ) -> None:
        await runtime.handle_draft(interaction, str(player.id))

    @command(name="bet", description="Bet on a lobby match")
    async def bet_command(  # pragma: no cover
        interaction: discord.Interaction,
        lobby: Literal["public", "pro"],
        side: Literal["A", "B"],
        amount: app_commands.Range[int, 1],
    ) -> None:
        await runtime.handle_bet(interaction, lobby, side, amount)

    @command(name="report", description="Report the winner of a live lobby match")
    async def report_command(  # pragma: no cover
        interaction: discord.Interaction,
        lobby: Literal["public", "pro"],
        winner: Literal["A", "B"],
    ) -> None:
        await runtime.handle_report(interaction, lobby, winner)

    @command(name="lobby", description="Show a lobby's status")
    async def lobby_command(  # pragma: no cover
        interaction: discord.Interaction, lobby: Literal["public", "pro"]
    ) -> None:
        await runtime.handle_status(interaction, lobby)

    @command(name="wallet", description="Show your wallet and rating")
    async def wallet_command(interaction: discord.Interaction) -> None:  # pragma: no cover
        await runtime.handle_wallet(interaction)

    @command(name="tournament", description="Open a new tournament (admin)")
    @app_commands.describe(team_count="Number of owner teams, 2 to 8")
    async def tournament_command(  # pragma: no cover
        interaction: discord.Interaction, team_count: app_commands.Range[int, 2, 8]
    ) -> None:
        await runtime.handle_tournament_open(interaction, team_count)

    @command(name="buyin", description="Buy an owner spot in the open tournament")
    async def buyin_command(interaction: discord.Interaction) -> None:  # pragma: no cover
        await runtime.handle_buyin(interaction)

    @command(name="start-draft", description="Start the tournament draft (admin)")
    async def start_draft_command(  # pragma: no cover
        interaction: discord.Interaction,
        kind: Literal["snake", "auction"],
        roster_size: app_commands.Range[int, 1, 6],
    ) -> None:
        await runtime.handle_start_draft(interaction, kind, roster_size)

    @command(name="pick", description="Pick a player in the snake draft")
    async def pick_command(  # pragma: no cover
        interaction: discord.Interaction, player: discord.Member
    ) -> None:
        await runtime.handle_pick(interaction, str(player.id))

    @command(name="nominate", description="Put a player up for auction")
    async def nominate_command(  # pragma: no cover
        interaction: discord.Interaction, player: discord.Member
    ) -> None:
        await runtime.handle_nominate(interaction, str(player.id))

    @command(name="bid", description="Raise your team's bid on the current lot")
    async def bid_command(  # pragma: no cover
        interaction: discord.Interaction, increment: app_commands.Range[int, 1]
    ) -> None:
        await runtime.handle_bid(interaction, increment)

    @command(name="complete-draft", description="Lock rosters and seed the bracket (admin)")
    async def complete_draft_command(  # pragma: no cover
        interaction: discord.Interaction,
    ) -> None:
        await runtime.handle_complete_draft(interaction)

    @command(name="champion-bet", description="Bet on the tournament champion")
    async def champion_bet_command(  # pragma: no cover
        interaction: discord.Interaction,
        team_name: str,
        amount: app_commands.Range[int, 1],
    ) -> None:
        await runtime.handle_tournament_bet(interaction, team_name, amount)

    @command(name="result", description="Record a bracket match winner (admin)")
    @app_commands.describe(match_id="Bracket match id, e.g. R1-0", score="Optional score")
    async def result_command(  # pragma: no cover
        interaction: discord.Interaction,
        match_id: str,
        team_name: str,
        score: str = "",
    ) -> None:
        await runtime.handle_tournament_result(interaction, match_id, team_name, score)

    @command(name="bracket", description="Show the tournament bracket")
    async def bracket_command(interaction: discord.Interaction) -> None:  # pragma: no cover
        await runtime.handle_bracket(interaction)

    @command(name="import-stats", description="Import a match stats CSV (admin)")
    async def import_stats_command(  # pragma: no cover
        interaction: discord.Interaction, csv_file: discord.Attachment
    ) -> None:
        data = await csv_file.read()
        await runtime.handle_import_stats(interaction, data.decode("utf-8", errors="replace"))

    @command(name="leaderboard", description="Show the top players by rating or stat")
    async def leaderboard_command(  # pragma: no cover
        interaction: discord.Interaction,
        metric: Metric = "elo",
        role: Role = "all",
        team: str | None = None,
    ) -> None:
        await runtime.handle_leaderboard(interaction, metric, role, team)

    @command(name="clan-create", description="Create a clan and become its leader")
    async def clan_create_command(  # pragma: no cover
        interaction: discord.Interaction, name: str, tag: str
    ) -> None:
        await runtime.handle_clan_create(interaction, name, tag)

    @command(name="clan-join", description="Join a clan by tag")
    async def clan_join_command(  # pragma: no cover
        interaction: discord.Interaction, tag: str
    ) -> None:
        await runtime.handle_clan_join(interaction, tag)

    @command(name="clan-leave", description="Leave your clan")
    async def clan_leave_command(interaction: discord.Interaction) -> None:  # pragma: no cover
        await runtime.handle_clan_leave(interaction)

    @command(name="clan-match", description="Schedule a clan match (admin)")
    async def clan_match_command(  # pragma: no cover
        interaction: discord.Interaction, tag_a: str, tag_b: str
    ) -> None:
        await runtime.handle_clan_match(interaction, tag_a, tag_b)

    @command(name="clan-bet", description="Bet on a scheduled clan match")
    async def clan_bet_command(  # pragma: no cover
        interaction: discord.Interaction,
        match_id: str,
        tag: str,
        amount: app_commands.Range[int, 1],
    ) -> None:
        await runtime.handle_clan_bet(interaction, match_id, tag, amount)

    @command(name="clan-result", description="Record a clan match result (admin)")
    @app_commands.describe(winner_tag="Winning clan tag, or 'draw'")
    async def clan_result_command(  # pragma: no cover
        interaction: discord.Interaction,
        match_id: str,
        winner_tag: str,
        score: str = "",
    ) -> None:
        await runtime.handle_clan_result(interaction, match_id, winner_tag, score)

    @command(name="clans", description="Show clan standings and open matches")
    async def clans_command(interaction: discord.Interaction) -> None:  # pragma: no cover
        await runtime.handle_clans(interaction)


def build_runtime(
    config: RuntimeConfig,
) -> tuple[discord.Client, MatchmakingRuntime]:  # pragma: no cover - Discord wiring
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    client = discord.Client(intents=intents)
    tree = app_commands.CommandTree(client)

    storage = None
    if config.persist_snapshots and config.table_name:
        dynamodb = boto3.resource("dynamodb", region_name=config.aws_region)
        storage = SnapshotStorage(dynamodb.Table(config.table_name))

    runtime = MatchmakingRuntime.create(config, AsyncioClock(), storage=storage)
    guild = discord.Object(id=config.guild_id) if config.guild_id is not None else None
    register_commands(tree, runtime, guild=guild)

    @client.event
    async def on_ready() -> None:
        if guild is not None:
            await tree.sync(guild=guild)
            log.info("Commands synced to guild %s", config.guild_id)
        else:
            await tree.sync()
            log.info("Commands synced globally")
        log.info("Matchmaking bot ready as %s", client.user)

    return client, runtime


async def main() -> None:  # pragma: no cover - CLI entry point
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    config = read_runtime_config()
    missing = config.missing()
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")
    client, runtime = build_runtime(config)
    try:
        async with client:
            await client.start(config.discord_token)  # type: ignore[arg-type]
    finally:
        runtime.public_lobby.reset()
        runtime.pro_lobby.reset()
        if runtime.tournament is not None:
            runtime.tournament.close()
        runtime.persist()


__all__ = [
    "MatchmakingRuntime",
    "build_runtime",
    "format_clans",
    "format_leaderboard",
    "format_report",
    "format_status",
    "main",
    "register_commands",
]
