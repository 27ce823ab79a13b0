from datetime import UTC, datetime

from hockey_bot.clans import ClanLeague, ClanMatchStatus
from hockey_bot.registry import PlayerRegistry


def make_league(count: int = 6) -> tuple[ClanLeague, PlayerRegistry]:
    registry = PlayerRegistry()
    for index in range(1, count + 1):
        registry.ensure(f"p{index}", f"Player {index}")
    return ClanLeague(registry), registry


def two_clans(league: ClanLeague) -> tuple[str, str]:
    first = league.create_clan("p1", "Ice Hawks", "hawk").data
    second = league.create_clan("p2", "Blue Lines", "blu").data
    return first.clan_id, second.clan_id


def test_create_clan_uppercases_tag_and_seats_leader():
    league, _registry = make_league()

    result = league.create_clan("p1", "  Ice   Hawks ", "hawk", color="#ef4444")

    assert result.accepted
    clan = result.data
    assert clan.clan_id == "clan-1"
    assert clan.name == "Ice Hawks"
    assert clan.tag == "HAWK"
    assert clan.member_ids == ["p1"]
    assert clan.elo == 1200
    assert clan.color == "#ef4444"


def test_create_clan_rejections():
    league, _registry = make_league()
    league.create_clan("p1", "Ice Hawks", "HAWK")

    assert not league.create_clan("p2", "   ", "ABC")
    assert not league.create_clan("p2", "Wings", "")
    assert not league.create_clan("p2", "Wings", "TOOLONG")
    assert not league.create_clan("ghost", "Wings", "WNG")
    assert not league.create_clan("p1", "Second", "TWO")
    taken = league.create_clan("p2", "Other Hawks", "hawk")
    assert not taken
    assert "taken" in taken.message


def test_join_and_leave():
    league, _registry = make_league()
    clan_id, _other = two_clans(league)

    assert league.join("p3", clan_id)
    assert not league.join("p3", clan_id)
    assert not league.leave("p1")
    assert league.leave("p3")
    assert league.get(clan_id).member_ids == ["p1"]

    disbanded = league.leave("p1")

    assert disbanded.accepted
    assert league.get(clan_id) is None


def test_schedule_match_sets_start_a_day_ahead():
    league, _registry = make_league()
    clan_a, clan_b = two_clans(league)
    now = datetime(2024, 3, 1, 18, 0, tzinfo=UTC)

    match = league.schedule_match(clan_a, clan_b, now=now).data

    assert match.match_id == "match-1"
    assert match.status is ClanMatchStatus.SCHEDULED
    assert match.scheduled_at == "2024-03-02T18:00:00.000000Z"
    assert not league.schedule_match(clan_a, clan_a)
    assert not league.schedule_match(clan_a, "clan-9")


def test_odds_default_to_even_and_follow_stakes():
    league, _registry = make_league()
    clan_a, clan_b = two_clans(league)
    match_id = league.schedule_match(clan_a, clan_b).data.match_id

    assert league.odds(match_id) == {clan_a: 50.0, clan_b: 50.0}
    league.place_bet(match_id, "p3", clan_a, 60)
    league.place_bet(match_id, "p4", clan_b, 40)
    assert league.odds(match_id) == {clan_a: 60.0, clan_b: 40.0}


def test_betting_closes_when_match_goes_live():
    league, registry = make_league()
    clan_a, clan_b = two_clans(league)
    match_id = league.schedule_match(clan_a, clan_b).data.match_id

    assert not league.place_bet(match_id, "p3", "clan-7", 10)
    assert not league.place_bet(match_id, "p3", clan_a, 5000)
    assert league.start_match(match_id)
    assert not league.place_bet(match_id, "p3", clan_a, 10)
    assert registry.balance("p3") == 1000


def test_completed_match_pays_bettors_and_updates_record():
    league, registry = make_league()
    clan_a, clan_b = two_clans(league)
    match_id = league.schedule_match(clan_a, clan_b).data.match_id
    league.place_bet(match_id, "p3", clan_a, 60)
    league.place_bet(match_id, "p4", clan_b, 40)

    result = league.complete_match(match_id, clan_a, "5-3")

    assert result.data == {"p3": 100}
    assert registry.balance("p3") == 1040
    assert registry.balance("p4") == 960
    assert league.get(clan_a).wins == 1 and league.get(clan_a).elo == 1214
    assert league.get(clan_b).losses == 1 and league.get(clan_b).elo == 1186
    assert league.get_match(match_id).status is ClanMatchStatus.COMPLETED
    assert not league.complete_match(match_id, clan_b)


def test_draw_refunds_bets_and_moves_elo_toward_each_other():
    league, registry = make_league()
    clan_a, clan_b = two_clans(league)
    first = league.schedule_match(clan_a, clan_b).data.match_id
    league.complete_match(first, clan_a)
    second = league.schedule_match(clan_a, clan_b).data.match_id
    league.place_bet(second, "p3", clan_b, 25)

    league.complete_match(second, None, "2-2")

    assert registry.balance("p3") == 1000
    assert league.get_match(second).is_draw
    assert league.get(clan_a).draws == 1
    assert league.get(clan_a).elo == 1213
    assert league.get(clan_b).elo == 1187


def test_cancel_refunds_and_stats_count_completed_only():
    league, registry = make_league()
    clan_a, clan_b = two_clans(league)
    won = league.schedule_match(clan_a, clan_b).data.match_id
    league.complete_match(won, clan_a)
    lost = league.schedule_match(clan_a, clan_b).data.match_id
    league.complete_match(lost, clan_b)
    cancelled = league.schedule_match(clan_a, clan_b).data.match_id
    league.place_bet(cancelled, "p5", clan_a, 30)

    assert league.cancel_match(cancelled)

    assert registry.balance("p5") == 1000
    assert not league.cancel_match(cancelled)
    stats = league.clan_stats(clan_a)
    assert stats.total_matches == 2
    assert stats.win_rate == 50.0
    assert league.get(clan_a).elo == 1199
    assert league.get(clan_b).elo == 1201
    assert [clan.clan_id for clan in league.standings()] == [clan_b, clan_a]
