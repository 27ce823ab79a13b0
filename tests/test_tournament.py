import random

import pytest

from hockey_bot.auction import AuctionDraft
from hockey_bot.clock import ManualClock
from hockey_bot.registry import PlayerRegistry
from hockey_bot.tournament import DraftMode, TournamentSession
from hockey_bot.validation import InvalidConfigurationError


def make_registry(count: int) -> PlayerRegistry:
    registry = PlayerRegistry()
    for index in range(1, count + 1):
        registry.ensure(f"p{index}", f"Player {index}")
    return registry


def snake_session(team_count: int = 2) -> tuple[TournamentSession, PlayerRegistry]:
    registry = make_registry(max(12, team_count * 2))
    session = TournamentSession(registry, ManualClock(), team_count=team_count)
    owners = [f"p{i}" for i in range(1, team_count + 1)]
    assert session.appoint_owners(owners)
    assert session.start_snake(roster_size=1)
    draft = session.draft
    for pid in session.pool()[:team_count]:
        assert draft.pick(pid)
    assert session.complete_draft()
    return session, registry


def test_buy_in_debits_wallet_and_funds_budget():
    registry = make_registry(3)
    session = TournamentSession(registry, ManualClock(), team_count=2, buy_in=250)

    result = session.buy_in("p1")

    assert result.accepted
    assert registry.balance("p1") == 750
    assert session.owners[0].budget == 250
    assert session.owners[0].team_name == "Team 1"
    assert not session.buy_in("p1")


def test_buy_in_rejections():
    registry = make_registry(3)
    registry.debit("p3", 900)
    session = TournamentSession(registry, ManualClock(), team_count=2)

    assert not session.buy_in("ghost")
    assert not session.buy_in("p3")
    assert registry.balance("p3") == 100
    session.buy_in("p1")
    session.buy_in("p2")
    assert not session.buy_in("p3")


def test_pool_excludes_owners_and_respects_selection():
    registry = make_registry(6)
    session = TournamentSession(registry, ManualClock(), team_count=2)
    session.appoint_owners(["p1", "p2"])

    assert session.pool() == ["p3", "p4", "p5", "p6"]
    session.set_pool(["p2", "p5"])
    assert session.pool() == ["p5"]


def test_random_owners_is_seeded():
    registry = make_registry(6)
    session = TournamentSession(registry, ManualClock(), team_count=2)

    result = session.random_owners(random.Random(7))

    assert result.accepted
    assert len(session.owners) == 2


def test_draft_cannot_complete_until_rosters_full():
    registry = make_registry(6)
    session = TournamentSession(registry, ManualClock(), team_count=2)
    session.appoint_owners(["p1", "p2"])
    session.start_snake(roster_size=2)
    session.draft.pick("p3")

    assert not session.complete_draft()
    assert session.bracket is None
    assert not session.start_snake()


def test_completed_snake_draft_seeds_bracket_and_teams():
    session, _registry = snake_session()

    assert session.mode is DraftMode.SNAKE
    assert session.teams == {"Team 1": ["p1", "p3"], "Team 2": ["p2", "p4"]}
    assert [node.node_id for node in session.bracket.rounds()[0]] == ["R1-0"]


def test_final_result_rates_teams_and_pays_champion_bets():
    session, registry = snake_session()
    assert not session.place_bet("p5", "Team 9", 10)
    assert session.place_bet("p5", "Team 1", 100)
    assert session.place_bet("p6", "Team 2", 50)

    result = session.record_result("R1-0", "Team 1", "4-2")

    assert result.accepted
    assert session.champion_payouts == {"p5": 150}
    assert registry.balance("p5") == 1050
    assert registry.rating_of("p1") == 1007
    assert registry.rating_of("p4") == 993
    assert not session.place_bet("p7", "Team 1", 10)


def test_changed_result_reverts_earlier_ratings():
    session, registry = snake_session(team_count=8)
    session.record_result("R1-0", "Team 1")
    session.record_result("R1-1", "Team 3")
    session.record_result("R2-0", "Team 1")

    session.record_result("R1-0", "Team 2")

    assert session.bracket.find_node("R2-0").winner is None
    team_1, team_2 = session.teams["Team 1"], session.teams["Team 2"]
    assert all(registry.rating_of(pid) == 993 for pid in team_1)
    assert all(registry.rating_of(pid) == 1007 for pid in team_2)
    assert all(registry.rating_of(pid) == 1007 for pid in session.teams["Team 3"])


def test_restored_result_rates_downstream_match_again():
    session, registry = snake_session(team_count=8)
    session.record_result("R1-0", "Team 1")
    session.record_result("R1-1", "Team 3")
    session.record_result("R2-0", "Team 1")
    session.record_result("R1-0", "Team 2")

    session.record_result("R1-0", "Team 1")

    assert session.bracket.find_node("R2-0").winner == "Team 1"
    assert set(session._rated) == {"R1-0", "R1-1", "R2-0"}
    assert all(registry.rating_of(pid) == 1014 for pid in session.teams["Team 1"])
    assert all(registry.rating_of(pid) == 993 for pid in session.teams["Team 2"])
    assert all(registry.rating_of(pid) == 1000 for pid in session.teams["Team 3"])
    assert all(registry.rating_of(pid) == 993 for pid in session.teams["Team 4"])


def test_rerecording_same_winner_keeps_ratings():
    session, registry = snake_session(team_count=4)
    session.record_result("R1-0", "Team 1", "2-1")

    assert session.record_result("R1-0", "Team 1", "3-1")

    assert registry.rating_of("p1") == 1007
    assert registry.rating_of("p2") == 993


def test_results_are_final_once_champion_bets_settle():
    session, registry = snake_session()
    session.place_bet("p5", "Team 1", 100)
    session.place_bet("p6", "Team 2", 50)
    session.record_result("R1-0", "Team 1")

    correction = session.record_result("R1-0", "Team 2")

    assert not correction.accepted
    assert session.bracket.champion() == "Team 1"
    assert session.champion_payouts == {"p5": 150}
    assert registry.rating_of("p1") == 1007
    assert registry.rating_of("p2") == 993


def test_appointing_owners_refunds_displaced_buy_ins():
    registry = make_registry(4)
    session = TournamentSession(registry, ManualClock(), team_count=2, buy_in=200)
    session.buy_in("p1")
    session.buy_in("p2")

    assert session.appoint_owners(["p2", "p3"])

    assert registry.balance("p1") == 1000
    assert registry.balance("p2") == 800
    assert registry.balance("p3") == 1000
    assert [owner.player_id for owner in session.owners] == ["p2", "p3"]


def test_auction_flow_through_tournament():
    registry = make_registry(4)
    clock = ManualClock()
    session = TournamentSession(registry, clock, team_count=2, buy_in=100)
    session.buy_in("p1")
    session.buy_in("p2")

    assert session.start_auction(roster_size=1, base_seconds=5, extension_seconds=2)
    draft = session.draft
    assert isinstance(draft, AuctionDraft)
    draft.nominate("p3")
    draft.bid("Team 2", 40)
    clock.advance(7)
    draft.nominate("p4")
    draft.bid("Team 1", 5)
    clock.advance(7)

    assert session.complete_draft()
    assert session.teams == {"Team 1": ["p1", "p4"], "Team 2": ["p2", "p3"]}
    assert draft.owner("Team 2").budget == 60


def test_close_refunds_unsettled_bets_and_stops_auction():
    registry = make_registry(4)
    clock = ManualClock()
    session = TournamentSession(registry, clock, team_count=2)
    session.appoint_owners(["p1", "p2"])
    session.start_auction(roster_size=1)
    session.draft.nominate("p3")

    session.close()

    assert clock.active_handles == []


def test_record_result_before_bracket_is_rejected():
    session = TournamentSession(make_registry(2), ManualClock())

    assert not session.record_result("R1-0", "Team 1")
    assert not session.place_bet("p1", "Team 1", 10)


def test_team_count_bounds():
    with pytest.raises(InvalidConfigurationError):
        TournamentSession(PlayerRegistry(), ManualClock(), team_count=1)


def test_close_before_seeding_refunds_buy_ins():
    registry = make_registry(3)
    session = TournamentSession(registry, ManualClock(), team_count=2, buy_in=150)
    session.buy_in("p1")

    session.close()

    assert registry.balance("p1") == 1000
