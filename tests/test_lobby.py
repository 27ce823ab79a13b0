import pytest

from hockey_bot.clock import ManualClock
from hockey_bot.lobby import LobbyPhase, ProLobby, PublicLobby
from hockey_bot.registry import PlayerRegistry
from hockey_bot.validation import InvalidConfigurationError


def make_registry(count: int, *, ratings: dict[str, int] | None = None) -> PlayerRegistry:
    registry = PlayerRegistry()
    for index in range(1, count + 1):
        registry.ensure(f"p{index}", f"Player {index}")
    for pid, rating in (ratings or {}).items():
        registry.ensure(pid).rating = rating
    return registry


def fill_queue(lobby: PublicLobby, count: int) -> None:
    for index in range(1, count + 1):
        assert lobby.toggle_queue(f"p{index}")


def test_countdown_starts_cancels_and_restarts():
    registry = make_registry(8)
    clock = ManualClock()
    lobby = PublicLobby(registry, clock)

    fill_queue(lobby, 7)
    assert lobby.countdown is None

    lobby.toggle_queue("p8")
    assert lobby.phase is LobbyPhase.COUNTDOWN
    assert lobby.countdown == 5

    clock.advance(2)
    assert lobby.countdown == 3
    lobby.toggle_queue("p8")
    assert lobby.countdown is None
    assert lobby.phase is LobbyPhase.FORMING

    lobby.toggle_queue("p8")
    assert lobby.countdown == 5


def test_countdown_expiry_locks_balanced_teams():
    ratings = {f"p{i}": 1000 + 100 * i for i in range(1, 10)}
    registry = make_registry(9, ratings=ratings)
    clock = ManualClock()
    lobby = PublicLobby(registry, clock)
    fill_queue(lobby, 9)

    clock.advance(5)

    assert lobby.phase is LobbyPhase.LIVE
    assert lobby.team_a == ["p9", "p7", "p5", "p3"]
    assert lobby.team_b == ["p8", "p6", "p4", "p2"]
    rejected = lobby.toggle_queue("p1")
    assert not rejected.accepted
    assert "locked" in rejected.message


def test_betting_only_after_countdown_starts():
    registry = make_registry(9)
    lobby = PublicLobby(registry, ManualClock())

    assert not lobby.place_bet("p9", "A", 10)
    fill_queue(lobby, 8)
    assert lobby.place_bet("p9", "A", 10)


def test_report_result_settles_bets_and_resets():
    registry = make_registry(10)
    clock = ManualClock()
    lobby = PublicLobby(registry, clock)
    fill_queue(lobby, 8)
    clock.advance(5)
    assert lobby.place_bet("p9", "A", 60)
    assert lobby.place_bet("p10", "B", 40)

    result = lobby.report_result("A")

    assert result.accepted
    report = result.data
    assert report.payouts == {"p9": 100}
    assert registry.balance("p9") == 1040
    assert registry.balance("p10") == 960
    assert set(report.winner_ids) == {"p1", "p3", "p5", "p7"}
    assert all(registry.rating_of(pid) == 1004 for pid in report.winner_ids)
    assert all(registry.rating_of(pid) == 997 for pid in report.loser_ids)
    assert lobby.phase is LobbyPhase.FORMING
    assert lobby.queue == []
    assert lobby.market.bets == []
    assert lobby.team_a == [] and lobby.team_b == []


def test_report_splits_pool_across_several_winning_bettors():
    registry = make_registry(11)
    clock = ManualClock()
    lobby = PublicLobby(registry, clock)
    fill_queue(lobby, 8)
    clock.advance(5)
    assert lobby.place_bet("p9", "A", 30)
    assert lobby.place_bet("p10", "A", 30)
    assert lobby.place_bet("p11", "B", 40)

    report = lobby.report_result("A").data

    assert report.payouts == {"p9": 50, "p10": 50}
    assert registry.balance("p9") == 1020
    assert registry.balance("p10") == 1020
    assert registry.balance("p11") == 960
    assert lobby.phase is LobbyPhase.FORMING
    assert lobby.market.bets == []


def test_non_positive_countdown_is_a_configuration_error():
    with pytest.raises(InvalidConfigurationError):
        PublicLobby(make_registry(1), ManualClock(), countdown_seconds=0)
    with pytest.raises(InvalidConfigurationError):
        ProLobby(make_registry(1), ManualClock(), countdown_seconds=-3)


def test_report_requires_live_match():
    lobby = PublicLobby(make_registry(8), ManualClock())

    result = lobby.report_result("A")

    assert not result.accepted
    assert "live" in result.message


def test_reset_refunds_open_bets():
    registry = make_registry(9)
    lobby = PublicLobby(registry, ManualClock())
    fill_queue(lobby, 8)
    lobby.place_bet("p9", "B", 50)

    lobby.reset()

    assert registry.balance("p9") == 1000
    assert lobby.countdown is None
    assert lobby.queue == []


def test_join_and_leave_are_explicit():
    lobby = PublicLobby(make_registry(2), ManualClock())

    assert lobby.join("p1")
    assert not lobby.join("p1")
    assert lobby.leave("p1")
    assert not lobby.leave("p1")
    assert not lobby.join("stranger")


def start_pro_draft(registry: PlayerRegistry, clock: ManualClock) -> ProLobby:
    lobby = ProLobby(registry, clock)
    for index in range(1, 10):
        assert lobby.toggle_pool(f"p{index}")
    for index in range(1, 6):
        assert lobby.toggle_vote(f"p{index}")
    clock.advance(5)
    return lobby


def test_pro_lobby_needs_pool_and_votes():
    registry = make_registry(9)
    lobby = ProLobby(registry, ManualClock())
    for index in range(1, 9):
        lobby.toggle_pool(f"p{index}")
    for index in range(1, 6):
        lobby.toggle_vote(f"p{index}")
    assert lobby.countdown is None

    lobby.toggle_pool("p9")
    assert lobby.countdown == 5

    lobby.toggle_vote("p5")
    assert lobby.countdown is None


def test_vote_requires_pool_membership_and_leaving_withdraws_it():
    lobby = ProLobby(make_registry(2), ManualClock())

    assert not lobby.toggle_vote("p1")
    lobby.toggle_pool("p1")
    lobby.toggle_vote("p1")
    lobby.toggle_pool("p1")

    assert lobby.votes == []


def test_pro_captains_draft_alternately_until_four_each():
    ratings = {"p1": 1500, "p2": 1400}
    registry = make_registry(9, ratings=ratings)
    clock = ManualClock()
    lobby = start_pro_draft(registry, clock)

    assert lobby.phase is LobbyPhase.DRAFTING
    assert lobby.captains == ("p1", "p2")
    assert lobby.current_turn == "A"
    assert not lobby.toggle_pool("p3")

    for pid in ("p3", "p4", "p5", "p6", "p7", "p8"):
        assert lobby.draft_player(pid)

    assert lobby.phase is LobbyPhase.LIVE
    assert lobby.team_a == ["p1", "p3", "p5", "p7"]
    assert lobby.team_b == ["p2", "p4", "p6", "p8"]
    assert lobby.available() == ["p9"]
    assert not lobby.draft_player("p9")


def test_pro_draft_rejects_bad_picks_without_changing_turn():
    lobby = start_pro_draft(make_registry(10), ManualClock())

    assert not lobby.draft_player("p1")
    assert not lobby.draft_player("p10")
    assert lobby.current_turn == "A"


def test_pro_report_pays_bets_placed_during_draft():
    registry = make_registry(11)
    lobby = start_pro_draft(registry, ManualClock())
    assert lobby.place_bet("p10", "B", 30)
    assert lobby.place_bet("p11", "A", 70)
    for pid in ("p3", "p4", "p5", "p6", "p7", "p8"):
        lobby.draft_player(pid)

    result = lobby.report_result("B")

    assert result.data.payouts == {"p10": 100}
    assert registry.balance("p11") == 930
    assert lobby.pool == []
    assert lobby.phase is LobbyPhase.FORMING


def test_status_reports_odds_and_members():
    registry = make_registry(10)
    lobby = PublicLobby(registry, ManualClock())
    fill_queue(lobby, 8)
    lobby.place_bet("p9", "A", 30)
    lobby.place_bet("p10", "B", 10)

    status = lobby.status()

    assert status.phase is LobbyPhase.COUNTDOWN
    assert status.countdown == 5
    assert len(status.members) == 8
    assert len(status.team_a) == 4
    assert status.pool_total == 40
    assert status.odds == {"A": 75.0, "B": 25.0}
