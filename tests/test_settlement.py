from hockey_bot.models import Bet
from hockey_bot.registry import PlayerRegistry
from hockey_bot.settlement import BettingMarket, settle


def make_registry(*player_ids: str) -> PlayerRegistry:
    registry = PlayerRegistry()
    for pid in player_ids:
        registry.ensure(pid)
    return registry


def test_single_winner_takes_whole_pool():
    bets = [Bet("x", "A", 60), Bet("y", "B", 40)]

    assert settle(bets, "A") == {"x": 100}


def test_payout_is_proportional_and_floored():
    bets = [Bet("x", "A", 10), Bet("y", "A", 20), Bet("z", "B", 5)]

    payouts = settle(bets, "A")

    # pool 35: 10*35//30 = 11, 20*35//30 = 23
    assert payouts == {"x": 11, "y": 23}
    assert sum(payouts.values()) <= 35


def test_losers_receive_nothing():
    payouts = settle([Bet("x", "A", 50), Bet("y", "B", 50)], "B")

    assert "x" not in payouts
    assert payouts["y"] == 100


def test_repeat_bets_by_one_bettor_are_combined():
    payouts = settle([Bet("x", "A", 30), Bet("x", "A", 30), Bet("y", "B", 40)], "A")

    assert payouts == {"x": 100}


def test_no_winning_stake_forfeits_pool():
    assert settle([Bet("x", "A", 50)], "B") == {}
    assert settle([], "A") == {}


def test_market_debits_on_place_and_credits_on_settle():
    registry = make_registry("x", "y")
    market = BettingMarket(sides=("A", "B"))

    assert market.place(registry, "x", "A", 60)
    assert market.place(registry, "y", "B", 40)
    assert registry.balance("x") == 940
    assert market.pool == 100
    assert market.implied_odds() == {"A": 60.0, "B": 40.0}

    payouts = market.settle(registry, "A")

    assert payouts == {"x": 100}
    assert registry.balance("x") == 1040
    assert registry.balance("y") == 960
    assert market.bets == []


def test_market_rejections_leave_wallets_untouched():
    registry = make_registry("x")
    market = BettingMarket(sides=("A", "B"))

    assert not market.place(registry, "x", "C", 10)
    assert not market.place(registry, "x", "A", 0)
    assert not market.place(registry, "ghost", "A", 10)
    result = market.place(registry, "x", "A", 5000)

    assert not result.accepted
    assert "Insufficient" in result.message
    assert registry.balance("x") == 1000
    assert market.pool == 0
