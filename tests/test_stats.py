from hockey_bot.registry import PlayerRegistry
from hockey_bot.stats import aggregate_stats, apply_match_csv, infer_match, parse_stats_csv


def row(team: str, account: str, goals: int, possession: float = 12.5) -> str:
    return f"{team},{account},1,{goals},0,3,4,5,6,{possession},0,0,0,300"


MATCH_CSV = "\n".join(
    [
        row("0", "a1", 2),
        row("0", "a2", 1),
        row("1", "b1", 0),
        row("1", "b2", 1),
        "",
        "garbage,row",
    ]
)


def test_parse_skips_blank_and_short_rows():
    lines = parse_stats_csv(MATCH_CSV)

    assert [line.account_id for line in lines] == ["a1", "a2", "b1", "b2"]
    assert lines[0].goals == 2
    assert lines[0].possession == 12.5
    assert lines[0].skater_time == 300


def test_parse_tolerates_leading_comma():
    lines = parse_stats_csv("," + row("0", "a1", 3))

    assert lines[0].team == "0"
    assert lines[0].goals == 3


def test_aggregate_sums_per_account():
    lines = parse_stats_csv("\n".join([row("0", "a1", 2), row("0", "a1", 1, 0.25)]))

    totals = aggregate_stats(lines)

    assert totals["a1"].goals == 3
    assert totals["a1"].possession == 12.75
    assert totals["a1"].entries == 2


def test_infer_match_compares_team_goals():
    match = infer_match(parse_stats_csv(MATCH_CSV))

    assert match is not None
    assert match.winner_side == "A"
    assert match.player_ids_a == ("a1", "a2")
    assert "Winner: 0" in match.summary()


def test_apply_match_csv_rates_winner_and_creates_players():
    registry = PlayerRegistry()

    result = apply_match_csv(registry, MATCH_CSV)

    assert result.accepted
    assert registry.rating_of("a1") == 1007
    assert registry.rating_of("b2") == 993
    assert registry.get("b1").wallet == 1000
    assert registry.get("a1").stats.goals == 2


def test_tied_match_changes_no_ratings():
    registry = PlayerRegistry()
    text = "\n".join([row("0", "a1", 1), row("1", "b1", 1)])

    result = apply_match_csv(registry, text)

    assert result.accepted
    assert result.data == {}
    assert "Tie" in result.message
    assert registry.rating_of("a1") == 1000
    assert registry.get("a1").stats is not None


def test_single_team_csv_is_rejected():
    registry = PlayerRegistry()

    assert not apply_match_csv(registry, row("0", "a1", 1))
    assert not apply_match_csv(registry, "")
    assert len(registry) == 0
