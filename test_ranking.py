"""
Tests for the ranking engine: attribution, ordering, tie ranks, caching and player stats.
Uses an in-memory store so no database is needed.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from tennis_rank import ranking
from tennis_rank.cache import RankingCache, cache_key
from tennis_rank.models import (
    Counted,
    MatchRecord,
    Medal,
    Player,
    Skipped,
    Tournament,
    UNDECIDED,
)
from tennis_rank.ranking import PlayerTally, RankingEngine, attribute_match, build_rankings, win_rate


class FakeStore:
    def __init__(self, tournaments: list[Tournament], players: list[Player]):
        self.tournaments = tournaments
        self.players = players
        self.calls = 0

    async def completed_tournaments(self):
        self.calls += 1
        done = [t for t in self.tournaments if t.status == "completed"]
        return sorted(done, key=lambda t: t.date, reverse=True)

    async def all_players(self):
        return list(self.players)

    async def tournaments_for_player(self, player_id, limit=10):
        done = sorted(
            (t for t in self.tournaments if t.status == "completed"),
            key=lambda t: t.date, reverse=True,
        )
        return [t for t in done if any(m.involves(player_id) for m in t.matches)][:limit]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def singles(p1, p2, winner=None, score=None, round=None):
    return MatchRecord("singles", score=score, winner=winner, round=round, player1=p1, player2=p2)


def doubles(t1, t2, winner=None, score=None):
    return MatchRecord(
        "doubles", score=score, winner=winner,
        team1_player1=t1[0], team1_player2=t1[1], team2_player1=t2[0], team2_player2=t2[1],
    )


def tallies_for(*ids):
    return {pid: PlayerTally(Player(pid, pid.upper())) for pid in ids}


def run(coro):
    return asyncio.run(coro)


# --- Attribution ---

def test_singles_attribution():
    tallies = tallies_for("a", "b")
    result = attribute_match(singles("a", "b", winner="a", score="6-2"), "t1", tallies)
    assert result == Counted(("a", "b"))
    a, b = tallies["a"], tallies["b"]
    assert (a.total_points, a.matches_won, a.matches_lost, a.matches_played) == (6, 1, 0, 1)
    assert (b.total_points, b.matches_won, b.matches_lost, b.matches_played) == (2, 0, 1, 1)
    assert a.tournaments == b.tournaments == {"t1"}


def test_doubles_attribution():
    tallies = tallies_for("a", "b", "c", "d")
    attribute_match(doubles(("a", "b"), ("c", "d"), winner="team1", score="6-4"), "t1", tallies)
    for pid in ("a", "b"):
        assert (tallies[pid].total_points, tallies[pid].matches_won, tallies[pid].matches_played) == (6, 1, 1)
    for pid in ("c", "d"):
        assert (tallies[pid].total_points, tallies[pid].matches_lost, tallies[pid].matches_played) == (4, 1, 1)


def test_doubles_empty_seat_and_untracked_player():
    tallies = tallies_for("a", "c")
    result = attribute_match(doubles(("a", None), ("c", "x"), winner="team2", score="6-3"), "t1", tallies)
    assert result == Counted(("a", "c"))
    assert tallies["a"].total_points == 3 and tallies["a"].matches_lost == 1
    assert tallies["c"].total_points == 6 and tallies["c"].matches_won == 1


def test_untracked_singles_side_is_ignored():
    tallies = tallies_for("a")
    result = attribute_match(singles("a", "b", winner="b", score="6-1"), "t1", tallies)
    assert result == Counted(("a",))
    assert tallies["a"].total_points == 1
    assert tallies["a"].matches_lost == 1


def test_undecided_match_changes_nothing():
    tallies = tallies_for("a", "b")
    assert attribute_match(singles("a", "b", winner="a"), "t1", tallies) == Skipped(UNDECIDED)
    assert attribute_match(singles("a", "b", score="6-2"), "t1", tallies) == Skipped(UNDECIDED)
    assert all(t.matches_played == 0 for t in tallies.values())


def test_malformed_score_still_counts_the_result():
    tallies = tallies_for("a", "b")
    attribute_match(singles("a", "b", winner="b", score="w/o"), "t1", tallies)
    assert tallies["b"].matches_won == 1 and tallies["b"].total_points == 0
    assert tallies["a"].matches_lost == 1


# --- Derived fields, ordering, ranks ---

def test_win_rate_rounding():
    assert win_rate(2, 3) == 66.67
    assert win_rate(1, 3) == 33.33
    assert win_rate(1, 8) == 12.5
    assert win_rate(0, 0) == 0


def _tie_fixture():
    players = [Player(pid, pid.upper()) for pid in ("a", "b", "x", "y", "z")]
    t = Tournament("t1", "Spring Open", "2024-04-01", "completed", [
        singles("a", "x", winner="a", score="6-0"),
        singles("b", "y", winner="b", score="4-0"),
        singles("b", "z", winner="z", score="5-2"),
    ])
    return FakeStore([t], players)


def test_tie_ranks_use_points_and_wins_only():
    stats = run(RankingEngine(_tie_fixture()).calculate_rankings())
    order = [(r.player_id, r.rank) for r in stats.rankings]
    # a and b share points and wins; b's lower win rate only orders it second
    assert order == [("a", 1), ("b", 1), ("z", 3), ("x", 4), ("y", 4)]
    b = stats.rankings[1]
    assert (b.total_points, b.matches_won, b.matches_played, b.win_rate) == (6, 1, 2, 50.0)


def test_rank_invariant_over_adjacent_pairs():
    rankings = run(RankingEngine(_tie_fixture()).calculate_rankings()).rankings
    for i in range(len(rankings) - 1):
        cur, nxt = rankings[i], rankings[i + 1]
        if (cur.total_points, cur.matches_won) == (nxt.total_points, nxt.matches_won):
            assert nxt.rank == cur.rank
        else:
            assert nxt.rank == i + 2


def test_limit_keeps_assigned_ranks():
    stats = run(RankingEngine(_tie_fixture()).calculate_rankings(limit=3))
    assert [r.rank for r in stats.rankings] == [1, 1, 3]


def test_sort_falls_back_to_matches_played():
    tallies = tallies_for("a", "b")
    tallies["a"].total_points, tallies["a"].matches_lost, tallies["a"].matches_played = 4, 1, 1
    tallies["b"].total_points, tallies["b"].matches_lost, tallies["b"].matches_played = 4, 2, 2
    rankings = build_rankings(tallies)
    assert [r.player_id for r in rankings] == ["b", "a"]
    assert [r.rank for r in rankings] == [1, 1]


def test_end_to_end_pending_match_and_zero_match_player():
    players = [Player("A", "Ana"), Player("B", "Ben"), Player("C", "Cai")]
    t = Tournament("t1", "Club Cup", "2024-05-01", "completed", [
        singles("A", "B", winner="A", score="6-2"),
        singles("B", "C"),
    ])
    stats = run(RankingEngine(FakeStore([t], players)).calculate_rankings())
    assert stats.total_tournaments == 1
    assert stats.total_matches == 1
    by_id = {r.player_id: r for r in stats.rankings}
    assert set(by_id) == {"A", "B"}
    assert (by_id["A"].total_points, by_id["A"].matches_won, by_id["A"].matches_played, by_id["A"].rank) == (6, 1, 1, 1)
    assert (by_id["B"].total_points, by_id["B"].matches_lost, by_id["B"].matches_played, by_id["B"].rank) == (2, 1, 1, 2)


def test_draft_tournaments_are_ignored():
    players = [Player("A", "Ana"), Player("B", "Ben")]
    draft = Tournament("t1", "Draft", "2024-05-01", "draft", [singles("A", "B", winner="A", score="6-2")])
    stats = run(RankingEngine(FakeStore([draft], players)).calculate_rankings())
    assert stats.total_tournaments == 0
    assert stats.rankings == []


def test_unresolved_match_counts_as_decided_but_credits_nobody():
    players = [Player("A", "Ana"), Player("B", "Ben")]
    t = Tournament("t1", "Club Cup", "2024-05-01", "completed", [
        singles("A", "B", winner="Q", score="6-2"),
        doubles(("A", None), ("B", None), winner="A", score="6-2"),
    ])
    stats = run(RankingEngine(FakeStore([t], players)).calculate_rankings())
    assert stats.total_matches == 2
    assert stats.rankings == []


def test_gender_filter_and_medals_carried_through():
    players = [
        Player("A", "Ana", "female", [Medal("gold", "Club Cup")]),
        Player("B", "Bob", "male"),
    ]
    t = Tournament("t1", "Club Cup", "2024-05-01", "completed", [singles("A", "B", winner="B", score="6-3")])
    engine = RankingEngine(FakeStore([t], players))
    female = run(engine.calculate_rankings(gender="female"))
    assert [r.player_id for r in female.rankings] == ["A"]
    assert female.rankings[0].total_points == 3
    assert female.rankings[0].rank == 1
    assert female.rankings[0].medals == [Medal("gold", "Club Cup")]
    assert female.total_matches == 1


def test_distinct_tournaments_played():
    players = [Player("A", "Ana"), Player("B", "Ben")]
    t1 = Tournament("t1", "One", "2024-01-01", "completed", [
        singles("A", "B", winner="A", score="6-1"),
        singles("A", "B", winner="B", score="6-4"),
    ])
    t2 = Tournament("t2", "Two", "2024-02-01", "completed", [singles("A", "B", winner="A", score="6-0")])
    stats = run(RankingEngine(FakeStore([t1, t2], players)).calculate_rankings())
    a = stats.rankings[0]
    assert a.player_id == "A"
    assert a.tournaments_played == 2
    assert a.matches_played == 3
    assert a.win_rate == 66.67


# --- Cache ---

def test_repeat_call_is_served_from_cache():
    store = _tie_fixture()
    engine = RankingEngine(store, RankingCache(ttl_seconds=300, clock=FakeClock()))
    first = run(engine.calculate_rankings())
    second = run(engine.calculate_rankings())
    assert second is first
    assert store.calls == 1


def test_cache_keys_follow_query_shape():
    assert cache_key() == "rankings_all_all"
    assert cache_key("female", 10) == "rankings_female_10"
    store = _tie_fixture()
    engine = RankingEngine(store, RankingCache(ttl_seconds=300, clock=FakeClock()))
    run(engine.calculate_rankings())
    run(engine.calculate_rankings(limit=2))
    run(engine.calculate_rankings(gender="male"))
    assert store.calls == 3
    assert len(engine.cache) == 3


class SteppingDatetime(datetime):
    """datetime whose now() moves one second forward on every call."""
    ticks = 0

    @classmethod
    def now(cls, tz=None):
        cls.ticks += 1
        return datetime(2024, 6, 1, tzinfo=timezone.utc) + timedelta(seconds=cls.ticks)


def test_expired_entry_is_recomputed(monkeypatch):
    monkeypatch.setattr(ranking, "datetime", SteppingDatetime)
    store = _tie_fixture()
    clock = FakeClock()
    engine = RankingEngine(store, RankingCache(ttl_seconds=300, clock=clock))
    first = run(engine.calculate_rankings())
    clock.now += 299
    assert run(engine.calculate_rankings()) is first
    clock.now += 1
    fresh = run(engine.calculate_rankings())
    assert fresh is not first
    assert fresh.last_updated > first.last_updated
    assert store.calls == 2


def test_clear_cache_forces_recompute():
    store = _tie_fixture()
    engine = RankingEngine(store, RankingCache(ttl_seconds=300, clock=FakeClock()))
    first = run(engine.calculate_rankings())
    run(engine.calculate_rankings(limit=1))
    engine.clear_cache()
    assert len(engine.cache) == 0
    assert run(engine.calculate_rankings()) is not first


# --- Player queries ---

def test_get_player_ranking():
    engine = RankingEngine(_tie_fixture())
    z = run(engine.get_player_ranking("z"))
    assert z is not None and z.rank == 3
    assert run(engine.get_player_ranking("nobody")) is None


def test_player_without_matches_is_not_found():
    players = [Player("A", "Ana"), Player("B", "Ben"), Player("C", "Cai")]
    t = Tournament("t1", "Club Cup", "2024-05-01", "completed", [singles("A", "B", winner="A", score="6-2")])
    assert run(RankingEngine(FakeStore([t], players)).get_player_ranking("C")) is None


def test_get_top_players():
    top = run(RankingEngine(_tie_fixture()).get_top_players(2))
    assert [r.player_id for r in top] == ["a", "b"]


def test_returned_rows_do_not_alias_the_cache():
    engine = RankingEngine(_tie_fixture())
    row = run(engine.get_player_ranking("a"))
    row.total_points = 999
    row.medals.append(Medal("gold"))
    top = run(engine.get_top_players(1))
    top[0].rank = 42

    cached = run(engine.calculate_rankings()).rankings[0]
    assert (cached.player_id, cached.total_points, cached.medals) == ("a", 6, [])
    assert run(engine.calculate_rankings(limit=1)).rankings[0].rank == 1


def test_player_stats():
    players = [Player(pid, pid.upper()) for pid in ("A", "B", "C", "D")]
    older = Tournament("t1", "Winter Open", "2024-01-10", "completed", [
        singles("A", "B", winner="A", score="6-2", round="Final"),
        doubles(("A", "C"), ("B", "D"), winner="team2", score="6-3, 4-6, 6-2"),
    ])
    newer = Tournament("t2", "Spring Open", "2024-03-01", "completed", [
        singles("A", "C", winner="A", score="6-1"),
        singles("A", "D"),
    ])
    other = Tournament("t3", "Ladies Day", "2024-04-01", "completed", [singles("B", "C", winner="B", score="6-0")])
    stats = run(RankingEngine(FakeStore([older, newer, other], players)).get_player_stats("A"))

    assert stats.ranking is not None
    assert (stats.ranking.total_points, stats.ranking.matches_won, stats.ranking.matches_lost) == (21, 2, 1)
    assert stats.ranking.tournaments_played == 2
    assert [(m.tournament_name, m.result) for m in stats.recent_matches] == [
        ("Spring Open", "won"),
        ("Winter Open", "won"),
        ("Winter Open", "lost"),
    ]
    assert stats.recent_matches[1].round == "Final"
    assert [(h.tournament_id, h.performance) for h in stats.tournament_history] == [("t2", "1/1"), ("t1", "1/2")]


def test_player_stats_caps_recent_matches():
    players = [Player("A", "Ana"), Player("B", "Ben")]
    matches = [singles("A", "B", winner="A", score="6-0") for _ in range(12)]
    t = Tournament("t1", "Marathon", "2024-01-01", "completed", matches)
    stats = run(RankingEngine(FakeStore([t], players)).get_player_stats("B"))
    assert len(stats.recent_matches) == 10
    assert stats.tournament_history[0].performance == "0/12"


def test_to_dict_uses_portal_field_names():
    stats = run(RankingEngine(_tie_fixture()).calculate_rankings(limit=1))
    body = stats.to_dict()
    assert set(body) == {"totalTournaments", "totalMatches", "lastUpdated", "rankings"}
    assert body["rankings"][0]["playerId"] == "a"
    assert body["rankings"][0]["winRate"] == 100.0


def test_leaderboard_table_shows_shared_ranks():
    from tennis_rank.fmt import leaderboard_table

    rankings = run(RankingEngine(_tie_fixture()).get_top_players(2))
    rankings[0].medals = [Medal("gold")]
    lines = leaderboard_table(rankings).splitlines()
    assert lines[0].startswith("Rank | Player")
    assert lines[2].startswith("1    | A ")
    assert lines[2].endswith("🥇")
    assert lines[3].startswith("1    | B ")
    assert "50.00" in lines[3]
