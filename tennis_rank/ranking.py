"""
Ranking engine.

Derives the club leaderboard from completed tournament matches on every
request, with a short-lived cache in front. Nothing computed here is stored.

Points are games won: every decided match adds the games a player won in it,
win or lose. Players are ordered by points, then win rate, then matches
played. Adjacent players with equal points and equal wins share a rank.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from . import config, db
from .cache import RankingCache, cache_key
from .fmt import performance
from .logging_config import get_logger
from .models import (
    Attribution,
    Counted,
    MatchRecord,
    Player,
    PlayerRanking,
    PlayerStats,
    RankingStats,
    RecentMatch,
    SinglesMatch,
    Skipped,
    TournamentPerformance,
    UNDECIDED,
)
from .rules import GameScore, classify_match, parse_game_score, won_by

log = get_logger(__name__)

RECENT_MATCHES_LIMIT = 10
RECENT_TOURNAMENTS_LIMIT = 10


@dataclass
class PlayerTally:
    """Running totals for one tracked player during a computation."""
    player: Player
    total_points: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    matches_played: int = 0
    tournaments: set[str] = field(default_factory=set)

    def record(self, won: bool, games: GameScore, tournament_id: str) -> None:
        if won:
            self.total_points += games.winner_games
            self.matches_won += 1
        else:
            self.total_points += games.loser_games
            self.matches_lost += 1
        self.matches_played += 1
        self.tournaments.add(tournament_id)


def attribute_match(match: MatchRecord, tournament_id: str, tallies: dict[str, PlayerTally]) -> Attribution:
    """Apply one match to the tallies in place.

    Players missing from `tallies` (e.g. filtered out by gender) are ignored
    for their own side only.
    """
    typed = classify_match(match)
    if isinstance(typed, Skipped):
        return typed

    games = parse_game_score(match.score)
    if games.ignored_sets:
        log.debug("Ignored %s unparseable set(s) in score %r (tournament=%s)", games.ignored_sets, match.score, tournament_id)

    if isinstance(typed, SinglesMatch):
        sides = [(typed.winner_id, True), (typed.loser_id, False)]
    else:
        sides = [(pid, team == typed.winning_team) for pid, team in typed.seats() if pid]

    updated = []
    for pid, won in sides:
        tally = tallies.get(pid)
        if tally is None:
            continue
        tally.record(won, games, tournament_id)
        updated.append(pid)
    return Counted(tuple(updated))


def win_rate(won: int, played: int) -> float:
    """Percentage of matches won, rounded half-up to two decimals."""
    if played <= 0:
        return 0
    pct = Decimal(won / played * 100)
    return float(pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def assign_ranks(rankings: list[PlayerRanking]) -> None:
    """Rank an already sorted list in place.

    A player whose (total_points, matches_won) equals the previous player's
    takes the previous rank; anyone else takes their 1-based position.
    """
    for i, r in enumerate(rankings):
        if i > 0:
            prev = rankings[i - 1]
            if r.total_points == prev.total_points and r.matches_won == prev.matches_won:
                r.rank = prev.rank
                continue
        r.rank = i + 1


def build_rankings(tallies: dict[str, PlayerTally], limit: Optional[int] = None) -> list[PlayerRanking]:
    rankings = [
        PlayerRanking(
            player_id=t.player.id,
            player_name=t.player.name or "",
            gender=t.player.gender or "",
            medals=list(t.player.medals),
            total_points=t.total_points,
            matches_won=t.matches_won,
            matches_lost=t.matches_lost,
            matches_played=t.matches_played,
            win_rate=win_rate(t.matches_won, t.matches_played),
            tournaments_played=len(t.tournaments),
        )
        for t in tallies.values()
        if t.matches_played > 0
    ]
    rankings.sort(key=lambda r: (r.total_points, r.win_rate, r.matches_played), reverse=True)
    assign_ranks(rankings)
    return rankings[:limit] if limit else rankings


def _detached(ranking: PlayerRanking) -> PlayerRanking:
    return replace(ranking, medals=[replace(m) for m in ranking.medals])


class RankingEngine:
    """Leaderboard queries over a tournament/player store.

    `store` is anything exposing the coroutines `completed_tournaments()`,
    `all_players()` and `tournaments_for_player(player_id, limit)`; the
    sqlite-backed `tennis_rank.db` module by default.
    """

    def __init__(self, store=None, cache: RankingCache[RankingStats] | None = None):
        self.store = store if store is not None else db
        self.cache = cache if cache is not None else RankingCache(config.RANKINGS_CACHE_TTL)

    def clear_cache(self) -> None:
        """Drop every cached leaderboard. Call after anything that can change rankings."""
        self.cache.invalidate_all()
        log.info("Rankings cache cleared")

    async def calculate_rankings(self, gender: Optional[str] = None, limit: Optional[int] = None) -> RankingStats:
        """Leaderboard for the query shape. A cache hit returns the stored object itself, so treat it as read-only."""
        key = cache_key(gender, limit)
        cached = self.cache.get(key)
        if cached is not None:
            log.debug("Returning cached rankings key=%s", key)
            return cached

        tournaments, players = await asyncio.gather(
            self.store.completed_tournaments(),
            self.store.all_players(),
        )
        if gender:
            players = [p for p in players if p.gender == gender]
        log.info(
            "Calculating rankings from %s completed tournaments for %s players%s",
            len(tournaments), len(players), f" ({gender})" if gender else "",
        )

        tallies = {p.id: PlayerTally(p) for p in players}
        total_matches = 0
        for tournament in tournaments:
            for match in tournament.matches:
                result = attribute_match(match, tournament.id, tallies)
                if isinstance(result, Skipped):
                    if result.reason == UNDECIDED:
                        continue
                    log.debug("Skipped match in tournament=%s reason=%s", tournament.id, result.reason)
                total_matches += 1

        rankings = build_rankings(tallies, limit)
        stats = RankingStats(
            total_tournaments=len(tournaments),
            total_matches=total_matches,
            last_updated=datetime.now(timezone.utc),
            rankings=rankings,
        )
        self.cache.set(key, stats)
        log.info("Calculated rankings for %s players (%s matches)", len(rankings), total_matches)
        return stats

    async def get_player_ranking(self, player_id: str) -> PlayerRanking | None:
        """Ranking row for one player; None for unknown players and players with no decided matches alike."""
        stats = await self.calculate_rankings()
        found = next((r for r in stats.rankings if r.player_id == player_id), None)
        return _detached(found) if found is not None else None

    async def get_top_players(self, limit: int, gender: Optional[str] = None) -> list[PlayerRanking]:
        stats = await self.calculate_rankings(gender=gender, limit=limit)
        return [_detached(r) for r in stats.rankings]

    async def get_player_stats(self, player_id: str) -> PlayerStats:
        """Ranking plus recent results and per-tournament record. Only the ranking part is cached."""
        ranking = await self.get_player_ranking(player_id)
        tournaments = await self.store.tournaments_for_player(player_id, limit=RECENT_TOURNAMENTS_LIMIT)

        recent: list[RecentMatch] = []
        history: list[TournamentPerformance] = []
        for tournament in tournaments:
            played = won = 0
            for match in tournament.matches:
                if not match.involves(player_id):
                    continue
                typed = classify_match(match)
                if isinstance(typed, Skipped):
                    continue
                is_winner = won_by(typed, player_id)
                recent.append(
                    RecentMatch(
                        tournament_name=tournament.name,
                        tournament_date=tournament.date,
                        match_type=match.match_type,
                        score=match.score,
                        result="won" if is_winner else "lost",
                        round=match.round,
                    )
                )
                played += 1
                won += int(is_winner)
            if played:
                history.append(
                    TournamentPerformance(
                        tournament_id=tournament.id,
                        tournament_name=tournament.name,
                        date=tournament.date,
                        matches_played=played,
                        matches_won=won,
                        performance=performance(won, played),
                    )
                )

        return PlayerStats(ranking, recent[:RECENT_MATCHES_LIMIT], history)
