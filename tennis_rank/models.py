"""
Data models for the tennis club ranking system.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Union

Team = Literal["team1", "team2"]

MEDAL_TYPES = ("gold", "silver", "bronze")
TEAMS = ("team1", "team2")


@dataclass
class Medal:
    type: str
    tournament_name: str | None = None

    def to_dict(self) -> dict:
        out = {"type": self.type}
        if self.tournament_name:
            out["tournamentName"] = self.tournament_name
        return out


@dataclass
class Player:
    id: str
    name: str
    gender: str = ""
    medals: list[Medal] = field(default_factory=list)


@dataclass
class MatchRecord:
    """A match as stored on its tournament. Seats not used by the match type stay None."""
    match_type: str
    score: str | None = None
    winner: str | None = None
    round: str | None = None
    player1: str | None = None
    player2: str | None = None
    team1_player1: str | None = None
    team1_player2: str | None = None
    team2_player1: str | None = None
    team2_player2: str | None = None

    @property
    def decided(self) -> bool:
        return bool(self.winner) and bool(self.score)

    def seats(self) -> tuple[str | None, ...]:
        return (
            self.player1,
            self.player2,
            self.team1_player1,
            self.team1_player2,
            self.team2_player1,
            self.team2_player2,
        )

    def involves(self, player_id: str) -> bool:
        return player_id in self.seats()


@dataclass
class Tournament:
    id: str
    name: str
    date: str
    status: str = "draft"
    matches: list[MatchRecord] = field(default_factory=list)


# --- Typed match variants ---

@dataclass(frozen=True)
class SinglesMatch:
    winner_id: str
    loser_id: str


@dataclass(frozen=True)
class DoublesMatch:
    winning_team: Team
    team1: tuple[str | None, str | None]
    team2: tuple[str | None, str | None]

    def seats(self) -> list[tuple[str | None, Team]]:
        return [(pid, "team1") for pid in self.team1] + [(pid, "team2") for pid in self.team2]


@dataclass(frozen=True)
class Counted:
    """Attribution applied; `players` lists the tracked ids that were updated."""
    players: tuple[str, ...] = ()


@dataclass(frozen=True)
class Skipped:
    reason: str


UNDECIDED = "undecided"
UNRESOLVED_PARTICIPANT = "unresolved_participant"
UNKNOWN_MATCH_TYPE = "unknown_match_type"

TypedMatch = Union[SinglesMatch, DoublesMatch]
Attribution = Union[Counted, Skipped]


# --- Derived, never persisted ---

@dataclass
class PlayerRanking:
    player_id: str
    player_name: str
    gender: str
    medals: list[Medal]
    total_points: int
    matches_won: int
    matches_lost: int
    matches_played: int
    win_rate: float
    tournaments_played: int
    rank: int = 0

    def to_dict(self) -> dict:
        return {
            "playerId": self.player_id,
            "playerName": self.player_name,
            "gender": self.gender,
            "medals": [m.to_dict() for m in self.medals],
            "totalPoints": self.total_points,
            "matchesWon": self.matches_won,
            "matchesLost": self.matches_lost,
            "matchesPlayed": self.matches_played,
            "winRate": self.win_rate,
            "tournamentsPlayed": self.tournaments_played,
            "rank": self.rank,
        }


@dataclass
class RankingStats:
    total_tournaments: int
    total_matches: int
    last_updated: datetime
    rankings: list[PlayerRanking]

    def to_dict(self) -> dict:
        return {
            "totalTournaments": self.total_tournaments,
            "totalMatches": self.total_matches,
            "lastUpdated": self.last_updated.isoformat(),
            "rankings": [r.to_dict() for r in self.rankings],
        }


@dataclass
class RecentMatch:
    tournament_name: str
    tournament_date: str
    match_type: str
    score: str
    result: Literal["won", "lost"]
    round: str | None = None

    def to_dict(self) -> dict:
        return {
            "tournamentName": self.tournament_name,
            "tournamentDate": self.tournament_date,
            "matchType": self.match_type,
            "score": self.score,
            "result": self.result,
            "round": self.round,
        }


@dataclass
class TournamentPerformance:
    tournament_id: str
    tournament_name: str
    date: str
    matches_played: int
    matches_won: int
    performance: str

    def to_dict(self) -> dict:
        return {
            "tournamentId": self.tournament_id,
            "tournamentName": self.tournament_name,
            "date": self.date,
            "matchesPlayed": self.matches_played,
            "matchesWon": self.matches_won,
            "performance": self.performance,
        }


@dataclass
class PlayerStats:
    ranking: PlayerRanking | None
    recent_matches: list[RecentMatch]
    tournament_history: list[TournamentPerformance]

    def to_dict(self) -> dict:
        return {
            "ranking": self.ranking.to_dict() if self.ranking else None,
            "recentMatches": [m.to_dict() for m in self.recent_matches],
            "tournamentHistory": [t.to_dict() for t in self.tournament_history],
        }
