from __future__ import annotations

import re
from dataclasses import dataclass

from .models import (
    DoublesMatch,
    MatchRecord,
    Skipped,
    SinglesMatch,
    TEAMS,
    TypedMatch,
    UNDECIDED,
    UNKNOWN_MATCH_TYPE,
    UNRESOLVED_PARTICIPANT,
)

_SET_RE = re.compile(r"(\d+)-(\d+)")


@dataclass(frozen=True)
class GameScore:
    winner_games: int = 0
    loser_games: int = 0
    ignored_sets: int = 0


def parse_game_score(score) -> GameScore:
    """
    Total games won by the match winner and loser across all sets.

    Sets are comma separated ("6-3, 4-6, 6-2"). In every set the higher
    number goes to the winner and the lower to the loser, whichever side of
    the hyphen it was written on. Fragments that do not contain a
    digits-hyphen-digits pair are ignored.

    Examples:
        parse_game_score("6-4")            -> GameScore(6, 4)
        parse_game_score("6-3, 4-6, 6-2")  -> GameScore(18, 9)
        parse_game_score("garbage")        -> GameScore(0, 0, ignored_sets=1)
        parse_game_score(None)             -> GameScore(0, 0)
    """
    if not score or not isinstance(score, str):
        return GameScore()

    winner_games = loser_games = ignored = 0
    for part in score.split(","):
        m = _SET_RE.search(part.strip())
        if not m:
            ignored += 1
            continue
        a, b = int(m.group(1)), int(m.group(2))
        winner_games += max(a, b)
        loser_games += min(a, b)
    return GameScore(winner_games, loser_games, ignored)


def classify_match(match: MatchRecord) -> TypedMatch | Skipped:
    """
    Turn a stored match into a SinglesMatch or DoublesMatch, or say why it can't be counted.

    Singles winners are player ids and must equal one of the two seats.
    Doubles winners must be one of the literal team tags.
    """
    if not match.decided:
        return Skipped(UNDECIDED)

    if match.match_type == "singles":
        p1, p2, winner = match.player1, match.player2, match.winner
        if not p1 or not p2:
            return Skipped(UNRESOLVED_PARTICIPANT)
        if winner == p1:
            return SinglesMatch(winner_id=p1, loser_id=p2)
        if winner == p2:
            return SinglesMatch(winner_id=p2, loser_id=p1)
        return Skipped(UNRESOLVED_PARTICIPANT)

    if match.match_type == "doubles":
        if match.winner not in TEAMS:
            return Skipped(UNRESOLVED_PARTICIPANT)
        return DoublesMatch(
            winning_team=match.winner,  # type: ignore[arg-type]
            team1=(match.team1_player1, match.team1_player2),
            team2=(match.team2_player1, match.team2_player2),
        )

    return Skipped(UNKNOWN_MATCH_TYPE)


def won_by(typed: TypedMatch, player_id: str) -> bool:
    """True if player_id was on the winning side of a classified match."""
    if isinstance(typed, SinglesMatch):
        return typed.winner_id == player_id
    winners = typed.team1 if typed.winning_team == "team1" else typed.team2
    return player_id in winners
