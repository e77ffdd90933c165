"""Exceptions raised by the store write helpers and mapped to HTTP errors by the API."""


class TennisRankError(Exception):
    """Base class for domain errors."""


class PlayerNotFound(TennisRankError):
    def __init__(self, player_id: str):
        super().__init__(f"Player not found: {player_id}")
        self.player_id = player_id


class TournamentNotFound(TennisRankError):
    def __init__(self, tournament_id: str):
        super().__init__(f"Tournament not found: {tournament_id}")
        self.tournament_id = tournament_id


class InvalidMedal(TennisRankError):
    """Unknown medal type or a medal index outside the player's medal list."""


class MatchNotFound(TennisRankError):
    def __init__(self, tournament_id: str, index: int):
        super().__init__(f"Match {index} not found in tournament: {tournament_id}")
        self.tournament_id = tournament_id
        self.index = index
