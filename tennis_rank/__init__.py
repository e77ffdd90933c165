"""Tennis club ranking engine.

Exports commonly used modules for convenience.
"""

from . import db as db
from . import rules as rules
from . import logging_config as logging_config
from .cache import RankingCache
from .models import Medal, Player, MatchRecord, Tournament, PlayerRanking, RankingStats
from .ranking import RankingEngine

__all__ = [
    "db",
    "rules",
    "logging_config",
    "RankingCache",
    "RankingEngine",
    "Medal",
    "Player",
    "MatchRecord",
    "Tournament",
    "PlayerRanking",
    "RankingStats",
]
