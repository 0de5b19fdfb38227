from .elo_configuration import EloConfiguration
from .elo_history import EloHistory
from .game import Game
from .job import Job
from .match import Match
from .player import Player
from .player_season import PlayerSeason
from .season import Season

__all__ = [
    "EloConfiguration",
    "EloHistory",
    "Game",
    "Job",
    "Match",
    "Player",
    "PlayerSeason",
    "Season",
]
