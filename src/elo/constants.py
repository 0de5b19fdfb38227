from __future__ import annotations

ELO_SCALE = 400.0
DEFAULT_STARTING_ELO = 1000.0
DEFAULT_K_FACTOR = 32.0

MIN_STARTING_ELO = 100.0
MAX_STARTING_ELO = 3000.0
MIN_K_FACTOR = 1.0
MAX_K_FACTOR = 100.0
MAX_NEW_PLAYER_K_BONUS = 100.0
