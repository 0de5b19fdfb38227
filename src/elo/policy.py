from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from elo.constants import (
    MAX_K_FACTOR,
    MAX_NEW_PLAYER_K_BONUS,
    MIN_K_FACTOR,
)


class KFactorPolicy(str, Enum):
    STATIC = "static"
    LINEAR_DECAY = "linear_decay"
    EXPONENTIAL_DECAY = "exponential_decay"


@dataclass(frozen=True)
class RatingPolicy:
    """K-factor parameters interpreted by :func:`effective_k_factor`.

    ``kind`` selects the curve; the remaining fields are plain data so a new
    parameter set never needs a code change.
    """

    kind: KFactorPolicy = KFactorPolicy.STATIC
    k_factor: float | None = None
    base_k_factor: float | None = None
    new_player_k_bonus: float | None = None
    new_player_bonus_period: int | None = None

    def __post_init__(self) -> None:
        if self.kind == KFactorPolicy.STATIC:
            _check_k_range("k_factor", self.k_factor)
            return
        _check_k_range("base_k_factor", self.base_k_factor)
        bonus = self.new_player_k_bonus
        if bonus is None or not 0.0 <= bonus <= MAX_NEW_PLAYER_K_BONUS:
            raise ValueError(
                f"new_player_k_bonus must be between 0 and {MAX_NEW_PLAYER_K_BONUS:g}."
            )
        period = self.new_player_bonus_period
        if period is None or period <= 0:
            raise ValueError("new_player_bonus_period must be greater than 0.")

    def k_for(self, games_played: int) -> float:
        return effective_k_factor(self, games_played)

    def as_dict(self) -> dict[str, object]:
        return {
            "k_policy": self.kind.value,
            "k_factor": self.k_factor,
            "base_k_factor": self.base_k_factor,
            "new_player_k_bonus": self.new_player_k_bonus,
            "new_player_bonus_period": self.new_player_bonus_period,
        }

    @classmethod
    def static(cls, k_factor: float) -> RatingPolicy:
        return cls(kind=KFactorPolicy.STATIC, k_factor=k_factor)

    @classmethod
    def from_fields(cls, fields: Mapping[str, object]) -> RatingPolicy:
        raw_kind = fields.get("k_policy") or KFactorPolicy.STATIC
        try:
            kind = KFactorPolicy(raw_kind)
        except ValueError as exc:
            raise ValueError(f"Unknown k_policy '{raw_kind}'.") from exc
        return cls(
            kind=kind,
            k_factor=_optional_float(fields.get("k_factor")),
            base_k_factor=_optional_float(fields.get("base_k_factor")),
            new_player_k_bonus=_optional_float(fields.get("new_player_k_bonus")),
            new_player_bonus_period=_optional_int(fields.get("new_player_bonus_period")),
        )


def effective_k_factor(policy: RatingPolicy, games_played: int) -> float:
    """K-factor for a player who has played ``games_played`` games so far."""
    if games_played < 0:
        raise ValueError("games_played cannot be negative.")
    if policy.kind == KFactorPolicy.STATIC:
        return float(policy.k_factor or 0.0)

    base = float(policy.base_k_factor or 0.0)
    bonus = float(policy.new_player_k_bonus or 0.0)
    period = float(policy.new_player_bonus_period or 0)
    if policy.kind == KFactorPolicy.LINEAR_DECAY:
        remaining = max(0.0, (period - games_played) / period)
        return base + bonus * remaining
    return base + bonus * math.exp(-games_played / period)


def _check_k_range(name: str, value: float | None) -> None:
    if value is None or not MIN_K_FACTOR <= value <= MAX_K_FACTOR:
        raise ValueError(
            f"{name} must be between {MIN_K_FACTOR:g} and {MAX_K_FACTOR:g}."
        )


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("K-factor fields must be numbers.")
    return float(value)


def _optional_int(value: object) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("new_player_bonus_period must be an integer.")
    return value
