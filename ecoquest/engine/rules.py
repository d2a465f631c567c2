"""
ecoquest.engine.rules — Progression Tuning
===========================================

The handful of numbers the engine needs, bundled so the services can hand
the values loaded from ``config.yaml`` to every pure function in one go.
"""

from __future__ import annotations

from dataclasses import dataclass

from ecoquest.constants import (
    BASE_EXPERIENCE,
    LEVEL_BONUS_PER_LEVEL,
    LEVEL_GROWTH_FACTOR,
)
from ecoquest.engine.actions import ACTION_POINTS, Action


@dataclass(frozen=True, slots=True)
class ProgressionRules:
    """Tuning parameters for levels and streaks.

    Parameters
    ----------
    base_experience : Experience needed to leave level 1.
    growth_factor : Multiplier applied to the threshold on each level-up.
    bonus_per_level : Level-up bonus is ``previous_level * bonus_per_level``.
    streak_bonus_per_day : Streak bonus is ``streak * streak_bonus_per_day``.
    """

    base_experience: int = BASE_EXPERIENCE
    growth_factor: float = LEVEL_GROWTH_FACTOR
    bonus_per_level: int = LEVEL_BONUS_PER_LEVEL
    streak_bonus_per_day: int = ACTION_POINTS[Action.STREAK_BONUS]

    def __post_init__(self) -> None:
        if self.base_experience < 1:
            raise ValueError("base_experience must be at least 1")
        if self.growth_factor < 1:
            raise ValueError("growth_factor must be at least 1.0")
        if self.bonus_per_level < 0 or self.streak_bonus_per_day < 0:
            raise ValueError("bonuses cannot be negative")


DEFAULT_RULES = ProgressionRules()
