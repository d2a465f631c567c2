"""
ecoquest.constants — Shared Constants & Helpers
================================================

Single source of truth for the leveling formula defaults.
Import from here instead of duplicating in the engine and services.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal

# ---------------------------------------------------------------------------
# Leveling defaults (overridable through config.yaml)
# ---------------------------------------------------------------------------
BASE_EXPERIENCE: int = 100
LEVEL_GROWTH_FACTOR: float = 1.2
LEVEL_BONUS_PER_LEVEL: int = 10

# Leaderboard
DEFAULT_LEADERBOARD_LIMIT: int = 10
MAX_LEADERBOARD_LIMIT: int = 100


# ---------------------------------------------------------------------------
# Leveling formula
# ---------------------------------------------------------------------------
def next_level_threshold(current: int, factor: float = LEVEL_GROWTH_FACTOR) -> int:
    """Experience needed for the level after the one just reached.

    ``floor(current * factor)``, computed in decimal so ``120 * 1.2`` is
    exactly 144 and never 143.99….  Never returns less than 1.
    """
    grown = (Decimal(current) * Decimal(str(factor))).to_integral_value(
        rounding=ROUND_FLOOR
    )
    return max(1, int(grown))


def level_up_bonus(previous_level: int, per_level: int = LEVEL_BONUS_PER_LEVEL) -> int:
    """Points granted when leaving *previous_level*."""
    return previous_level * per_level
