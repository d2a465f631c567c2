"""
ecoquest.engine.levels — Level Engine
======================================

Turns accumulated experience into levels.  Runs after every credit of
experience so ``0 <= experience < experience_to_next_level`` holds
whenever a snapshot leaves the engine.

Pure calculation, no database I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ecoquest.constants import level_up_bonus, next_level_threshold
from ecoquest.engine.achievements import unlock_achievements
from ecoquest.engine.catalog import AchievementCategory, AchievementDefinition
from ecoquest.engine.rules import DEFAULT_RULES, ProgressionRules
from ecoquest.engine.stats import GameStats

logger = logging.getLogger(__name__)


@dataclass
class LevelUpResult:
    """Outcome of one level-up check.

    A single award can cross several thresholds.  ``new_level`` is the last
    level reached, ``bonus`` the cumulative level-up bonus, and
    ``levels_gained`` every level crossed, in order.
    """

    leveled_up: bool = False
    new_level: int | None = None
    bonus: int = 0
    levels_gained: list[int] = field(default_factory=list)
    achievements: list[AchievementDefinition] = field(default_factory=list)

    def merge(self, other: LevelUpResult) -> None:
        """Fold a later check on the same snapshot into this result."""
        if not other.leveled_up:
            return
        self.leveled_up = True
        self.new_level = other.new_level
        self.bonus += other.bonus
        self.levels_gained.extend(other.levels_gained)
        self.achievements.extend(other.achievements)


def check_level_up(
    stats: GameStats,
    *,
    rules: ProgressionRules = DEFAULT_RULES,
    now: datetime | None = None,
) -> LevelUpResult:
    """Apply every level-up *stats* has earned.

    For each threshold crossed: subtract it from experience, advance the
    level, grow the threshold, credit ``previous_level * bonus_per_level``
    to total points (not experience) and evaluate ``level`` achievements.
    Achievement rewards add experience, so the loop re-checks until the
    remaining experience is below the threshold.
    """
    now = now or datetime.now(UTC)
    result = LevelUpResult()

    if stats.experience_to_next_level <= 0:
        # Externally corrupted record; restart the curve from the base.
        logger.warning(
            "User %s had experience_to_next_level=%d, resetting to %d",
            stats.user_id, stats.experience_to_next_level, rules.base_experience,
        )
        stats.experience_to_next_level = rules.base_experience

    while stats.experience >= stats.experience_to_next_level:
        previous_level = stats.level
        stats.experience -= stats.experience_to_next_level
        stats.level += 1
        stats.experience_to_next_level = next_level_threshold(
            stats.experience_to_next_level, rules.growth_factor
        )

        bonus = level_up_bonus(previous_level, rules.bonus_per_level)
        stats.total_points += bonus
        result.bonus += bonus
        result.levels_gained.append(stats.level)

        result.achievements.extend(
            unlock_achievements(stats, AchievementCategory.LEVEL, now=now)
        )

    if result.levels_gained:
        result.leveled_up = True
        result.new_level = stats.level
        logger.info(
            "User %s leveled up to %d (+%d bonus, %d level(s) gained)",
            stats.user_id, stats.level, result.bonus, len(result.levels_gained),
        )
    return result


def progress_percentage(experience: int, experience_to_next_level: int) -> float:
    """Share of the current level completed, capped to ``[0, 100]``."""
    if experience_to_next_level <= 0:
        return 100.0
    return max(0.0, min(100.0, 100.0 * experience / experience_to_next_level))
