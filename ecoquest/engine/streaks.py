"""
ecoquest.engine.streaks — Streak Tracker
=========================================

Consecutive-day activity counting at calendar-date granularity.

Rules:
  * same day as the last activity (or earlier)  → no change, no bonus
  * exactly one day after                       → streak + 1
  * first activity, or a gap of 2+ days         → streak = 1
  * streak > 1                                  → bonus = streak × per-day bonus

Pure calculation, no database I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

from ecoquest.engine.achievements import unlock_achievements
from ecoquest.engine.catalog import AchievementCategory, AchievementDefinition
from ecoquest.engine.levels import LevelUpResult, check_level_up
from ecoquest.engine.rules import DEFAULT_RULES, ProgressionRules
from ecoquest.engine.stats import GameStats

logger = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)


@dataclass
class StreakUpdate:
    """Counters after a streak update, plus anything it unlocked."""

    streak: int
    longest_streak: int
    bonus: int = 0
    changed: bool = False
    achievements: list[AchievementDefinition] = field(default_factory=list)
    level_up: LevelUpResult = field(default_factory=LevelUpResult)


def normalize_date(value: date | datetime | None = None) -> date:
    """Drop the time of day.  ``None`` means today (UTC)."""
    if value is None:
        return datetime.now(UTC).date()
    if isinstance(value, datetime):
        return value.date()
    return value


def update_streak(
    stats: GameStats,
    event_date: date | datetime | None = None,
    *,
    rules: ProgressionRules = DEFAULT_RULES,
    now: datetime | None = None,
) -> StreakUpdate:
    """Record activity on *event_date* against the user's streak."""
    day = normalize_date(event_date)
    last = stats.last_activity_date

    if last is not None and day <= last:
        if day < last:
            logger.debug(
                "Ignoring out-of-order activity for user %s: %s is before %s",
                stats.user_id, day, last,
            )
        return StreakUpdate(streak=stats.streak, longest_streak=stats.longest_streak)

    old_streak = stats.streak
    if last is not None and day - last == _ONE_DAY:
        stats.streak += 1
    else:
        stats.streak = 1
        if old_streak > 1:
            logger.info(
                "User %s streak broken at %d days (last activity %s)",
                stats.user_id, old_streak, last,
            )

    stats.last_activity_date = day
    stats.longest_streak = max(stats.longest_streak, stats.streak)

    bonus = 0
    if stats.streak > 1:
        bonus = stats.streak * rules.streak_bonus_per_day
        stats.add_points(bonus)

    achievements = unlock_achievements(stats, AchievementCategory.STREAK, now=now)
    level_up = check_level_up(stats, rules=rules, now=now)

    logger.info(
        "Updated streak for user %s: %d → %d days (+%d bonus)",
        stats.user_id, old_streak, stats.streak, bonus,
    )
    return StreakUpdate(
        streak=stats.streak,
        longest_streak=stats.longest_streak,
        bonus=bonus,
        changed=True,
        achievements=achievements,
        level_up=level_up,
    )
