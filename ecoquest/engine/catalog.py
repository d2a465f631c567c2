"""
ecoquest.engine.catalog — Achievement Catalog
==============================================

Immutable, process-wide registry of achievement definitions.  Built once
at import; there is no runtime mutation path, so reads need no locking.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType

__all__ = [
    "ACHIEVEMENTS",
    "AchievementCategory",
    "AchievementDefinition",
    "coerce_category",
    "definitions_for",
    "get_definition",
]


class AchievementCategory(enum.StrEnum):
    """What kind of event makes an achievement worth re-checking."""
    REPORTS = "reports"
    STREAK = "streak"
    LEVEL = "level"
    SOCIAL = "social"
    TEAM = "team"
    CHALLENGE = "challenge"


# Older report workflows trigger with the singular form.
_CATEGORY_ALIASES: dict[str, AchievementCategory] = {
    "report": AchievementCategory.REPORTS,
}


@dataclass(frozen=True, slots=True)
class AchievementDefinition:
    """One unlockable achievement.

    ``threshold`` is the statistic value the category predicate compares
    against (report count, streak length, level, follower count, …).
    """

    id: str
    name: str
    description: str
    icon: str
    points: int
    category: AchievementCategory
    threshold: int


ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    # Reports
    AchievementDefinition(
        "first_report", "First Steps", "Submit your first report",
        "\U0001f3af", 10, AchievementCategory.REPORTS, 1,
    ),
    AchievementDefinition(
        "reports_10", "Getting Started", "Submit 10 reports",
        "\U0001f4dd", 50, AchievementCategory.REPORTS, 10,
    ),
    AchievementDefinition(
        "reports_50", "Dedicated Reporter", "Submit 50 reports",
        "\U0001f4ca", 200, AchievementCategory.REPORTS, 50,
    ),
    AchievementDefinition(
        "reports_100", "Report Master", "Submit 100 reports",
        "\U0001f3c6", 500, AchievementCategory.REPORTS, 100,
    ),
    # Streaks
    AchievementDefinition(
        "streak_3", "Consistent", "Report for 3 consecutive days",
        "\U0001f525", 30, AchievementCategory.STREAK, 3,
    ),
    AchievementDefinition(
        "streak_7", "Week Warrior", "Report for 7 consecutive days",
        "⚡", 100, AchievementCategory.STREAK, 7,
    ),
    AchievementDefinition(
        "streak_30", "Monthly Master", "Report for 30 consecutive days",
        "\U0001f48e", 500, AchievementCategory.STREAK, 30,
    ),
    # Levels
    AchievementDefinition(
        "level_5", "Rising Star", "Reach level 5",
        "⭐", 100, AchievementCategory.LEVEL, 5,
    ),
    AchievementDefinition(
        "level_10", "Community Hero", "Reach level 10",
        "\U0001f31f", 300, AchievementCategory.LEVEL, 10,
    ),
    AchievementDefinition(
        "level_25", "Legend", "Reach level 25",
        "\U0001f451", 1000, AchievementCategory.LEVEL, 25,
    ),
    # Community
    AchievementDefinition(
        "team_join", "Team Player", "Join a community team",
        "\U0001f91d", 50, AchievementCategory.TEAM, 1,
    ),
    AchievementDefinition(
        "challenge_win", "Challenge Champion", "Win your first challenge",
        "\U0001f3c5", 200, AchievementCategory.CHALLENGE, 1,
    ),
    AchievementDefinition(
        "social_butterfly", "Social Butterfly", "Have 10 followers",
        "\U0001f98b", 100, AchievementCategory.SOCIAL, 10,
    ),
)

_BY_ID = MappingProxyType({a.id: a for a in ACHIEVEMENTS})


def get_definition(achievement_id: str) -> AchievementDefinition | None:
    """Look up a definition by id."""
    return _BY_ID.get(achievement_id)


def coerce_category(
    value: AchievementCategory | str | None,
) -> AchievementCategory | None:
    """Normalize a trigger category; ``None`` means "all categories".

    Raises ``ValueError`` for names that are not a category.
    """
    if value is None or isinstance(value, AchievementCategory):
        return value
    key = value.strip().lower()
    if key in _CATEGORY_ALIASES:
        return _CATEGORY_ALIASES[key]
    return AchievementCategory(key)


def definitions_for(
    category: AchievementCategory | str | None = None,
) -> tuple[AchievementDefinition, ...]:
    """Catalog entries for *category*, or the whole catalog."""
    wanted = coerce_category(category)
    if wanted is None:
        return ACHIEVEMENTS
    return tuple(a for a in ACHIEVEMENTS if a.category == wanted)
