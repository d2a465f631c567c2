"""
ecoquest.engine.achievements — Achievement Evaluator
=====================================================

Handler-registry evaluation of catalog predicates.  Each category maps to
a pure predicate ``(definition, stats) -> bool``; unlocking appends an
:class:`AchievementRecord` to the snapshot and credits the reward.

This module is pure calculation with no database or notification I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from ecoquest.engine.catalog import (
    ACHIEVEMENTS,
    AchievementCategory,
    AchievementDefinition,
    coerce_category,
)
from ecoquest.engine.stats import AchievementRecord, GameStats

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Predicates: pure functions (definition, stats) → bool
# ---------------------------------------------------------------------------

def _check_reports(defn: AchievementDefinition, stats: GameStats) -> bool:
    """Fires only at the exact report count, not beyond it."""
    return stats.total_reports == defn.threshold


def _check_streak(defn: AchievementDefinition, stats: GameStats) -> bool:
    return stats.streak == defn.threshold


def _check_level(defn: AchievementDefinition, stats: GameStats) -> bool:
    return stats.level == defn.threshold


def _check_social(defn: AchievementDefinition, stats: GameStats) -> bool:
    return stats.follower_count >= defn.threshold


def _check_team(defn: AchievementDefinition, stats: GameStats) -> bool:
    return stats.team_count >= defn.threshold


def _check_challenge(defn: AchievementDefinition, stats: GameStats) -> bool:
    return stats.challenges_won >= defn.threshold


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------
CATEGORY_HANDLERS: dict[
    AchievementCategory, Callable[[AchievementDefinition, GameStats], bool]
] = {
    AchievementCategory.REPORTS: _check_reports,
    AchievementCategory.STREAK: _check_streak,
    AchievementCategory.LEVEL: _check_level,
    AchievementCategory.SOCIAL: _check_social,
    AchievementCategory.TEAM: _check_team,
    AchievementCategory.CHALLENGE: _check_challenge,
}


def make_record(
    defn: AchievementDefinition,
    now: datetime,
    granted_by: str | None = None,
) -> AchievementRecord:
    return AchievementRecord(
        id=defn.id,
        name=defn.name,
        description=defn.description,
        icon=defn.icon,
        points=defn.points,
        unlocked_at=now,
        granted_by=granted_by,
    )


def unlock(
    stats: GameStats,
    defn: AchievementDefinition,
    *,
    now: datetime | None = None,
    granted_by: str | None = None,
) -> bool:
    """Give *defn* to the user unless they already hold it.

    Credits the achievement's points to ``total_points`` and ``experience``.
    Returns False when the achievement was already held.
    """
    if stats.has_achievement(defn.id):
        return False
    stats.achievements.append(make_record(defn, now or datetime.now(UTC), granted_by))
    stats.add_points(defn.points)
    logger.info(
        "Achievement unlocked: %s (%s) for user %s, +%d points",
        defn.name, defn.id, stats.user_id, defn.points,
    )
    return True


def evaluate(
    stats: GameStats,
    category: AchievementCategory | str | None = None,
    catalog: Iterable[AchievementDefinition] = ACHIEVEMENTS,
) -> list[AchievementDefinition]:
    """Definitions whose predicate holds for *stats*, held or not."""
    wanted = coerce_category(category)
    matched: list[AchievementDefinition] = []
    for defn in catalog:
        if wanted is not None and defn.category != wanted:
            continue
        handler = CATEGORY_HANDLERS.get(defn.category)
        if handler is not None and handler(defn, stats):
            matched.append(defn)
    return matched


def unlock_achievements(
    stats: GameStats,
    category: AchievementCategory | str | None = None,
    *,
    now: datetime | None = None,
    catalog: Iterable[AchievementDefinition] = ACHIEVEMENTS,
) -> list[AchievementDefinition]:
    """Unlock every matching, not-yet-held achievement on *stats*.

    Predicates can re-fire on unrelated triggers (a ``None`` category
    re-checks everything), so already-held ids are skipped.  Does not run
    the level-up check; callers do that once they are done crediting.

    Returns the newly unlocked definitions, in catalog order.
    """
    now = now or datetime.now(UTC)
    return [
        defn for defn in evaluate(stats, category, catalog)
        if unlock(stats, defn, now=now)
    ]
