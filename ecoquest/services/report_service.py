"""
ecoquest.services.report_service — Progress & Leaderboard Projections
======================================================================

Read-only views over ``user_game_stats``.  Nothing here writes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ecoquest.config import DEFAULT_CONFIG, EcoQuestConfig
from ecoquest.constants import DEFAULT_LEADERBOARD_LIMIT
from ecoquest.engine.catalog import ACHIEVEMENTS, AchievementDefinition
from ecoquest.engine.levels import progress_percentage
from ecoquest.engine.stats import AchievementRecord
from ecoquest.services.store import StatsStore

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

# metric name → user_game_stats column ranked on
LEADERBOARD_METRICS: dict[str, str] = {
    "points": "total_points",
    "reports": "total_reports",
    "streak": "longest_streak",
    "level": "level",
}


@dataclass(frozen=True, slots=True)
class Progress:
    level: int
    experience: int
    experience_to_next: int
    progress_percentage: float
    total_points: int
    total_reports: int
    resolved_reports: int
    streak: int
    longest_streak: int
    achievements_unlocked: int
    achievements_total: int


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    user_id: str
    display_name: str | None
    total_points: int
    total_reports: int
    longest_streak: int
    level: int


@dataclass(frozen=True, slots=True)
class GlobalStats:
    total_users: int = 0
    total_points: int = 0
    total_reports: int = 0
    total_resolved: int = 0
    avg_level: float = 0.0
    avg_streak: float = 0.0


def get_progress(engine: Engine, user_id: str) -> Progress:
    """Progress summary for one user.  Raises NotFoundError if absent."""
    stats = StatsStore(engine).get(user_id)
    return Progress(
        level=stats.level,
        experience=stats.experience,
        experience_to_next=stats.experience_to_next_level,
        progress_percentage=progress_percentage(
            stats.experience, stats.experience_to_next_level
        ),
        total_points=stats.total_points,
        total_reports=stats.total_reports,
        resolved_reports=stats.resolved_reports,
        streak=stats.streak,
        longest_streak=stats.longest_streak,
        achievements_unlocked=len(stats.achievements),
        achievements_total=len(ACHIEVEMENTS),
    )


def get_leaderboard(
    engine: Engine,
    metric: str = "points",
    limit: int = DEFAULT_LEADERBOARD_LIMIT,
    *,
    cfg: EcoQuestConfig | None = None,
) -> list[LeaderboardEntry]:
    """Top users by *metric*, descending; ties go to the lower user id.

    Unknown metrics rank by points.  *limit* is clamped to
    ``[1, cfg.leaderboard_max_limit]``.
    """
    cfg = cfg or DEFAULT_CONFIG
    column = LEADERBOARD_METRICS.get(metric)
    if column is None:
        logger.debug("Unknown leaderboard metric %r, ranking by points", metric)
        column = LEADERBOARD_METRICS["points"]
    limit = max(1, min(limit, cfg.leaderboard_max_limit))

    return [
        LeaderboardEntry(
            rank=i + 1,
            user_id=stats.user_id,
            display_name=stats.display_name,
            total_points=stats.total_points,
            total_reports=stats.total_reports,
            longest_streak=stats.longest_streak,
            level=stats.level,
        )
        for i, stats in enumerate(StatsStore(engine).list_top(column, limit))
    ]


def list_achievements() -> tuple[AchievementDefinition, ...]:
    """The whole catalog."""
    return ACHIEVEMENTS


def get_user_achievements(engine: Engine, user_id: str) -> list[AchievementRecord]:
    return StatsStore(engine).get(user_id).achievements


def get_global_stats(engine: Engine) -> GlobalStats:
    """Community-wide totals and averages."""
    totals = StatsStore(engine).aggregate()
    if not totals["total_users"]:
        return GlobalStats()
    return GlobalStats(
        total_users=int(totals["total_users"]),
        total_points=int(totals["total_points"]),
        total_reports=int(totals["total_reports"]),
        total_resolved=int(totals["total_resolved"]),
        avg_level=float(totals["avg_level"]),
        avg_streak=float(totals["avg_streak"]),
    )
