"""
ecoquest.engine.stats — GameStats Snapshot
===========================================

Plain-data copy of one user's progression record.  The services read a
snapshot out of the store, the engine mutates that private copy, and the
store commits it back in one conditional write.  Nothing in the engine
ever touches an ORM object.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime

from ecoquest.constants import BASE_EXPERIENCE


@dataclass(frozen=True, slots=True)
class AchievementRecord:
    """An achievement as held by a user, denormalized from the catalog."""

    id: str
    name: str
    description: str
    icon: str
    points: int
    unlocked_at: datetime
    granted_by: str | None = None


@dataclass(slots=True)
class GameStats:
    """Snapshot of a user's progression state.

    ``version`` is the store's optimistic-concurrency counter at read time;
    the engine never changes it.
    """

    user_id: str
    display_name: str | None = None
    total_points: int = 0
    experience: int = 0
    level: int = 1
    experience_to_next_level: int = BASE_EXPERIENCE
    streak: int = 0
    longest_streak: int = 0
    last_activity_date: date | None = None
    total_reports: int = 0
    resolved_reports: int = 0
    follower_count: int = 0
    team_count: int = 0
    challenges_won: int = 0
    achievements: list[AchievementRecord] = field(default_factory=list)
    version: int = 0

    @property
    def achievement_ids(self) -> set[str]:
        return {a.id for a in self.achievements}

    def has_achievement(self, achievement_id: str) -> bool:
        return any(a.id == achievement_id for a in self.achievements)

    def add_points(self, amount: int) -> None:
        """Credit *amount* to both lifetime points and experience."""
        self.total_points += amount
        self.experience += amount

    def copy(self) -> GameStats:
        return replace(self, achievements=list(self.achievements))
