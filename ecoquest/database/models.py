"""
ecoquest.database.models — SQLAlchemy 2.0 Data Models
======================================================

Persistent shape of the progression aggregate.

Tables:
- user_game_stats       — One row per user: points, level, streak, counters
- unlocked_achievements — Achievements a user holds (never removed)

The ``version`` column on ``user_game_stats`` backs the optimistic
read-modify-write cycle in :mod:`ecoquest.services.store`.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ecoquest.constants import BASE_EXPERIENCE


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all EcoQuest ORM models."""


# ---------------------------------------------------------------------------
# UserGameStats: the progression aggregate, one row per user
# ---------------------------------------------------------------------------
class UserGameStats(Base):
    __tablename__ = "user_game_stats"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(100), default=None)

    total_points: Mapped[int] = mapped_column(Integer, default=0)
    experience: Mapped[int] = mapped_column(Integer, default=0)
    level: Mapped[int] = mapped_column(Integer, default=1)
    experience_to_next_level: Mapped[int] = mapped_column(
        Integer, default=BASE_EXPERIENCE
    )

    streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_activity_date: Mapped[date | None] = mapped_column(Date, default=None)

    # Owned by the report / community collaborators; read-only here.
    total_reports: Mapped[int] = mapped_column(Integer, default=0)
    resolved_reports: Mapped[int] = mapped_column(Integer, default=0)
    follower_count: Mapped[int] = mapped_column(Integer, default=0)
    team_count: Mapped[int] = mapped_column(Integer, default=0)
    challenges_won: Mapped[int] = mapped_column(Integer, default=0)

    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    achievements: Mapped[list[UnlockedAchievement]] = relationship(
        back_populates="owner",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=lambda: [
            UnlockedAchievement.unlocked_at, UnlockedAchievement.achievement_id,
        ],
    )

    __table_args__ = (
        Index("ix_user_game_stats_total_points", "total_points"),
        Index("ix_user_game_stats_level", "level"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserGameStats user={self.user_id!r} lvl={self.level} "
            f"pts={self.total_points} v={self.version}>"
        )


# ---------------------------------------------------------------------------
# UnlockedAchievement: earned badges, denormalized from the catalog
# ---------------------------------------------------------------------------
class UnlockedAchievement(Base):
    __tablename__ = "unlocked_achievements"

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_game_stats.user_id", ondelete="CASCADE"),
        primary_key=True,
    )
    achievement_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0)
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    granted_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    owner: Mapped[UserGameStats] = relationship(back_populates="achievements")

    def __repr__(self) -> str:
        return (
            f"<UnlockedAchievement user={self.user_id!r} "
            f"achievement={self.achievement_id!r}>"
        )
