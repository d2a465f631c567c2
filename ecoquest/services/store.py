"""
ecoquest.services.store — User Statistics Store
================================================

The only code that reads or writes ``user_game_stats``.

Writes are optimistic: :meth:`StatsStore.save` issues
``UPDATE … WHERE user_id = :id AND version = :expected`` and bumps the
version.  Zero rows updated on a row that still exists means somebody else
committed first → :class:`ConflictError`; the caller re-reads and retries.
New achievement rows are inserted in the same transaction, so a save either
lands completely or not at all.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ecoquest.database.engine import get_session
from ecoquest.database.models import UnlockedAchievement, UserGameStats
from ecoquest.engine.rules import DEFAULT_RULES
from ecoquest.engine.stats import AchievementRecord, GameStats
from ecoquest.exceptions import ConflictError, NotFoundError, PersistenceError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

# Snapshot fields copied verbatim to / from the row.
_STAT_FIELDS: tuple[str, ...] = (
    "display_name",
    "total_points",
    "experience",
    "level",
    "experience_to_next_level",
    "streak",
    "longest_streak",
    "last_activity_date",
    "total_reports",
    "resolved_reports",
    "follower_count",
    "team_count",
    "challenges_won",
)


def to_snapshot(row: UserGameStats) -> GameStats:
    """Copy an ORM row (and its achievements) into a detached snapshot."""
    return GameStats(
        user_id=row.user_id,
        achievements=[
            AchievementRecord(
                id=a.achievement_id,
                name=a.name,
                description=a.description,
                icon=a.icon,
                points=a.points,
                unlocked_at=a.unlocked_at,
                granted_by=a.granted_by,
            )
            for a in row.achievements
        ],
        version=row.version,
        **{name: getattr(row, name) for name in _STAT_FIELDS},
    )


def _wrap_db_error(exc: SQLAlchemyError, what: str) -> PersistenceError:
    transient = isinstance(exc, OperationalError)
    return PersistenceError(f"Failed to {what}: {exc}", transient=transient)


class StatsStore:
    """SQLAlchemy-backed store for :class:`GameStats` snapshots.

    Usage::

        store = StatsStore(engine)
        stats = store.get("u-1")
        stats.add_points(10)
        stats = store.save(stats)       # ConflictError if stale
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get(self, user_id: str) -> GameStats:
        """Return a snapshot of *user_id*'s stats or raise NotFoundError."""
        try:
            with Session(self._engine) as session:
                row = session.get(UserGameStats, user_id)
                if row is None:
                    raise NotFoundError(user_id)
                return to_snapshot(row)
        except SQLAlchemyError as exc:
            raise _wrap_db_error(exc, f"load stats for {user_id!r}") from exc

    def exists(self, user_id: str) -> bool:
        try:
            with Session(self._engine) as session:
                return session.get(UserGameStats, user_id) is not None
        except SQLAlchemyError as exc:
            raise _wrap_db_error(exc, f"look up {user_id!r}") from exc

    def list_top(self, column: str, limit: int) -> list[GameStats]:
        """Up to *limit* snapshots ranked by *column* descending.

        Ties go to the lower ``user_id``.  Achievements are not loaded.
        """
        order_col = getattr(UserGameStats, column)
        try:
            with get_session(self._engine) as session:
                rows = session.execute(
                    select(
                        UserGameStats.user_id,
                        UserGameStats.version,
                        *(getattr(UserGameStats, name) for name in _STAT_FIELDS),
                    )
                    .order_by(order_col.desc(), UserGameStats.user_id)
                    .limit(limit)
                ).all()
        except SQLAlchemyError as exc:
            raise _wrap_db_error(exc, f"rank users by {column}") from exc
        return [GameStats(**row._asdict()) for row in rows]

    def aggregate(self) -> dict[str, float]:
        """Row count, sums and averages over every user."""
        try:
            with get_session(self._engine) as session:
                row = session.execute(
                    select(
                        func.count(UserGameStats.user_id).label("total_users"),
                        func.coalesce(func.sum(UserGameStats.total_points), 0)
                        .label("total_points"),
                        func.coalesce(func.sum(UserGameStats.total_reports), 0)
                        .label("total_reports"),
                        func.coalesce(func.sum(UserGameStats.resolved_reports), 0)
                        .label("total_resolved"),
                        func.coalesce(func.avg(UserGameStats.level), 0)
                        .label("avg_level"),
                        func.coalesce(func.avg(UserGameStats.longest_streak), 0)
                        .label("avg_streak"),
                    )
                ).one()
        except SQLAlchemyError as exc:
            raise _wrap_db_error(exc, "aggregate stats") from exc
        return row._asdict()

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def create(
        self,
        user_id: str,
        display_name: str | None = None,
        *,
        base_experience: int = DEFAULT_RULES.base_experience,
    ) -> tuple[GameStats, bool]:
        """Fetch or insert the stats row.  Returns (snapshot, created)."""
        try:
            with Session(self._engine) as session:
                row = session.get(UserGameStats, user_id)
                if row is not None:
                    return to_snapshot(row), False
                row = UserGameStats(
                    user_id=user_id,
                    display_name=display_name,
                    total_points=0,
                    experience=0,
                    level=1,
                    experience_to_next_level=base_experience,
                    streak=0,
                    longest_streak=0,
                    total_reports=0,
                    resolved_reports=0,
                    follower_count=0,
                    team_count=0,
                    challenges_won=0,
                    version=0,
                )
                session.add(row)
                try:
                    session.commit()
                except IntegrityError:
                    # Lost the insert race; the other writer's row wins.
                    session.rollback()
                    return self.get(user_id), False
                session.refresh(row)
                logger.info("Created game stats for user %s", user_id)
                return to_snapshot(row), True
        except SQLAlchemyError as exc:
            raise _wrap_db_error(exc, f"create stats for {user_id!r}") from exc

    def delete(self, user_id: str) -> bool:
        """Remove the stats row and its achievements.  Returns False if absent."""
        try:
            with Session(self._engine) as session:
                row = session.get(UserGameStats, user_id)
                if row is None:
                    return False
                session.delete(row)
                session.commit()
                logger.info("Deleted game stats for user %s", user_id)
                return True
        except SQLAlchemyError as exc:
            raise _wrap_db_error(exc, f"delete stats for {user_id!r}") from exc

    # -------------------------------------------------------------------
    # Conditional write
    # -------------------------------------------------------------------
    def save(self, stats: GameStats) -> GameStats:
        """Commit *stats* if the row is still at ``stats.version``.

        Returns the snapshot with its new version.

        Raises
        ------
        NotFoundError
            The row was deleted in the meantime.
        ConflictError
            Another writer committed first.
        PersistenceError
            The database failed; ``transient`` is set for operational errors.
        """
        values = {name: getattr(stats, name) for name in _STAT_FIELDS}
        try:
            with Session(self._engine) as session:
                result = session.execute(
                    update(UserGameStats)
                    .where(
                        UserGameStats.user_id == stats.user_id,
                        UserGameStats.version == stats.version,
                    )
                    .values(
                        **values,
                        version=UserGameStats.version + 1,
                        updated_at=func.now(),
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    found = session.scalar(
                        select(func.count())
                        .select_from(UserGameStats)
                        .where(UserGameStats.user_id == stats.user_id)
                    )
                    session.rollback()
                    if not found:
                        raise NotFoundError(stats.user_id)
                    raise ConflictError(stats.user_id, stats.version)

                held = set(session.scalars(
                    select(UnlockedAchievement.achievement_id).where(
                        UnlockedAchievement.user_id == stats.user_id
                    )
                ).all())
                for record in stats.achievements:
                    if record.id in held:
                        continue
                    session.add(UnlockedAchievement(
                        user_id=stats.user_id,
                        achievement_id=record.id,
                        name=record.name,
                        description=record.description,
                        icon=record.icon,
                        points=record.points,
                        unlocked_at=record.unlocked_at,
                        granted_by=record.granted_by,
                    ))

                session.commit()
        except IntegrityError as exc:
            # Duplicate (user, achievement): a concurrent unlock got there first.
            raise ConflictError(stats.user_id, stats.version) from exc
        except SQLAlchemyError as exc:
            raise _wrap_db_error(exc, f"save stats for {stats.user_id!r}") from exc

        saved = stats.copy()
        saved.version = stats.version + 1
        return saved
