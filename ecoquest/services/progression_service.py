"""
ecoquest.services.progression_service — Progression Entry Points
=================================================================

The calls external workflows make after their own state change (a report
saved, a follower added, a challenge won).  Each call is one transaction
per user:

  1. Read a snapshot from the store
  2. Run the pure engine on a private copy
  3. Conditionally write it back (version check)
  4. On ConflictError: back off, re-read, re-apply, up to
     ``cfg.conflict_retries`` attempts
  5. After commit, hand level-ups / unlocks to the notifier

Nothing is written when the engine left the snapshot unchanged.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, TypeVar

from ecoquest.config import DEFAULT_CONFIG, EcoQuestConfig
from ecoquest.engine import ledger, levels, streaks
from ecoquest.engine.achievements import unlock, unlock_achievements
from ecoquest.engine.actions import Action
from ecoquest.engine.catalog import (
    AchievementCategory,
    AchievementDefinition,
    coerce_category,
    get_definition,
)
from ecoquest.engine.stats import GameStats
from ecoquest.exceptions import ConflictError, PersistenceError
from ecoquest.services.notifier import ProgressNotifier, dispatch
from ecoquest.services.store import StatsStore

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

T = TypeVar("T")

_COUNTER_FIELDS: tuple[str, ...] = (
    "total_reports",
    "resolved_reports",
    "follower_count",
    "team_count",
    "challenges_won",
)


@dataclass
class ReportOutcome:
    """Everything a report submission earned, for the notifier and caller."""

    points: ledger.PointsAward
    streak: streaks.StreakUpdate
    achievements: list[AchievementDefinition] = field(default_factory=list)
    level_up: levels.LevelUpResult = field(default_factory=levels.LevelUpResult)


# ---------------------------------------------------------------------------
# Read-modify-write loop
# ---------------------------------------------------------------------------
def _run_transaction(
    engine: Engine,
    user_id: str,
    mutate: Callable[[GameStats], T],
    *,
    cfg: EcoQuestConfig,
) -> tuple[T, GameStats]:
    """Apply *mutate* to a fresh snapshot and commit it, retrying conflicts.

    *mutate* runs once per attempt on a new copy, so it must derive all of
    its changes from the snapshot it receives.
    """
    store = StatsStore(engine)
    attempts = cfg.conflict_retries

    for attempt in range(1, attempts + 1):
        try:
            current = store.get(user_id)
            working = current.copy()
            outcome = mutate(working)
            if working != current:
                working = store.save(working)
            return outcome, working
        except ConflictError:
            if attempt >= attempts:
                logger.error(
                    "Giving up on user %s after %d conflicting writes",
                    user_id, attempts,
                )
                raise
            logger.warning(
                "Write conflict on user %s (attempt %d/%d), retrying",
                user_id, attempt, attempts,
            )
        except PersistenceError as exc:
            if not exc.transient or attempt >= attempts:
                raise
            logger.warning(
                "Transient store failure for user %s (attempt %d/%d): %s",
                user_id, attempt, attempts, exc,
            )
        time.sleep(cfg.retry_backoff_seconds * (2 ** (attempt - 1)))

    # conflict_retries >= 1 is enforced by EcoQuestConfig
    raise ConflictError(user_id)


# ---------------------------------------------------------------------------
# Account lifecycle
# ---------------------------------------------------------------------------
def create_stats(
    engine: Engine,
    user_id: str,
    display_name: str | None = None,
    *,
    cfg: EcoQuestConfig | None = None,
) -> GameStats:
    """Fetch or create a user's stats record with default values."""
    cfg = cfg or DEFAULT_CONFIG
    stats, _ = StatsStore(engine).create(
        user_id, display_name, base_experience=cfg.rules.base_experience
    )
    return stats


def delete_stats(engine: Engine, user_id: str) -> bool:
    """Delete a user's stats as part of account deletion."""
    return StatsStore(engine).delete(user_id)


# ---------------------------------------------------------------------------
# Event triggers
# ---------------------------------------------------------------------------
def award_points(
    engine: Engine,
    user_id: str,
    action: Action | str | None = None,
    amount: int | None = None,
    *,
    strict: bool = False,
    cfg: EcoQuestConfig | None = None,
    notifier: ProgressNotifier | None = None,
) -> ledger.PointsAward:
    """Award points for *action* (or an explicit *amount*) to *user_id*.

    Unknown actions without an amount are a no-op unless *strict* is set,
    in which case :class:`~ecoquest.exceptions.InvalidActionError` is raised.
    """
    cfg = cfg or DEFAULT_CONFIG
    award, _ = _run_transaction(
        engine,
        user_id,
        lambda stats: ledger.award_points(
            stats, action, amount, strict=strict, rules=cfg.rules
        ),
        cfg=cfg,
    )
    if award.points_awarded:
        logger.info(
            "Awarded %d points to user %s for %s. Total: %d",
            award.points_awarded, user_id, action or "manual award", award.new_total,
        )
    dispatch(
        notifier, user_id,
        level_up=award.level_up, achievements=award.level_up.achievements,
    )
    return award


def update_streak(
    engine: Engine,
    user_id: str,
    event_date: date | datetime | None = None,
    *,
    cfg: EcoQuestConfig | None = None,
    notifier: ProgressNotifier | None = None,
) -> streaks.StreakUpdate:
    """Record report activity on *event_date* (default: today, UTC)."""
    cfg = cfg or DEFAULT_CONFIG
    update, _ = _run_transaction(
        engine,
        user_id,
        lambda stats: streaks.update_streak(stats, event_date, rules=cfg.rules),
        cfg=cfg,
    )
    dispatch(
        notifier, user_id,
        level_up=update.level_up,
        achievements=update.achievements + update.level_up.achievements,
    )
    return update


def check_achievements(
    engine: Engine,
    user_id: str,
    category: AchievementCategory | str | None = None,
    *,
    cfg: EcoQuestConfig | None = None,
    notifier: ProgressNotifier | None = None,
) -> list[AchievementDefinition]:
    """Evaluate *category* (or every category) and unlock what is due.

    Returns every definition newly unlocked by this call, including level
    achievements reached because the rewards pushed the user up a level.
    """
    cfg = cfg or DEFAULT_CONFIG
    wanted = coerce_category(category)

    def _mutate(stats: GameStats):
        unlocked = unlock_achievements(stats, wanted)
        level_up = levels.check_level_up(stats, rules=cfg.rules)
        return unlocked, level_up

    (unlocked, level_up), _ = _run_transaction(engine, user_id, _mutate, cfg=cfg)
    unlocked = unlocked + level_up.achievements
    dispatch(notifier, user_id, level_up=level_up, achievements=unlocked)
    return unlocked


# ---------------------------------------------------------------------------
# Collaborator inputs
# ---------------------------------------------------------------------------
def update_counters(
    engine: Engine,
    user_id: str,
    *,
    total_reports: int | None = None,
    resolved_reports: int | None = None,
    follower_count: int | None = None,
    team_count: int | None = None,
    challenges_won: int | None = None,
    cfg: EcoQuestConfig | None = None,
) -> GameStats:
    """Store counters owned by the report and community services.

    Only the given counters change.  Achievements are not evaluated here;
    the collaborator calls :func:`check_achievements` for its category.
    """
    cfg = cfg or DEFAULT_CONFIG
    given = {
        name: value
        for name, value in zip(
            _COUNTER_FIELDS,
            (total_reports, resolved_reports, follower_count, team_count, challenges_won),
        )
        if value is not None
    }
    for name, value in given.items():
        if value < 0:
            raise ValueError(f"{name} cannot be negative (got {value})")

    def _mutate(stats: GameStats) -> None:
        for name, value in given.items():
            setattr(stats, name, value)

    _, stats = _run_transaction(engine, user_id, _mutate, cfg=cfg)
    return stats


# ---------------------------------------------------------------------------
# Report workflow hooks
# ---------------------------------------------------------------------------
def report_submitted(
    engine: Engine,
    user_id: str,
    submitted_at: date | datetime | None = None,
    *,
    cfg: EcoQuestConfig | None = None,
    notifier: ProgressNotifier | None = None,
) -> ReportOutcome:
    """Full reward chain for a new report, committed as one write.

    Counts the report, awards REPORT_SUBMITTED, advances the streak and
    checks report achievements.
    """
    cfg = cfg or DEFAULT_CONFIG

    def _mutate(stats: GameStats) -> ReportOutcome:
        stats.total_reports += 1
        points = ledger.award_points(stats, Action.REPORT_SUBMITTED, rules=cfg.rules)
        streak = streaks.update_streak(stats, submitted_at, rules=cfg.rules)
        unlocked = unlock_achievements(stats, AchievementCategory.REPORTS)

        level_up = levels.LevelUpResult()
        level_up.merge(points.level_up)
        level_up.merge(streak.level_up)
        level_up.merge(levels.check_level_up(stats, rules=cfg.rules))

        return ReportOutcome(
            points=points,
            streak=streak,
            achievements=streak.achievements + unlocked + level_up.achievements,
            level_up=level_up,
        )

    outcome, stats = _run_transaction(engine, user_id, _mutate, cfg=cfg)
    logger.info(
        "Report submitted by user %s: %d reports, streak %d, %d points total",
        user_id, stats.total_reports, stats.streak, stats.total_points,
    )
    dispatch(
        notifier, user_id,
        level_up=outcome.level_up, achievements=outcome.achievements,
    )
    return outcome


def report_resolved(
    engine: Engine,
    user_id: str,
    *,
    cfg: EcoQuestConfig | None = None,
    notifier: ProgressNotifier | None = None,
) -> ledger.PointsAward:
    """Credit the reporter when one of their reports is resolved."""
    cfg = cfg or DEFAULT_CONFIG

    def _mutate(stats: GameStats) -> ledger.PointsAward:
        stats.resolved_reports += 1
        return ledger.award_points(stats, Action.REPORT_RESOLVED, rules=cfg.rules)

    award, _ = _run_transaction(engine, user_id, _mutate, cfg=cfg)
    dispatch(
        notifier, user_id,
        level_up=award.level_up, achievements=award.level_up.achievements,
    )
    return award


# ---------------------------------------------------------------------------
# Administrative paths
# ---------------------------------------------------------------------------
def grant_achievement(
    engine: Engine,
    user_id: str,
    achievement_id: str,
    *,
    granted_by: str | None = None,
    cfg: EcoQuestConfig | None = None,
    notifier: ProgressNotifier | None = None,
) -> tuple[bool, str]:
    """Grant a specific catalog achievement to a user.

    Returns (success, message).
    """
    cfg = cfg or DEFAULT_CONFIG
    defn = get_definition(achievement_id)
    if defn is None:
        return False, "Achievement not found."

    def _mutate(stats: GameStats):
        if not unlock(stats, defn, now=datetime.now(UTC), granted_by=granted_by):
            return False, levels.LevelUpResult()
        return True, levels.check_level_up(stats, rules=cfg.rules)

    (granted, level_up), _ = _run_transaction(engine, user_id, _mutate, cfg=cfg)
    if not granted:
        return False, "User has already earned this achievement."

    dispatch(
        notifier, user_id,
        level_up=level_up, achievements=[defn, *level_up.achievements],
    )
    return True, f"Achievement '{defn.name}' granted."


def override_total_points(
    engine: Engine,
    user_id: str,
    total_points: int,
    *,
    admin_id: str | None = None,
    reason: str = "",
    cfg: EcoQuestConfig | None = None,
) -> GameStats:
    """Set ``total_points`` directly, bypassing the ledger.

    Level, experience and achievements are left as they are.
    """
    if total_points < 0:
        raise ValueError("total_points cannot be negative")
    cfg = cfg or DEFAULT_CONFIG

    def _mutate(stats: GameStats) -> int:
        previous = stats.total_points
        stats.total_points = total_points
        return previous

    previous, stats = _run_transaction(engine, user_id, _mutate, cfg=cfg)
    logger.info(
        "Admin %s set total points of user %s: %d → %d (%s)",
        admin_id or "unknown", user_id, previous, total_points, reason or "no reason",
    )
    return stats
