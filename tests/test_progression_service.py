"""
tests/test_progression_service.py — Tests for the Progression Service
======================================================================

Runs every entry point against an in-memory SQLite engine.  Store faults
are injected by patching :class:`StatsStore.save`.
"""

from __future__ import annotations

from datetime import date, timedelta
from unittest.mock import MagicMock, patch

import pytest

from ecoquest.engine.actions import Action
from ecoquest.exceptions import (
    ConflictError,
    InvalidActionError,
    NotFoundError,
    PersistenceError,
)
from ecoquest.services.notifier import ProgressNotifier
from ecoquest.services.progression_service import (
    award_points,
    check_achievements,
    create_stats,
    delete_stats,
    grant_achievement,
    override_total_points,
    report_resolved,
    report_submitted,
    update_counters,
    update_streak,
)
from ecoquest.services.store import StatsStore

DAY_1 = date(2026, 5, 1)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _user(engine, user_id: str = "u-1", **counters):
    """Create a user and optionally set collaborator counters."""
    create_stats(engine, user_id, display_name=f"User {user_id}")
    if counters:
        update_counters(engine, user_id, **counters)
    return user_id


def _flaky_save(failures: list[Exception]):
    """Return a save() side-effect that raises *failures* in order, then saves."""
    real_save = StatsStore.save
    pending = list(failures)

    def _save(self, stats):
        if pending:
            raise pending.pop(0)
        return real_save(self, stats)

    return _save


def _ids(defs) -> list[str]:
    return [d.id for d in defs]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------
class TestLifecycle:
    def test_create_defaults(self, db_engine):
        stats = create_stats(db_engine, "u-1", "Ada")
        assert stats.display_name == "Ada"
        assert stats.level == 1
        assert stats.experience == 0
        assert stats.experience_to_next_level == 100
        assert stats.total_points == 0
        assert stats.achievements == []
        assert stats.version == 0

    def test_create_is_idempotent(self, db_engine):
        create_stats(db_engine, "u-1")
        award_points(db_engine, "u-1", Action.DAILY_LOGIN)
        again = create_stats(db_engine, "u-1")
        assert again.total_points == 5

    def test_delete(self, db_engine):
        _user(db_engine)
        assert delete_stats(db_engine, "u-1") is True
        assert delete_stats(db_engine, "u-1") is False
        with pytest.raises(NotFoundError):
            award_points(db_engine, "u-1", Action.DAILY_LOGIN)


# ---------------------------------------------------------------------------
# award_points
# ---------------------------------------------------------------------------
class TestAwardPoints:
    def test_persists(self, db_engine):
        _user(db_engine)
        award = award_points(db_engine, "u-1", "REPORT_SUBMITTED")
        assert award.points_awarded == 10

        stored = StatsStore(db_engine).get("u-1")
        assert stored.total_points == 10
        assert stored.experience == 10
        assert stored.version == 1

    def test_unknown_user(self, db_engine):
        with pytest.raises(NotFoundError):
            award_points(db_engine, "ghost", Action.DAILY_LOGIN)

    def test_noop_does_not_write(self, db_engine):
        _user(db_engine)
        award = award_points(db_engine, "u-1", "NO_SUCH_ACTION")
        assert award.points_awarded == 0
        assert StatsStore(db_engine).get("u-1").version == 0

    def test_strict_unknown_action(self, db_engine):
        _user(db_engine)
        with pytest.raises(InvalidActionError):
            award_points(db_engine, "u-1", "NO_SUCH_ACTION", strict=True)
        assert StatsStore(db_engine).get("u-1").version == 0

    def test_level_up_is_persisted(self, db_engine):
        _user(db_engine)
        award_points(db_engine, "u-1", amount=95)
        award = award_points(db_engine, "u-1", amount=10)

        assert award.level_up.new_level == 2
        stored = StatsStore(db_engine).get("u-1")
        assert stored.level == 2
        assert stored.experience == 5
        assert stored.experience_to_next_level == 120
        assert stored.total_points == 115


# ---------------------------------------------------------------------------
# update_streak
# ---------------------------------------------------------------------------
class TestUpdateStreak:
    def test_consecutive_days(self, db_engine):
        _user(db_engine)
        update_streak(db_engine, "u-1", DAY_1)
        update = update_streak(db_engine, "u-1", DAY_1 + timedelta(days=1))
        assert update.streak == 2
        assert update.bonus == 10
        assert StatsStore(db_engine).get("u-1").total_points == 10

    def test_same_day_second_call_does_not_write(self, db_engine):
        _user(db_engine)
        update_streak(db_engine, "u-1", DAY_1)
        version = StatsStore(db_engine).get("u-1").version

        update = update_streak(db_engine, "u-1", DAY_1)
        assert not update.changed
        assert StatsStore(db_engine).get("u-1").version == version

    def test_last_activity_date_round_trips(self, db_engine):
        _user(db_engine)
        update_streak(db_engine, "u-1", DAY_1)
        assert StatsStore(db_engine).get("u-1").last_activity_date == DAY_1


# ---------------------------------------------------------------------------
# check_achievements / update_counters
# ---------------------------------------------------------------------------
class TestCheckAchievements:
    def test_social_unlock_is_idempotent(self, db_engine):
        _user(db_engine, follower_count=10)
        first = check_achievements(db_engine, "u-1", "social")
        second = check_achievements(db_engine, "u-1", "social")

        assert _ids(first) == ["social_butterfly"]
        assert second == []
        stored = StatsStore(db_engine).get("u-1")
        # 100 points crosses level 1; the level-up bonus is 10
        assert stored.total_points == 110
        assert [a.id for a in stored.achievements] == ["social_butterfly"]

    def test_unknown_category(self, db_engine):
        _user(db_engine)
        with pytest.raises(ValueError):
            check_achievements(db_engine, "u-1", "karma")

    def test_all_categories(self, db_engine):
        _user(db_engine, total_reports=1, team_count=1)
        unlocked = check_achievements(db_engine, "u-1")
        assert _ids(unlocked) == ["first_report", "team_join"]

    def test_reward_level_achievements_are_reported(self, db_engine):
        _user(db_engine, challenges_won=1)
        award_points(db_engine, "u-1", amount=5)
        # force a user close to level 5
        store = StatsStore(db_engine)
        stats = store.get("u-1")
        stats.level = 4
        stats.experience = 50
        stats.experience_to_next_level = 200
        store.save(stats)

        unlocked = check_achievements(db_engine, "u-1", "challenge")
        assert _ids(unlocked) == ["challenge_win", "level_5"]
        assert StatsStore(db_engine).get("u-1").level == 5


class TestUpdateCounters:
    def test_only_given_counters_change(self, db_engine):
        _user(db_engine, total_reports=4, follower_count=2)
        stats = update_counters(db_engine, "u-1", follower_count=3)
        assert stats.total_reports == 4
        assert stats.follower_count == 3

    def test_negative_rejected(self, db_engine):
        _user(db_engine)
        with pytest.raises(ValueError):
            update_counters(db_engine, "u-1", team_count=-1)

    def test_does_not_unlock(self, db_engine):
        _user(db_engine, total_reports=1)
        assert StatsStore(db_engine).get("u-1").achievements == []


# ---------------------------------------------------------------------------
# Report hooks
# ---------------------------------------------------------------------------
class TestReportHooks:
    def test_first_report_scenario_step_by_step(self, db_engine):
        _user(db_engine, total_reports=1)
        award_points(db_engine, "u-1", Action.REPORT_SUBMITTED)
        update_streak(db_engine, "u-1", DAY_1)
        check_achievements(db_engine, "u-1", "reports")

        stored = StatsStore(db_engine).get("u-1")
        assert stored.total_points == 20
        assert stored.experience == 20
        assert stored.streak == 1
        assert [a.id for a in stored.achievements] == ["first_report"]

    def test_report_submitted_single_write(self, db_engine):
        _user(db_engine)
        outcome = report_submitted(db_engine, "u-1", DAY_1)

        assert outcome.points.points_awarded == 10
        assert outcome.streak.streak == 1
        assert _ids(outcome.achievements) == ["first_report"]

        stored = StatsStore(db_engine).get("u-1")
        assert stored.total_reports == 1
        assert stored.total_points == 20
        assert stored.version == 1

    def test_report_submitted_next_day(self, db_engine):
        _user(db_engine)
        report_submitted(db_engine, "u-1", DAY_1)
        outcome = report_submitted(db_engine, "u-1", DAY_1 + timedelta(days=1))

        assert outcome.streak.bonus == 10
        assert outcome.achievements == []
        stored = StatsStore(db_engine).get("u-1")
        assert stored.total_reports == 2
        assert stored.total_points == 40
        assert stored.streak == 2

    def test_report_resolved(self, db_engine):
        _user(db_engine)
        award = report_resolved(db_engine, "u-1")
        assert award.points_awarded == 25
        stored = StatsStore(db_engine).get("u-1")
        assert stored.resolved_reports == 1
        assert stored.total_points == 25


# ---------------------------------------------------------------------------
# Administrative paths
# ---------------------------------------------------------------------------
class TestGrantAchievement:
    def test_grant(self, db_engine):
        _user(db_engine)
        ok, msg = grant_achievement(db_engine, "u-1", "team_join", granted_by="admin-1")
        assert ok is True
        assert msg == "Achievement 'Team Player' granted."

        stored = StatsStore(db_engine).get("u-1")
        assert stored.achievements[0].granted_by == "admin-1"
        assert stored.total_points == 50

    def test_duplicate(self, db_engine):
        _user(db_engine)
        grant_achievement(db_engine, "u-1", "team_join")
        ok, msg = grant_achievement(db_engine, "u-1", "team_join")
        assert ok is False
        assert msg == "User has already earned this achievement."
        assert StatsStore(db_engine).get("u-1").total_points == 50

    def test_unknown_achievement(self, db_engine):
        _user(db_engine)
        ok, msg = grant_achievement(db_engine, "u-1", "nope")
        assert ok is False
        assert msg == "Achievement not found."


class TestOverrideTotalPoints:
    def test_override_then_award(self, db_engine):
        _user(db_engine)
        award_points(db_engine, "u-1", amount=80)
        stats = override_total_points(db_engine, "u-1", 5, admin_id="admin-1", reason="fix")
        assert stats.total_points == 5
        assert stats.experience == 80

        award = award_points(db_engine, "u-1", Action.REPORT_SUBMITTED)
        assert award.new_total == 15

    def test_negative_rejected(self, db_engine):
        _user(db_engine)
        with pytest.raises(ValueError):
            override_total_points(db_engine, "u-1", -1)


# ---------------------------------------------------------------------------
# Concurrency / retries
# ---------------------------------------------------------------------------
class TestRetries:
    def test_conflict_is_retried_and_applied_once(self, db_engine, fast_cfg):
        _user(db_engine)
        side_effect = _flaky_save([ConflictError("u-1", 0)])
        with patch.object(StatsStore, "save", autospec=True, side_effect=side_effect) as save:
            award = award_points(db_engine, "u-1", Action.REPORT_SUBMITTED, cfg=fast_cfg)

        assert save.call_count == 2
        assert award.new_total == 10
        assert StatsStore(db_engine).get("u-1").total_points == 10

    def test_gives_up_after_configured_attempts(self, db_engine, fast_cfg):
        _user(db_engine)
        with patch.object(
            StatsStore, "save", autospec=True, side_effect=ConflictError("u-1", 0)
        ) as save:
            with pytest.raises(ConflictError):
                award_points(db_engine, "u-1", Action.REPORT_SUBMITTED, cfg=fast_cfg)

        assert save.call_count == fast_cfg.conflict_retries
        assert StatsStore(db_engine).get("u-1").total_points == 0

    def test_transient_failure_is_retried(self, db_engine, fast_cfg):
        _user(db_engine)
        side_effect = _flaky_save([PersistenceError("connection reset", transient=True)])
        with patch.object(StatsStore, "save", autospec=True, side_effect=side_effect) as save:
            award_points(db_engine, "u-1", Action.DAILY_LOGIN, cfg=fast_cfg)

        assert save.call_count == 2
        assert StatsStore(db_engine).get("u-1").total_points == 5

    def test_permanent_failure_is_not_retried(self, db_engine, fast_cfg):
        _user(db_engine)
        with patch.object(
            StatsStore, "save", autospec=True, side_effect=PersistenceError("disk full")
        ) as save:
            with pytest.raises(PersistenceError):
                award_points(db_engine, "u-1", Action.DAILY_LOGIN, cfg=fast_cfg)
        assert save.call_count == 1

    def test_retry_reapplies_on_fresh_snapshot(self, db_engine, fast_cfg):
        """A competing write landing between attempts is not lost."""
        _user(db_engine)
        real_save = StatsStore.save
        state = {"calls": 0}

        def _save(self, stats):
            state["calls"] += 1
            if state["calls"] == 1:
                # someone else commits first
                other = self.get("u-1")
                other.add_points(7)
                real_save(self, other)
            return real_save(self, stats)

        with patch.object(StatsStore, "save", autospec=True, side_effect=_save):
            award_points(db_engine, "u-1", Action.DAILY_LOGIN, cfg=fast_cfg)

        stored = StatsStore(db_engine).get("u-1")
        assert stored.total_points == 12
        assert stored.version == 2


# ---------------------------------------------------------------------------
# Notifier hand-off
# ---------------------------------------------------------------------------
class TestNotifier:
    def test_level_up_notified(self, db_engine):
        _user(db_engine)
        notifier = MagicMock(spec=ProgressNotifier)
        award = award_points(db_engine, "u-1", amount=100, notifier=notifier)

        notifier.level_up.assert_called_once_with("u-1", award.level_up)
        notifier.achievements_unlocked.assert_not_called()

    def test_nothing_to_notify(self, db_engine):
        _user(db_engine)
        notifier = MagicMock(spec=ProgressNotifier)
        award_points(db_engine, "u-1", Action.DAILY_LOGIN, notifier=notifier)

        notifier.level_up.assert_not_called()
        notifier.achievements_unlocked.assert_not_called()

    def test_achievements_notified(self, db_engine):
        _user(db_engine)
        notifier = MagicMock(spec=ProgressNotifier)
        report_submitted(db_engine, "u-1", DAY_1, notifier=notifier)

        notifier.achievements_unlocked.assert_called_once()
        user_id, achievements = notifier.achievements_unlocked.call_args.args
        assert user_id == "u-1"
        assert _ids(achievements) == ["first_report"]

    def test_failing_notifier_does_not_undo_write(self, db_engine):
        _user(db_engine)
        notifier = MagicMock(spec=ProgressNotifier)
        notifier.level_up.side_effect = RuntimeError("smtp down")

        award = award_points(db_engine, "u-1", amount=100, notifier=notifier)
        assert award.level_up.leveled_up
        assert StatsStore(db_engine).get("u-1").level == 2
