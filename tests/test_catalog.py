"""
tests/test_catalog.py — Tests for the static tables
====================================================

Achievement catalog, action point table and the leveling formula helpers.
"""

from __future__ import annotations

import pytest

from ecoquest.constants import level_up_bonus, next_level_threshold
from ecoquest.engine.actions import ACTION_POINTS, Action, parse_action, resolve_points
from ecoquest.engine.catalog import (
    ACHIEVEMENTS,
    AchievementCategory,
    coerce_category,
    definitions_for,
    get_definition,
)
from ecoquest.exceptions import InvalidActionError


class TestCatalog:
    def test_ids_are_unique(self):
        ids = [a.id for a in ACHIEVEMENTS]
        assert len(ids) == len(set(ids)) == 13

    def test_every_category_has_definitions(self):
        for category in AchievementCategory:
            assert definitions_for(category), category

    def test_lookup(self):
        defn = get_definition("streak_7")
        assert defn.name == "Week Warrior"
        assert defn.points == 100
        assert defn.threshold == 7
        assert get_definition("missing") is None

    def test_definitions_for_all(self):
        assert definitions_for(None) == ACHIEVEMENTS

    def test_definitions_for_filters(self):
        ids = [a.id for a in definitions_for("level")]
        assert ids == ["level_5", "level_10", "level_25"]

    def test_coerce_category(self):
        assert coerce_category(None) is None
        assert coerce_category("Streak") is AchievementCategory.STREAK
        assert coerce_category("report") is AchievementCategory.REPORTS
        with pytest.raises(ValueError):
            coerce_category("karma")


class TestActions:
    def test_point_table(self):
        assert ACTION_POINTS[Action.REPORT_SUBMITTED] == 10
        assert ACTION_POINTS[Action.REPORT_RESOLVED] == 25
        assert ACTION_POINTS[Action.CHALLENGE_COMPLETION] == 100
        assert set(ACTION_POINTS) == set(Action)

    @pytest.mark.parametrize("name", [
        "REPORT_SUBMITTED", "report_submitted", "report-submitted", " Report Submitted ",
    ])
    def test_parse_action_spellings(self, name):
        assert parse_action(name) is Action.REPORT_SUBMITTED

    def test_parse_unknown(self):
        assert parse_action("HIGH_FIVE") is None

    def test_resolve_points(self):
        assert resolve_points(Action.SOCIAL_ACTION) == 2
        assert resolve_points(Action.SOCIAL_ACTION, 9) == 9
        assert resolve_points(Action.SOCIAL_ACTION, -3) == 2
        assert resolve_points(None) == 0
        assert resolve_points("HIGH_FIVE") == 0

    def test_resolve_points_strict(self):
        with pytest.raises(InvalidActionError):
            resolve_points("HIGH_FIVE", strict=True)


class TestLevelFormula:
    @pytest.mark.parametrize(("current", "expected"), [
        (100, 120),
        (120, 144),
        (144, 172),
        (172, 206),
        (1, 1),
    ])
    def test_next_level_threshold(self, current, expected):
        assert next_level_threshold(current) == expected

    def test_level_up_bonus(self):
        assert level_up_bonus(1) == 10
        assert level_up_bonus(3) == 30
        assert level_up_bonus(3, per_level=0) == 0
