"""
ecoquest.engine.ledger — Points Ledger
=======================================

Resolves what an action is worth and credits it to a snapshot, then runs
the level engine.  Pure calculation; persisting is the service's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ecoquest.engine.actions import Action, resolve_points
from ecoquest.engine.levels import LevelUpResult, check_level_up
from ecoquest.engine.rules import DEFAULT_RULES, ProgressionRules
from ecoquest.engine.stats import GameStats


@dataclass
class PointsAward:
    """Outcome of a single award."""

    points_awarded: int = 0
    new_total: int = 0
    level_up: LevelUpResult = field(default_factory=LevelUpResult)


def award_points(
    stats: GameStats,
    action: Action | str | None = None,
    amount: int | None = None,
    *,
    strict: bool = False,
    rules: ProgressionRules = DEFAULT_RULES,
    now: datetime | None = None,
) -> PointsAward:
    """Credit points for *action* (or an explicit *amount*) to *stats*.

    An award that resolves to zero or less leaves *stats* untouched.
    ``new_total`` includes any level-up bonus earned along the way.
    """
    points = resolve_points(action, amount, strict=strict)
    if points <= 0:
        return PointsAward(points_awarded=0, new_total=stats.total_points)

    stats.add_points(points)
    level_up = check_level_up(stats, rules=rules, now=now)
    return PointsAward(
        points_awarded=points,
        new_total=stats.total_points,
        level_up=level_up,
    )
