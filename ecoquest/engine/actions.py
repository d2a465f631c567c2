"""
ecoquest.engine.actions — Point Actions
========================================

The closed set of actions that earn points, and the static amount each
one is worth.  Unknown action names resolve to zero points (a no-op award)
unless the caller asks for strict resolution.
"""

from __future__ import annotations

import enum
import logging

from ecoquest.exceptions import InvalidActionError

__all__ = ["ACTION_POINTS", "Action", "parse_action", "resolve_points"]

logger = logging.getLogger(__name__)


class Action(enum.StrEnum):
    """Every action an external workflow can report to the ledger."""
    REPORT_SUBMITTED = "REPORT_SUBMITTED"
    REPORT_RESOLVED = "REPORT_RESOLVED"
    DAILY_LOGIN = "DAILY_LOGIN"
    STREAK_BONUS = "STREAK_BONUS"  # per day in the streak
    CHALLENGE_COMPLETION = "CHALLENGE_COMPLETION"
    TEAM_CONTRIBUTION = "TEAM_CONTRIBUTION"
    SOCIAL_ACTION = "SOCIAL_ACTION"  # likes, shares, comments


ACTION_POINTS: dict[Action, int] = {
    Action.REPORT_SUBMITTED: 10,
    Action.REPORT_RESOLVED: 25,
    Action.DAILY_LOGIN: 5,
    Action.STREAK_BONUS: 5,
    Action.CHALLENGE_COMPLETION: 100,
    Action.TEAM_CONTRIBUTION: 15,
    Action.SOCIAL_ACTION: 2,
}


def parse_action(action: Action | str) -> Action | None:
    """Map ``"report-submitted"``, ``"REPORT_SUBMITTED"`` etc. to an Action."""
    if isinstance(action, Action):
        return action
    key = str(action).strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return Action(key)
    except ValueError:
        return None


def resolve_points(
    action: Action | str | None,
    amount: int | None = None,
    *,
    strict: bool = False,
) -> int:
    """Return the number of points an award is worth.

    An explicit positive *amount* wins.  Otherwise the action's table value
    is used; unknown names yield 0, or raise :class:`InvalidActionError`
    when *strict* is set.
    """
    if amount is not None and amount > 0:
        return amount
    if action is None:
        return 0

    parsed = parse_action(action)
    if parsed is None:
        if strict:
            raise InvalidActionError(action)
        logger.debug("Unknown action %r resolves to 0 points", action)
        return 0
    return ACTION_POINTS.get(parsed, 0)
