"""
ecoquest.services.notifier — Progress Notification Hand-off
============================================================

After a progression write commits, level-ups and newly unlocked
achievements are handed to a :class:`ProgressNotifier`.  Delivery (email,
webhook, in-app feed) belongs to whoever implements the notifier; the
default one only logs.

A notifier that raises never undoes the committed write; the failure is
logged and the caller still gets its result.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecoquest.engine.catalog import AchievementDefinition
    from ecoquest.engine.levels import LevelUpResult

logger = logging.getLogger(__name__)


class ProgressNotifier:
    """Receiver for committed progression events.  Override what you need."""

    def level_up(self, user_id: str, result: LevelUpResult) -> None:
        """Called once per committed operation that gained levels."""

    def achievements_unlocked(
        self, user_id: str, achievements: Sequence[AchievementDefinition]
    ) -> None:
        """Called once per committed operation that unlocked achievements."""


class LoggingNotifier(ProgressNotifier):
    """Default notifier: writes a log line per event."""

    def level_up(self, user_id: str, result: LevelUpResult) -> None:
        logger.info(
            "Level up: user %s reached level %s (+%d bonus points)",
            user_id, result.new_level, result.bonus,
        )

    def achievements_unlocked(
        self, user_id: str, achievements: Sequence[AchievementDefinition]
    ) -> None:
        logger.info(
            "Achievements unlocked for user %s: %s",
            user_id, ", ".join(a.name for a in achievements),
        )


_default_notifier = LoggingNotifier()


def dispatch(
    notifier: ProgressNotifier | None,
    user_id: str,
    *,
    level_up: LevelUpResult | None = None,
    achievements: Sequence[AchievementDefinition] = (),
) -> None:
    """Hand committed results to *notifier* (or the logging default)."""
    target = notifier or _default_notifier

    if level_up is not None and level_up.leveled_up:
        try:
            target.level_up(user_id, level_up)
        except Exception:
            logger.exception("Level-up notification failed for user %s", user_id)

    if achievements:
        try:
            target.achievements_unlocked(user_id, list(achievements))
        except Exception:
            logger.exception("Achievement notification failed for user %s", user_id)
