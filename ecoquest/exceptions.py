"""
ecoquest.exceptions — Progression Error Taxonomy
=================================================

Every error the services surface derives from :class:`EcoQuestError`
so external workflows can catch the whole family in one clause.
"""

from __future__ import annotations


class EcoQuestError(Exception):
    """Base class for all EcoQuest errors."""


class NotFoundError(EcoQuestError):
    """The user's statistics record does not exist."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"No game statistics for user {user_id!r}")


class ConflictError(EcoQuestError):
    """A concurrent write changed the record since it was read."""

    def __init__(self, user_id: str, expected_version: int | None = None) -> None:
        self.user_id = user_id
        self.expected_version = expected_version
        detail = (
            f" (expected version {expected_version})"
            if expected_version is not None else ""
        )
        super().__init__(f"Concurrent update on user {user_id!r}{detail}")


class InvalidActionError(EcoQuestError):
    """Unknown action name, raised only under strict action resolution."""

    def __init__(self, action: object) -> None:
        self.action = action
        super().__init__(f"Unknown point action: {action!r}")


class PersistenceError(EcoQuestError):
    """The statistics store failed.

    ``transient`` marks failures worth retrying (dropped connection,
    lock timeout) as opposed to schema or programming errors.
    """

    def __init__(self, message: str, *, transient: bool = False) -> None:
        self.transient = transient
        super().__init__(message)
