"""
ecoquest.config — YAML Configuration Loader
============================================

Reads ``config.yaml`` for progression tuning and store retry behaviour.
Secrets (``DATABASE_URL``) stay in the environment / ``.env``.

Usage::

    from ecoquest.config import load_config

    cfg = load_config()                  # reads ./config.yaml by default
    print(cfg.rules.growth_factor)       # 1.2
    print(cfg.conflict_retries)          # 3

Expected layout::

    progression:
      base_experience: 100
      level_growth_factor: 1.2
      level_bonus_per_level: 10
      streak_bonus_per_day: 5
    store:
      conflict_retries: 3
      retry_backoff_seconds: 0.05
    leaderboard:
      max_limit: 100

Every key is optional; missing keys keep their defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from ecoquest.constants import MAX_LEADERBOARD_LIMIT
from ecoquest.engine.rules import DEFAULT_RULES, ProgressionRules


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class EcoQuestConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    rules: ProgressionRules = field(default=DEFAULT_RULES)

    # Optimistic-concurrency retry loop
    conflict_retries: int = 3
    retry_backoff_seconds: float = 0.05

    # Reporting
    leaderboard_max_limit: int = MAX_LEADERBOARD_LIMIT

    def __post_init__(self) -> None:
        if self.conflict_retries < 1:
            raise ValueError("conflict_retries must be at least 1")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds cannot be negative")
        if self.leaderboard_max_limit < 1:
            raise ValueError("leaderboard max_limit must be at least 1")


DEFAULT_CONFIG = EcoQuestConfig()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> EcoQuestConfig:
    """Read *path* and return an :class:`EcoQuestConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a value is out of range.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    progression = raw.get("progression") or {}
    store = raw.get("store") or {}
    leaderboard = raw.get("leaderboard") or {}

    rules = ProgressionRules(
        base_experience=int(
            progression.get("base_experience", DEFAULT_RULES.base_experience)
        ),
        growth_factor=float(
            progression.get("level_growth_factor", DEFAULT_RULES.growth_factor)
        ),
        bonus_per_level=int(
            progression.get("level_bonus_per_level", DEFAULT_RULES.bonus_per_level)
        ),
        streak_bonus_per_day=int(
            progression.get("streak_bonus_per_day", DEFAULT_RULES.streak_bonus_per_day)
        ),
    )

    return EcoQuestConfig(
        rules=rules,
        conflict_retries=int(
            store.get("conflict_retries", DEFAULT_CONFIG.conflict_retries)
        ),
        retry_backoff_seconds=float(
            store.get("retry_backoff_seconds", DEFAULT_CONFIG.retry_backoff_seconds)
        ),
        leaderboard_max_limit=int(
            leaderboard.get("max_limit", DEFAULT_CONFIG.leaderboard_max_limit)
        ),
    )
