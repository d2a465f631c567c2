"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from ecoquest.config import EcoQuestConfig
from ecoquest.database.models import Base


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all EcoQuest tables.

    Uses StaticPool so every session shares the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def fast_cfg() -> EcoQuestConfig:
    """Default tuning with no sleeping between retries."""
    return EcoQuestConfig(retry_backoff_seconds=0.0)
