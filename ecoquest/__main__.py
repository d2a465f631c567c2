"""
ecoquest.__main__ — Entry point for ``python -m ecoquest``
==========================================================

Bootstraps a deployment:
1. Load .env (secrets).
2. Load config.yaml (tuning), falling back to defaults if absent.
3. Create the SQLAlchemy engine and ensure tables exist.
4. Report what is configured.

Run with::

    uv run python -m ecoquest
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from ecoquest.config import DEFAULT_CONFIG, load_config
from ecoquest.database.engine import create_db_engine, init_db
from ecoquest.engine.catalog import ACHIEVEMENTS
from ecoquest.services.report_service import get_global_stats

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("ecoquest")


def main() -> None:
    """Bootstrap the EcoQuest database."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Tuning.
    config_path = Path(os.getenv("ECOQUEST_CONFIG", "config.yaml"))
    if config_path.exists():
        cfg = load_config(config_path)
        logger.info("Config loaded from %s", config_path)
    else:
        cfg = DEFAULT_CONFIG
        logger.warning("%s not found, using default tuning", config_path)

    # 3. Database.
    try:
        engine = create_db_engine()
    except RuntimeError as exc:
        logger.critical("%s", exc)
        sys.exit(1)
    init_db(engine)

    # 4. Summary.
    stats = get_global_stats(engine)
    logger.info(
        "Ready: %d achievements in catalog, level curve %d × %.2f, %d users tracked",
        len(ACHIEVEMENTS),
        cfg.rules.base_experience,
        cfg.rules.growth_factor,
        stats.total_users,
    )


if __name__ == "__main__":
    main()
