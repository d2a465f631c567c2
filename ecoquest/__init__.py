"""
EcoQuest — Progression Engine for Civic Issue Reporting
========================================================
Points, levels, streaks and achievements for users who report
environmental issues (trash, pollution, …) in their community.
Report, community and admin services call in after their own state
changes; EcoQuest keeps each user's progression record consistent.

Package layout::

    ecoquest/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Leveling formula + defaults
    ├── exceptions.py      # NotFound / Conflict / Persistence errors
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helper
    │   └── models.py      # user_game_stats, unlocked_achievements
    ├── engine/            # Pure calculation, no I/O
    │   ├── actions.py     # Action enum + point table
    │   ├── catalog.py     # Achievement definitions
    │   ├── stats.py       # GameStats snapshot
    │   ├── ledger.py      # Points ledger
    │   ├── levels.py      # Level engine
    │   ├── streaks.py     # Streak tracker
    │   ├── achievements.py # Achievement evaluator
    │   └── rules.py       # Tuning parameters
    └── services/
        ├── store.py       # Optimistic read/write of snapshots
        ├── progression_service.py  # Event triggers (award, streak, check)
        ├── report_service.py       # Progress, leaderboard, global stats
        └── notifier.py    # Post-commit hand-off of level-ups / unlocks
"""

__version__ = "0.1.0"
