"""
Lyceum — Interactive Quizzes for a Discord Learning Community
==============================================================
Runs multi-participant, multi-question quizzes through Discord buttons,
paces each member through their own questions, scores and persists every
session, and posts a daily quiz whose correct answers earn XP toward
member levels.

Package layout::

    lyceum/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Difficulty labels, bounds, level formula
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # quiz_sessions, members, xp_award_outbox
    ├── quiz/
    │   ├── models.py      # Question / Participant / QuizSession dataclasses
    │   ├── errors.py      # QuizError hierarchy
    │   ├── engine.py      # QuizEngine state machine
    │   ├── registry.py    # Live in-memory session table
    │   ├── scheduler.py   # Delayed presentation transitions
    │   ├── sources.py     # AI + static question sources
    │   └── controls.py    # Button custom-id codec
    ├── services/
    │   ├── session_store.py    # Whole-document session persistence
    │   ├── leveling_service.py # XP outbox + level arithmetic
    │   ├── daily_quiz.py       # Daily quiz producer
    │   └── embeds.py           # Embed + button builders
    ├── bot/
    │   ├── core.py        # Bot subclass, cog loader
    │   └── cogs/
    │       ├── quiz.py    # /quiz + button router
    │       └── tasks.py   # Daily quiz, award drain, session reaper
    └── api/
        ├── main.py        # FastAPI app
        └── routes/        # Read-only quiz + leaderboard endpoints
"""

__version__ = "0.1.0"
