"""
lyceum.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for infrastructure and quiz-tuning settings
(Discord identity, quiz channel, pacing, daily quiz parameters).
Secrets (bot token, database URL, AI key) stay in ``.env``.

Usage::

    from lyceum.config import load_config

    cfg = load_config()                          # reads ./config.yaml
    print(cfg.community_name)                    # "English Lyceum"
    print(cfg.quiz.presentation_delay_seconds)   # 2.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Quiz tuning
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class QuizSettings:
    """Pacing, scoring and daily-quiz parameters for the quiz engine."""

    presentation_delay_seconds: float = 2.0
    pass_threshold: int = 60
    session_ttl_hours: float = 24.0

    # Daily quiz
    daily_topic: str = "Basic English Grammar"
    daily_question_count: int = 3
    daily_difficulty: str = "easy"
    daily_xp_per_correct: int = 50
    daily_interval_hours: float = 24.0

    # Leveling outbox
    award_max_attempts: int = 5


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LyceumConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str
    community_motto: str

    # Discord
    bot_prefix: str
    guild_id: int  # Primary guild snowflake

    # Dashboard
    dashboard_port: int

    # Optional
    quiz_channel_id: int | None = None  # Where the daily quiz is broadcast
    quiz: QuizSettings = field(default_factory=QuizSettings)


def _load_quiz_settings(raw: dict | None) -> QuizSettings:
    """Build :class:`QuizSettings` from the optional ``quiz:`` block."""
    if not raw:
        return QuizSettings()
    defaults = QuizSettings()
    return QuizSettings(
        presentation_delay_seconds=float(
            raw.get("presentation_delay_seconds", defaults.presentation_delay_seconds)
        ),
        pass_threshold=int(raw.get("pass_threshold", defaults.pass_threshold)),
        session_ttl_hours=float(raw.get("session_ttl_hours", defaults.session_ttl_hours)),
        daily_topic=str(raw.get("daily_topic", defaults.daily_topic)),
        daily_question_count=int(
            raw.get("daily_question_count", defaults.daily_question_count)
        ),
        daily_difficulty=str(raw.get("daily_difficulty", defaults.daily_difficulty)),
        daily_xp_per_correct=int(
            raw.get("daily_xp_per_correct", defaults.daily_xp_per_correct)
        ),
        daily_interval_hours=float(
            raw.get("daily_interval_hours", defaults.daily_interval_hours)
        ),
        award_max_attempts=int(raw.get("award_max_attempts", defaults.award_max_attempts)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> LyceumConfig:
    """Read *path* and return a :class:`LyceumConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh)

    return LyceumConfig(
        community_name=raw["community_name"],
        community_motto=raw["community_motto"],
        bot_prefix=raw["bot_prefix"],
        guild_id=int(raw["guild_id"]),
        dashboard_port=int(raw["dashboard_port"]),
        quiz_channel_id=(
            int(raw["quiz_channel_id"]) if raw.get("quiz_channel_id") else None
        ),
        quiz=_load_quiz_settings(raw.get("quiz")),
    )
