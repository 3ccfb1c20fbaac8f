"""
lyceum.constants — Shared Constants & Helpers
==============================================

Single source of truth for presentation constants and the leveling formula.
Import from here instead of duplicating in cogs, services, and the API.
"""

from __future__ import annotations

import math

# ---------------------------------------------------------------------------
# Quiz presentation
# ---------------------------------------------------------------------------
DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard")

DIFFICULTY_LABELS: dict[str, str] = {
    "easy": "\U0001f7e2 Easy",      # 🟢
    "medium": "\U0001f7e1 Medium",  # 🟡
    "hard": "\U0001f534 Hard",      # 🔴
}

MIN_QUESTIONS = 1
MAX_QUESTIONS = 10
OPTIONS_PER_QUESTION = 4

# Estimated minutes per question shown on the session announcement
MINUTES_PER_QUESTION = 2


def difficulty_label(difficulty: str) -> str:
    """Human label for *difficulty*; unknown values read as medium."""
    return DIFFICULTY_LABELS.get(difficulty, DIFFICULTY_LABELS["medium"])


def clamp_question_count(count: int) -> int:
    """Bound a requested question count to ``[MIN_QUESTIONS, MAX_QUESTIONS]``."""
    return max(MIN_QUESTIONS, min(MAX_QUESTIONS, int(count)))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (12.5 → 13)."""
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Leveling formula — THE single canonical implementation
# ---------------------------------------------------------------------------
XP_PER_LEVEL = 100


def xp_for_level(level: int) -> int:
    """XP needed to advance *into* ``level`` from ``level - 1``.

    Linear formula::

        required = level * XP_PER_LEVEL

    Progress carries over, so a member at level 2 with 250 XP in the bar
    needs ``xp_for_level(3) == 300`` to reach level 3.
    """
    return level * XP_PER_LEVEL
