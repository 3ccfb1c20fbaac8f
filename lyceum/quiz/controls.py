"""
lyceum.quiz.controls — Button Custom-ID Codec
==============================================

Quiz buttons are persistent: their state lives entirely in the component
``custom_id`` so the router can act on clicks from any message, including
ones posted before a restart.

    quiz:start:<session_id>
    quiz:answer:<session_id>:<question_index>:<option_index>
"""

from __future__ import annotations

from dataclasses import dataclass

PREFIX = "quiz"
START = "start"
ANSWER = "answer"

# Discord caps component custom ids at 100 characters.
MAX_CUSTOM_ID_LENGTH = 100


@dataclass(frozen=True, slots=True)
class ControlAction:
    kind: str
    session_id: str
    question_index: int | None = None
    option_index: int | None = None


def encode_start(session_id: str) -> str:
    return f"{PREFIX}:{START}:{session_id}"


def encode_answer(session_id: str, question_index: int, option_index: int) -> str:
    return f"{PREFIX}:{ANSWER}:{session_id}:{question_index}:{option_index}"


def parse_custom_id(custom_id: str | None) -> ControlAction | None:
    """Decode a quiz custom id.  Returns ``None`` for anything else."""
    if not custom_id:
        return None
    parts = custom_id.split(":")
    if len(parts) < 3 or parts[0] != PREFIX or not parts[2]:
        return None

    if parts[1] == START and len(parts) == 3:
        return ControlAction(kind=START, session_id=parts[2])

    if parts[1] == ANSWER and len(parts) == 5:
        try:
            question_index, option_index = int(parts[3]), int(parts[4])
        except ValueError:
            return None
        if question_index < 0 or option_index < 0:
            return None
        return ControlAction(
            kind=ANSWER,
            session_id=parts[2],
            question_index=question_index,
            option_index=option_index,
        )

    return None
