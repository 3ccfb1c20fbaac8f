"""
lyceum.quiz.errors — Quiz Engine Exceptions
============================================

Every engine rejection is a :class:`QuizError`.  None of them is fatal: the
interaction router catches each one and answers the member directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lyceum.quiz.models import Participant


class QuizError(Exception):
    """Base class for recoverable quiz engine errors."""


class SessionNotFound(QuizError):
    """The session is not in the live registry (unknown, expired or evicted)."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Quiz session {session_id!r} is not available")
        self.session_id = session_id


class AlreadyStarted(QuizError):
    """The participant already has an entry; progress is left untouched."""

    def __init__(self, session_id: str, participant_id: str, participant: Participant) -> None:
        super().__init__(f"Participant {participant_id!r} already started {session_id!r}")
        self.session_id = session_id
        self.participant_id = participant_id
        self.participant = participant


class NotStarted(QuizError):
    """An answer arrived for a participant with no entry in the session."""

    def __init__(self, session_id: str, participant_id: str) -> None:
        super().__init__(f"Participant {participant_id!r} has not started {session_id!r}")
        self.session_id = session_id
        self.participant_id = participant_id


class StaleAnswer(QuizError):
    """The answer targets a question the participant is no longer on.

    Raised for duplicate deliveries, retried button presses, and any
    answer after completion.  Rejected silently by the router.
    """

    def __init__(self, session_id: str, participant_id: str, question_index: int) -> None:
        super().__init__(
            f"Stale answer for question {question_index} "
            f"from {participant_id!r} in {session_id!r}"
        )
        self.session_id = session_id
        self.participant_id = participant_id
        self.question_index = question_index


class InvalidOption(QuizError):
    """The chosen option index does not exist on the question."""

    def __init__(self, question_index: int, option_index: int) -> None:
        super().__init__(f"Option {option_index} does not exist on question {question_index}")
        self.question_index = question_index
        self.option_index = option_index


class EmptyQuestionSet(QuizError):
    """A session cannot be created without at least one question."""
