"""
lyceum.quiz.models — Quiz Session Data Model
=============================================

Plain dataclasses for the quiz engine.  No Discord I/O, no DB I/O.

- :class:`Question`      — immutable multiple-choice question
- :class:`AnswerRecord`  — one accepted answer
- :class:`Participant`   — one member's progress inside a session
- :class:`QuizSession`   — fixed question list + per-participant progress
- :class:`QuizResults`   — final score summary
- :class:`SessionStats`  — aggregate view across participants

Every model round-trips through ``to_dict()`` / ``from_dict()``; that dict
is exactly the document persisted in ``quiz_sessions.document``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


def _dt(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# ---------------------------------------------------------------------------
# Question
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Question:
    """A multiple-choice question.  Never mutated after generation."""

    text: str
    options: tuple[str, ...]
    correct_index: int
    explanation: str = ""

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]

    def is_correct(self, option_index: int) -> bool:
        return option_index == self.correct_index

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "options": list(self.options),
            "correct_index": self.correct_index,
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Question:
        return cls(
            text=data["text"],
            options=tuple(data["options"]),
            correct_index=int(data["correct_index"]),
            explanation=data.get("explanation", ""),
        )


# ---------------------------------------------------------------------------
# Participant progress
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AnswerRecord:
    question_index: int
    chosen_option: int
    correct: bool
    answered_at: datetime

    def to_dict(self) -> dict:
        return {
            "question_index": self.question_index,
            "chosen_option": self.chosen_option,
            "correct": self.correct,
            "answered_at": _dt(self.answered_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> AnswerRecord:
        return cls(
            question_index=int(data["question_index"]),
            chosen_option=int(data["chosen_option"]),
            correct=bool(data["correct"]),
            answered_at=_parse_dt(data["answered_at"]),
        )


@dataclass(slots=True)
class Participant:
    """A session-scoped record of one member's progress.

    Only the engine mutates this, and only while holding the session lock.
    """

    display_name: str
    started_at: datetime
    current_question_index: int = 0
    answers: list[AnswerRecord] = field(default_factory=list)
    score: int = 0
    completed_at: datetime | None = None

    @property
    def completed(self) -> bool:
        return self.completed_at is not None

    def to_dict(self) -> dict:
        return {
            "display_name": self.display_name,
            "current_question_index": self.current_question_index,
            "answers": [a.to_dict() for a in self.answers],
            "score": self.score,
            "started_at": _dt(self.started_at),
            "completed_at": _dt(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Participant:
        return cls(
            display_name=data["display_name"],
            started_at=_parse_dt(data["started_at"]),
            current_question_index=int(data.get("current_question_index", 0)),
            answers=[AnswerRecord.from_dict(a) for a in data.get("answers", [])],
            score=int(data.get("score", 0)),
            completed_at=_parse_dt(data.get("completed_at")),
        )


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class QuizSession:
    """One quiz instance.  ``questions`` is a tuple fixed at creation."""

    id: str
    topic: str
    difficulty: str
    questions: tuple[Question, ...]
    created_by: str
    created_at: datetime
    is_daily: bool = False
    expires_at: datetime | None = None
    participants: dict[str, Participant] = field(default_factory=dict)

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "topic": self.topic,
            "difficulty": self.difficulty,
            "questions": [q.to_dict() for q in self.questions],
            "created_by": self.created_by,
            "created_at": _dt(self.created_at),
            "is_daily": self.is_daily,
            "expires_at": _dt(self.expires_at),
            "participants": {
                pid: p.to_dict() for pid, p in self.participants.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> QuizSession:
        return cls(
            id=data["id"],
            topic=data["topic"],
            difficulty=data["difficulty"],
            questions=tuple(Question.from_dict(q) for q in data["questions"]),
            created_by=data["created_by"],
            created_at=_parse_dt(data["created_at"]),
            is_daily=bool(data.get("is_daily", False)),
            expires_at=_parse_dt(data.get("expires_at")),
            participants={
                str(pid): Participant.from_dict(p)
                for pid, p in data.get("participants", {}).items()
            },
        )


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class QuizResults:
    score: int
    total: int
    percentage: int
    passed: bool

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "total": self.total,
            "percentage": self.percentage,
            "passed": self.passed,
        }


@dataclass(frozen=True, slots=True)
class SessionStats:
    total_participants: int
    completed: int
    average_score: float

    def to_dict(self) -> dict:
        return {
            "total_participants": self.total_participants,
            "completed": self.completed,
            "average_score": self.average_score,
        }


def summarize_participants(session: QuizSession) -> SessionStats:
    """Aggregate participant progress; average covers finished members only."""
    participants = list(session.participants.values())
    finished = [p for p in participants if p.completed]
    average = (
        sum(p.score for p in finished) / len(finished) if finished else 0.0
    )
    return SessionStats(
        total_participants=len(participants),
        completed=len(finished),
        average_score=average,
    )
