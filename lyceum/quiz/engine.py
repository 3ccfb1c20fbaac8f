"""
lyceum.quiz.engine — Quiz Session Engine
=========================================

Owns the per-participant state machine::

    NotStarted ──begin_participant──▶ InProgress(0)
    InProgress(i) ──submit_answer──▶ InProgress(i+1) | Completed

No transition rewinds or cancels.  The engine holds the live
:class:`~lyceum.quiz.registry.SessionRegistry`, mirrors every mutation to
the durable store, paces deliveries through a
:class:`~lyceum.quiz.scheduler.TransitionScheduler`, and emits
:class:`ExperienceAward` messages for correct answers in daily sessions.

Concurrency:
    Everything runs on one event loop.  Mutations for a session are
    serialized through a per-session ``asyncio.Lock``; on top of that,
    ``submit_answer`` only accepts an answer whose ``question_index`` equals
    the participant's current index, so duplicate or retried deliveries of
    the same prompt are applied at most once.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Protocol

from lyceum.config import QuizSettings
from lyceum.constants import clamp_question_count, round_half_up
from lyceum.database.engine import run_db
from lyceum.quiz.errors import (
    AlreadyStarted,
    EmptyQuestionSet,
    InvalidOption,
    NotStarted,
    SessionNotFound,
    StaleAnswer,
)
from lyceum.quiz.models import (
    AnswerRecord,
    Participant,
    Question,
    QuizResults,
    QuizSession,
    SessionStats,
    summarize_participants,
)
from lyceum.quiz.registry import SessionRegistry
from lyceum.quiz.scheduler import AsyncioTransitionScheduler, TransitionScheduler
from lyceum.quiz.sources import QuestionSource, fallback_questions

if TYPE_CHECKING:
    from lyceum.services.session_store import SqlSessionStore

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


# ---------------------------------------------------------------------------
# Outbound messages & collaborator contracts
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ExperienceAward:
    """Outbound message: grant *amount* XP for a correct daily answer."""

    participant_id: str
    display_name: str
    guild_id: int
    amount: int
    session_id: str
    question_index: int
    reason: str = "Daily quiz correct answer"

    @property
    def source_key(self) -> str:
        return f"{self.session_id}:{self.participant_id}:{self.question_index}"


AwardSink = Callable[[ExperienceAward], Awaitable[None]]


class Delivery(Protocol):
    """Where a participant's next question or results are presented."""

    async def send_question(self, session: QuizSession, question_index: int) -> None:
        ...

    async def send_results(self, session: QuizSession, results: QuizResults) -> None:
        ...


@dataclass(frozen=True, slots=True)
class AnswerOutcome:
    """What :meth:`QuizEngine.submit_answer` accepted."""

    question: Question
    question_index: int
    chosen_option: int
    correct: bool
    next_index: int | None
    completed: bool
    xp_awarded: int = 0


def _base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ID_ALPHABET[rem])
    return "".join(reversed(digits)) or "0"


def generate_session_id(is_daily: bool = False) -> str:
    """``quiz_<epoch ms>_<9 random base36 chars>`` (``daily_…`` for daily)."""
    prefix = "daily" if is_daily else "quiz"
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
class QuizEngine:
    """The quiz session state machine.

    Parameters
    ----------
    source:
        Question source; its failures are absorbed into the fallback pair.
    store:
        Durable session store (sync methods, called through ``run_db``).
    settings:
        Pacing, pass threshold, TTL and daily XP amount.
    scheduler:
        Transition scheduler; defaults to the asyncio wall-clock one.
    award_sink:
        Receives :class:`ExperienceAward` messages.  ``None`` disables awards.
    clock:
        Returns the current aware UTC datetime.
    """

    def __init__(
        self,
        source: QuestionSource,
        store: SqlSessionStore,
        settings: QuizSettings | None = None,
        *,
        scheduler: TransitionScheduler | None = None,
        award_sink: AwardSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.source = source
        self.store = store
        self.settings = settings or QuizSettings()
        self.scheduler = scheduler or AsyncioTransitionScheduler()
        self.award_sink = award_sink
        self.registry = SessionRegistry()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._locks: dict[str, asyncio.Lock] = {}

    def now(self) -> datetime:
        return self._clock()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    def _require_session(self, session_id: str) -> QuizSession:
        session = self.registry.get(session_id, self.now())
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def get_session(self, session_id: str) -> QuizSession:
        """Return the live session or raise :class:`SessionNotFound`."""
        return self._require_session(session_id)

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------
    async def _persist(self, session: QuizSession) -> None:
        """Overwrite the durable copy.  Failures are logged, never raised."""
        document = session.to_dict()
        try:
            await run_db(self.store.save, document)
        except Exception:
            logger.exception(
                "Failed to persist quiz session %s — memory and storage may diverge",
                session.id,
            )

    async def load_active(self) -> int:
        """Rehydrate the registry with every non-expired stored session."""
        sessions = await run_db(self.store.load_open, self.now())
        for session in sessions:
            self.registry.add(session)
        logger.info("Rehydrated %d open quiz session(s) from storage", len(sessions))
        return len(sessions)

    # -------------------------------------------------------------------
    # create_session
    # -------------------------------------------------------------------
    async def create_session(
        self,
        topic: str,
        difficulty: str,
        count: int,
        *,
        is_daily: bool = False,
        created_by: str,
    ) -> QuizSession:
        """Generate questions and open a new session.

        Raises :class:`EmptyQuestionSet` only when the source returned an
        empty list; any source exception falls back to the fixed pair.
        """
        count = clamp_question_count(count)
        try:
            questions = await self.source.generate(topic, count, difficulty)
        except Exception:
            logger.exception("Question source failed for %r — using fallback questions", topic)
            questions = fallback_questions()

        if not questions:
            raise EmptyQuestionSet(f"No questions available for topic {topic!r}")

        session_id = generate_session_id(is_daily)
        while session_id in self.registry:
            session_id = generate_session_id(is_daily)

        created_at = self.now()
        session = QuizSession(
            id=session_id,
            topic=topic,
            difficulty=difficulty,
            questions=tuple(questions),
            created_by=created_by,
            created_at=created_at,
            is_daily=is_daily,
            expires_at=created_at + timedelta(hours=self.settings.session_ttl_hours),
        )
        self.registry.add(session)
        await self._persist(session)

        logger.info(
            "Created %squiz session %s — %r (%s, %d questions) by %s",
            "daily " if is_daily else "", session.id, topic, difficulty,
            session.question_count, created_by,
        )
        return session

    # -------------------------------------------------------------------
    # begin_participant
    # -------------------------------------------------------------------
    async def begin_participant(
        self, session_id: str, participant_id: str, display_name: str
    ) -> Question:
        """Register *participant_id* at question 0 and return that question."""
        async with self._lock_for(session_id):
            session = self._require_session(session_id)
            existing = session.participants.get(participant_id)
            if existing is not None:
                raise AlreadyStarted(session_id, participant_id, existing)

            session.participants[participant_id] = Participant(
                display_name=display_name,
                started_at=self.now(),
            )
            await self._persist(session)

        logger.debug("%s began quiz %s", display_name, session_id)
        return session.questions[0]

    # -------------------------------------------------------------------
    # submit_answer
    # -------------------------------------------------------------------
    async def submit_answer(
        self,
        session_id: str,
        participant_id: str,
        question_index: int,
        option_index: int,
        *,
        delivery: Delivery | None = None,
        guild_id: int | None = None,
    ) -> AnswerOutcome:
        """Evaluate one answer and schedule the next presentation step."""
        async with self._lock_for(session_id):
            session = self._require_session(session_id)
            participant = session.participants.get(participant_id)
            if participant is None:
                raise NotStarted(session_id, participant_id)

            if participant.completed or question_index != participant.current_question_index:
                raise StaleAnswer(session_id, participant_id, question_index)

            question = session.questions[question_index]
            if not 0 <= option_index < len(question.options):
                raise InvalidOption(question_index, option_index)

            correct = question.is_correct(option_index)
            participant.answers.append(AnswerRecord(
                question_index=question_index,
                chosen_option=option_index,
                correct=correct,
                answered_at=self.now(),
            ))
            if correct:
                participant.score += 1

            participant.current_question_index = question_index + 1
            next_index: int | None = question_index + 1
            if next_index >= session.question_count:
                next_index = None
                participant.completed_at = self.now()

            await self._persist(session)

        xp_awarded = self.settings.daily_xp_per_correct if correct and session.is_daily else 0
        if xp_awarded:
            await self._emit_award(ExperienceAward(
                participant_id=participant_id,
                display_name=participant.display_name,
                guild_id=guild_id or 0,
                amount=xp_awarded,
                session_id=session_id,
                question_index=question_index,
            ))

        if delivery is not None:
            self._schedule_next(session, participant_id, next_index, delivery)

        if next_index is None:
            results = self.compute_results(session_id, participant_id)
            logger.info(
                "%s completed quiz %s: %d/%d (%d%%)",
                participant.display_name, session_id,
                results.score, results.total, results.percentage,
            )

        return AnswerOutcome(
            question=question,
            question_index=question_index,
            chosen_option=option_index,
            correct=correct,
            next_index=next_index,
            completed=next_index is None,
            xp_awarded=xp_awarded,
        )

    def _schedule_next(
        self,
        session: QuizSession,
        participant_id: str,
        next_index: int | None,
        delivery: Delivery,
    ) -> None:
        delay = self.settings.presentation_delay_seconds
        key = (session.id, participant_id)

        if next_index is not None:
            async def _deliver_question() -> None:
                await delivery.send_question(session, next_index)
            self.scheduler.schedule(key, delay, _deliver_question)
        else:
            async def _deliver_results() -> None:
                await delivery.send_results(
                    session, self.compute_results(session.id, participant_id)
                )
            self.scheduler.schedule(key, delay, _deliver_results)

    async def _emit_award(self, award: ExperienceAward) -> None:
        """Hand *award* to the leveling sink; failures never touch quiz state."""
        if self.award_sink is None:
            return
        try:
            await self.award_sink(award)
        except Exception:
            logger.exception(
                "Failed to emit XP award %s for %s", award.source_key, award.display_name
            )

    # -------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------
    def _results_for(self, session: QuizSession, participant: Participant) -> QuizResults:
        total = session.question_count
        percentage = round_half_up(100 * participant.score / total) if total else 0
        return QuizResults(
            score=participant.score,
            total=total,
            percentage=percentage,
            passed=percentage >= self.settings.pass_threshold,
        )

    def compute_results(self, session_id: str, participant_id: str) -> QuizResults:
        """Score summary for one participant.  No side effects."""
        session = self.registry.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        participant = session.participants.get(participant_id)
        if participant is None:
            raise NotStarted(session_id, participant_id)
        return self._results_for(session, participant)

    def session_stats(self, session_id: str) -> SessionStats:
        session = self.registry.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return summarize_participants(session)

    def has_pending_transition(self, session_id: str, participant_id: str) -> bool:
        """True while the participant's next question or results are still delayed."""
        return self.scheduler.pending_count((session_id, participant_id)) > 0

    # -------------------------------------------------------------------
    # Housekeeping
    # -------------------------------------------------------------------
    def reap_expired(self) -> int:
        """Evict expired sessions from memory.  Durable rows are kept."""
        expired = self.registry.expired(self.now())
        for session in expired:
            self.registry.evict(session.id)
            self.scheduler.cancel_session(session.id)
            self._locks.pop(session.id, None)
        if expired:
            logger.info("Evicted %d expired quiz session(s) from memory", len(expired))
        return len(expired)

    def close(self) -> None:
        cancelled = self.scheduler.cancel_all()
        if cancelled:
            logger.info("Cancelled %d pending quiz transition(s)", cancelled)
