"""
lyceum.services.session_store — Durable Quiz Session Store
===========================================================

Whole-document persistence for quiz sessions.  Each save overwrites the
complete session (questions plus every participant); there is no
versioning and no partial update.

All methods are synchronous; the engine calls them through
:func:`~lyceum.database.engine.run_db`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select

from lyceum.database.engine import get_session
from lyceum.database.models import QuizSessionRecord
from lyceum.quiz.models import QuizSession

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class SqlSessionStore:
    """Stores sessions in the ``quiz_sessions`` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def save(self, document: dict) -> None:
        """Insert or overwrite the session described by *document*."""
        session_obj = QuizSession.from_dict(document)
        with get_session(self.engine) as session:
            session.merge(QuizSessionRecord(
                id=session_obj.id,
                topic=session_obj.topic,
                difficulty=session_obj.difficulty,
                is_daily=session_obj.is_daily,
                created_by=session_obj.created_by,
                created_at=session_obj.created_at,
                expires_at=session_obj.expires_at,
                document=document,
            ))
        logger.debug("Persisted quiz session %s", session_obj.id)

    def load(self, session_id: str) -> QuizSession | None:
        with get_session(self.engine) as session:
            row = session.get(QuizSessionRecord, session_id)
            return QuizSession.from_dict(row.document) if row else None

    def load_open(self, now: datetime) -> list[QuizSession]:
        """Every session that has not expired at *now*, oldest first."""
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(QuizSessionRecord)
                .where(or_(
                    QuizSessionRecord.expires_at.is_(None),
                    QuizSessionRecord.expires_at > now,
                ))
                .order_by(QuizSessionRecord.created_at)
            ).all()
            return [QuizSession.from_dict(row.document) for row in rows]

    def list_sessions(
        self,
        *,
        daily: bool | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[int, list[QuizSession]]:
        """Page through stored sessions, newest first.  Returns (total, page)."""
        query = select(QuizSessionRecord)
        count_query = select(func.count()).select_from(QuizSessionRecord)
        if daily is not None:
            query = query.where(QuizSessionRecord.is_daily.is_(daily))
            count_query = count_query.where(QuizSessionRecord.is_daily.is_(daily))

        with get_session(self.engine) as session:
            total = session.scalar(count_query) or 0
            rows = session.scalars(
                query.order_by(QuizSessionRecord.created_at.desc(), QuizSessionRecord.id)
                .offset(offset)
                .limit(limit)
            ).all()
            return total, [QuizSession.from_dict(row.document) for row in rows]
