"""
lyceum.quiz.registry — Live Session Registry
=============================================

The authoritative in-memory table of open quiz sessions, owned by one
:class:`~lyceum.quiz.engine.QuizEngine`.  Populated at startup from the
durable store; expired sessions are treated as absent and evicted by the
reaper.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime

from lyceum.quiz.models import QuizSession


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, QuizSession] = {}

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[QuizSession]:
        return iter(list(self._sessions.values()))

    def add(self, session: QuizSession) -> None:
        self._sessions[session.id] = session

    def get(self, session_id: str, now: datetime | None = None) -> QuizSession | None:
        """Return the live session, or ``None`` if unknown or expired at *now*."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if now is not None and session.is_expired(now):
            return None
        return session

    def evict(self, session_id: str) -> QuizSession | None:
        return self._sessions.pop(session_id, None)

    def expired(self, now: datetime) -> list[QuizSession]:
        return [s for s in self._sessions.values() if s.is_expired(now)]
