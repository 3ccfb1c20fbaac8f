"""
lyceum.api.routes.quizzes — Read-only quiz & leaderboard endpoints
===================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lyceum.api.deps import get_session, get_store
from lyceum.constants import difficulty_label, xp_for_level
from lyceum.database.models import Member
from lyceum.quiz.models import QuizSession, summarize_participants
from lyceum.services.session_store import SqlSessionStore

router = APIRouter(tags=["quizzes"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _session_summary(s: QuizSession) -> dict:
    return {
        "id": s.id,
        "topic": s.topic,
        "difficulty": s.difficulty,
        "difficulty_label": difficulty_label(s.difficulty),
        "question_count": s.question_count,
        "is_daily": s.is_daily,
        "created_by": s.created_by,
        "created_at": s.created_at.isoformat() if s.created_at else None,
        "expires_at": s.expires_at.isoformat() if s.expires_at else None,
        "participant_count": len(s.participants),
    }


def _member_dict(m: Member) -> dict:
    return {
        "user_id": str(m.user_id),
        "display_name": m.display_name,
        "level": m.level,
        "xp": m.xp,
        "total_xp": m.total_xp,
        "xp_for_next": xp_for_level(m.level + 1),
        "xp_progress": m.xp / max(xp_for_level(m.level + 1), 1),
    }


def _load_or_404(store: SqlSessionStore, session_id: str) -> QuizSession:
    quiz = store.load(session_id)
    if quiz is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Quiz session not found")
    return quiz


# ---------------------------------------------------------------------------
# GET /quizzes
# ---------------------------------------------------------------------------
@router.get("/quizzes")
def list_quizzes(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    daily: bool | None = Query(None),
    store: SqlSessionStore = Depends(get_store),
):
    """Paginated quiz sessions, newest first."""
    offset = (page - 1) * page_size
    total, sessions = store.list_sessions(daily=daily, offset=offset, limit=page_size)
    return {
        "total": total,
        "page": page,
        "page_size": page_size,
        "quizzes": [_session_summary(s) for s in sessions],
    }


# ---------------------------------------------------------------------------
# GET /quizzes/{session_id}
# ---------------------------------------------------------------------------
@router.get("/quizzes/{session_id}")
def get_quiz(session_id: str, store: SqlSessionStore = Depends(get_store)):
    """One session with its questions and per-participant progress."""
    quiz = _load_or_404(store, session_id)
    return {
        **_session_summary(quiz),
        "questions": [
            {"text": q.text, "options": list(q.options)} for q in quiz.questions
        ],
        "participants": [
            {
                "participant_id": pid,
                "display_name": p.display_name,
                "current_question_index": p.current_question_index,
                "score": p.score,
                "completed": p.completed,
                "started_at": p.started_at.isoformat() if p.started_at else None,
                "completed_at": p.completed_at.isoformat() if p.completed_at else None,
            }
            for pid, p in quiz.participants.items()
        ],
    }


# ---------------------------------------------------------------------------
# GET /quizzes/{session_id}/stats
# ---------------------------------------------------------------------------
@router.get("/quizzes/{session_id}/stats")
def get_quiz_stats(session_id: str, store: SqlSessionStore = Depends(get_store)):
    """Participants, completions and the average score of finishers."""
    quiz = _load_or_404(store, session_id)
    stats = summarize_participants(quiz)
    return {"id": quiz.id, "question_count": quiz.question_count, **stats.to_dict()}


# ---------------------------------------------------------------------------
# GET /leaderboard
# ---------------------------------------------------------------------------
@router.get("/leaderboard")
def get_leaderboard(
    guild_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
):
    """Paginated members ranked by level, then XP in the current level."""
    query = select(Member)
    count_query = select(func.count()).select_from(Member)
    if guild_id is not None:
        query = query.where(Member.guild_id == guild_id)
        count_query = count_query.where(Member.guild_id == guild_id)

    total = session.scalar(count_query) or 0
    offset = (page - 1) * page_size

    rows = session.scalars(
        query.order_by(Member.level.desc(), Member.xp.desc(), Member.user_id)
        .offset(offset)
        .limit(page_size)
    ).all()

    return {
        "total": total,
        "page": page,
        "page_size": page_size,
        "members": [
            {**_member_dict(m), "rank": offset + i + 1}
            for i, m in enumerate(rows)
        ],
    }
