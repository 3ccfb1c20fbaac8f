"""
tests/test_api_routes.py — FastAPI Route Integration Tests
===========================================================
Read-only dashboard endpoints over quiz sessions and the leaderboard,
served from the shared in-memory SQLite engine through dependency
overrides.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from lyceum.api.deps import get_engine
from lyceum.api.main import app
from lyceum.database.models import Member
from lyceum.quiz.models import Participant, QuizSession
from lyceum.services.session_store import SqlSessionStore

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def client(db_engine):
    """Create a FastAPI TestClient bound to the test database."""
    app.dependency_overrides[get_engine] = lambda: db_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(db_engine, two_questions):
    store = SqlSessionStore(db_engine)
    for i in range(3):
        session = QuizSession(
            id=f"quiz_{i}_aaaaaaaaa",
            topic=f"Topic {i}",
            difficulty="medium",
            questions=tuple(two_questions),
            created_by="Mentor",
            created_at=NOW + timedelta(minutes=i),
            is_daily=i == 2,
            expires_at=NOW + timedelta(hours=24),
        )
        if i == 0:
            session.participants = {
                "1": Participant("Ana", NOW, current_question_index=2, score=2,
                                 completed_at=NOW + timedelta(minutes=1)),
                "2": Participant("Ben", NOW, current_question_index=2, score=1,
                                 completed_at=NOW + timedelta(minutes=2)),
                "3": Participant("Cy", NOW, current_question_index=1),
            }
        store.save(session.to_dict())

    with Session(db_engine) as session:
        session.add_all([
            Member(guild_id=100, user_id=1, display_name="Ana", xp=20, level=2, total_xp=320),
            Member(guild_id=100, user_id=2, display_name="Ben", xp=90, level=1, total_xp=190),
            Member(guild_id=100, user_id=3, display_name="Cy", xp=10, level=2, total_xp=310),
            Member(guild_id=200, user_id=4, display_name="Dee", xp=0, level=5, total_xp=1500),
        ])
        session.commit()


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Quizzes
# ===========================================================================
class TestQuizzes:
    def test_list_newest_first(self, client, seeded):
        resp = client.get("/api/quizzes", params={"page_size": 2})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 3
        assert [q["id"] for q in data["quizzes"]] == ["quiz_2_aaaaaaaaa", "quiz_1_aaaaaaaaa"]

    def test_daily_filter(self, client, seeded):
        data = client.get("/api/quizzes", params={"daily": "true"}).json()
        assert data["total"] == 1
        assert data["quizzes"][0]["is_daily"] is True

    def test_detail_hides_answers(self, client, seeded):
        resp = client.get("/api/quizzes/quiz_0_aaaaaaaaa")
        assert resp.status_code == 200
        data = resp.json()
        assert data["participant_count"] == 3
        assert "correct_index" not in data["questions"][0]
        ana = next(p for p in data["participants"] if p["participant_id"] == "1")
        assert ana["completed"] is True

    def test_stats(self, client, seeded):
        data = client.get("/api/quizzes/quiz_0_aaaaaaaaa/stats").json()
        assert data["total_participants"] == 3
        assert data["completed"] == 2
        assert data["average_score"] == 1.5

    def test_missing_quiz_404(self, client, seeded):
        assert client.get("/api/quizzes/quiz_9_nothere00").status_code == 404
        assert client.get("/api/quizzes/quiz_9_nothere00/stats").status_code == 404


# ===========================================================================
# Leaderboard
# ===========================================================================
class TestLeaderboard:
    def test_ranked_by_level_then_xp(self, client, seeded):
        data = client.get("/api/leaderboard", params={"guild_id": 100}).json()
        assert data["total"] == 3
        assert [m["display_name"] for m in data["members"]] == ["Ana", "Cy", "Ben"]
        assert [m["rank"] for m in data["members"]] == [1, 2, 3]
        assert data["members"][0]["xp_for_next"] == 300

    def test_pagination(self, client, seeded):
        data = client.get("/api/leaderboard", params={"page": 2, "page_size": 2}).json()
        assert data["total"] == 4
        assert data["members"][0]["rank"] == 3

    def test_invalid_page_rejected(self, client):
        assert client.get("/api/leaderboard", params={"page": 0}).status_code == 422
