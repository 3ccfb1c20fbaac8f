"""
tests/test_daily_quiz.py — Daily Quiz Producer Tests
=====================================================
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import discord

from lyceum.config import QuizSettings
from lyceum.quiz.engine import QuizEngine
from lyceum.quiz.scheduler import ManualTransitionScheduler
from lyceum.quiz.sources import StaticQuestionSource
from lyceum.services.daily_quiz import DAILY_CREATOR, post_daily_quiz
from lyceum.services.session_store import SqlSessionStore


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a fresh event loop."""
    return asyncio.run(coro)


def _make_messageable(channel_id: int = 100) -> MagicMock:
    """Create a mock Messageable channel."""
    ch = MagicMock(spec=discord.TextChannel)
    ch.id = channel_id
    ch.send = AsyncMock()
    return ch


def _engine(db_engine, questions) -> QuizEngine:
    return QuizEngine(
        StaticQuestionSource(questions),
        SqlSessionStore(db_engine),
        QuizSettings(),
        scheduler=ManualTransitionScheduler(),
    )


class TestPostDailyQuiz:
    def test_creates_daily_session_and_broadcasts(self, db_engine, two_questions):
        engine = _engine(db_engine, two_questions)
        channel = _make_messageable()
        settings = QuizSettings(daily_topic="Phrasal Verbs", daily_xp_per_correct=75)

        session = run_async(post_daily_quiz(engine, channel, settings))

        assert session.is_daily
        assert session.topic == "Phrasal Verbs"
        assert session.difficulty == "easy"
        assert session.created_by == DAILY_CREATOR
        assert session.id in engine.registry

        channel.send.assert_awaited_once()
        kwargs = channel.send.await_args.kwargs
        assert "75 XP" in kwargs["embed"].description
        assert kwargs["view"].children[0].custom_id == f"quiz:start:{session.id}"

    def test_skips_without_channel(self, db_engine, two_questions):
        engine = _engine(db_engine, two_questions)
        assert run_async(post_daily_quiz(engine, None, QuizSettings())) is None
        assert len(engine.registry) == 0

    def test_broadcast_failure_keeps_session(self, db_engine, two_questions):
        engine = _engine(db_engine, two_questions)
        channel = _make_messageable()
        channel.send.side_effect = discord.HTTPException(MagicMock(status=500), "down")

        session = run_async(post_daily_quiz(engine, channel, QuizSettings()))
        assert session is not None
        assert session.id in engine.registry
