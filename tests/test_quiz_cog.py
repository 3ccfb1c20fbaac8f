"""
tests/test_quiz_cog.py — Quiz Cog & Periodic Task Tests
========================================================
Drives the button router and ``/quiz`` command with mocked Discord
interactions against a real engine (SQLite store, virtual-time scheduler).
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from lyceum.bot.cogs.quiz import NEXT_QUESTION_PENDING_MESSAGE, SESSION_GONE_MESSAGE, Quiz
from lyceum.bot.cogs.tasks import PeriodicTasks
from lyceum.config import QuizSettings
from lyceum.quiz.controls import encode_answer, encode_start
from lyceum.quiz.engine import QuizEngine
from lyceum.quiz.scheduler import ManualTransitionScheduler
from lyceum.quiz.sources import StaticQuestionSource
from lyceum.services.session_store import SqlSessionStore


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a fresh event loop."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
class Clock:
    """Settable wall clock for the engine."""

    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _make_bot(
    db_engine,
    questions,
    *,
    quiz_channel_id: int | None = None,
    clock=None,
    award_sink=None,
) -> MagicMock:
    """Create a lightweight mock LyceumBot around a real quiz engine."""
    settings = QuizSettings()
    bot = MagicMock()
    bot.cfg = SimpleNamespace(quiz=settings, quiz_channel_id=quiz_channel_id)
    bot.engine = db_engine
    bot.scheduler = ManualTransitionScheduler()
    bot.quiz = QuizEngine(
        StaticQuestionSource(questions),
        SqlSessionStore(db_engine),
        settings,
        scheduler=bot.scheduler,
        award_sink=award_sink,
        clock=clock,
    )
    return bot


def _make_interaction(custom_id: str | None = None, *, user_id: int = 42) -> MagicMock:
    interaction = MagicMock()
    interaction.type = discord.InteractionType.component
    interaction.data = {"custom_id": custom_id} if custom_id else {}
    interaction.user.id = user_id
    interaction.user.display_name = f"member-{user_id}"
    interaction.guild_id = 100
    interaction.response.send_message = AsyncMock()
    interaction.response.edit_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.response.is_done = MagicMock(return_value=False)
    interaction.followup.send = AsyncMock()
    return interaction


@pytest.fixture
def bot(db_engine, two_questions):
    return _make_bot(db_engine, two_questions)


# ===========================================================================
# Button router
# ===========================================================================
class TestButtonRouter:
    def test_start_sends_first_question(self, bot):
        cog = Quiz(bot)

        async def scenario():
            session = await bot.quiz.create_session("G", "easy", 2, created_by="T")
            interaction = _make_interaction(encode_start(session.id))
            await cog.on_interaction(interaction)
            return session, interaction

        session, interaction = run_async(scenario())
        interaction.response.send_message.assert_awaited_once()
        kwargs = interaction.response.send_message.await_args.kwargs
        assert kwargs["ephemeral"] is True
        assert kwargs["embed"].title == "Question 1 of 2"
        assert "42" in session.participants

    def test_start_during_delay_waits_for_scheduled_question(self, bot):
        cog = Quiz(bot)

        async def scenario():
            session = await bot.quiz.create_session("G", "easy", 2, created_by="T")
            await cog.on_interaction(_make_interaction(encode_start(session.id)))
            answer = _make_interaction(encode_answer(session.id, 0, 0))
            await cog.on_interaction(answer)
            again = _make_interaction(encode_start(session.id))
            await cog.on_interaction(again)
            await bot.scheduler.advance(2.0)
            return answer, again

        answer, again = run_async(scenario())
        again.response.send_message.assert_awaited_once_with(
            NEXT_QUESTION_PENDING_MESSAGE, ephemeral=True,
        )
        again.followup.send.assert_not_awaited()
        titles = [c.kwargs["embed"].title for c in answer.followup.send.await_args_list]
        assert titles == ["Question 2 of 2"]

    def test_start_before_results_delay_does_not_show_results_early(self, bot):
        cog = Quiz(bot)

        async def scenario():
            session = await bot.quiz.create_session("G", "easy", 2, created_by="T")
            await cog.on_interaction(_make_interaction(encode_start(session.id)))
            await cog.on_interaction(_make_interaction(encode_answer(session.id, 0, 0)))
            await bot.scheduler.advance(2.0)
            await cog.on_interaction(_make_interaction(encode_answer(session.id, 1, 2)))
            again = _make_interaction(encode_start(session.id))
            await cog.on_interaction(again)
            return again

        again = run_async(scenario())
        again.response.send_message.assert_awaited_once_with(
            NEXT_QUESTION_PENDING_MESSAGE, ephemeral=True,
        )

    def test_second_start_after_delay_resends_current_question(self, bot):
        cog = Quiz(bot)

        async def scenario():
            session = await bot.quiz.create_session("G", "easy", 2, created_by="T")
            await cog.on_interaction(_make_interaction(encode_start(session.id)))
            await cog.on_interaction(_make_interaction(encode_answer(session.id, 0, 0)))
            await bot.scheduler.advance(2.0)
            again = _make_interaction(encode_start(session.id))
            await cog.on_interaction(again)
            return again

        again = run_async(scenario())
        kwargs = again.response.send_message.await_args.kwargs
        assert "already started" in kwargs["content"]
        assert kwargs["embed"].title == "Question 2 of 2"

    def test_second_start_after_finishing_shows_results(self, bot):
        cog = Quiz(bot)

        async def scenario():
            session = await bot.quiz.create_session("G", "easy", 2, created_by="T")
            await cog.on_interaction(_make_interaction(encode_start(session.id)))
            await cog.on_interaction(_make_interaction(encode_answer(session.id, 0, 0)))
            await bot.scheduler.advance(2.0)
            await cog.on_interaction(_make_interaction(encode_answer(session.id, 1, 1)))
            await bot.scheduler.advance(2.0)
            again = _make_interaction(encode_start(session.id))
            await cog.on_interaction(again)
            return again

        again = run_async(scenario())
        kwargs = again.response.send_message.await_args.kwargs
        assert "already finished" in kwargs["content"]
        fields = {f.name: f.value for f in kwargs["embed"].fields}
        assert fields["Score"] == "1/2"

    def test_daily_feedback_survives_expiry_after_answer(self, db_engine, two_questions):
        clock = Clock()

        async def _expire_during_award(award):
            clock.advance(hours=25)

        bot = _make_bot(db_engine, two_questions, clock=clock, award_sink=_expire_during_award)
        cog = Quiz(bot)

        async def scenario():
            session = await bot.quiz.create_session(
                "G", "easy", 2, is_daily=True, created_by="Daily Bot",
            )
            await cog.on_interaction(_make_interaction(encode_start(session.id)))
            answer = _make_interaction(encode_answer(session.id, 0, 0))
            await cog.on_interaction(answer)
            return answer

        answer = run_async(scenario())
        answer.response.send_message.assert_not_awaited()
        embed = answer.response.edit_message.await_args.kwargs["embed"]
        fields = {f.name: f.value for f in embed.fields}
        assert embed.title.startswith("✅")
        assert fields["Reward"] == "+50 XP"

    def test_answer_shows_feedback_then_next_question(self, bot):
        cog = Quiz(bot)

        async def scenario():
            session = await bot.quiz.create_session("G", "easy", 2, created_by="T")
            await cog.on_interaction(_make_interaction(encode_start(session.id)))
            answer = _make_interaction(encode_answer(session.id, 0, 0))
            await cog.on_interaction(answer)
            answer.followup.send.assert_not_awaited()
            await bot.scheduler.advance(2.0)
            return answer

        answer = run_async(scenario())
        edit_kwargs = answer.response.edit_message.await_args.kwargs
        assert edit_kwargs["embed"].title.startswith("✅")
        assert edit_kwargs["view"] is None
        follow_kwargs = answer.followup.send.await_args.kwargs
        assert follow_kwargs["embed"].title == "Question 2 of 2"
        assert follow_kwargs["ephemeral"] is True

    def test_last_answer_delivers_results(self, bot):
        cog = Quiz(bot)

        async def scenario():
            session = await bot.quiz.create_session("G", "easy", 2, created_by="T")
            await cog.on_interaction(_make_interaction(encode_start(session.id)))
            await cog.on_interaction(_make_interaction(encode_answer(session.id, 0, 0)))
            last = _make_interaction(encode_answer(session.id, 1, 2))
            await cog.on_interaction(last)
            await bot.scheduler.advance(5.0)
            return last

        last = run_async(scenario())
        embed = last.followup.send.await_args.kwargs["embed"]
        fields = {f.name: f.value for f in embed.fields}
        assert fields["Score"] == "2/2"
        assert fields["Percentage"] == "100%"

    def test_stale_answer_is_deferred_silently(self, bot):
        cog = Quiz(bot)

        async def scenario():
            session = await bot.quiz.create_session("G", "easy", 2, created_by="T")
            await cog.on_interaction(_make_interaction(encode_start(session.id)))
            await cog.on_interaction(_make_interaction(encode_answer(session.id, 0, 0)))
            repeat = _make_interaction(encode_answer(session.id, 0, 1))
            await cog.on_interaction(repeat)
            return session, repeat

        session, repeat = run_async(scenario())
        repeat.response.defer.assert_awaited_once()
        repeat.response.send_message.assert_not_awaited()
        assert session.participants["42"].score == 1

    def test_unknown_session_reply(self, bot):
        cog = Quiz(bot)
        interaction = _make_interaction(encode_start("quiz_0_gone00000"))

        run_async(cog.on_interaction(interaction))
        interaction.response.send_message.assert_awaited_once_with(
            SESSION_GONE_MESSAGE, ephemeral=True,
        )

    def test_answer_before_start(self, bot):
        cog = Quiz(bot)

        async def scenario():
            session = await bot.quiz.create_session("G", "easy", 2, created_by="T")
            interaction = _make_interaction(encode_answer(session.id, 0, 0))
            await cog.on_interaction(interaction)
            return interaction

        interaction = run_async(scenario())
        message = interaction.response.send_message.await_args.args[0]
        assert "Start quiz" in message

    def test_foreign_components_ignored(self, bot):
        cog = Quiz(bot)
        interaction = _make_interaction("ticket:open:1")

        run_async(cog.on_interaction(interaction))
        interaction.response.send_message.assert_not_awaited()
        interaction.response.defer.assert_not_awaited()


# ===========================================================================
# /quiz
# ===========================================================================
class TestQuizCommand:
    def test_posts_announcement(self, bot):
        cog = Quiz(bot)
        interaction = _make_interaction()

        run_async(cog.quiz.callback(cog, interaction, "Verbs", 2, "hard"))

        interaction.response.defer.assert_awaited_once_with(thinking=True)
        kwargs = interaction.followup.send.await_args.kwargs
        assert "Verbs" in kwargs["embed"].title
        (session,) = list(bot.quiz.registry)
        assert kwargs["view"].children[0].custom_id == encode_start(session.id)
        assert session.created_by == "member-42"

    def test_empty_question_set_reported(self, db_engine):
        bot = _make_bot(db_engine, [])
        cog = Quiz(bot)
        interaction = _make_interaction()

        run_async(cog.quiz.callback(cog, interaction, "Verbs", 2, "hard"))

        assert interaction.followup.send.await_args.kwargs["ephemeral"] is True
        assert len(bot.quiz.registry) == 0


# ===========================================================================
# Periodic tasks
# ===========================================================================
class TestPeriodicTasksCog:
    def test_loops_exist(self):
        assert hasattr(PeriodicTasks, "daily_quiz_loop")
        assert hasattr(PeriodicTasks, "award_drain_loop")
        assert hasattr(PeriodicTasks, "reaper_loop")

    def test_daily_loop_posts_to_configured_channel(self, db_engine, two_questions):
        bot = _make_bot(db_engine, two_questions, quiz_channel_id=555)
        channel = MagicMock(spec=discord.TextChannel)
        channel.send = AsyncMock()
        bot.get_channel = MagicMock(return_value=channel)
        cog = PeriodicTasks(bot)

        run_async(cog.daily_quiz_loop.coro(cog))

        bot.get_channel.assert_called_once_with(555)
        channel.send.assert_awaited_once()
        (session,) = list(bot.quiz.registry)
        assert session.is_daily

    def test_daily_loop_skips_without_channel(self, db_engine, two_questions):
        bot = _make_bot(db_engine, two_questions)
        cog = PeriodicTasks(bot)

        run_async(cog.daily_quiz_loop.coro(cog))
        assert len(bot.quiz.registry) == 0

    def test_daily_loop_fetches_uncached_channel(self, db_engine, two_questions):
        bot = _make_bot(db_engine, two_questions, quiz_channel_id=555)
        channel = MagicMock(spec=discord.TextChannel)
        channel.send = AsyncMock()
        bot.get_channel = MagicMock(return_value=None)
        bot.fetch_channel = AsyncMock(return_value=channel)
        cog = PeriodicTasks(bot)

        run_async(cog.daily_quiz_loop.coro(cog))

        bot.fetch_channel.assert_awaited_once_with(555)
        channel.send.assert_awaited_once()
        (session,) = list(bot.quiz.registry)
        assert session.is_daily

    def test_daily_loop_skips_when_fetch_fails(self, db_engine, two_questions):
        bot = _make_bot(db_engine, two_questions, quiz_channel_id=555)
        bot.get_channel = MagicMock(return_value=None)
        bot.fetch_channel = AsyncMock(
            side_effect=discord.NotFound(MagicMock(status=404), "Unknown Channel"),
        )
        cog = PeriodicTasks(bot)

        run_async(cog.daily_quiz_loop.coro(cog))

        assert len(bot.quiz.registry) == 0
