"""
lyceum.bot.cogs.quiz — Quiz Command & Button Router
====================================================

- ``/quiz`` — generate a session and post its announcement with a
  "Start quiz" button.
- Button clicks (``quiz:start:…`` / ``quiz:answer:…``) arrive through
  ``on_interaction`` and are decoded into engine calls.

Every :class:`~lyceum.quiz.errors.QuizError` is answered with an ephemeral
message; stale answers (double clicks, retries) are acknowledged silently.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from lyceum.constants import DIFFICULTIES, MAX_QUESTIONS, MIN_QUESTIONS
from lyceum.quiz.controls import ANSWER, START, ControlAction, parse_custom_id
from lyceum.quiz.errors import (
    AlreadyStarted,
    EmptyQuestionSet,
    InvalidOption,
    NotStarted,
    QuizError,
    SessionNotFound,
    StaleAnswer,
)
from lyceum.quiz.models import QuizResults, QuizSession
from lyceum.services.embeds import (
    build_feedback_embed,
    build_question_embed,
    build_question_view,
    build_quiz_announcement_embed,
    build_results_embed,
    build_start_view,
)

if TYPE_CHECKING:
    from lyceum.bot.core import LyceumBot

logger = logging.getLogger(__name__)

SESSION_GONE_MESSAGE = "⌛ This quiz is no longer available."
NEXT_QUESTION_PENDING_MESSAGE = "⏳ Your next question is on its way."


class InteractionDelivery:
    """Sends the next question or the results as ephemeral follow-ups."""

    def __init__(self, interaction: discord.Interaction, pass_threshold: int) -> None:
        self.interaction = interaction
        self.pass_threshold = pass_threshold

    async def send_question(self, session: QuizSession, question_index: int) -> None:
        await self.interaction.followup.send(
            embed=build_question_embed(session, question_index),
            view=build_question_view(session, question_index),
            ephemeral=True,
        )

    async def send_results(self, session: QuizSession, results: QuizResults) -> None:
        await self.interaction.followup.send(
            embed=build_results_embed(session, results, pass_threshold=self.pass_threshold),
            ephemeral=True,
        )


class Quiz(commands.Cog, name="Quiz"):
    """Interactive multiple-choice quizzes."""

    def __init__(self, bot: LyceumBot) -> None:
        self.bot = bot

    # -------------------------------------------------------------------
    # /quiz
    # -------------------------------------------------------------------
    @app_commands.command(name="quiz", description="Create an interactive quiz.")
    @app_commands.describe(
        topic="What the quiz is about",
        questions=f"Number of questions ({MIN_QUESTIONS}-{MAX_QUESTIONS}, default 5)",
        difficulty="Question difficulty (default medium)",
    )
    @app_commands.choices(
        difficulty=[app_commands.Choice(name=d.title(), value=d) for d in DIFFICULTIES],
    )
    @app_commands.default_permissions(manage_messages=True)
    async def quiz(
        self,
        interaction: discord.Interaction,
        topic: str,
        questions: app_commands.Range[int, MIN_QUESTIONS, MAX_QUESTIONS] = 5,
        difficulty: str = "medium",
    ) -> None:
        """Generate a quiz and post its announcement in this channel."""
        # Question generation can take several seconds.
        await interaction.response.defer(thinking=True)

        try:
            session = await self.bot.quiz.create_session(
                topic,
                difficulty,
                questions,
                created_by=interaction.user.display_name,
            )
        except EmptyQuestionSet:
            await interaction.followup.send(
                "❌ Could not generate questions for that topic. Try another one.",
                ephemeral=True,
            )
            return

        await interaction.followup.send(
            embed=build_quiz_announcement_embed(session),
            view=build_start_view(session.id),
        )

    # -------------------------------------------------------------------
    # Button router
    # -------------------------------------------------------------------
    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type != discord.InteractionType.component:
            return
        data = interaction.data or {}
        action = parse_custom_id(data.get("custom_id"))
        if action is None:
            return

        try:
            if action.kind == START:
                await self._handle_start(interaction, action)
            elif action.kind == ANSWER:
                await self._handle_answer(interaction, action)
        except QuizError as exc:
            await self._reply_error(interaction, exc)
        except Exception:
            logger.exception(
                "Quiz interaction failed",
                extra={
                    "custom_id": data.get("custom_id"),
                    "user_id": interaction.user.id,
                },
            )
            await self._send_ephemeral(interaction, "❌ Something went wrong. Please try again.")

    async def _handle_start(
        self, interaction: discord.Interaction, action: ControlAction
    ) -> None:
        session = self.bot.quiz.get_session(action.session_id)
        participant_id = str(interaction.user.id)
        try:
            await self.bot.quiz.begin_participant(
                action.session_id, participant_id, interaction.user.display_name,
            )
        except AlreadyStarted as exc:
            await self._resume(interaction, session, exc)
            return

        await interaction.response.send_message(
            embed=build_question_embed(session, 0),
            view=build_question_view(session, 0),
            ephemeral=True,
        )

    async def _resume(
        self, interaction: discord.Interaction, session: QuizSession, exc: AlreadyStarted
    ) -> None:
        """Re-present where an already-started participant left off."""
        if self.bot.quiz.has_pending_transition(session.id, exc.participant_id):
            # The scheduled delivery will present it once the delay ends.
            await interaction.response.send_message(
                NEXT_QUESTION_PENDING_MESSAGE, ephemeral=True,
            )
            return

        participant = exc.participant
        if participant.completed:
            results = self.bot.quiz.compute_results(session.id, exc.participant_id)
            await interaction.response.send_message(
                content="You have already finished this quiz.",
                embed=build_results_embed(
                    session, results, pass_threshold=self.bot.cfg.quiz.pass_threshold,
                ),
                ephemeral=True,
            )
            return

        index = participant.current_question_index
        await interaction.response.send_message(
            content="You already started this quiz. Here is your current question.",
            embed=build_question_embed(session, index),
            view=build_question_view(session, index),
            ephemeral=True,
        )

    async def _handle_answer(
        self, interaction: discord.Interaction, action: ControlAction
    ) -> None:
        try:
            outcome = await self.bot.quiz.submit_answer(
                action.session_id,
                str(interaction.user.id),
                action.question_index,
                action.option_index,
                delivery=InteractionDelivery(interaction, self.bot.cfg.quiz.pass_threshold),
                guild_id=interaction.guild_id,
            )
        except StaleAnswer:
            await interaction.response.defer()
            return

        await interaction.response.edit_message(
            embed=build_feedback_embed(
                outcome.question, outcome.chosen_option, outcome.correct,
                xp_awarded=outcome.xp_awarded,
            ),
            view=None,
        )

    # -------------------------------------------------------------------
    # Replies
    # -------------------------------------------------------------------
    async def _reply_error(self, interaction: discord.Interaction, exc: QuizError) -> None:
        if isinstance(exc, SessionNotFound):
            message = SESSION_GONE_MESSAGE
        elif isinstance(exc, NotStarted):
            message = "Press **Start quiz** first."
        elif isinstance(exc, InvalidOption):
            message = "❌ That option does not exist."
        else:
            message = f"❌ {exc}"
        await self._send_ephemeral(interaction, message)

    @staticmethod
    async def _send_ephemeral(interaction: discord.Interaction, message: str) -> None:
        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)


async def setup(bot: LyceumBot) -> None:
    await bot.add_cog(Quiz(bot))
