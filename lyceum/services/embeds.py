"""
lyceum.services.embeds — Discord embed & button builders for quizzes
=====================================================================

All quiz presentation lives here so the cogs and the daily producer only
need to supply data — no layout concerns.
"""

from __future__ import annotations

import discord

from lyceum.constants import MINUTES_PER_QUESTION, difficulty_label
from lyceum.quiz.controls import encode_answer, encode_start
from lyceum.quiz.models import Question, QuizResults, QuizSession

# Discord caps button labels at 80 characters.
MAX_BUTTON_LABEL = 80

OPTION_LETTERS = ("A", "B", "C", "D")


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


def option_letter(index: int) -> str:
    return OPTION_LETTERS[index] if index < len(OPTION_LETTERS) else str(index + 1)


# ---------------------------------------------------------------------------
# Announcements
# ---------------------------------------------------------------------------
def build_quiz_announcement_embed(session: QuizSession) -> discord.Embed:
    """Public embed posted when a member runs ``/quiz``."""
    embed = discord.Embed(
        title=f"\U0001f4dd Quiz: {session.topic}",
        description=(
            "Test your knowledge! Press **Start quiz** to begin.\n"
            "Your answers are private — only you can see them."
        ),
        color=discord.Color.blue(),
    )
    embed.add_field(name="Questions", value=str(session.question_count), inline=True)
    embed.add_field(name="Level", value=difficulty_label(session.difficulty), inline=True)
    embed.add_field(
        name="Estimated time",
        value=f"{session.question_count * MINUTES_PER_QUESTION} minutes",
        inline=True,
    )
    embed.set_footer(text=f"Created by {session.created_by}")
    embed.timestamp = session.created_at
    return embed


def build_daily_announcement_embed(session: QuizSession, xp_per_correct: int) -> discord.Embed:
    """Embed for the recurring daily quiz broadcast."""
    embed = discord.Embed(
        title="\U0001f31f Daily Quiz",
        description=(
            f"Today's topic: **{session.topic}**\n\n"
            f"Earn **{xp_per_correct} XP** for every correct answer!"
        ),
        color=discord.Color.gold(),
    )
    embed.add_field(name="Questions", value=str(session.question_count), inline=True)
    embed.add_field(name="Level", value=difficulty_label(session.difficulty), inline=True)
    embed.set_footer(text="A new quiz every day")
    embed.timestamp = session.created_at
    return embed


def build_start_view(session_id: str) -> discord.ui.View:
    """Persistent view carrying the single "Start quiz" button."""
    view = discord.ui.View(timeout=None)
    view.add_item(discord.ui.Button(
        label="Start quiz",
        emoji="\U0001f680",
        style=discord.ButtonStyle.success,
        custom_id=encode_start(session_id),
    ))
    return view


# ---------------------------------------------------------------------------
# Questions & feedback
# ---------------------------------------------------------------------------
def build_question_embed(session: QuizSession, question_index: int) -> discord.Embed:
    """Ephemeral embed for question *question_index* (0-based)."""
    question = session.questions[question_index]
    lines = [
        f"**{option_letter(i)}.** {option}" for i, option in enumerate(question.options)
    ]
    embed = discord.Embed(
        title=f"Question {question_index + 1} of {session.question_count}",
        description=f"**{question.text}**\n\n" + "\n".join(lines),
        color=discord.Color.blurple(),
    )
    embed.set_footer(text=f"{session.topic} • {difficulty_label(session.difficulty)}")
    return embed


def build_question_view(session: QuizSession, question_index: int) -> discord.ui.View:
    """One button per option, encoding the expected question index."""
    question = session.questions[question_index]
    view = discord.ui.View(timeout=None)
    for i, option in enumerate(question.options):
        view.add_item(discord.ui.Button(
            label=_truncate(f"{option_letter(i)}. {option}", MAX_BUTTON_LABEL),
            style=discord.ButtonStyle.primary,
            custom_id=encode_answer(session.id, question_index, i),
        ))
    return view


def build_feedback_embed(
    question: Question,
    chosen_option: int,
    correct: bool,
    *,
    xp_awarded: int = 0,
) -> discord.Embed:
    """Replaces the answered question: right/wrong plus the explanation."""
    if correct:
        title = "✅ Correct!"
        color = discord.Color.green()
    else:
        title = "❌ Not quite"
        color = discord.Color.red()

    description = f"**{question.text}**\n\nYour answer: {question.options[chosen_option]}"
    if not correct:
        description += f"\nCorrect answer: **{question.correct_option}**"

    embed = discord.Embed(title=title, description=description, color=color)
    if question.explanation:
        embed.add_field(name="Explanation", value=question.explanation, inline=False)
    if xp_awarded:
        embed.add_field(name="Reward", value=f"+{xp_awarded} XP", inline=False)
    return embed


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
def build_results_embed(
    session: QuizSession, results: QuizResults, *, pass_threshold: int = 60
) -> discord.Embed:
    """Final score summary: pass/fail, raw score and percentage."""
    if results.passed:
        title = "\U0001f389 Quiz passed!"
        color = discord.Color.green()
        verdict = "Great work — you passed!"
    else:
        title = "\U0001f4da Quiz finished"
        color = discord.Color.orange()
        verdict = "Keep practising and try again!"

    embed = discord.Embed(
        title=title,
        description=f"**{session.topic}**\n{verdict}",
        color=color,
    )
    embed.add_field(name="Score", value=f"{results.score}/{results.total}", inline=True)
    embed.add_field(name="Percentage", value=f"{results.percentage}%", inline=True)
    embed.set_footer(text=f"Passing score: {pass_threshold}%+")
    return embed
