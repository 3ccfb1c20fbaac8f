"""
lyceum.services.daily_quiz — Daily Quiz Producer
=================================================

Creates the recurring daily session (fixed topic, count and difficulty from
``config.yaml``) and broadcasts it to the configured quiz channel.  Correct
answers in a daily session earn XP through the leveling outbox.

The tasks cog owns the timer; this module only knows how to post one quiz.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord

from lyceum.services.embeds import build_daily_announcement_embed, build_start_view

if TYPE_CHECKING:
    from lyceum.config import QuizSettings
    from lyceum.quiz.engine import QuizEngine
    from lyceum.quiz.models import QuizSession

logger = logging.getLogger(__name__)

DAILY_CREATOR = "Daily Bot"


async def post_daily_quiz(
    engine: QuizEngine,
    channel: discord.abc.Messageable | None,
    settings: QuizSettings,
) -> QuizSession | None:
    """Create today's session and announce it in *channel*.

    Returns ``None`` without creating anything when no channel is available.
    A failed broadcast is logged; the session still exists and stays
    reachable through its persisted buttons on any later post.
    """
    if channel is None:
        logger.warning("Daily quiz skipped — quiz channel is not configured or not found")
        return None

    session = await engine.create_session(
        settings.daily_topic,
        settings.daily_difficulty,
        settings.daily_question_count,
        is_daily=True,
        created_by=DAILY_CREATOR,
    )

    try:
        await channel.send(
            embed=build_daily_announcement_embed(session, settings.daily_xp_per_correct),
            view=build_start_view(session.id),
        )
    except discord.HTTPException:
        logger.exception("Failed to broadcast daily quiz %s", session.id)
        return session

    logger.info("Daily quiz %s posted — %r", session.id, session.topic)
    return session
