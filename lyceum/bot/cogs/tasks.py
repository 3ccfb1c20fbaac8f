"""
lyceum.bot.cogs.tasks — Periodic Background Tasks
==================================================

Scheduled jobs that run on ``discord.ext.tasks`` loops:

- **Daily quiz** — every ``quiz.daily_interval_hours`` (default 24), first
  run right after the bot is ready.
- **Award drain** — every 30 seconds, applies pending XP awards from the
  leveling outbox.
- **Session reaper** — every 10 minutes, evicts expired quiz sessions from
  memory (durable rows are kept).

Each loop catches and logs its own failures so one bad iteration never
stops the loop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands, tasks

from lyceum.database.engine import run_db
from lyceum.services.daily_quiz import post_daily_quiz
from lyceum.services.leveling_service import drain_award_outbox

if TYPE_CHECKING:
    from lyceum.bot.core import LyceumBot

logger = logging.getLogger(__name__)


class PeriodicTasks(commands.Cog):
    """Cog for the daily quiz and quiz housekeeping."""

    def __init__(self, bot: LyceumBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        """Start task loops when the cog is loaded."""
        self.daily_quiz_loop.change_interval(hours=self.bot.cfg.quiz.daily_interval_hours)
        self.daily_quiz_loop.start()
        self.award_drain_loop.start()
        self.reaper_loop.start()

    async def cog_unload(self) -> None:
        """Cancel task loops on unload."""
        self.daily_quiz_loop.cancel()
        self.award_drain_loop.cancel()
        self.reaper_loop.cancel()

    # -------------------------------------------------------------------
    # Daily quiz — interval set from config in cog_load
    # -------------------------------------------------------------------
    @tasks.loop(hours=24)
    async def daily_quiz_loop(self):
        """Create and broadcast the daily quiz."""
        channel_id = self.bot.cfg.quiz_channel_id
        channel = self.bot.get_channel(channel_id) if channel_id else None
        if channel is None and channel_id:
            try:
                channel = await self.bot.fetch_channel(channel_id)
            except (discord.NotFound, discord.Forbidden, discord.HTTPException):
                logger.warning("Could not fetch quiz channel %s", channel_id)
                channel = None

        try:
            await post_daily_quiz(self.bot.quiz, channel, self.bot.cfg.quiz)
        except Exception:
            logger.exception("Daily quiz task failed", extra={"task": "daily_quiz"})

    @daily_quiz_loop.before_loop
    async def _wait_daily_quiz(self):
        await self.bot.wait_until_ready()

    # -------------------------------------------------------------------
    # Award drain — runs every 30 seconds
    # -------------------------------------------------------------------
    @tasks.loop(seconds=30)
    async def award_drain_loop(self):
        """Apply pending XP awards to member levels."""
        try:
            result = await run_db(
                drain_award_outbox,
                self.bot.engine,
                max_attempts=self.bot.cfg.quiz.award_max_attempts,
            )
        except Exception:
            logger.exception("Award drain task failed", extra={"task": "award_drain"})
            return

        if result["applied"] or result["failed"]:
            logger.info(
                "Award drain complete: applied=%d retrying=%d failed=%d level_ups=%d",
                result["applied"], result["retrying"], result["failed"], result["level_ups"],
            )

    @award_drain_loop.before_loop
    async def _wait_award_drain(self):
        await self.bot.wait_until_ready()

    # -------------------------------------------------------------------
    # Session reaper — runs every 10 minutes
    # -------------------------------------------------------------------
    @tasks.loop(minutes=10)
    async def reaper_loop(self):
        """Evict expired quiz sessions from memory."""
        try:
            self.bot.quiz.reap_expired()
        except Exception:
            logger.exception("Session reaper task failed", extra={"task": "reaper"})

    @reaper_loop.before_loop
    async def _wait_reaper(self):
        await self.bot.wait_until_ready()


async def setup(bot: LyceumBot) -> None:
    await bot.add_cog(PeriodicTasks(bot))
