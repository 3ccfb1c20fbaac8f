"""
lyceum.bot.core — Bot Instance & Cog Loader
============================================

Defines :class:`LyceumBot`, a ``commands.Bot`` subclass that:

1. Stores the shared config (``bot.cfg``), DB engine (``bot.engine``) and
   quiz engine (``bot.quiz``) so every Cog can reach them via ``self.bot``.
2. Rehydrates open quiz sessions from the database before connecting, so
   buttons on messages posted before a restart keep working.
3. Loads every Cog listed in :data:`EXTENSIONS`.
4. Syncs the slash-command tree on ready (guild-scoped for dev, global for
   production — controlled by the ``DEV_GUILD_ID`` env var).
5. Cancels pending quiz transitions on shutdown.
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands
from sqlalchemy import Engine

from lyceum.config import LyceumConfig
from lyceum.quiz.engine import QuizEngine
from lyceum.quiz.scheduler import AsyncioTransitionScheduler
from lyceum.quiz.sources import AIQuestionSource, QuestionSource
from lyceum.services.leveling_service import AwardOutbox
from lyceum.services.session_store import SqlSessionStore

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "lyceum.bot.cogs.quiz",
    "lyceum.bot.cogs.tasks",
]


class LyceumBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`LyceumConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine` connected to PostgreSQL.
    source:
        Question source for new sessions; defaults to :class:`AIQuestionSource`.
    """

    def __init__(
        self,
        cfg: LyceumConfig,
        engine: Engine,
        source: QuestionSource | None = None,
    ) -> None:
        # Slash commands and components only; no privileged intents needed.
        intents = discord.Intents.default()

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description=f"{cfg.community_name} — {cfg.community_motto}",
        )

        # Attach shared state so Cogs can read it via self.bot.*
        self.cfg = cfg
        self.engine = engine
        self.quiz = QuizEngine(
            source or AIQuestionSource(),
            SqlSessionStore(engine),
            cfg.quiz,
            scheduler=AsyncioTransitionScheduler(),
            award_sink=AwardOutbox(engine),
        )

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Called once before the bot connects to Discord.

        Rehydrates the session registry, then loads the Cog extensions.  A
        failing extension is logged and skipped.
        """
        try:
            await self.quiz.load_active()
        except Exception:
            logger.exception("Failed to rehydrate quiz sessions — starting with none")

        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        # --- Slash-command sync ---------------------------------------------
        dev_guild_id = os.getenv("DEV_GUILD_ID")
        if dev_guild_id:
            guild = discord.Object(id=int(dev_guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("Synced %d commands globally", len(synced))

        logger.info("%d quiz session(s) live", len(self.quiz.registry))

    async def close(self) -> None:
        """Graceful shutdown — cancel pending quiz transitions."""
        logger.info("Bot shutting down…")
        self.quiz.close()
        await super().close()
