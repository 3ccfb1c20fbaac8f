"""
lyceum.database.engine — Connection, Sessions & the Thread Bridge
==================================================================

Two kinds of code share one PostgreSQL database:

- The **quiz session store** writes a whole session document after every
  state change (create, begin, answer) and reads open sessions back at
  startup.
- The **leveling outbox** receives one pending row per XP award and is
  drained every 30 seconds into ``members``.

Both are plain synchronous SQLAlchemy functions.  The bot and the quiz
engine live on the ``asyncio`` loop, so every such call is wrapped in
:func:`run_db`, which hands it to a worker thread.  A slow save therefore
delays only the awaiting coroutine, never other members' button clicks.

The dashboard API imports :func:`create_db_engine` too and calls the store
functions directly from FastAPI's own threadpool.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from lyceum.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def create_db_engine(url: str | None = None) -> Engine:
    """Engine for *url*, or ``DATABASE_URL`` when omitted.

    The pool is small: one bot process issues at most a handful of
    concurrent saves (one per session lock holder) plus the outbox drain.
    ``pool_pre_ping`` keeps long idle nights between daily quizzes from
    surfacing as dropped-connection errors on the first save.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set. Copy .env.example to .env and point it "
            "at the Lyceum PostgreSQL database."
        )

    engine = create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine ready (%s)", engine.url.host or engine.url.drivername)
    return engine


def init_db(engine: Engine) -> None:
    """Create ``quiz_sessions``, ``members`` and ``xp_award_outbox`` if missing.

    Production schemas come from ``alembic upgrade head``; this covers local
    runs against a fresh database.
    """
    Base.metadata.create_all(engine)
    logger.info("Quiz and leveling tables verified")


@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Unit of work: commit when the block exits cleanly, roll back otherwise.

    A failed session save or outbox write leaves the database as it was;
    the caller decides whether to log (quiz store) or retry (outbox).
    """
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Await synchronous *func* on a worker thread.

    ::

        await run_db(store.save, session.to_dict())
        await run_db(drain_award_outbox, engine, max_attempts=5)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
