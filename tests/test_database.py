"""
tests/test_database.py — Database Helper Tests
===============================================
"""

from __future__ import annotations

import asyncio
import threading

import pytest
from sqlalchemy import select

from lyceum.database.engine import create_db_engine, get_session, run_db
from lyceum.database.models import Member


def run_async(coro):
    """Run an async coroutine in a fresh event loop."""
    return asyncio.run(coro)


class TestCreateEngine:
    def test_missing_url_raises(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            create_db_engine()


class TestGetSession:
    def test_commits_on_success(self, db_engine):
        with get_session(db_engine) as session:
            session.add(Member(guild_id=1, user_id=2, display_name="ana"))

        with get_session(db_engine) as session:
            member = session.scalar(select(Member).where(Member.user_id == 2))
            assert member.display_name == "ana"

    def test_rolls_back_on_error(self, db_engine):
        with pytest.raises(ValueError):
            with get_session(db_engine) as session:
                session.add(Member(guild_id=1, user_id=3, display_name="bo"))
                session.flush()
                raise ValueError("boom")

        with get_session(db_engine) as session:
            assert session.scalar(select(Member).where(Member.user_id == 3)) is None


class TestRunDb:
    def test_runs_off_the_event_loop_thread(self):
        async def scenario():
            loop_thread = threading.get_ident()
            worker_thread = await run_db(threading.get_ident)
            return loop_thread, worker_thread

        loop_thread, worker_thread = run_async(scenario())
        assert loop_thread != worker_thread

    def test_forwards_arguments(self):
        assert run_async(run_db(lambda a, *, b: a + b, 2, b=3)) == 5
