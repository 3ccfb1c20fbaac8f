"""
lyceum.api.deps — FastAPI dependency injection
===============================================
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from lyceum.database.engine import create_db_engine
from lyceum.services.session_store import SqlSessionStore


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


def get_session(engine: Annotated[Engine, Depends(get_engine)]):
    with Session(engine) as session:
        yield session


def get_store(engine: Annotated[Engine, Depends(get_engine)]) -> SqlSessionStore:
    return SqlSessionStore(engine)
