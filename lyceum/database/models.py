"""
lyceum.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- quiz_sessions    — One whole-document row per quiz session ever created
- members          — Per-guild experience and level for each Discord member
- xp_award_outbox  — Pending experience awards emitted by the quiz engine
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Lyceum ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class AwardStatus(enum.StrEnum):
    """Delivery state of an outbox award."""
    PENDING = "pending"
    APPLIED = "applied"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Quiz sessions — whole-document storage
# ---------------------------------------------------------------------------
class QuizSessionRecord(Base):
    """Durable mirror of a :class:`~lyceum.quiz.models.QuizSession`.

    ``document`` holds the full materialization (questions and nested
    participants) and is overwritten on every state change.  The scalar
    columns are copies of immutable session fields kept for filtering.
    """
    __tablename__ = "quiz_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    topic: Mapped[str] = mapped_column(String(200), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    is_daily: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    document: Mapped[dict] = mapped_column(JSONB, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_quiz_sessions_expires_at", "expires_at"),
        Index("ix_quiz_sessions_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<QuizSessionRecord id={self.id!r} topic={self.topic!r} daily={self.is_daily}>"


# ---------------------------------------------------------------------------
# Members — leveling state per guild
# ---------------------------------------------------------------------------
class Member(Base):
    __tablename__ = "members"

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    xp: Mapped[int] = mapped_column(Integer, default=0)        # progress inside the current level
    level: Mapped[int] = mapped_column(Integer, default=0)
    total_xp: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_members_guild_total_xp", "guild_id", "total_xp"),
    )

    def __repr__(self) -> str:
        return f"<Member guild={self.guild_id} user={self.user_id} lvl={self.level}>"


# ---------------------------------------------------------------------------
# Experience award outbox
# ---------------------------------------------------------------------------
class ExperienceAwardRecord(Base):
    """One outbound award message from the quiz engine.

    ``source_key`` is unique so the same correct answer is never queued twice.
    """
    __tablename__ = "xp_award_outbox"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(200), default="")
    source_key: Mapped[str] = mapped_column(String(160), nullable=False, unique=True)
    status: Mapped[AwardStatus] = mapped_column(
        Enum(AwardStatus, name="award_status"), default=AwardStatus.PENDING
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    applied_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    __table_args__ = (
        Index("ix_xp_award_outbox_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<ExperienceAwardRecord id={self.id} user={self.user_id} "
            f"amount={self.amount} status={self.status}>"
        )
