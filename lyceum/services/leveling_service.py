"""
lyceum.services.leveling_service — Experience Awards & Level Tracking
=====================================================================

The leveling subsystem consumes :class:`~lyceum.quiz.engine.ExperienceAward`
messages emitted by the quiz engine.  Awards are decoupled from quiz
correctness through a durable outbox:

1. The engine hands each award to :class:`AwardOutbox`, which writes a
   ``pending`` row (idempotent on ``source_key``).
2. :func:`drain_award_outbox` (run by the tasks cog) applies pending rows to
   the ``members`` table.  A failing row keeps ``pending`` with an
   incremented ``attempts`` counter until ``max_attempts``, then becomes
   ``failed``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lyceum.constants import xp_for_level
from lyceum.database.engine import run_db
from lyceum.database.models import AwardStatus, ExperienceAwardRecord, Member

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from lyceum.quiz.engine import ExperienceAward

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DRAIN_BATCH_SIZE = 100


# ---------------------------------------------------------------------------
# Pure level arithmetic
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LevelProgress:
    level: int
    xp: int
    levels_gained: int = 0

    @property
    def leveled_up(self) -> bool:
        return self.levels_gained > 0


def apply_experience(level: int, xp: int, amount: int) -> LevelProgress:
    """Add *amount* XP to a member at (*level*, *xp*), carrying surplus over.

    A single award may cross several levels.
    """
    xp += amount
    gained = 0
    while xp >= xp_for_level(level + 1):
        xp -= xp_for_level(level + 1)
        level += 1
        gained += 1
    return LevelProgress(level=level, xp=xp, levels_gained=gained)


# ---------------------------------------------------------------------------
# Member updates
# ---------------------------------------------------------------------------
def get_or_create_member(
    session: Session, guild_id: int, user_id: int, display_name: str
) -> Member:
    """Fetch or insert a Member row."""
    member = session.get(Member, (guild_id, user_id))
    if member is None:
        member = Member(
            guild_id=guild_id, user_id=user_id, display_name=display_name,
            xp=0, level=0, total_xp=0,
        )
        session.add(member)
        session.flush()
    else:
        member.display_name = display_name
    return member


def award_experience(
    session: Session,
    *,
    guild_id: int,
    user_id: int,
    display_name: str,
    amount: int,
) -> LevelProgress:
    """Apply *amount* XP to a member inside an open session."""
    member = get_or_create_member(session, guild_id, user_id, display_name)
    progress = apply_experience(member.level, member.xp, amount)
    member.level = progress.level
    member.xp = progress.xp
    member.total_xp += amount
    return progress


# ---------------------------------------------------------------------------
# Outbox
# ---------------------------------------------------------------------------
def enqueue_award(engine: Engine, award: ExperienceAward) -> bool:
    """Write *award* as a pending outbox row.  Returns False for duplicates."""
    with Session(engine) as session:
        session.add(ExperienceAwardRecord(
            guild_id=award.guild_id,
            user_id=int(award.participant_id),
            display_name=award.display_name,
            amount=award.amount,
            reason=award.reason,
            source_key=award.source_key,
            status=AwardStatus.PENDING,
            attempts=0,
        ))
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.info("Award %s already queued — skipping", award.source_key)
            return False
    return True


class AwardOutbox:
    """Award sink handed to the quiz engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    async def __call__(self, award: ExperienceAward) -> None:
        await run_db(enqueue_award, self.engine, award)


def drain_award_outbox(
    engine: Engine,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    batch_size: int = DRAIN_BATCH_SIZE,
) -> dict[str, int]:
    """Apply pending awards, oldest first.

    Each row is applied in its own transaction so one bad row never blocks
    the rest.  Returns ``{"applied": N, "retrying": M, "failed": K,
    "level_ups": L}``.
    """
    summary = {"applied": 0, "retrying": 0, "failed": 0, "level_ups": 0}

    with Session(engine) as session:
        ids = session.scalars(
            select(ExperienceAwardRecord.id)
            .where(ExperienceAwardRecord.status == AwardStatus.PENDING)
            .order_by(ExperienceAwardRecord.id)
            .limit(batch_size)
        ).all()

    for award_id in ids:
        try:
            with Session(engine) as session:
                record = session.get(ExperienceAwardRecord, award_id)
                if record is None or record.status != AwardStatus.PENDING:
                    continue
                progress = award_experience(
                    session,
                    guild_id=record.guild_id,
                    user_id=record.user_id,
                    display_name=record.display_name,
                    amount=record.amount,
                )
                record.status = AwardStatus.APPLIED
                record.attempts += 1
                record.applied_at = datetime.now(UTC)
                guild_id, user_id = record.guild_id, record.user_id
                session.commit()
        except Exception as exc:
            logger.exception("Applying award %d failed", award_id)
            if _record_failure(engine, award_id, exc, max_attempts):
                summary["failed"] += 1
            else:
                summary["retrying"] += 1
            continue

        summary["applied"] += 1
        if progress.leveled_up:
            summary["level_ups"] += 1
            logger.info(
                "Member %d reached level %d in guild %d",
                user_id, progress.level, guild_id,
            )

    return summary


def _record_failure(engine: Engine, award_id: int, exc: Exception, max_attempts: int) -> bool:
    """Bump the attempt counter.  Returns True once the award is given up on."""
    with Session(engine) as session:
        record = session.get(ExperienceAwardRecord, award_id)
        if record is None:
            return False
        record.attempts += 1
        record.last_error = f"{type(exc).__name__}: {exc}"[:500]
        exhausted = record.attempts >= max_attempts
        if exhausted:
            record.status = AwardStatus.FAILED
            logger.error(
                "Giving up on award %d after %d attempts", award_id, record.attempts
            )
        session.commit()
        return exhausted


def get_member(engine: Engine, guild_id: int, user_id: int) -> Member | None:
    with Session(engine, expire_on_commit=False) as session:
        member = session.get(Member, (guild_id, user_id))
        if member is not None:
            session.expunge(member)
        return member
