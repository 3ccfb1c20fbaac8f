"""Create quiz session, member and XP award outbox tables

Revision ID: 3f1c9a7e2b40
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "3f1c9a7e2b40"
down_revision = None
branch_labels = None
depends_on = None

# SQLAlchemy's Enum persists member names
award_status = sa.Enum("PENDING", "APPLIED", "FAILED", name="award_status")


def upgrade() -> None:
    op.create_table(
        "quiz_sessions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("topic", sa.String(200), nullable=False),
        sa.Column("difficulty", sa.String(16), nullable=False),
        sa.Column("is_daily", sa.Boolean(), nullable=True),
        sa.Column("created_by", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("document", postgresql.JSONB(), nullable=False),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True),
            server_default=sa.text("now()"), nullable=True,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quiz_sessions_expires_at", "quiz_sessions", ["expires_at"])
    op.create_index("ix_quiz_sessions_created_at", "quiz_sessions", ["created_at"])

    op.create_table(
        "members",
        sa.Column("guild_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("xp", sa.Integer(), nullable=True),
        sa.Column("level", sa.Integer(), nullable=True),
        sa.Column("total_xp", sa.Integer(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.text("now()"), nullable=True,
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True),
            server_default=sa.text("now()"), nullable=True,
        ),
        sa.PrimaryKeyConstraint("guild_id", "user_id"),
    )
    op.create_index("ix_members_guild_total_xp", "members", ["guild_id", "total_xp"])

    op.create_table(
        "xp_award_outbox",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("guild_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(200), nullable=True),
        sa.Column("source_key", sa.String(160), nullable=False),
        sa.Column("status", award_status, nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            server_default=sa.text("now()"), nullable=True,
        ),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("source_key"),
    )
    op.create_index("ix_xp_award_outbox_status", "xp_award_outbox", ["status"])


def downgrade() -> None:
    op.drop_index("ix_xp_award_outbox_status", table_name="xp_award_outbox")
    op.drop_table("xp_award_outbox")
    award_status.drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_members_guild_total_xp", table_name="members")
    op.drop_table("members")

    op.drop_index("ix_quiz_sessions_created_at", table_name="quiz_sessions")
    op.drop_index("ix_quiz_sessions_expires_at", table_name="quiz_sessions")
    op.drop_table("quiz_sessions")
