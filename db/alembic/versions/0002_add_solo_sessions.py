"""add solo sessions table

Revision ID: 0002_add_solo_sessions
Revises: 0001_initial_schema
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0002_add_solo_sessions"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "solo_sessions",
        sa.Column("fight_id", sa.Integer, sa.ForeignKey("fights.id"), primary_key=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("rng_seed", sa.Integer, nullable=False),
        sa.Column("roll_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("state_json", postgresql.JSONB),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("solo_sessions")
