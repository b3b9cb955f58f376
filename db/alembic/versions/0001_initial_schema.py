"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("first_name", sa.String(length=120)),
        sa.Column("last_name", sa.String(length=120)),
        sa.Column("gamemaster", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("admin", sa.Boolean, nullable=False, server_default=sa.false()),
    )

    op.create_table(
        "campaigns",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("description", sa.Text),
    )

    op.create_table(
        "campaign_memberships",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("campaign_id", sa.Integer, sa.ForeignKey("campaigns.id"), nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.UniqueConstraint("campaign_id", "user_id", name="uq_campaign_memberships_user"),
    )

    op.create_table(
        "characters",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("campaign_id", sa.Integer, sa.ForeignKey("campaigns.id")),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id")),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("defense", sa.Integer),
        sa.Column("impairments", sa.Integer, nullable=False, server_default="0"),
        sa.Column("action_values", postgresql.JSONB),
        sa.Column("status", postgresql.JSONB),
    )

    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("campaign_id", sa.Integer, sa.ForeignKey("campaigns.id")),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id")),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("impairments", sa.Integer, nullable=False, server_default="0"),
        sa.Column("action_values", postgresql.JSONB),
    )

    op.create_table(
        "fights",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("campaign_id", sa.Integer, sa.ForeignKey("campaigns.id"), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("sequence", sa.Integer, nullable=False, server_default="0"),
        sa.Column("solo_mode", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("solo_behavior_type", sa.String(length=40)),
        sa.Column("solo_player_character_ids", postgresql.JSONB),
        sa.Column("solo_settings_json", postgresql.JSONB),
    )

    op.create_table(
        "shots",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("fight_id", sa.Integer, sa.ForeignKey("fights.id"), nullable=False),
        sa.Column("character_id", sa.Integer, sa.ForeignKey("characters.id")),
        sa.Column("vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id")),
        sa.Column("shot", sa.Integer),
        sa.Column("count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("impairments", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_shots_fight_id", "shots", ["fight_id"])

    op.create_table(
        "fight_events",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("fight_id", sa.Integer, sa.ForeignKey("fights.id"), nullable=False),
        sa.Column("event_type", sa.String(length=80), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("details_json", postgresql.JSONB),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_fight_events_fight_id", "fight_events", ["fight_id"])


def downgrade() -> None:
    op.drop_index("ix_fight_events_fight_id", table_name="fight_events")
    op.drop_table("fight_events")
    op.drop_index("ix_shots_fight_id", table_name="shots")
    op.drop_table("shots")
    op.drop_table("fights")
    op.drop_table("vehicles")
    op.drop_table("characters")
    op.drop_table("campaign_memberships")
    op.drop_table("campaigns")
    op.drop_table("users")
