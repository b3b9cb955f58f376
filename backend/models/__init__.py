from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(120))
    last_name: Mapped[str | None] = mapped_column(String(120))
    gamemaster: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Campaign(Base):
    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)


class CampaignMembership(Base):
    __tablename__ = "campaign_memberships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(ForeignKey("campaigns.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)


class Character(Base):
    __tablename__ = "characters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int | None] = mapped_column(ForeignKey("campaigns.id"))
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    defense: Mapped[int | None] = mapped_column(Integer)
    impairments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    action_values: Mapped[dict | None] = mapped_column(JSONB)
    status: Mapped[list | None] = mapped_column(JSONB)


class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int | None] = mapped_column(ForeignKey("campaigns.id"))
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    impairments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    action_values: Mapped[dict | None] = mapped_column(JSONB)


class Fight(Base):
    __tablename__ = "fights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(ForeignKey("campaigns.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    solo_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    solo_behavior_type: Mapped[str | None] = mapped_column(String(40))
    solo_player_character_ids: Mapped[list | None] = mapped_column(JSONB)
    solo_settings_json: Mapped[dict | None] = mapped_column(JSONB)


class Shot(Base):
    __tablename__ = "shots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fight_id: Mapped[int] = mapped_column(ForeignKey("fights.id"), nullable=False)
    character_id: Mapped[int | None] = mapped_column(ForeignKey("characters.id"))
    vehicle_id: Mapped[int | None] = mapped_column(ForeignKey("vehicles.id"))
    shot: Mapped[int | None] = mapped_column(Integer)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    impairments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class FightEvent(Base):
    __tablename__ = "fight_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fight_id: Mapped[int] = mapped_column(ForeignKey("fights.id"), nullable=False)
    event_type: Mapped[str] = mapped_column(String(80), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    details_json: Mapped[dict | None] = mapped_column(JSONB)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class SoloSession(Base):
    __tablename__ = "solo_sessions"

    fight_id: Mapped[int] = mapped_column(ForeignKey("fights.id"), primary_key=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    rng_seed: Mapped[int] = mapped_column(Integer, nullable=False)
    roll_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    state_json: Mapped[dict | None] = mapped_column(JSONB)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
