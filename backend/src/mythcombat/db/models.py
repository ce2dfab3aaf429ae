from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class _Timestamps:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Campaign(_Timestamps, Base):
    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)


class Character(_Timestamps, Base):
    __tablename__ = "characters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    campaign_id: Mapped[str] = mapped_column(
        ForeignKey("campaigns.id"), nullable=False, index=True
    )
    player_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # the newest character per (campaign, player) is the one combat uses
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp_to_next: Mapped[int] = mapped_column(Integer, nullable=False, default=250)
    unspent_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    offense: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    defense: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    control: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    support: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    mobility: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    utility: Mapped[int] = mapped_column(Integer, nullable=False, default=10)


class Item(_Timestamps, Base):
    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    campaign_id: Mapped[str] = mapped_column(
        ForeignKey("campaigns.id"), nullable=False, index=True
    )
    owner_character_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("characters.id"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    rarity: Mapped[str] = mapped_column(String(32), nullable=False, default="common")
    slot: Mapped[str] = mapped_column(String(32), nullable=False)
    power: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bind_policy: Mapped[str] = mapped_column(String(32), nullable=False, default="unbound")
    drawback: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    stat_mods: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)


class InventoryEntry(Base):
    __tablename__ = "inventory"
    __table_args__ = (UniqueConstraint("character_id", "item_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    character_id: Mapped[str] = mapped_column(
        ForeignKey("characters.id"), nullable=False, index=True
    )
    item_id: Mapped[str] = mapped_column(ForeignKey("items.id"), nullable=False)
    # "equipped" | "backpack"
    container: Mapped[str] = mapped_column(String(16), nullable=False, default="backpack")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class CombatSession(_Timestamps, Base):
    __tablename__ = "combat_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    campaign_id: Mapped[str] = mapped_column(
        ForeignKey("campaigns.id"), nullable=False, index=True
    )
    seed: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # "active" | "ended"
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    reason: Mapped[str] = mapped_column(String(64), nullable=False, default="encounter")

    outcome_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class Board(_Timestamps, Base):
    __tablename__ = "boards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    campaign_id: Mapped[str] = mapped_column(
        ForeignKey("campaigns.id"), nullable=False, index=True
    )
    # "town" | "travel" | "dungeon" | "combat"
    board_type: Mapped[str] = mapped_column(String(16), nullable=False)
    # "active" | "archived"
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    combat_session_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("combat_sessions.id"), nullable=True
    )

    state_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)


class CombatantRow(Base):
    __tablename__ = "combatants"

    session_id: Mapped[str] = mapped_column(
        ForeignKey("combat_sessions.id"), primary_key=True
    )
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(16), nullable=False)
    player_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    character_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    x: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    y: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    offense: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    defense: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    control: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    support: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mobility: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    utility: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    hp: Mapped[int] = mapped_column(Integer, nullable=False)
    hp_max: Mapped[int] = mapped_column(Integer, nullable=False)
    power: Mapped[int] = mapped_column(Integer, nullable=False)
    power_max: Mapped[int] = mapped_column(Integer, nullable=False)
    armor: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    resist: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weapon_power: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    armor_power: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    statuses_json: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    initiative: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_alive: Mapped[bool] = mapped_column(nullable=False, default=True)


class TurnOrderRow(Base):
    __tablename__ = "turn_order"

    session_id: Mapped[str] = mapped_column(
        ForeignKey("combat_sessions.id"), primary_key=True
    )
    turn_index: Mapped[int] = mapped_column(Integer, primary_key=True)
    combatant_id: Mapped[str] = mapped_column(String(64), nullable=False)


class ActionEventRow(Base):
    __tablename__ = "action_events"
    __table_args__ = (UniqueConstraint("session_id", "dedupe_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("combat_sessions.id"), nullable=False, index=True
    )
    turn_index: Mapped[int] = mapped_column(Integer, nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    actor_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    target_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    amount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    from_tile: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    to_tile: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    # microseconds since epoch, strictly increasing per session
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # set only for at-most-once appends, e.g. "reward_granted:<player_id>"
    dedupe_key: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)


class StoryEntry(Base):
    __tablename__ = "story_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    campaign_id: Mapped[str] = mapped_column(
        ForeignKey("campaigns.id"), nullable=False, index=True
    )
    player_id: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    content_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
