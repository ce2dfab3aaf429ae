from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from mythcombat.core.engine.events import EventType
from mythcombat.core.engine.progression import OutcomeSnapshot, RewardSummary
from mythcombat.core.presentation.effects import VisualEffect

ToneChoice = Literal["auto", "tactical", "mythic", "whimsical", "brutal", "minimalist"]


class PosDTO(BaseModel):
    x: int = 0
    y: int = 0


class StatsDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    offense: int = Field(default=10, ge=0, le=100)
    defense: int = Field(default=10, ge=0, le=100)
    control: int = Field(default=10, ge=0, le=100)
    support: int = Field(default=10, ge=0, le=100)
    mobility: int = Field(default=10, ge=0, le=100)
    utility: int = Field(default=10, ge=0, le=100)


# ---- campaigns / characters ----


class CampaignCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=200)


class CampaignOut(BaseModel):
    id: str
    name: str
    created_at: datetime


class CharacterCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    player_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=200)
    level: int = Field(default=1, ge=1, le=99)
    xp: int = Field(default=0, ge=0)
    stats: StatsDTO = Field(default_factory=StatsDTO)


class CharacterOut(BaseModel):
    id: str
    campaign_id: str
    player_id: str
    name: str
    level: int
    xp: int
    xp_to_next: int
    unspent_points: int
    stats: StatsDTO


class ItemCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=200)
    slot: str = Field(min_length=1, max_length=32)
    rarity: str = "common"
    power: int = Field(default=0, ge=0)
    # numeric stat modifiers; non-numeric values are ignored at combat start
    stat_mods: Dict[str, Any] = Field(default_factory=dict)
    equip: bool = True


class InventoryItemOut(BaseModel):
    item_id: str
    name: str
    slot: str
    rarity: str
    power: int
    container: str
    stat_mods: Dict[str, Any] = Field(default_factory=dict)


# ---- combat ----


class CombatStartRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    campaign_id: str
    player_id: str
    seed: Optional[int] = Field(default=None, ge=0, le=2**32 - 1)
    reason: str = "encounter"


class StatusOut(BaseModel):
    id: str
    expires_turn: Optional[int] = None


class CombatantOut(BaseModel):
    id: str
    name: str
    entity_type: str
    player_id: Optional[str] = None
    character_id: Optional[str] = None
    position: PosDTO
    stats: StatsDTO
    hp: int
    hp_max: int
    power: int
    power_max: int
    armor: int
    resist: int
    statuses: List[StatusOut] = Field(default_factory=list)
    initiative: int
    is_alive: bool


class TurnOrderOut(BaseModel):
    turn_index: int
    combatant_id: str


class ActionEventOut(BaseModel):
    id: str
    turn_index: int
    event_type: str
    actor_id: Optional[str] = None
    target_id: Optional[str] = None
    amount: Optional[int] = None
    status_id: Optional[str] = None
    from_tile: Optional[Tuple[int, int]] = None
    to_tile: Optional[Tuple[int, int]] = None
    created_at: int
    cursor: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class CombatStartResponse(BaseModel):
    ok: bool = True
    combat_session_id: str
    seed: int
    combatants: List[CombatantOut]
    turn_order: List[TurnOrderOut]
    events: List[ActionEventOut]


class CombatStateResponse(BaseModel):
    combat_session_id: str
    campaign_id: str
    status: str
    seed: int
    combatants: List[CombatantOut]
    turn_order: List[TurnOrderOut]
    outcome: Optional[OutcomeSnapshot] = None


class AppendEventRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    turn_index: int = Field(ge=0)
    event_type: EventType
    actor_id: Optional[str] = None
    target_id: Optional[str] = None
    amount: Optional[int] = None
    status_id: Optional[str] = None
    from_tile: Optional[Tuple[int, int]] = None
    to_tile: Optional[Tuple[int, int]] = None
    payload: Dict[str, Any] = Field(default_factory=dict)


class EndCombatResponse(BaseModel):
    combat_session_id: str
    status: str
    outcome: OutcomeSnapshot


# ---- rewards ----


class RewardClaimRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    campaign_id: str
    combat_session_id: str


class RewardClaimResponse(BaseModel):
    ok: bool = True
    already_granted: bool
    rewards: RewardSummary
    warnings: List[str] = Field(default_factory=list)


# ---- presentation ----


class HistoryDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    lines: List[str] = Field(default_factory=list)
    fragments: List[str] = Field(default_factory=list)
    verbs: List[str] = Field(default_factory=list)
    max_lines: int = 20
    similarity_threshold: float = 0.76
    last_tone: Optional[str] = None


class EnemyTraitsDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    aggression: int = Field(default=50, ge=0, le=100)
    discipline: int = Field(default=50, ge=0, le=100)
    intelligence: int = Field(default=50, ge=0, le=100)
    instinct_type: str = "predator"


class PresentationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    history: HistoryDTO = Field(default_factory=HistoryDTO)
    max_lines: int = Field(default=4, ge=1, le=8)
    tone: ToneChoice = "minimalist"
    since: Optional[str] = None
    seed_key: Optional[str] = None
    enemy_traits: Dict[str, EnemyTraitsDTO] = Field(default_factory=dict)
    ai_lines: List[str] = Field(default_factory=list)


class NarrationLineOut(BaseModel):
    text: str
    template: str
    content_hash: str


class PresentationResponse(BaseModel):
    lines: List[NarrationLineOut]
    effects: List[VisualEffect]
    history: HistoryDTO
    cursor: Optional[str] = None
    tone: str
    used_fallback: bool = False
