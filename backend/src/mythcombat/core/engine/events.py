from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from mythcombat.core.engine.progression import RewardSummary

EventType = Literal[
    "damage",
    "moved",
    "miss",
    "healed",
    "power_gain",
    "power_drain",
    "status_applied",
    "status_tick",
    "status_expired",
    "armor_shred",
    "death",
    "skill_used",
    "item_used",
    "round_start",
    "turn_start",
    "turn_end",
    "reward_granted",
]

Tile = Tuple[int, int]


# ---------- payloads: one model per event_type ----------


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # display hints; the projector falls back to ids when absent
    actor_name: Optional[str] = None
    target_name: Optional[str] = None
    actor_alive: Optional[bool] = None


class DamagePayload(_Payload):
    event_type: Literal["damage"] = "damage"
    damage_type: Optional[str] = None
    is_critical: bool = False
    hp_after: Optional[int] = None


class MovedPayload(_Payload):
    event_type: Literal["moved"] = "moved"
    tiles_used: Optional[int] = None
    forced: bool = False


class MissPayload(_Payload):
    event_type: Literal["miss"] = "miss"
    roll_d20: Optional[int] = None
    required_roll: Optional[int] = None


class HealedPayload(_Payload):
    event_type: Literal["healed"] = "healed"
    hp_after: Optional[int] = None


class PowerGainPayload(_Payload):
    event_type: Literal["power_gain"] = "power_gain"
    power_after: Optional[int] = None


class PowerDrainPayload(_Payload):
    event_type: Literal["power_drain"] = "power_drain"
    power_after: Optional[int] = None


class StatusAppliedPayload(_Payload):
    event_type: Literal["status_applied"] = "status_applied"
    status_name: Optional[str] = None
    expires_turn: Optional[int] = None
    stacks: int = 1


class StatusTickPayload(_Payload):
    event_type: Literal["status_tick"] = "status_tick"
    status_name: Optional[str] = None


class StatusExpiredPayload(_Payload):
    event_type: Literal["status_expired"] = "status_expired"
    status_name: Optional[str] = None


class ArmorShredPayload(_Payload):
    event_type: Literal["armor_shred"] = "armor_shred"
    armor_after: Optional[int] = None


class DeathPayload(_Payload):
    event_type: Literal["death"] = "death"
    cause: Optional[str] = None


class SpellStyleTags(BaseModel):
    model_config = ConfigDict(extra="forbid")

    element: str = "arcane"
    mood: str = "volatile"
    visual_signature: str = "shockwave"
    impact_verb: str = "strike"


class SkillPresentation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    spell_base: str = ""
    rank: int = 1
    rarity: Literal["common", "magical", "unique", "legendary", "mythic", "unhinged"] = "common"
    escalation_level: int = 0


class SkillUsedPayload(_Payload):
    event_type: Literal["skill_used"] = "skill_used"
    skill_id: str
    skill_name: Optional[str] = None
    presentation: Optional[SkillPresentation] = None
    style_tags: Optional[SpellStyleTags] = None


class ItemUsedPayload(_Payload):
    event_type: Literal["item_used"] = "item_used"
    item_id: str
    item_name: Optional[str] = None


class InitiativeSnapshotEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    combatant_id: str
    name: str
    initiative: int


class RoundStartPayload(_Payload):
    event_type: Literal["round_start"] = "round_start"
    round_index: int = 0
    initiative_snapshot: list[InitiativeSnapshotEntry] = Field(default_factory=list)


class TurnStartPayload(_Payload):
    event_type: Literal["turn_start"] = "turn_start"
    actor_combatant_id: str


class TurnEndPayload(_Payload):
    event_type: Literal["turn_end"] = "turn_end"
    actor_combatant_id: Optional[str] = None


class RewardGrantedPayload(_Payload):
    event_type: Literal["reward_granted"] = "reward_granted"
    player_id: str
    character_id: str
    rewards: RewardSummary


EventPayload = Annotated[
    Union[
        DamagePayload,
        MovedPayload,
        MissPayload,
        HealedPayload,
        PowerGainPayload,
        PowerDrainPayload,
        StatusAppliedPayload,
        StatusTickPayload,
        StatusExpiredPayload,
        ArmorShredPayload,
        DeathPayload,
        SkillUsedPayload,
        ItemUsedPayload,
        RoundStartPayload,
        TurnStartPayload,
        TurnEndPayload,
        RewardGrantedPayload,
    ],
    Field(discriminator="event_type"),
]

_payload_adapter: TypeAdapter[Any] = TypeAdapter(EventPayload)


def validate_payload(event_type: str, payload: dict[str, Any] | None) -> dict[str, Any]:
    """Validates a payload against its event_type model; raises pydantic.ValidationError."""
    model = _payload_adapter.validate_python({**(payload or {}), "event_type": event_type})
    return model.model_dump(mode="json", exclude_none=True, exclude={"event_type"})


# ---------- envelopes ----------


class EventDraft(BaseModel):
    """An event not yet appended; the log assigns id and created_at."""

    model_config = ConfigDict(extra="forbid")

    turn_index: int = Field(ge=0)
    event_type: EventType
    actor_id: Optional[str] = None
    target_id: Optional[str] = None
    amount: Optional[int] = None
    status_id: Optional[str] = None
    from_tile: Optional[Tile] = None
    to_tile: Optional[Tile] = None
    payload: dict[str, Any] = Field(default_factory=dict)

    def validated(self) -> "EventDraft":
        return self.model_copy(
            update={"payload": validate_payload(self.event_type, self.payload)}
        )


class ActionEvent(EventDraft):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    session_id: str
    created_at: int

    @property
    def sort_key(self) -> tuple[int, int, str]:
        return (self.turn_index, self.created_at, self.id)

    @property
    def cursor(self) -> str:
        return format_cursor(self.turn_index, self.created_at, self.id)


def format_cursor(turn_index: int, created_at: int, event_id: str) -> str:
    return f"{turn_index}:{created_at}:{event_id}"


def parse_cursor(cursor: str) -> tuple[int, int, str]:
    parts = cursor.split(":", 2)
    if len(parts) != 3:
        raise ValueError(f"malformed cursor: {cursor!r}")
    return int(parts[0]), int(parts[1]), parts[2]


# ---------- constructors ----------


def ev_round_start(
    *, turn_index: int, round_index: int, snapshot: list[InitiativeSnapshotEntry]
) -> EventDraft:
    return EventDraft(
        turn_index=turn_index,
        event_type="round_start",
        payload={
            "round_index": round_index,
            "initiative_snapshot": [s.model_dump() for s in snapshot],
        },
    )


def ev_turn_start(*, turn_index: int, actor_id: str) -> EventDraft:
    return EventDraft(
        turn_index=turn_index,
        event_type="turn_start",
        actor_id=actor_id,
        payload={"actor_combatant_id": actor_id},
    )


def ev_turn_end(*, turn_index: int, actor_id: str) -> EventDraft:
    return EventDraft(
        turn_index=turn_index,
        event_type="turn_end",
        actor_id=actor_id,
        payload={"actor_combatant_id": actor_id},
    )


def ev_damage(
    *,
    turn_index: int,
    actor_id: str,
    target_id: str,
    amount: int,
    is_critical: bool = False,
    damage_type: Optional[str] = None,
) -> EventDraft:
    payload: dict[str, Any] = {"is_critical": is_critical}
    if damage_type:
        payload["damage_type"] = damage_type
    return EventDraft(
        turn_index=turn_index,
        event_type="damage",
        actor_id=actor_id,
        target_id=target_id,
        amount=amount,
        payload=payload,
    )


def ev_death(*, turn_index: int, target_id: str, actor_id: Optional[str] = None) -> EventDraft:
    return EventDraft(
        turn_index=turn_index,
        event_type="death",
        actor_id=actor_id,
        target_id=target_id,
    )


def ev_reward_granted(
    *,
    turn_index: int,
    player_id: str,
    character_id: str,
    actor_id: Optional[str],
    rewards: RewardSummary,
) -> EventDraft:
    return EventDraft(
        turn_index=turn_index,
        event_type="reward_granted",
        actor_id=actor_id,
        amount=rewards.xp_gained,
        payload={
            "player_id": player_id,
            "character_id": character_id,
            "rewards": rewards.model_dump(mode="json"),
        },
    )
