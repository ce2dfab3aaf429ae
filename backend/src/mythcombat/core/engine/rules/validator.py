from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from mythcombat.core.engine.events import EventDraft
from mythcombat.core.engine.state import CombatantState

# appended by the runtime itself, never through the gameplay path
RESERVED_EVENT_TYPES = frozenset({"reward_granted", "round_start"})

# events whose target must be a known combatant
TARGETED_EVENT_TYPES = frozenset(
    {
        "damage",
        "healed",
        "power_drain",
        "status_applied",
        "status_tick",
        "status_expired",
        "armor_shred",
        "death",
    }
)

AMOUNT_EVENT_TYPES = frozenset(
    {"damage", "healed", "power_gain", "power_drain", "armor_shred", "status_tick"}
)

STATUS_EVENT_TYPES = frozenset({"status_applied", "status_tick", "status_expired"})


@dataclass
class RuleViolation:
    code: str
    message: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationResult:
    ok: bool
    errors: List[RuleViolation] = field(default_factory=list)


def _err(code: str, message: str, **meta: Any) -> ValidationResult:
    return ValidationResult(
        ok=False, errors=[RuleViolation(code=code, message=message, meta=meta)]
    )


def validate_event(
    combatants: Mapping[str, CombatantState],
    draft: EventDraft,
    *,
    last_turn_index: Optional[int] = None,
) -> ValidationResult:
    if draft.event_type in RESERVED_EVENT_TYPES:
        return _err(
            "RESERVED_EVENT_TYPE",
            f"{draft.event_type} events are appended by the runtime",
            event_type=draft.event_type,
        )

    if last_turn_index is not None and draft.turn_index < last_turn_index:
        return _err(
            "TURN_INDEX_REGRESSION",
            "turn_index must not go backwards",
            turn_index=draft.turn_index,
            last_turn_index=last_turn_index,
        )

    if draft.actor_id is not None and draft.actor_id not in combatants:
        return _err("UNKNOWN_ACTOR", "Actor is not in this combat", actor_id=draft.actor_id)

    if draft.event_type in TARGETED_EVENT_TYPES:
        if draft.target_id is None:
            return _err("TARGET_REQUIRED", f"{draft.event_type} needs a target_id")
        if draft.target_id not in combatants:
            return _err(
                "UNKNOWN_TARGET", "Target is not in this combat", target_id=draft.target_id
            )
    elif draft.target_id is not None and draft.target_id not in combatants:
        return _err("UNKNOWN_TARGET", "Target is not in this combat", target_id=draft.target_id)

    if draft.event_type in AMOUNT_EVENT_TYPES:
        if draft.amount is None:
            return _err("AMOUNT_REQUIRED", f"{draft.event_type} needs an amount")
        if draft.amount < 0:
            return _err("NEGATIVE_AMOUNT", "amount must be >= 0", amount=draft.amount)

    if draft.event_type in STATUS_EVENT_TYPES and not draft.status_id:
        return _err("STATUS_REQUIRED", f"{draft.event_type} needs a status_id")

    if draft.event_type == "moved" and draft.to_tile is None:
        return _err("TILE_REQUIRED", "moved needs a to_tile")

    if draft.event_type in ("turn_start", "turn_end") and draft.actor_id is None:
        return _err("ACTOR_REQUIRED", f"{draft.event_type} needs an actor_id")

    actor = combatants.get(draft.actor_id) if draft.actor_id else None
    if actor is not None and not actor.is_alive and draft.event_type != "death":
        return _err("ACTOR_DEAD", "A dead combatant cannot act", actor_id=actor.id)

    return ValidationResult(ok=True)
