from __future__ import annotations

from dataclasses import asdict, is_dataclass
from typing import Any, cast

from mythcombat.core.engine.events import ActionEvent
from mythcombat.core.engine.state import (
    STAT_KEYS,
    CombatantState,
    Pos,
    StatBlock,
    StatusRef,
)
from mythcombat.db.models import ActionEventRow, CombatantRow

# ---------- helpers ----------


def _jsonable(v: Any) -> Any:
    """JSON-friendly copy (tuple->list, dataclass/pydantic->dict)."""
    if v is None or isinstance(v, (str, int, float, bool)):
        return v
    if isinstance(v, (list, tuple, set)):
        return [_jsonable(x) for x in v]
    if isinstance(v, dict):
        return {str(k): _jsonable(val) for k, val in v.items()}

    md = getattr(v, "model_dump", None)
    if callable(md):
        return _jsonable(md())

    if is_dataclass(v) and not isinstance(v, type):
        return _jsonable(asdict(cast(Any, v)))

    raise TypeError(f"not JSON-serializable: {type(v).__name__}")


def _as_pos(v: Any) -> Pos:
    if isinstance(v, (tuple, list)) and len(v) == 2:
        return (int(v[0]), int(v[1]))
    if isinstance(v, dict) and "x" in v and "y" in v:
        return (int(v["x"]), int(v["y"]))
    return (0, 0)


def _as_tile(v: Any) -> Pos | None:
    return None if v is None else _as_pos(v)


def _as_statuses(v: Any) -> list[StatusRef]:
    out: list[StatusRef] = []
    for raw in v or []:
        if isinstance(raw, StatusRef):
            out.append(raw)
        elif isinstance(raw, dict) and raw.get("id"):
            out.append(StatusRef(id=str(raw["id"]), expires_turn=raw.get("expires_turn")))
        elif isinstance(raw, str):
            out.append(StatusRef(id=raw))
    return out


# ---------- Combatant codec ----------


def combatant_to_row(session_id: str, c: CombatantState) -> CombatantRow:
    row = CombatantRow(session_id=session_id, id=c.id)
    update_row_from_combatant(row, c)
    return row


def update_row_from_combatant(row: CombatantRow, c: CombatantState) -> None:
    row.name = c.name
    row.entity_type = c.entity_type
    row.player_id = c.player_id
    row.character_id = c.character_id
    row.level = c.level
    row.x, row.y = c.position
    for k in STAT_KEYS:
        setattr(row, k, getattr(c.stats, k))
    row.hp = c.hp
    row.hp_max = c.hp_max
    row.power = c.power
    row.power_max = c.power_max
    row.armor = c.armor
    row.resist = c.resist
    row.weapon_power = c.weapon_power
    row.armor_power = c.armor_power
    row.statuses_json = _jsonable(c.statuses)
    row.initiative = c.initiative
    row.is_alive = c.is_alive


def combatant_from_row(row: CombatantRow) -> CombatantState:
    return CombatantState(
        id=row.id,
        name=row.name,
        entity_type=cast(Any, row.entity_type),
        player_id=row.player_id,
        character_id=row.character_id,
        level=row.level,
        position=(row.x, row.y),
        stats=StatBlock(**{k: getattr(row, k) for k in STAT_KEYS}),
        hp=row.hp,
        hp_max=row.hp_max,
        power=row.power,
        power_max=row.power_max,
        armor=row.armor,
        resist=row.resist,
        weapon_power=row.weapon_power,
        armor_power=row.armor_power,
        statuses=_as_statuses(row.statuses_json),
        initiative=row.initiative,
        is_alive=bool(row.is_alive),
    )


# ---------- ActionEvent codec ----------


def event_from_row(row: ActionEventRow) -> ActionEvent:
    return ActionEvent(
        id=row.id,
        session_id=row.session_id,
        turn_index=row.turn_index,
        event_type=cast(Any, row.event_type),
        actor_id=row.actor_id,
        target_id=row.target_id,
        amount=row.amount,
        status_id=row.status_id,
        from_tile=_as_tile(row.from_tile),
        to_tile=_as_tile(row.to_tile),
        created_at=int(row.created_at),
        payload=dict(row.payload or {}),
    )


def event_to_row(ev: ActionEvent, *, dedupe_key: str | None = None) -> ActionEventRow:
    return ActionEventRow(
        id=ev.id,
        session_id=ev.session_id,
        turn_index=ev.turn_index,
        event_type=ev.event_type,
        actor_id=ev.actor_id,
        target_id=ev.target_id,
        amount=ev.amount,
        status_id=ev.status_id,
        from_tile=_jsonable(ev.from_tile),
        to_tile=_jsonable(ev.to_tile),
        created_at=ev.created_at,
        payload=_jsonable(ev.payload),
        dedupe_key=dedupe_key,
    )
