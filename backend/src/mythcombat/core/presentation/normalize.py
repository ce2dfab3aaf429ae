from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Tuple

from mythcombat.core.adapters.mapper import as_dict

logger = logging.getLogger(__name__)

Tile = Tuple[int, int]


@dataclass(frozen=True)
class NormalizedEvent:
    id: str
    turn_index: int
    created_at: int
    event_type: str
    actor_id: Optional[str]
    actor_name: str
    target_id: Optional[str]
    target_name: str
    amount: Optional[int]
    status_id: Optional[str]
    from_tile: Optional[Tile]
    to_tile: Optional[Tile]
    actor_alive: bool = True
    payload: Mapping[str, Any] = field(default_factory=dict)

    @property
    def signature(self) -> tuple:
        return (
            self.turn_index,
            self.event_type,
            self.actor_id,
            self.target_id,
            self.amount,
            self.status_id,
            self.to_tile,
        )


def _str(v: Any) -> Optional[str]:
    if isinstance(v, str) and v.strip():
        return v.strip()
    return None


def _int(v: Any) -> Optional[int]:
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v == v and v not in (float("inf"), float("-inf")):
        return int(v)
    return None


def _tile(v: Any) -> Optional[Tile]:
    if isinstance(v, (list, tuple)) and len(v) == 2:
        x, y = _int(v[0]), _int(v[1])
        if x is not None and y is not None:
            return (x, y)
    if isinstance(v, Mapping):
        x, y = _int(v.get("x")), _int(v.get("y"))
        if x is not None and y is not None:
            return (x, y)
    return None


def id_label(entity_id: Optional[str], fallback: str) -> str:
    if not entity_id:
        return fallback
    tail = entity_id.split(":")[-1]
    return f"Unit {tail[:4]}"


def normalize_event(
    raw: Any, names: Optional[Mapping[str, str]] = None
) -> Optional[NormalizedEvent]:
    """Returns None for records that carry no usable event_type."""
    d = as_dict(raw)
    payload = d.get("payload")
    payload = payload if isinstance(payload, Mapping) else {}
    names = names or {}

    event_type = _str(d.get("event_type"))
    if event_type is None:
        return None

    actor_id = (
        _str(d.get("actor_id"))
        or _str(payload.get("source_combatant_id"))
        or _str(payload.get("actor_combatant_id"))
    )
    target_id = _str(d.get("target_id")) or _str(payload.get("target_combatant_id"))

    actor_name = (
        _str(payload.get("actor_name"))
        or _str(payload.get("source_name"))
        or (names.get(actor_id) if actor_id else None)
        or id_label(actor_id, "Unknown")
    )
    target_name = (
        _str(payload.get("target_name"))
        or (names.get(target_id) if target_id else None)
        or id_label(target_id, "the target")
    )

    amount = _int(d.get("amount"))
    if amount is None:
        for key in ("damage_to_hp", "amount", "final_damage", "tiles_used"):
            amount = _int(payload.get(key))
            if amount is not None:
                break

    status = payload.get("status")
    status_id = (
        _str(d.get("status_id"))
        or (_str(status.get("id")) if isinstance(status, Mapping) else None)
        or _str(payload.get("status_id"))
    )

    return NormalizedEvent(
        id=str(d.get("id") or ""),
        turn_index=_int(d.get("turn_index")) or 0,
        created_at=_int(d.get("created_at")) or 0,
        event_type=event_type,
        actor_id=actor_id,
        actor_name=actor_name,
        target_id=target_id,
        target_name=target_name,
        amount=amount,
        status_id=status_id,
        from_tile=_tile(d.get("from_tile")),
        to_tile=_tile(d.get("to_tile")) or _tile(payload.get("to")),
        actor_alive=payload.get("actor_alive") is not False,
        payload=payload,
    )


def normalize_all(
    events: Iterable[Any], names: Optional[Mapping[str, str]] = None
) -> list[NormalizedEvent]:
    out: list[NormalizedEvent] = []
    for raw in events:
        try:
            ev = normalize_event(raw, names)
        except (TypeError, ValueError, KeyError, AttributeError):
            logger.debug("presentation.malformed_event", exc_info=True)
            continue
        if ev is None:
            logger.debug("presentation.malformed_event missing event_type")
            continue
        out.append(ev)
    return out


def dedupe(events: Iterable[NormalizedEvent]) -> list[NormalizedEvent]:
    seen: set[tuple] = set()
    out: list[NormalizedEvent] = []
    for ev in events:
        if ev.signature in seen:
            continue
        seen.add(ev.signature)
        out.append(ev)
    return out


def sort_events(events: Iterable[NormalizedEvent]) -> list[NormalizedEvent]:
    # stable: equal (turn_index, created_at) keep arrival order
    return sorted(events, key=lambda e: (e.turn_index, e.created_at))


def suppress_post_death(events: Iterable[NormalizedEvent]) -> list[NormalizedEvent]:
    dead: set[str] = set()
    out: list[NormalizedEvent] = []
    for ev in events:
        if ev.event_type != "death":
            if not ev.actor_alive:
                continue
            if ev.actor_id is not None and ev.actor_id in dead:
                continue
        elif ev.target_id is not None:
            dead.add(ev.target_id)
        out.append(ev)
    return out


def prepare(
    events: Iterable[Any], names: Optional[Mapping[str, str]] = None
) -> list[NormalizedEvent]:
    """normalize, dedupe by signature, sort, then drop actions of the dead."""
    return suppress_post_death(sort_events(dedupe(normalize_all(events, names))))
