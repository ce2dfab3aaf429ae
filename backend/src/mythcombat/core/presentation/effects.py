from __future__ import annotations

from typing import Literal, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from mythcombat.core.presentation.normalize import NormalizedEvent, Tile

EffectKind = Literal[
    "move_trail",
    "attack_windup",
    "hit_impact",
    "heal_impact",
    "miss_indicator",
    "status_apply",
    "status_apply_multi",
    "status_tick",
    "barrier_gain",
    "barrier_break",
    "death_burst",
    "turn_start",
    "turn_end",
]

DURATION_MS: dict[str, int] = {
    "move_trail": 820,
    "attack_windup": 240,
    "hit_impact": 320,
    "heal_impact": 360,
    "miss_indicator": 280,
    "status_apply": 420,
    "status_apply_multi": 520,
    "status_tick": 300,
    "barrier_gain": 420,
    "barrier_break": 380,
    "death_burst": 520,
    "turn_start": 260,
    "turn_end": 240,
}

CRIT_THRESHOLD = 50
MAX_EFFECTS = 80
BARRIER_STATUSES = frozenset({"barrier", "shield", "ward", "guard"})


class VisualEffect(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: EffectKind
    seed_key: str
    tick: int
    created_at: int
    event_id: str
    anchor_entity_id: Optional[str] = None
    anchor_tile: Optional[Tuple[int, int]] = None
    magnitude: int = 0
    style_tags: Tuple[str, ...] = ()
    duration_ms: int = 300
    meta: dict[str, int] = Field(default_factory=dict)

    @property
    def sort_key(self) -> tuple[int, int, str]:
        return (self.tick, self.created_at, self.event_id)


def _effect(
    kind: str,
    events: Sequence[NormalizedEvent],
    *,
    anchor: Optional[str],
    tile: Optional[Tile],
    magnitude: int = 0,
    tags: Sequence[str] = (),
    meta: Optional[dict[str, int]] = None,
) -> VisualEffect:
    first = events[0]
    return VisualEffect(
        kind=kind,  # type: ignore[arg-type]
        seed_key="|".join(e.id for e in events),
        tick=first.turn_index,
        created_at=first.created_at,
        event_id=first.id,
        anchor_entity_id=anchor,
        anchor_tile=tile,
        magnitude=magnitude,
        style_tags=tuple(tags),
        duration_ms=DURATION_MS[kind],
        meta=meta or {},
    )


def build_visual_effects(
    events: Sequence[NormalizedEvent],
    positions: Optional[Mapping[str, Tile]] = None,
) -> list[VisualEffect]:
    """Grouped effect descriptors for prepared (deduped, sorted) events."""
    pos: dict[str, Tile] = dict(positions or {})
    damage: dict[tuple, list[NormalizedEvent]] = {}
    status: dict[tuple, list[NormalizedEvent]] = {}
    out: list[VisualEffect] = []

    def on(kind: str, ev: NormalizedEvent, entity: Optional[str], **kw) -> None:
        tile = kw.pop("tile", pos.get(entity) if entity else None)
        out.append(_effect(kind, [ev], anchor=entity, tile=tile, **kw))

    for ev in events:
        et = ev.event_type
        amount = max(0, ev.amount or 0)

        if et == "damage":
            key = (ev.turn_index, ev.actor_id, ev.target_id)
            damage.setdefault(key, []).append(ev)
        elif et == "status_applied":
            sid = (ev.status_id or "").lower()
            if sid in BARRIER_STATUSES:
                on("barrier_gain", ev, ev.target_id, tags=[sid])
            else:
                status.setdefault((ev.turn_index, ev.target_id), []).append(ev)
        elif et == "moved":
            dest = ev.to_tile
            start = ev.from_tile or (pos.get(ev.actor_id) if ev.actor_id else None)
            dist = ev.amount
            if dist is None and dest is not None and start is not None:
                dist = max(abs(dest[0] - start[0]), abs(dest[1] - start[1]))
            on("move_trail", ev, ev.actor_id, tile=dest, magnitude=max(0, dist or 0))
            if ev.actor_id and dest is not None:
                pos[ev.actor_id] = dest
        elif et == "miss":
            roll = ev.payload.get("roll_d20")
            need = ev.payload.get("required_roll")
            meta = {}
            if isinstance(roll, int) and isinstance(need, int):
                meta = {"roll": roll, "threshold": need}
            on("miss_indicator", ev, ev.target_id, meta=meta)
        elif et in ("healed", "power_gain"):
            tags = ["power"] if et == "power_gain" else ["hp"]
            on("heal_impact", ev, ev.target_id or ev.actor_id, magnitude=amount, tags=tags)
        elif et == "power_drain":
            on("hit_impact", ev, ev.target_id, magnitude=amount, tags=["drain"])
        elif et == "status_tick":
            tags = [ev.status_id] if ev.status_id else []
            on("status_tick", ev, ev.target_id, magnitude=amount, tags=tags)
        elif et == "armor_shred":
            on("barrier_break", ev, ev.target_id, magnitude=amount)
        elif et == "death":
            on("death_burst", ev, ev.target_id)
        elif et in ("turn_start", "turn_end"):
            on(et, ev, ev.actor_id)
        elif et == "skill_used":
            style = ev.payload.get("style_tags")
            element = style.get("element") if isinstance(style, Mapping) else None
            tags = ["skill", element] if isinstance(element, str) and element else ["skill"]
            on("attack_windup", ev, ev.actor_id, tags=tags)

    for group in damage.values():
        first = group[0]
        total = sum(max(0, e.amount or 0) for e in group)
        tags: list[str] = []
        crit = any(e.payload.get("is_critical") is True for e in group)
        if total >= CRIT_THRESHOLD or crit:
            tags.append("crit")
        if len(group) > 1:
            tags.append("multi")
        actor_tile = pos.get(first.actor_id) if first.actor_id else None
        target_tile = pos.get(first.target_id) if first.target_id else None
        out.append(
            _effect("attack_windup", group, anchor=first.actor_id, tile=actor_tile)
        )
        out.append(
            _effect(
                "hit_impact",
                group,
                anchor=first.target_id,
                tile=target_tile,
                magnitude=total,
                tags=tags,
                meta={"hits": len(group)},
            )
        )

    for group in status.values():
        first = group[0]
        ids = sorted({e.status_id or "status" for e in group})
        kind = "status_apply_multi" if len(ids) > 1 else "status_apply"
        target_tile = pos.get(first.target_id) if first.target_id else None
        out.append(
            _effect(kind, group, anchor=first.target_id, tile=target_tile, tags=ids)
        )

    out.sort(key=lambda e: e.sort_key)
    return out[-MAX_EFFECTS:]
