from __future__ import annotations

import copy
from typing import Dict, Iterable, MutableMapping

from mythcombat.core.engine.events import ActionEvent, EventDraft
from mythcombat.core.engine.state import CombatantState, StatusRef


def _target(
    combatants: MutableMapping[str, CombatantState], ev: EventDraft
) -> CombatantState | None:
    return combatants.get(ev.target_id) if ev.target_id else None


def _actor(
    combatants: MutableMapping[str, CombatantState], ev: EventDraft
) -> CombatantState | None:
    return combatants.get(ev.actor_id) if ev.actor_id else None


def apply_event(
    combatants: MutableMapping[str, CombatantState], ev: EventDraft
) -> list[str]:
    """Folds one event into combatant state in place; returns ids of touched combatants."""
    amount = max(0, ev.amount or 0)
    et = ev.event_type

    if et in ("damage", "status_tick"):
        t = _target(combatants, ev)
        if t is None:
            return []
        t.hp = max(0, t.hp - amount)
        return [t.id]

    if et == "healed":
        t = _target(combatants, ev) or _actor(combatants, ev)
        if t is None or not t.is_alive:
            return []
        t.hp = min(t.hp_max, t.hp + amount)
        return [t.id]

    if et == "power_gain":
        t = _target(combatants, ev) or _actor(combatants, ev)
        if t is None:
            return []
        t.power = min(t.power_max, t.power + amount)
        return [t.id]

    if et == "power_drain":
        t = _target(combatants, ev)
        if t is None:
            return []
        t.power = max(0, t.power - amount)
        return [t.id]

    if et == "armor_shred":
        t = _target(combatants, ev)
        if t is None:
            return []
        t.armor = max(0, t.armor - amount)
        return [t.id]

    if et == "moved":
        a = _actor(combatants, ev)
        if a is None or ev.to_tile is None:
            return []
        a.position = (int(ev.to_tile[0]), int(ev.to_tile[1]))
        return [a.id]

    if et == "status_applied":
        t = _target(combatants, ev)
        if t is None or not ev.status_id:
            return []
        expires = ev.payload.get("expires_turn")
        t.statuses = [s for s in t.statuses if s.id != ev.status_id]
        t.statuses.append(StatusRef(id=ev.status_id, expires_turn=expires))
        return [t.id]

    if et == "status_expired":
        t = _target(combatants, ev)
        if t is None:
            return []
        t.statuses = [s for s in t.statuses if s.id != ev.status_id]
        return [t.id]

    if et == "death":
        t = _target(combatants, ev)
        if t is None:
            return []
        t.hp = 0
        t.is_alive = False
        t.statuses = []
        return [t.id]

    # skill_used, item_used, miss, round/turn markers, reward_granted: no state change
    return []


def replay(
    initial: Iterable[CombatantState], events: Iterable[ActionEvent]
) -> Dict[str, CombatantState]:
    """Rebuilds combatant state from the opening roster plus the ordered log."""
    state = {c.id: copy.deepcopy(c) for c in initial}
    for ev in sorted(events, key=lambda e: e.sort_key):
        apply_event(state, ev)
    return state
