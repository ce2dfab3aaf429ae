"""Pure construction of a combat session's opening state.

Nothing here touches storage or the clock: the same seed and character
snapshot always yield the same combatants, turn order and prologue.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from mythcombat.core.engine.events import (
    EventDraft,
    InitiativeSnapshotEntry,
    ev_round_start,
    ev_turn_start,
)
from mythcombat.core.engine.formulas import (
    DEFAULT_FORMULAS,
    INITIATIVE_MAX,
    ResourceFormulas,
    clamp,
    clamp_stat,
    derive_stats,
    flat_bonuses,
    sum_equipment_bonuses,
)
from mythcombat.core.engine.rng import SeededValueSource
from mythcombat.core.engine.state import (
    CharacterSnapshot,
    CombatantState,
    EncounterSetup,
    Pos,
    StatBlock,
    TurnOrderEntry,
)

GRID_WIDTH = 12
GRID_HEIGHT = 8
PLAYER_SPAWN: Pos = (1, 1)

# signed jitter range applied to an enemy's base difficulty, per stat
ENEMY_JITTER: dict[str, Tuple[int, int]] = {
    "offense": (-5, 15),
    "defense": (-5, 15),
    "mobility": (-5, 10),
    "control": (-10, 10),
    "support": (-10, 10),
    "utility": (-10, 10),
}


@dataclass(frozen=True)
class EncounterProfile:
    name_template: str = "Ink Ghoul {n}"
    enemy_hp: int = 100
    enemy_power: int = 0


ENCOUNTER_PROFILES: dict[str, EncounterProfile] = {
    "encounter": EncounterProfile(),
    "elite": EncounterProfile(name_template="Ink Warden {n}", enemy_hp=160, enemy_power=30),
}


def profile_for(reason: str | None) -> EncounterProfile:
    return ENCOUNTER_PROFILES.get(reason or "encounter", ENCOUNTER_PROFILES["encounter"])


def build_player(
    snapshot: CharacterSnapshot,
    seed: int,
    formulas: ResourceFormulas = DEFAULT_FORMULAS,
) -> CombatantState:
    bonuses = sum_equipment_bonuses(snapshot.equipment)
    stats = derive_stats(snapshot.stats, bonuses)
    flat = flat_bonuses(bonuses)

    hp_max = max(1, formulas.hp_max(snapshot.level, stats) + flat["hp_max"])
    power_max = max(0, formulas.power_max(snapshot.level, stats) + flat["power_max"])

    src = SeededValueSource(seed)
    initiative = clamp(
        stats.mobility + src.value(f"init:player:{snapshot.character_id}") % 26,
        0,
        INITIATIVE_MAX,
    )

    return CombatantState(
        id=f"player:{snapshot.character_id}",
        name=snapshot.name,
        entity_type="player",
        player_id=snapshot.player_id,
        character_id=snapshot.character_id,
        level=snapshot.level,
        position=PLAYER_SPAWN,
        stats=stats,
        hp=hp_max,
        hp_max=hp_max,
        power=power_max,
        power_max=power_max,
        armor=flat["armor"],
        resist=flat["resist"],
        weapon_power=flat["weapon_power"],
        armor_power=flat["armor_power"],
        initiative=initiative,
    )


def enemy_count(seed: int) -> int:
    return 2 + SeededValueSource(seed).value("enemy_count") % 3


def build_enemies(
    seed: int, profile: EncounterProfile = ENCOUNTER_PROFILES["encounter"]
) -> List[CombatantState]:
    src = SeededValueSource(seed)
    out: List[CombatantState] = []
    for i in range(enemy_count(seed)):
        base = 35 + src.value(f"enemy:{i}:base") % 25
        stats = StatBlock(
            **{
                k: clamp_stat(base + src.between(f"enemy:{i}:{k}", lo, hi))
                for k, (lo, hi) in ENEMY_JITTER.items()
            }
        )
        initiative = clamp(
            stats.mobility + src.value(f"enemy:{i}:init") % 26, 0, INITIATIVE_MAX
        )
        x = 8 + src.between(f"enemy:{i}:x", 0, 2)
        y = min(GRID_HEIGHT - 1, 1 + i)
        out.append(
            CombatantState(
                id=f"npc:{i + 1}",
                name=profile.name_template.format(n=i + 1),
                entity_type="npc",
                position=(x, y),
                stats=stats,
                hp=profile.enemy_hp,
                hp_max=profile.enemy_hp,
                power=profile.enemy_power,
                power_max=profile.enemy_power,
                initiative=initiative,
            )
        )
    return out


def order_turns(combatants: List[CombatantState]) -> List[TurnOrderEntry]:
    ranked = sorted(combatants, key=lambda c: (-c.initiative, c.name))
    return [TurnOrderEntry(turn_index=i, combatant_id=c.id) for i, c in enumerate(ranked)]


def blocked_tiles_for(seed: int, occupied: List[Pos]) -> List[Pos]:
    src = SeededValueSource(seed)
    taken = set(occupied)
    tiles: List[Pos] = []
    for i in range(src.between("walls:count", 3, 6)):
        tile = (src.between(f"walls:{i}:x", 2, 7), src.between(f"walls:{i}:y", 1, 4))
        if tile in taken:
            continue
        taken.add(tile)
        tiles.append(tile)
    return tiles


def build_encounter(
    *,
    seed: int,
    snapshot: CharacterSnapshot,
    reason: str | None = None,
    formulas: ResourceFormulas = DEFAULT_FORMULAS,
) -> EncounterSetup:
    player = build_player(snapshot, seed, formulas)
    enemies = build_enemies(seed, profile_for(reason))
    combatants = [player, *enemies]
    turn_order = order_turns(combatants)
    return EncounterSetup(
        seed=seed,
        combatants=combatants,
        turn_order=turn_order,
        blocked_tiles=blocked_tiles_for(seed, [c.position for c in combatants]),
    )


def prologue(setup: EncounterSetup) -> List[EventDraft]:
    """round_start then turn_start for the first actor."""
    by_id = {c.id: c for c in setup.combatants}
    snapshot = [
        InitiativeSnapshotEntry(
            combatant_id=e.combatant_id,
            name=by_id[e.combatant_id].name,
            initiative=by_id[e.combatant_id].initiative,
        )
        for e in setup.turn_order
    ]
    first = setup.turn_order[0].combatant_id
    return [
        ev_round_start(turn_index=0, round_index=0, snapshot=snapshot),
        ev_turn_start(turn_index=0, actor_id=first),
    ]
