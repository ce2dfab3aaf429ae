from __future__ import annotations

import math
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from mythcombat.core.engine.formulas import clamp
from mythcombat.core.engine.rng import SeededValueSource, hash32

Rarity = Literal["common", "magical", "unique", "legendary", "mythic", "unhinged"]

# (exclusive upper bound, rarity); anything at or above the last bound is unhinged
RARITY_THRESHOLDS: tuple[tuple[float, Rarity], ...] = (
    (0.55, "common"),
    (0.82, "magical"),
    (0.94, "unique"),
    (0.985, "legendary"),
    (0.998, "mythic"),
)

SLOT_POOL: tuple[str, ...] = (
    "weapon",
    "armor",
    "helm",
    "gloves",
    "boots",
    "belt",
    "amulet",
    "ring",
    "trinket",
)

SLOT_STAT_FAMILY: dict[str, str] = {
    "weapon": "offense",
    "gloves": "offense",
    "armor": "defense",
    "belt": "defense",
    "helm": "control",
    "boots": "mobility",
    "amulet": "support",
    "ring": "utility",
    "trinket": "utility",
}

# flat power bonus each slot carries next to its stat bonus
SLOT_FLAT_BONUS: dict[str, str] = {
    "weapon": "weapon_power",
    "gloves": "weapon_power",
    "armor": "armor_power",
    "helm": "armor_power",
    "boots": "armor_power",
    "belt": "hp_max",
    "amulet": "power_max",
    "ring": "power_max",
    "trinket": "resist",
}

PREFIXES = ("Ash", "Iron", "Dread", "Storm", "Velvet", "Blood", "Wyrm", "Night")
SUFFIXES = ("Edge", "Ward", "Pulse", "Maw", "Spur", "Bite", "Halo", "Crown")
SLOT_NOUNS: dict[str, str] = {
    "weapon": "Blade",
    "armor": "Mail",
    "helm": "Helm",
    "gloves": "Grips",
    "boots": "Treads",
    "belt": "Girdle",
    "amulet": "Charm",
    "ring": "Band",
    "trinket": "Token",
}

DRAWBACKS = (
    "hums loudly when you try to hide",
    "drinks a little of your blood each dawn",
    "whispers your plans to the nearest rival",
    "grows heavier with every retreat",
)

_HIGH_TIERS = {"legendary", "mythic", "unhinged"}


class LootItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    item_id: str
    name: str
    rarity: Rarity
    slot: str
    power: int
    stat_mods: dict[str, int] = Field(default_factory=dict)
    bind_policy: Literal["unbound", "bind_on_equip"] = "unbound"
    drawback: Optional[str] = None


def rarity_for_roll(roll: float) -> Rarity:
    for bound, rarity in RARITY_THRESHOLDS:
        if roll < bound:
            return rarity
    return "unhinged"


def loot_count(defeated_npcs: int) -> int:
    return max(1, min(3, math.ceil(max(0, defeated_npcs) / 2) or 1))


def loot_seed_for(seed: int, combat_session_id: str, player_id: str) -> str:
    return f"loot:{seed}:{combat_session_id}:{player_id}"


def roll_item(loot_seed: str, index: int, level: int) -> LootItem:
    src = SeededValueSource(loot_seed)
    rarity = rarity_for_roll(src.unit(f"rarity:{index}"))

    slot = SLOT_POOL[math.floor(src.unit(f"slot:{index}") * len(SLOT_POOL))]
    power = clamp(level * 5 + math.floor(src.unit(f"power:{index}") * 15), 4, 500)

    family = SLOT_STAT_FAMILY[slot]
    stat_mods = {
        family: max(1, power // 10),
        SLOT_FLAT_BONUS[slot]: max(1, power // 5),
    }

    name = " ".join(
        (
            src.pick(PREFIXES, f"name:a:{index}"),
            src.pick(SUFFIXES, f"name:b:{index}"),
            SLOT_NOUNS[slot],
        )
    )

    high = rarity in _HIGH_TIERS
    return LootItem(
        item_id=f"loot-{hash32(f'{loot_seed}:{index}'):08x}",
        name=name,
        rarity=rarity,
        slot=slot,
        power=power,
        stat_mods=stat_mods,
        bind_policy="bind_on_equip" if rarity not in ("common", "magical") else "unbound",
        drawback=src.pick(DRAWBACKS, f"drawback:{index}") if high else None,
    )


def roll_loot(loot_seed: str, *, count: int, level: int) -> list[LootItem]:
    return [roll_item(loot_seed, i, level) for i in range(count)]
