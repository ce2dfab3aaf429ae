from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple

Pos = Tuple[int, int]

EntityType = Literal["player", "npc", "summon"]

STAT_KEYS: Tuple[str, ...] = (
    "offense",
    "defense",
    "control",
    "support",
    "mobility",
    "utility",
)

# unclamped, additive equipment bonuses (floored at 0)
BONUS_KEYS: Tuple[str, ...] = (
    "weapon_power",
    "armor_power",
    "resist",
    "armor",
    "hp_max",
    "power_max",
)


@dataclass
class StatusRef:
    id: str
    expires_turn: Optional[int] = None


@dataclass
class StatBlock:
    offense: int = 0
    defense: int = 0
    control: int = 0
    support: int = 0
    mobility: int = 0
    utility: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {k: getattr(self, k) for k in STAT_KEYS}


@dataclass
class CharacterSnapshot:
    """Read-only view of a player's character as combat start sees it."""

    character_id: str
    player_id: str
    campaign_id: str
    name: str
    level: int = 1
    stats: StatBlock = field(default_factory=StatBlock)
    # stat_mods of each equipped item
    equipment: List[Dict[str, object]] = field(default_factory=list)


@dataclass
class CombatantState:
    id: str
    name: str
    entity_type: EntityType = "npc"

    player_id: Optional[str] = None
    character_id: Optional[str] = None
    level: int = 1

    position: Pos = (0, 0)

    stats: StatBlock = field(default_factory=StatBlock)

    hp: int = 100
    hp_max: int = 100
    power: int = 0
    power_max: int = 0

    armor: int = 0
    resist: int = 0
    weapon_power: int = 0
    armor_power: int = 0

    statuses: List[StatusRef] = field(default_factory=list)

    initiative: int = 0
    is_alive: bool = True


@dataclass(frozen=True)
class TurnOrderEntry:
    turn_index: int
    combatant_id: str


@dataclass
class EncounterSetup:
    seed: int
    combatants: List[CombatantState]
    turn_order: List[TurnOrderEntry]
    blocked_tiles: List[Pos] = field(default_factory=list)

    def combatant(self, combatant_id: str) -> CombatantState:
        for c in self.combatants:
            if c.id == combatant_id:
                return c
        raise KeyError(combatant_id)

