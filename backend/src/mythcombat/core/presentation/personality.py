from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional

from mythcombat.core.presentation.word_banks import ENEMY_VOICE

Instinct = Literal["pack", "duelist", "predator", "ambush", "guardian", "chaotic"]
INSTINCTS = ("pack", "duelist", "predator", "ambush", "guardian", "chaotic")


@dataclass(frozen=True)
class EnemyTraits:
    aggression: int = 50
    discipline: int = 50
    intelligence: int = 50
    instinct_type: Instinct = "predator"


def _trait(raw: Any) -> int:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 50
    if not math.isfinite(value):
        return 50
    return max(0, min(100, int(value)))


def traits_from(raw: Optional[Mapping[str, Any]]) -> EnemyTraits:
    raw = raw or {}
    instinct = raw.get("instinct_type")
    return EnemyTraits(
        aggression=_trait(raw.get("aggression", 50)),
        discipline=_trait(raw.get("discipline", 50)),
        intelligence=_trait(raw.get("intelligence", 50)),
        instinct_type=instinct if instinct in INSTINCTS else "predator",
    )


def voice_mode(traits: EnemyTraits, tone: str = "tactical") -> str:
    if traits.instinct_type == "pack":
        return "pack"
    if traits.instinct_type == "chaotic":
        return "chaotic"
    if tone == "whimsical":
        return "whimsical"
    if traits.aggression >= 70 and traits.intelligence < 45:
        return "aggressive"
    if traits.intelligence >= 65 or traits.discipline >= 68:
        return "cunning"
    if traits.aggression >= 65:
        return "brutal"
    return "aggressive"


def personality_pool(traits: EnemyTraits, tone: str = "tactical") -> tuple[str, ...]:
    return ENEMY_VOICE.get(voice_mode(traits, tone), ENEMY_VOICE["aggressive"])
