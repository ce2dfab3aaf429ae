from __future__ import annotations

import math

from mythcombat.core.engine.rng import SeededValueSource, pick
from mythcombat.core.presentation.history import compact
from mythcombat.core.presentation.word_banks import (
    ABSURD_SUFFIXES,
    HEROIC_TAILS,
    MYTHIC_BRIDGES,
    SPELL_ABSURD,
    SPELL_CLASSIC,
    SPELL_ENHANCED,
    SPELL_HEROIC,
    SPELL_MYTHIC,
    SPELL_WHIMSY,
)

RARITY_SCORE = {
    "common": 0,
    "magical": 1,
    "unique": 2,
    "legendary": 3,
    "mythic": 4,
    "unhinged": 5,
}


def tier_score(rank: int, rarity: str, escalation_level: int) -> int:
    safe_rank = max(1, math.floor(rank))
    safe_escalation = max(0, math.floor(escalation_level))
    return safe_rank * 2 + RARITY_SCORE.get(rarity, 0) + safe_escalation


def _join(*parts: str | None) -> str:
    return compact(" ".join(p for p in parts if p))


def build_spell_name(
    spell_base: str,
    rank: int,
    rarity: str,
    escalation_level: int,
    seed_key: str = "spell-name",
) -> str:
    """Escalates a base spell name through classic, enhanced, heroic, mythic and absurd tiers."""
    base = compact(spell_base) or pick(SPELL_CLASSIC, "spell:base:fallback")
    score = tier_score(rank, rarity, escalation_level)
    src = SeededValueSource(seed_key)

    whimsy = None
    if score >= 9 and src.unit("whimsy") < 0.14:
        whimsy = src.pick(SPELL_WHIMSY, "whimsy-word")

    if score <= 3:
        lead = None if score <= 1 else src.pick(("Greater", "Grand"), "classic-lead")
        return _join(lead, base)

    if score <= 7:
        return _join(src.pick(SPELL_ENHANCED, "enhanced"), whimsy, base)

    if score <= 11:
        tail = None
        if src.unit("heroic-tail") < 0.45:
            tail = src.pick(HEROIC_TAILS, "heroic-tail-word")
        return _join(src.pick(SPELL_HEROIC, "heroic"), whimsy, base, tail)

    if score <= 15:
        bridge = None
        if src.unit("mythic-bridge") < 0.5:
            bridge = src.pick(MYTHIC_BRIDGES, "mythic-bridge-word")
        return _join(src.pick(SPELL_MYTHIC, "mythic"), whimsy, base, bridge)

    suffix = None
    if src.unit("absurd-suffix") < 0.45:
        suffix = src.pick(ABSURD_SUFFIXES, "absurd-suffix-word")
    return _join(
        src.pick(SPELL_ABSURD, "absurd-a"),
        whimsy,
        src.pick(SPELL_MYTHIC + SPELL_HEROIC, "absurd-core"),
        src.pick(SPELL_ABSURD, "absurd-b"),
        base,
        suffix,
    )
