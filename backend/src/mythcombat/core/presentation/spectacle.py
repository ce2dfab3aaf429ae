from __future__ import annotations

import math
from typing import Optional

from mythcombat.core.engine.events import SpellStyleTags
from mythcombat.core.engine.rng import pick
from mythcombat.core.presentation.history import compact
from mythcombat.core.presentation.word_banks import SPECTACLE_FINISHERS


def _clean(value: Optional[str], fallback: str) -> str:
    return compact(value or "") or fallback


def build_spectacle_line(
    *,
    seed_key: str,
    spell_name: str,
    escalation_level: int,
    style: Optional[SpellStyleTags],
    target_name: str,
) -> str:
    level = max(0, math.floor(escalation_level))
    tags = style or SpellStyleTags()
    element = _clean(tags.element, "arcane")
    mood = _clean(tags.mood, "volatile")
    visual = _clean(tags.visual_signature, "shockwave")
    impact = _clean(tags.impact_verb, "strike")
    target = _clean(target_name, "the target")

    if level <= 1:
        return f"{spell_name} {impact}s {target}. {element.capitalize()} light snaps over the tile."
    if level <= 3:
        return f"{spell_name} detonates in {visual}. {target} reels under {element} force."
    if level <= 5:
        return f"{spell_name} tears the lane open. {element.capitalize()} thunder drops {target} into chaos."
    finisher = pick(SPECTACLE_FINISHERS, seed_key, "spectacle:finisher")
    return (
        f"{spell_name} erupts in {visual}. {target} takes the full "
        f"{mood} {element} {impact}. {finisher}"
    )
