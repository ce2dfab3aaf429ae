from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from mythcombat.core.engine.rng import pick, weighted_pick_without_immediate_repeat
from mythcombat.core.presentation.word_banks import TONE_LINES, TONE_PREFIX, ToneMode


@dataclass(frozen=True)
class ToneSelection:
    tone: ToneMode
    reason: str


def select_tone_mode(
    *,
    seed_key: str,
    last_tone: Optional[str] = None,
    tension: int = 0,
    boss_present: bool = False,
    player_hp_pct: float = 0.65,
    region_theme: str = "",
) -> ToneSelection:
    hp_pct = max(0.0, min(1.0, player_hp_pct))
    tension = max(0, min(100, int(tension)))
    theme = region_theme.strip().lower()

    weights: dict[ToneMode, float] = {
        "tactical": 1.6,
        "mythic": 1.3,
        "whimsical": 0.8,
        "brutal": 0.9,
        "minimalist": 0.7,
    }
    if tension >= 65:
        weights["tactical"] += 0.7
        weights["brutal"] += 0.8
        weights["minimalist"] += 0.4
    if boss_present:
        weights["mythic"] += 1.2
        weights["brutal"] += 0.6
    if hp_pct <= 0.35:
        weights["brutal"] += 1.0
        weights["minimalist"] += 0.6
        weights["whimsical"] -= 0.2
    if any(w in theme for w in ("town", "market", "festival")):
        weights["whimsical"] += 0.8
        weights["tactical"] += 0.2
    if any(w in theme for w in ("dungeon", "crypt", "grave")):
        weights["brutal"] += 0.4
        weights["mythic"] += 0.5

    tone = weighted_pick_without_immediate_repeat(weights, seed_key, last_tone, "tone-mode")  # type: ignore[arg-type]
    reason = f"{tone}:{tension}:{round(hp_pct * 100)}:{1 if boss_present else 0}"
    return ToneSelection(tone=tone, reason=reason)


def tone_prefix(tone: Optional[str]) -> str:
    return TONE_PREFIX.get(tone or "minimalist", TONE_PREFIX["tactical"])


def tone_seed_line(tone: str, seed_key: str) -> str:
    pool = TONE_LINES.get(tone, TONE_LINES["tactical"])
    return pick(pool, seed_key, f"tone-line:{tone}")
