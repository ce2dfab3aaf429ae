from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Mapping

from mythcombat.core.engine.state import BONUS_KEYS, STAT_KEYS, StatBlock

STAT_MIN = 0
STAT_MAX = 100
INITIATIVE_MAX = 999
LEVEL_CAP = 99

HpFormula = Callable[[int, StatBlock], int]
PowerFormula = Callable[[int, StatBlock], int]


def clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def clamp_stat(value: float) -> int:
    if not math.isfinite(value):
        return STAT_MIN
    return clamp(math.floor(value), STAT_MIN, STAT_MAX)


def _numeric(v: object) -> float | None:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    if not math.isfinite(v):
        return None
    return float(v)


def sum_equipment_bonuses(items: Iterable[Mapping[str, object]]) -> Dict[str, float]:
    """Adds up stat_mods across items; non-numeric or non-finite values are skipped."""
    totals: Dict[str, float] = {}
    for mods in items:
        if not isinstance(mods, Mapping):
            continue
        for key, raw in mods.items():
            val = _numeric(raw)
            if val is None:
                continue
            totals[str(key)] = totals.get(str(key), 0.0) + val
    return totals


def derive_stats(base: StatBlock, bonuses: Mapping[str, float]) -> StatBlock:
    return StatBlock(
        **{
            k: clamp_stat(getattr(base, k) + bonuses.get(k, 0.0))
            for k in STAT_KEYS
        }
    )


def flat_bonuses(bonuses: Mapping[str, float]) -> Dict[str, int]:
    return {k: max(0, math.floor(bonuses.get(k, 0.0))) for k in BONUS_KEYS}


def default_hp_formula(level: int, stats: StatBlock) -> int:
    return 100 + 8 * max(0, level - 1) + stats.defense // 2 + stats.support // 4


def default_power_formula(level: int, stats: StatBlock) -> int:
    return 50 + 4 * max(0, level - 1) + stats.utility // 2 + stats.control // 4


@dataclass(frozen=True)
class ResourceFormulas:
    hp_max: HpFormula = default_hp_formula
    power_max: PowerFormula = default_power_formula


DEFAULT_FORMULAS = ResourceFormulas()


def xp_to_next_for(level: int) -> int:
    return 140 + 110 * level
