from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from mythcombat.core.engine.formulas import LEVEL_CAP, clamp_stat, xp_to_next_for
from mythcombat.core.engine.loot import LootItem
from mythcombat.core.engine.state import CombatantState, StatBlock

XP_FLOOR = 12
XP_BASE = 45
XP_PER_DEFEAT = 34
XP_WIPE_BONUS = 28
XP_ALIVE_BONUS = 18
XP_DOWNED_PENALTY = -16
POINTS_PER_LEVEL = 2


class OutcomeSnapshot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    defeated_npcs: int = 0
    surviving_npcs: int = 0
    surviving_players: int = 0
    defeated_players: int = 0
    player_alive: bool = True

    @property
    def victory(self) -> bool:
        return self.surviving_npcs == 0 and self.player_alive


class RewardSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    xp_gained: int
    level_before: int
    level_after: int
    level_ups: int
    xp_after: int
    xp_to_next: int
    unspent_points_gained: int = 0
    stats_after: dict[str, int] = Field(default_factory=dict)
    loot: list[LootItem] = Field(default_factory=list)
    outcome: OutcomeSnapshot


@dataclass(frozen=True)
class LevelProgress:
    level: int
    xp: int
    xp_to_next: int
    level_ups: int


def count_outcome(
    combatants: Iterable[CombatantState], player_id: str
) -> OutcomeSnapshot:
    out = OutcomeSnapshot(player_alive=False)
    for c in combatants:
        if c.entity_type == "npc":
            if c.is_alive:
                out.surviving_npcs += 1
            else:
                out.defeated_npcs += 1
        elif c.entity_type == "player":
            if c.is_alive:
                out.surviving_players += 1
            else:
                out.defeated_players += 1
            if c.player_id == player_id:
                out.player_alive = c.is_alive
    return out


def xp_gain_for(outcome: OutcomeSnapshot) -> int:
    gain = XP_BASE + XP_PER_DEFEAT * outcome.defeated_npcs
    if outcome.surviving_npcs == 0:
        gain += XP_WIPE_BONUS
    gain += XP_ALIVE_BONUS if outcome.player_alive else XP_DOWNED_PENALTY
    return max(XP_FLOOR, gain)


def apply_xp(level: int, xp: int, xp_to_next: int, gain: int) -> LevelProgress:
    pool = max(0, xp) + max(0, gain)
    start = level
    need = xp_to_next if xp_to_next > 0 else xp_to_next_for(level)
    while pool >= need and level < LEVEL_CAP:
        pool -= need
        level += 1
        need = xp_to_next_for(level)
    return LevelProgress(level=level, xp=pool, xp_to_next=need, level_ups=level - start)


def grow_stats(stats: StatBlock, level_ups: int) -> StatBlock:
    if level_ups <= 0:
        return StatBlock(**stats.as_dict())
    half = level_ups * 0.5
    return StatBlock(
        offense=clamp_stat(stats.offense + level_ups),
        defense=clamp_stat(stats.defense + level_ups),
        control=clamp_stat(stats.control + math.floor(half)),
        support=clamp_stat(stats.support + math.floor(half)),
        mobility=clamp_stat(stats.mobility + math.ceil(half)),
        utility=clamp_stat(stats.utility + math.ceil(half)),
    )
