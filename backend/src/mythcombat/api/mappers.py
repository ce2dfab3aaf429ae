from __future__ import annotations

from mythcombat.api.schemas import (
    ActionEventOut,
    CharacterOut,
    CombatantOut,
    HistoryDTO,
    NarrationLineOut,
    PosDTO,
    StatsDTO,
    StatusOut,
    TurnOrderOut,
)
from mythcombat.core.adapters import stats_from
from mythcombat.core.engine.events import ActionEvent
from mythcombat.core.engine.state import CombatantState, TurnOrderEntry
from mythcombat.core.presentation.history import LineHistoryBuffer
from mythcombat.core.presentation.projector import NarrationLine
from mythcombat.db.models import Character


def character_out(obj: Character) -> CharacterOut:
    return CharacterOut(
        id=obj.id,
        campaign_id=obj.campaign_id,
        player_id=obj.player_id,
        name=obj.name,
        level=obj.level,
        xp=obj.xp,
        xp_to_next=obj.xp_to_next,
        unspent_points=obj.unspent_points,
        stats=StatsDTO(**stats_from(obj).as_dict()),
    )


def combatant_out(c: CombatantState) -> CombatantOut:
    return CombatantOut(
        id=c.id,
        name=c.name,
        entity_type=c.entity_type,
        player_id=c.player_id,
        character_id=c.character_id,
        position=PosDTO(x=c.position[0], y=c.position[1]),
        stats=StatsDTO(**c.stats.as_dict()),
        hp=c.hp,
        hp_max=c.hp_max,
        power=c.power,
        power_max=c.power_max,
        armor=c.armor,
        resist=c.resist,
        statuses=[StatusOut(id=s.id, expires_turn=s.expires_turn) for s in c.statuses],
        initiative=c.initiative,
        is_alive=c.is_alive,
    )


def turn_out(e: TurnOrderEntry) -> TurnOrderOut:
    return TurnOrderOut(turn_index=e.turn_index, combatant_id=e.combatant_id)


def event_out(ev: ActionEvent) -> ActionEventOut:
    return ActionEventOut(
        id=ev.id,
        turn_index=ev.turn_index,
        event_type=ev.event_type,
        actor_id=ev.actor_id,
        target_id=ev.target_id,
        amount=ev.amount,
        status_id=ev.status_id,
        from_tile=ev.from_tile,
        to_tile=ev.to_tile,
        created_at=ev.created_at,
        cursor=ev.cursor,
        payload=ev.payload,
    )


def history_from_dto(dto: HistoryDTO) -> LineHistoryBuffer:
    return LineHistoryBuffer(
        max_lines=dto.max_lines,
        similarity_threshold=dto.similarity_threshold,
        lines=list(dto.lines),
        fragments=list(dto.fragments),
        verbs=list(dto.verbs),
        last_tone=dto.last_tone,
    )


def history_to_dto(buf: LineHistoryBuffer) -> HistoryDTO:
    return HistoryDTO(
        lines=list(buf.lines),
        fragments=list(buf.fragments),
        verbs=list(buf.verbs),
        max_lines=buf.max_lines,
        similarity_threshold=buf.similarity_threshold,
        last_tone=buf.last_tone,
    )


def line_out(line: NarrationLine) -> NarrationLineOut:
    return NarrationLineOut(
        text=line.text, template=line.template, content_hash=line.content_hash
    )
