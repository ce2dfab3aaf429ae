from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mythcombat.api.mappers import history_from_dto, history_to_dto, line_out
from mythcombat.api.schemas import PresentationRequest, PresentationResponse
from mythcombat.core.engine.state import CombatantState
from mythcombat.core.persistence.event_log import SqlActionEventLog
from mythcombat.core.presentation import PresentationProjector, select_tone_mode
from mythcombat.core.runtime.session_ops import get_session, load_combatants
from mythcombat.db.deps import get_db

router = APIRouter(prefix="/combat", tags=["presentation"])


def _player_hp_pct(combatants: list[CombatantState]) -> float:
    players = [c for c in combatants if c.entity_type == "player"]
    hp_max = sum(c.hp_max for c in players)
    if hp_max <= 0:
        return 0.0
    return sum(max(0, c.hp) for c in players) / hp_max


def _tension(combatants: list[CombatantState]) -> int:
    npcs = [c for c in combatants if c.entity_type == "npc"]
    if not npcs:
        return 0
    alive = sum(1 for c in npcs if c.is_alive)
    hurt = 1.0 - _player_hp_pct(combatants)
    return round(100 * (0.5 * hurt + 0.5 * alive / len(npcs)))


@router.post("/{session_id}/presentation", response_model=PresentationResponse)
def present(
    session_id: str, payload: PresentationRequest, db: Session = Depends(get_db)
):
    session = get_session(db, session_id)
    combatants = list(load_combatants(db, session_id).values())
    events = SqlActionEventLog(db).read(session_id, payload.since)

    seed_key = payload.seed_key or f"{session_id}:{session.seed}"
    history = history_from_dto(payload.history)

    tone = payload.tone
    if tone == "auto":
        tone = select_tone_mode(
            seed_key=f"{seed_key}:{len(history.lines)}",
            last_tone=history.last_tone,
            tension=_tension(combatants),
            boss_present=session.reason == "elite",
            player_hp_pct=_player_hp_pct(combatants),
        ).tone

    projector = PresentationProjector(
        seed_key=seed_key,
        tone=tone,
        max_lines=payload.max_lines,
        enemy_traits={k: v.model_dump() for k, v in payload.enemy_traits.items()},
        names={c.id: c.name for c in combatants},
        positions={c.id: c.position for c in combatants},
    )
    projection = projector.project(events, history, ai_lines=payload.ai_lines)

    return PresentationResponse(
        lines=[line_out(line) for line in projection.lines],
        effects=projection.effects,
        history=history_to_dto(projection.history),
        cursor=projection.cursor or payload.since,
        tone=projection.tone,
        used_fallback=projection.used_fallback,
    )
