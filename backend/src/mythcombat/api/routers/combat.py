from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mythcombat.api.deps import get_profile_cache
from mythcombat.api.mappers import combatant_out, event_out, turn_out
from mythcombat.api.schemas import (
    ActionEventOut,
    AppendEventRequest,
    CombatStartRequest,
    CombatStartResponse,
    CombatStateResponse,
    EndCombatResponse,
)
from mythcombat.config import get_settings
from mythcombat.core.cache import TTLCache
from mythcombat.core.engine.events import EventDraft
from mythcombat.core.engine.progression import OutcomeSnapshot
from mythcombat.core.persistence.event_log import SqlActionEventLog
from mythcombat.core.runtime.combat_start import CombatInitializer
from mythcombat.core.runtime.session_ops import (
    end_session,
    get_session,
    load_combatants,
    load_turn_order,
    record_event,
)
from mythcombat.db.deps import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/combat", tags=["combat"])


@router.post("/start", response_model=CombatStartResponse)
def start_combat(
    payload: CombatStartRequest,
    db: Session = Depends(get_db),
    profile_cache: TTLCache = Depends(get_profile_cache),
):
    initializer = CombatInitializer(
        db,
        profile_cache=profile_cache,
        default_board_seed=get_settings().default_board_seed,
    )
    result = initializer.start(
        campaign_id=payload.campaign_id,
        player_id=payload.player_id,
        seed=payload.seed,
        reason=payload.reason,
    )
    return CombatStartResponse(
        combat_session_id=result.combat_session_id,
        seed=result.seed,
        combatants=[combatant_out(c) for c in result.setup.combatants],
        turn_order=[turn_out(e) for e in result.setup.turn_order],
        events=[event_out(ev) for ev in result.events],
    )


@router.get("/{session_id}", response_model=CombatStateResponse)
def get_combat(session_id: str, db: Session = Depends(get_db)):
    session = get_session(db, session_id)
    outcome = (
        OutcomeSnapshot.model_validate(session.outcome_json)
        if session.outcome_json
        else None
    )
    return CombatStateResponse(
        combat_session_id=session.id,
        campaign_id=session.campaign_id,
        status=session.status,
        seed=session.seed,
        combatants=[combatant_out(c) for c in load_combatants(db, session_id).values()],
        turn_order=[turn_out(e) for e in load_turn_order(db, session_id)],
        outcome=outcome,
    )


@router.get("/{session_id}/events", response_model=list[ActionEventOut])
def list_events(
    session_id: str, since: Optional[str] = None, db: Session = Depends(get_db)
):
    get_session(db, session_id)
    return [event_out(ev) for ev in SqlActionEventLog(db).read(session_id, since)]


@router.post("/{session_id}/events", response_model=ActionEventOut)
def append_event(
    session_id: str, payload: AppendEventRequest, db: Session = Depends(get_db)
):
    draft = EventDraft(**payload.model_dump())
    ev = record_event(db, session_id, draft)
    logger.debug("combat_log.appended session=%s type=%s", session_id, ev.event_type)
    return event_out(ev)


@router.post("/{session_id}/end", response_model=EndCombatResponse)
def end_combat(session_id: str, db: Session = Depends(get_db)):
    outcome = end_session(db, session_id)
    return EndCombatResponse(combat_session_id=session_id, status="ended", outcome=outcome)
