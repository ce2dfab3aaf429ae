from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mythcombat.core.engine.events import ActionEvent, EventDraft
from mythcombat.core.engine.progression import OutcomeSnapshot
from mythcombat.core.engine.rules.apply import apply_event
from mythcombat.core.engine.rules.validator import validate_event
from mythcombat.core.engine.state import CombatantState, TurnOrderEntry
from mythcombat.core.errors import (
    CombatError,
    ConflictError,
    NotFoundError,
    UpstreamPersistenceError,
    ValidationError,
)
from mythcombat.core.persistence.event_log import SqlActionEventLog
from mythcombat.core.persistence.state_codec import (
    combatant_from_row,
    update_row_from_combatant,
)
from mythcombat.db.models import CombatantRow, CombatSession, TurnOrderRow

logger = logging.getLogger(__name__)


def get_session(db: Session, session_id: str) -> CombatSession:
    session = db.get(CombatSession, session_id)
    if session is None:
        raise NotFoundError("Combat session not found", combat_session_id=session_id)
    return session


def combatant_rows(db: Session, session_id: str) -> dict[str, CombatantRow]:
    rows = db.scalars(
        select(CombatantRow)
        .where(CombatantRow.session_id == session_id)
        .order_by(CombatantRow.id)
    ).all()
    return {r.id: r for r in rows}


def load_combatants(db: Session, session_id: str) -> dict[str, CombatantState]:
    return {cid: combatant_from_row(r) for cid, r in combatant_rows(db, session_id).items()}


def load_turn_order(db: Session, session_id: str) -> list[TurnOrderEntry]:
    rows = db.scalars(
        select(TurnOrderRow)
        .where(TurnOrderRow.session_id == session_id)
        .order_by(TurnOrderRow.turn_index)
    ).all()
    return [TurnOrderEntry(turn_index=r.turn_index, combatant_id=r.combatant_id) for r in rows]


def record_event(db: Session, session_id: str, draft: EventDraft) -> ActionEvent:
    """Validates a gameplay event, appends it and folds it into combatant rows."""
    session = get_session(db, session_id)
    if session.status != "active":
        raise ConflictError("Combat has already ended", code="combat_ended")

    log = SqlActionEventLog(db)
    rows = combatant_rows(db, session_id)
    state = {cid: combatant_from_row(r) for cid, r in rows.items()}

    res = validate_event(state, draft, last_turn_index=log.last_turn_index(session_id))
    if not res.ok:
        err = res.errors[0]
        raise ValidationError(err.message, code=err.code.lower(), **err.meta)

    try:
        ev = log.append(session_id, draft)
        for cid in apply_event(state, ev):
            update_row_from_combatant(rows[cid], state[cid])
        db.commit()
    except CombatError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("combat_log.append_failed session=%s", session_id)
        raise UpstreamPersistenceError("Failed to append event") from exc
    return ev


def end_session(db: Session, session_id: str) -> OutcomeSnapshot:
    session = get_session(db, session_id)
    combatants = list(load_combatants(db, session_id).values())
    players = [c for c in combatants if c.entity_type == "player"]
    npcs = [c for c in combatants if c.entity_type == "npc"]
    outcome = OutcomeSnapshot(
        defeated_npcs=sum(1 for c in npcs if not c.is_alive),
        surviving_npcs=sum(1 for c in npcs if c.is_alive),
        surviving_players=sum(1 for c in players if c.is_alive),
        defeated_players=sum(1 for c in players if not c.is_alive),
        player_alive=any(c.is_alive for c in players),
    )
    if session.status == "ended":
        return OutcomeSnapshot.model_validate(session.outcome_json or outcome.model_dump())

    try:
        session.status = "ended"
        session.outcome_json = outcome.model_dump()
        session.ended_at = datetime.now(timezone.utc)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise UpstreamPersistenceError("Failed to end combat") from exc
    logger.info(
        "combat_end session=%s defeated_npcs=%d surviving_npcs=%d",
        session_id,
        outcome.defeated_npcs,
        outcome.surviving_npcs,
    )
    return outcome
