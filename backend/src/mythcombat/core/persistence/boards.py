from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from mythcombat.core.errors import ConflictError
from mythcombat.db.models import Board

logger = logging.getLogger(__name__)

COMBAT_BOARD = "combat"


def active_boards(db: Session, campaign_id: str) -> list[Board]:
    stmt = (
        select(Board)
        .where(Board.campaign_id == campaign_id, Board.status == "active")
        .order_by(Board.created_at.desc(), Board.id)
    )
    return list(db.scalars(stmt))


def prior_board_seed(db: Session, campaign_id: str, default: int) -> int:
    for board in active_boards(db, campaign_id):
        seed = (board.state_json or {}).get("seed")
        if isinstance(seed, int) and not isinstance(seed, bool):
            return seed
    return default


def reconcile_combat_board(
    db: Session,
    *,
    campaign_id: str,
    combat_session_id: str,
    state: dict[str, Any],
) -> Board:
    """Makes exactly one active combat board point at combat_session_id.

    Missing board: other active boards are archived and one is inserted.
    Stale binding: the existing board is rebound in place. Extra active combat
    boards beyond the newest are archived. Flushes but does not commit.
    """
    boards = active_boards(db, campaign_id)
    combat = [b for b in boards if b.board_type == COMBAT_BOARD]

    target: Optional[Board] = combat[0] if combat else None
    for dup in combat[1:]:
        dup.status = "archived"
        logger.warning(
            "combat_start.board_self_heal archived duplicate board=%s campaign=%s",
            dup.id,
            campaign_id,
        )

    if target is None:
        for b in boards:
            b.status = "archived"
        target = Board(
            campaign_id=campaign_id,
            board_type=COMBAT_BOARD,
            status="active",
            combat_session_id=combat_session_id,
            state_json=dict(state),
        )
        db.add(target)
        logger.warning(
            "combat_start.board_self_heal created combat board campaign=%s session=%s",
            campaign_id,
            combat_session_id,
        )
    else:
        if target.combat_session_id != combat_session_id:
            logger.warning(
                "combat_start.board_self_heal rebound board=%s from=%s to=%s",
                target.id,
                target.combat_session_id,
                combat_session_id,
            )
        target.combat_session_id = combat_session_id
        target.state_json = {**(target.state_json or {}), **state}

    db.flush()

    bound = [
        b
        for b in active_boards(db, campaign_id)
        if b.board_type == COMBAT_BOARD and b.combat_session_id == combat_session_id
    ]
    if len(bound) != 1:
        raise ConflictError(
            "combat board binding did not converge",
            code="board_binding_conflict",
            campaign_id=campaign_id,
            bound=len(bound),
        )
    return bound[0]
