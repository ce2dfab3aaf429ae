from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mythcombat.core.adapters import snapshot_from_character
from mythcombat.core.cache import TTLCache
from mythcombat.core.engine.events import ActionEvent
from mythcombat.core.engine.formulas import DEFAULT_FORMULAS, ResourceFormulas
from mythcombat.core.engine.initializer import (
    GRID_HEIGHT,
    GRID_WIDTH,
    build_encounter,
    prologue,
)
from mythcombat.core.engine.rng import stable_int
from mythcombat.core.engine.state import CharacterSnapshot, EncounterSetup
from mythcombat.core.errors import (
    CharacterMissingError,
    CombatError,
    NotFoundError,
    UpstreamPersistenceError,
)
from mythcombat.core.persistence.boards import prior_board_seed, reconcile_combat_board
from mythcombat.core.persistence.event_log import SqlActionEventLog
from mythcombat.core.persistence.state_codec import combatant_to_row
from mythcombat.db.models import (
    Campaign,
    Character,
    CombatSession,
    InventoryEntry,
    Item,
    TurnOrderRow,
)

logger = logging.getLogger(__name__)

SEED_MODULUS = 2147483647


def derive_seed(*, campaign_id: str, board_seed: int, now_seconds: int) -> int:
    now_seed = now_seconds % SEED_MODULUS
    return stable_int(str(board_seed + now_seed), f"combat_seed:{campaign_id}") % SEED_MODULUS


@dataclass
class CombatStartResult:
    combat_session_id: str
    seed: int
    setup: EncounterSetup
    events: list[ActionEvent]


class CombatInitializer:
    def __init__(
        self,
        db: Session,
        *,
        profile_cache: Optional[TTLCache[tuple[str, str], CharacterSnapshot]] = None,
        formulas: ResourceFormulas = DEFAULT_FORMULAS,
        default_board_seed: int = 12345,
        now: Callable[[], float] = time.time,
    ):
        self.db = db
        self.events = SqlActionEventLog(db)
        self.profile_cache = profile_cache
        self.formulas = formulas
        self.default_board_seed = default_board_seed
        self._now = now

    def load_snapshot(self, campaign_id: str, player_id: str) -> CharacterSnapshot:
        key = (campaign_id, player_id)
        if self.profile_cache is not None:
            cached = self.profile_cache.get(key)
            if cached is not None:
                return cached

        character = self.db.scalars(
            select(Character)
            .where(Character.campaign_id == campaign_id, Character.player_id == player_id)
            .order_by(Character.active.desc(), Character.created_at.desc(), Character.id)
            .limit(1)
        ).first()
        if character is None:
            raise CharacterMissingError(
                "No active character for this player in the campaign",
                campaign_id=campaign_id,
                player_id=player_id,
            )

        equipped = self.db.scalars(
            select(Item)
            .join(InventoryEntry, InventoryEntry.item_id == Item.id)
            .where(
                InventoryEntry.character_id == character.id,
                InventoryEntry.container == "equipped",
            )
            .order_by(Item.id)
        ).all()

        snapshot = snapshot_from_character(character, equipped)
        if self.profile_cache is not None:
            self.profile_cache.set(key, snapshot)
        return snapshot

    def start(
        self,
        *,
        campaign_id: str,
        player_id: str,
        seed: Optional[int] = None,
        reason: str = "encounter",
    ) -> CombatStartResult:
        logger.info(
            "combat_start.request campaign=%s player=%s reason=%s",
            campaign_id,
            player_id,
            reason,
        )
        if self.db.get(Campaign, campaign_id) is None:
            raise NotFoundError("Campaign not found", campaign_id=campaign_id)

        snapshot = self.load_snapshot(campaign_id, player_id)

        if seed is None:
            board_seed = prior_board_seed(self.db, campaign_id, self.default_board_seed)
            seed = derive_seed(
                campaign_id=campaign_id,
                board_seed=board_seed,
                now_seconds=int(self._now()),
            )

        setup = build_encounter(
            seed=seed, snapshot=snapshot, reason=reason, formulas=self.formulas
        )

        try:
            session = CombatSession(
                campaign_id=campaign_id, seed=seed, status="active", reason=reason
            )
            self.db.add(session)
            self.db.flush()

            reconcile_combat_board(
                self.db,
                campaign_id=campaign_id,
                combat_session_id=session.id,
                state={
                    "combat_session_id": session.id,
                    "grid": {"width": GRID_WIDTH, "height": GRID_HEIGHT},
                    "blocked_tiles": [list(t) for t in setup.blocked_tiles],
                    "seed": seed,
                },
            )

            for c in setup.combatants:
                self.db.add(combatant_to_row(session.id, c))
            for entry in setup.turn_order:
                self.db.add(
                    TurnOrderRow(
                        session_id=session.id,
                        turn_index=entry.turn_index,
                        combatant_id=entry.combatant_id,
                    )
                )
            self.db.flush()

            events = self.events.append_many(session.id, prologue(setup))
            self.db.commit()
        except CombatError:
            self.db.rollback()
            logger.warning("combat_start.failed campaign=%s player=%s", campaign_id, player_id)
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception(
                "combat_start.failed campaign=%s player=%s", campaign_id, player_id
            )
            raise UpstreamPersistenceError(
                "Failed to persist combat start", code="combat_start_failed"
            ) from exc

        logger.info(
            "combat_start.success session=%s seed=%s combatants=%d",
            session.id,
            seed,
            len(setup.combatants),
        )
        return CombatStartResult(
            combat_session_id=session.id, seed=seed, setup=setup, events=events
        )
