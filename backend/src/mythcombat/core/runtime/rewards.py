from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mythcombat.core.adapters import stats_from
from mythcombat.core.cache import TTLCache
from mythcombat.core.engine.events import ActionEvent, ev_reward_granted
from mythcombat.core.engine.loot import LootItem, loot_count, loot_seed_for, roll_loot
from mythcombat.core.engine.progression import (
    POINTS_PER_LEVEL,
    RewardSummary,
    apply_xp,
    count_outcome,
    grow_stats,
    xp_gain_for,
)
from mythcombat.core.engine.state import STAT_KEYS, CharacterSnapshot
from mythcombat.core.errors import (
    CombatNotEndedError,
    NotFoundError,
    UpstreamPersistenceError,
)
from mythcombat.core.persistence.event_log import SqlActionEventLog
from mythcombat.core.persistence.state_codec import combatant_from_row
from mythcombat.db.models import (
    Character,
    CombatantRow,
    CombatSession,
    InventoryEntry,
    Item,
    StoryEntry,
)

logger = logging.getLogger(__name__)

REWARD_EVENT = "reward_granted"


def reward_dedupe_key(player_id: str) -> str:
    return f"{REWARD_EVENT}:{player_id}"


@dataclass
class RewardClaimResult:
    rewards: RewardSummary
    already_granted: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True


class RewardResolver:
    def __init__(
        self,
        db: Session,
        *,
        response_cache: Optional[TTLCache[tuple[str, str], RewardSummary]] = None,
        profile_cache: Optional[TTLCache[tuple[str, str], CharacterSnapshot]] = None,
    ):
        self.db = db
        self.events = SqlActionEventLog(db)
        self.response_cache = response_cache
        self.profile_cache = profile_cache

    # ---------- lookups ----------

    def _prior_grant(self, session_id: str, player_id: str) -> Optional[RewardSummary]:
        ev = self.events.find_latest(session_id, REWARD_EVENT, player_id=player_id)
        if ev is None:
            return None
        return RewardSummary.model_validate(ev.payload["rewards"])

    def _already(self, session_id: str, player_id: str, summary: RewardSummary) -> RewardClaimResult:
        logger.info(
            "reward_claim.already_granted session=%s player=%s", session_id, player_id
        )
        if self.response_cache is not None:
            self.response_cache.set((session_id, player_id), summary)
        return RewardClaimResult(rewards=summary, already_granted=True)

    # ---------- claim ----------

    def claim(
        self, *, campaign_id: str, combat_session_id: str, player_id: str
    ) -> RewardClaimResult:
        session = self.db.get(CombatSession, combat_session_id)
        if session is None or session.campaign_id != campaign_id:
            raise NotFoundError(
                "Combat session not found", combat_session_id=combat_session_id
            )
        if session.status != "ended":
            raise CombatNotEndedError(
                "Combat has not ended yet", combat_session_id=combat_session_id
            )

        if self.response_cache is not None:
            cached = self.response_cache.get((combat_session_id, player_id))
            if cached is not None:
                return RewardClaimResult(rewards=cached, already_granted=True)

        prior = self._prior_grant(combat_session_id, player_id)
        if prior is not None:
            return self._already(combat_session_id, player_id, prior)

        rows = self.db.scalars(
            select(CombatantRow)
            .where(CombatantRow.session_id == combat_session_id)
            .order_by(CombatantRow.id)
        ).all()
        combatants = [combatant_from_row(r) for r in rows]
        me = next(
            (c for c in combatants if c.entity_type == "player" and c.player_id == player_id),
            None,
        )
        if me is None or me.character_id is None:
            raise NotFoundError(
                "Player did not take part in this combat", player_id=player_id
            )
        character = self.db.get(Character, me.character_id)
        if character is None:
            raise NotFoundError("Character not found", character_id=me.character_id)

        outcome = count_outcome(combatants, player_id)
        xp_gain = xp_gain_for(outcome)
        level_before = character.level
        progress = apply_xp(character.level, character.xp, character.xp_to_next, xp_gain)
        stats_after = grow_stats(stats_from(character), progress.level_ups)

        loot_seed = loot_seed_for(session.seed, combat_session_id, player_id)
        rolled = roll_loot(
            loot_seed, count=loot_count(outcome.defeated_npcs), level=progress.level
        )

        warnings: list[str] = []
        try:
            loot = self._persist_loot(campaign_id, character.id, rolled)
        except SQLAlchemyError:
            logger.warning(
                "reward_claim.loot_persistence_failed session=%s player=%s",
                combat_session_id,
                player_id,
                exc_info=True,
            )
            loot = []
            warnings.append("loot_persistence_failed")
        if not loot:
            logger.warning(
                "reward_claim.loot_empty session=%s player=%s", combat_session_id, player_id
            )
            warnings.append("loot_empty")

        summary = RewardSummary(
            xp_gained=xp_gain,
            level_before=level_before,
            level_after=progress.level,
            level_ups=progress.level_ups,
            xp_after=progress.xp,
            xp_to_next=progress.xp_to_next,
            unspent_points_gained=POINTS_PER_LEVEL * progress.level_ups,
            stats_after=stats_after.as_dict(),
            loot=loot,
            outcome=outcome,
        )

        # critical path: character progress and the reward event commit together
        try:
            character.level = progress.level
            character.xp = progress.xp
            character.xp_to_next = progress.xp_to_next
            character.unspent_points += summary.unspent_points_gained
            for k in STAT_KEYS:
                setattr(character, k, getattr(stats_after, k))

            last_turn = self.events.last_turn_index(combat_session_id) or 0
            self.events.append(
                combat_session_id,
                ev_reward_granted(
                    turn_index=last_turn,
                    player_id=player_id,
                    character_id=character.id,
                    actor_id=me.id,
                    rewards=summary,
                ),
                dedupe_key=reward_dedupe_key(player_id),
            )
            self.db.commit()
        except IntegrityError:
            # lost a race: another claim appended first
            self.db.rollback()
            winner = self._prior_grant(combat_session_id, player_id)
            if winner is None:
                raise UpstreamPersistenceError(
                    "Reward grant conflicted but no prior grant was found",
                    code="reward_grant_failed",
                )
            return self._already(combat_session_id, player_id, winner)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception(
                "reward_claim.failed session=%s player=%s", combat_session_id, player_id
            )
            raise UpstreamPersistenceError(
                "Failed to persist reward grant", code="reward_grant_failed"
            ) from exc

        logger.info(
            "reward_claim.granted session=%s player=%s xp=%d level_ups=%d loot=%d",
            combat_session_id,
            player_id,
            summary.xp_gained,
            summary.level_ups,
            len(summary.loot),
        )

        self._record_story(campaign_id, player_id, combat_session_id, summary)

        if self.profile_cache is not None:
            self.profile_cache.evict((campaign_id, player_id))
        if self.response_cache is not None:
            self.response_cache.set((combat_session_id, player_id), summary)

        return RewardClaimResult(rewards=summary, warnings=warnings)

    # ---------- best-effort writes ----------

    def _persist_loot(
        self, campaign_id: str, character_id: str, items: list[LootItem]
    ) -> list[LootItem]:
        """Writes items inside a savepoint so a failure leaves the outer transaction intact."""
        with self.db.begin_nested():
            for item in items:
                if self.db.get(Item, item.item_id) is None:
                    self.db.add(
                        Item(
                            id=item.item_id,
                            campaign_id=campaign_id,
                            owner_character_id=character_id,
                            name=item.name,
                            rarity=item.rarity,
                            slot=item.slot,
                            power=item.power,
                            bind_policy=item.bind_policy,
                            drawback=item.drawback,
                            stat_mods=dict(item.stat_mods),
                        )
                    )
                    self.db.flush()
                held = self.db.scalars(
                    select(InventoryEntry).where(
                        InventoryEntry.character_id == character_id,
                        InventoryEntry.item_id == item.item_id,
                    )
                ).first()
                if held is None:
                    self.db.add(
                        InventoryEntry(
                            character_id=character_id,
                            item_id=item.item_id,
                            container="backpack",
                        )
                    )
            self.db.flush()
        return list(items)

    def _record_story(
        self,
        campaign_id: str,
        player_id: str,
        combat_session_id: str,
        summary: RewardSummary,
    ) -> None:
        category = "combat_victory" if summary.outcome.victory else "combat_setback"
        try:
            self.db.add(
                StoryEntry(
                    campaign_id=campaign_id,
                    player_id=player_id,
                    category=category,
                    content_json={
                        "combat_session_id": combat_session_id,
                        "xp_gained": summary.xp_gained,
                        "level_after": summary.level_after,
                        "loot": [i.name for i in summary.loot],
                        "defeated_npcs": summary.outcome.defeated_npcs,
                    },
                )
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning(
                "reward_claim.story_failed session=%s player=%s",
                combat_session_id,
                player_id,
                exc_info=True,
            )
