from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from mythcombat.api.deps import get_profile_cache, get_reward_cache
from mythcombat.api.schemas import RewardClaimRequest, RewardClaimResponse
from mythcombat.core.cache import TTLCache
from mythcombat.core.runtime.rewards import RewardResolver
from mythcombat.db.deps import get_db

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.post("/claim", response_model=RewardClaimResponse)
def claim_rewards(
    payload: RewardClaimRequest,
    player_id: str = Header(alias="X-Player-Id", min_length=1),
    db: Session = Depends(get_db),
    profile_cache: TTLCache = Depends(get_profile_cache),
    reward_cache: TTLCache = Depends(get_reward_cache),
):
    resolver = RewardResolver(
        db, response_cache=reward_cache, profile_cache=profile_cache
    )
    result = resolver.claim(
        campaign_id=payload.campaign_id,
        combat_session_id=payload.combat_session_id,
        player_id=player_id,
    )
    return RewardClaimResponse(
        ok=result.ok,
        already_granted=result.already_granted,
        rewards=result.rewards,
        warnings=result.warnings,
    )
