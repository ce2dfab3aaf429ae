from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import update
from sqlalchemy.orm import Session

from mythcombat.api.deps import get_profile_cache
from mythcombat.api.mappers import character_out
from mythcombat.api.schemas import (
    CampaignCreate,
    CampaignOut,
    CharacterCreate,
    CharacterOut,
)
from mythcombat.core.cache import TTLCache
from mythcombat.core.engine.formulas import xp_to_next_for
from mythcombat.db.deps import get_db
from mythcombat.db.models import Campaign, Character

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.post("", response_model=CampaignOut)
def create_campaign(payload: CampaignCreate, db: Session = Depends(get_db)):
    obj = Campaign(name=payload.name)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return CampaignOut(id=obj.id, name=obj.name, created_at=obj.created_at)


@router.get("/{campaign_id}", response_model=CampaignOut)
def get_campaign(campaign_id: str, db: Session = Depends(get_db)):
    obj = db.get(Campaign, campaign_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return CampaignOut(id=obj.id, name=obj.name, created_at=obj.created_at)


@router.post("/{campaign_id}/characters", response_model=CharacterOut)
def create_character(
    campaign_id: str,
    payload: CharacterCreate,
    db: Session = Depends(get_db),
    profile_cache: TTLCache = Depends(get_profile_cache),
):
    if not db.get(Campaign, campaign_id):
        raise HTTPException(status_code=404, detail="Campaign not found")

    db.execute(
        update(Character)
        .where(
            Character.campaign_id == campaign_id,
            Character.player_id == payload.player_id,
        )
        .values(active=False)
    )

    obj = Character(
        campaign_id=campaign_id,
        player_id=payload.player_id,
        name=payload.name,
        level=payload.level,
        xp=payload.xp,
        xp_to_next=xp_to_next_for(payload.level),
        **payload.stats.model_dump(),
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)

    profile_cache.evict((campaign_id, payload.player_id))
    return character_out(obj)
