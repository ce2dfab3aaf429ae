from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from mythcombat.api.deps import get_profile_cache
from mythcombat.api.mappers import character_out
from mythcombat.api.schemas import CharacterOut, InventoryItemOut, ItemCreate
from mythcombat.core.cache import TTLCache
from mythcombat.db.deps import get_db
from mythcombat.db.models import Character, InventoryEntry, Item

router = APIRouter(prefix="/characters", tags=["characters"])


def _get_character(db: Session, character_id: str) -> Character:
    obj = db.get(Character, character_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Character not found")
    return obj


def _inventory(db: Session, character_id: str) -> list[InventoryItemOut]:
    rows = db.execute(
        select(Item, InventoryEntry.container)
        .join(InventoryEntry, InventoryEntry.item_id == Item.id)
        .where(InventoryEntry.character_id == character_id)
        .order_by(InventoryEntry.container, Item.id)
    ).all()
    return [
        InventoryItemOut(
            item_id=item.id,
            name=item.name,
            slot=item.slot,
            rarity=item.rarity,
            power=item.power,
            container=container,
            stat_mods=item.stat_mods or {},
        )
        for item, container in rows
    ]


@router.get("/{character_id}", response_model=CharacterOut)
def get_character(character_id: str, db: Session = Depends(get_db)):
    return character_out(_get_character(db, character_id))


@router.get("/{character_id}/inventory", response_model=list[InventoryItemOut])
def get_inventory(character_id: str, db: Session = Depends(get_db)):
    _get_character(db, character_id)
    return _inventory(db, character_id)


@router.post("/{character_id}/items", response_model=list[InventoryItemOut])
def add_item(
    character_id: str,
    payload: ItemCreate,
    db: Session = Depends(get_db),
    profile_cache: TTLCache = Depends(get_profile_cache),
):
    character = _get_character(db, character_id)

    item = Item(
        campaign_id=character.campaign_id,
        owner_character_id=character.id,
        name=payload.name,
        slot=payload.slot,
        rarity=payload.rarity,
        power=payload.power,
        stat_mods=dict(payload.stat_mods),
    )
    db.add(item)
    db.flush()
    db.add(
        InventoryEntry(
            character_id=character.id,
            item_id=item.id,
            container="equipped" if payload.equip else "backpack",
        )
    )
    db.commit()

    # equipment feeds the combat snapshot
    profile_cache.evict((character.campaign_id, character.player_id))
    return _inventory(db, character_id)
