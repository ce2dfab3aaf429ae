from __future__ import annotations

from collections.abc import Mapping as ABCMapping
from typing import Any, Iterable, Mapping, cast

from mythcombat.core.engine.state import STAT_KEYS, CharacterSnapshot, StatBlock


def as_dict(obj: Any) -> dict[str, Any]:
    """
    Turns a pydantic model, a mapping or an ORM row into dict[str, Any].
    ORM rows contribute their mapped column attributes only.
    """
    if obj is None:
        return {}

    if isinstance(obj, dict):
        return cast(dict[str, Any], obj)

    if isinstance(obj, ABCMapping):
        return dict(cast(ABCMapping[str, Any], obj))

    dump = getattr(obj, "model_dump", None)
    if callable(dump):
        res = dump()
        if isinstance(res, dict):
            return cast(dict[str, Any], res)
        return {}

    table = getattr(obj, "__table__", None)
    if table is not None:
        return {col.key: getattr(obj, col.key) for col in table.columns}

    return {}


def stats_from(obj: Any) -> StatBlock:
    d = as_dict(obj)
    src = d.get("stats") if isinstance(d.get("stats"), ABCMapping) else d
    src = cast(Mapping[str, Any], src)
    out: dict[str, int] = {}
    for k in STAT_KEYS:
        try:
            out[k] = int(src.get(k, 0) or 0)
        except (TypeError, ValueError):
            out[k] = 0
    return StatBlock(**out)


def snapshot_from_character(
    character: Any, equipped_items: Iterable[Any] = ()
) -> CharacterSnapshot:
    """Builds the snapshot combat start consumes from a character and its equipped items."""
    d = as_dict(character)
    equipment: list[dict[str, object]] = []
    for item in equipped_items:
        mods = as_dict(item).get("stat_mods")
        if isinstance(mods, ABCMapping):
            equipment.append(dict(mods))

    return CharacterSnapshot(
        character_id=str(d["id"]),
        player_id=str(d["player_id"]),
        campaign_id=str(d["campaign_id"]),
        name=str(d.get("name") or "Unnamed"),
        level=max(1, int(d.get("level") or 1)),
        stats=stats_from(d),
        equipment=equipment,
    )
