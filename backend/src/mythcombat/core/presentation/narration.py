"""Candidate narration lines built from prepared events.

Each candidate carries its phrasing variants in seeded rotation order; the
projector accepts the first variant the history buffer does not reject.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from pydantic import ValidationError as PayloadError

from mythcombat.core.engine.events import SkillPresentation, SpellStyleTags
from mythcombat.core.engine.rng import stable_int
from mythcombat.core.presentation.history import compact
from mythcombat.core.presentation.normalize import NormalizedEvent
from mythcombat.core.presentation.personality import personality_pool, traits_from
from mythcombat.core.presentation.spectacle import build_spectacle_line
from mythcombat.core.presentation.spell_names import build_spell_name
from mythcombat.core.presentation.tone import tone_prefix
from mythcombat.core.presentation.word_banks import (
    NARRATION_VERBS,
    PASSTHROUGH_TEMPLATES,
    STATUS_TEMPLATES,
)

logger = logging.getLogger(__name__)

MAX_LISTED_STATUSES = 3


@dataclass
class Candidate:
    template: str
    variants: list[str]
    # verb used by each variant, for damage lines
    verbs: list[Optional[str]] = field(default_factory=list)

    def verb_for(self, index: int) -> Optional[str]:
        return self.verbs[index] if index < len(self.verbs) else None


def rotate(items: Sequence[str], start: int) -> list[str]:
    if not items:
        return []
    start %= len(items)
    return [*items[start:], *items[:start]]


def third_person(verb: str) -> str:
    if verb.endswith(("s", "sh", "ch", "x", "z")):
        return verb + "es"
    return verb + "s"


def status_label(ev: NormalizedEvent) -> str:
    name = ev.payload.get("status_name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    return (ev.status_id or "a status").replace("_", " ").strip()


def join_names(names: Sequence[str]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return f"{', '.join(names[:-1])} and {names[-1]}"


def _with_prefix(prefix: str, text: str) -> str:
    return compact(f"{prefix} {text}") if prefix else text


# ---------- per-shape builders ----------


def damage_candidate(
    group: Sequence[NormalizedEvent],
    *,
    seed_key: str,
    tone: str,
    avoid_verbs: Iterable[str],
) -> Candidate:
    first = group[0]
    total = sum(max(0, e.amount or 0) for e in group)
    hits = len(group)
    avoid = set(avoid_verbs)
    pool = [v for v in NARRATION_VERBS if v not in avoid] or list(NARRATION_VERBS)
    verbs = rotate(pool, stable_int(seed_key, f"verb:{first.id}"))
    prefix = tone_prefix(tone)

    variants: list[str] = []
    for verb in verbs:
        if hits > 1:
            body = (
                f"{first.actor_name} {third_person(verb)} {first.target_name} "
                f"{hits} times for {total} total damage."
            )
        else:
            body = f"{first.actor_name} {third_person(verb)} {first.target_name} for {total}."
        variants.append(_with_prefix(prefix, body))
    return Candidate(template="damage.grouped" if hits > 1 else "damage", variants=variants, verbs=list(verbs))


def status_candidate(group: Sequence[NormalizedEvent], *, seed_key: str) -> Candidate:
    first = group[0]
    labels: list[str] = []
    for ev in group:
        label = status_label(ev)
        if label not in labels:
            labels.append(label)
    listed = join_names(labels[:MAX_LISTED_STATUSES])
    templates = rotate(STATUS_TEMPLATES, stable_int(seed_key, f"status:{first.id}"))
    variants = [
        t.format(actor=first.actor_name, target=first.target_name, statuses=listed)
        for t in templates
    ]
    return Candidate(template="status.grouped", variants=variants)


def _skill_variants(ev: NormalizedEvent, seed_key: str) -> tuple[str, list[str]]:
    p = ev.payload
    skill_label = (
        p.get("skill_name") if isinstance(p.get("skill_name"), str) else None
    ) or (p.get("skill_id") if isinstance(p.get("skill_id"), str) else None) or "a skill"

    meta_raw = p.get("presentation")
    if isinstance(meta_raw, Mapping):
        meta = SkillPresentation.model_validate(meta_raw)
        style_raw = p.get("style_tags")
        style = SpellStyleTags.model_validate(style_raw) if isinstance(style_raw, Mapping) else None
        name = build_spell_name(
            meta.spell_base or skill_label,
            meta.rank,
            meta.rarity,
            meta.escalation_level,
            seed_key=f"{seed_key}:{ev.id}:spell",
        )
        spectacle = build_spectacle_line(
            seed_key=f"{seed_key}:{ev.id}",
            spell_name=name,
            escalation_level=meta.escalation_level,
            style=style,
            target_name=ev.target_name,
        )
        return "skill.spectacle", [
            spectacle,
            f"{ev.actor_name} casts {name} at {ev.target_name}.",
        ]

    if ev.target_id:
        return "skill", [
            f"{ev.actor_name} unleashes {skill_label} on {ev.target_name}.",
            f"{ev.actor_name} turns {skill_label} on {ev.target_name}.",
        ]
    return "skill", [
        f"{ev.actor_name} uses {skill_label}.",
        f"{ev.actor_name} calls up {skill_label}.",
    ]


def passthrough_candidate(ev: NormalizedEvent, *, seed_key: str) -> Optional[Candidate]:
    if ev.event_type == "skill_used":
        try:
            template, variants = _skill_variants(ev, seed_key)
        except PayloadError:
            logger.debug("presentation.malformed_event skill=%s", ev.id, exc_info=True)
            return Candidate(
                template="skill",
                variants=[f"{ev.actor_name} unleashes a skill on {ev.target_name}."],
            )
        return Candidate(template=template, variants=variants)

    templates = PASSTHROUGH_TEMPLATES.get(ev.event_type)
    if not templates:
        return None

    detail = ""
    roll, need = ev.payload.get("roll_d20"), ev.payload.get("required_roll")
    if isinstance(roll, int) and isinstance(need, int):
        detail = f" ({roll} vs {need})"

    if ev.event_type == "moved" and ev.to_tile is None:
        return Candidate(template="moved", variants=[f"{ev.actor_name} repositions."])

    x, y = ev.to_tile if ev.to_tile is not None else (0, 0)
    item = ev.payload.get("item_name") or ev.payload.get("item_id") or "an item"
    fields = {
        "actor": ev.actor_name,
        "target": ev.target_name,
        "amount": max(0, ev.amount or 0),
        "status": status_label(ev),
        "detail": detail,
        "item": item,
        "x": x,
        "y": y,
    }
    ordered = rotate(templates, stable_int(seed_key, f"{ev.event_type}:{ev.id}"))
    return Candidate(
        template=ev.event_type,
        variants=[t.format(**fields) for t in ordered],
    )


def personality_candidate(
    events: Sequence[NormalizedEvent],
    enemy_traits: Mapping[str, Mapping[str, object]],
    *,
    seed_key: str,
    tone: str,
) -> Optional[Candidate]:
    for ev in reversed(events):
        if ev.actor_id is None or ev.actor_id not in enemy_traits:
            continue
        pool = personality_pool(traits_from(enemy_traits[ev.actor_id]), tone)
        phrases = rotate(pool, stable_int(f"{seed_key}:{ev.id}", "enemy-personality"))
        return Candidate(
            template="personality",
            variants=[f"{ev.actor_name}: {p}" for p in phrases],
        )
    return None


# ---------- assembly ----------


def build_candidates(
    events: Sequence[NormalizedEvent],
    *,
    seed_key: str,
    tone: str,
    recent_verbs: Iterable[str] = (),
    enemy_traits: Optional[Mapping[str, Mapping[str, object]]] = None,
) -> list[Candidate]:
    """Mechanical candidates in order of each group's first event, then one personality line."""
    damage: dict[tuple, list[NormalizedEvent]] = {}
    status: dict[tuple, list[NormalizedEvent]] = {}
    slots: list[tuple[str, object]] = []

    for ev in events:
        if ev.event_type == "damage":
            key = (ev.turn_index, ev.actor_id, ev.target_id)
            if key not in damage:
                damage[key] = []
                slots.append(("damage", key))
            damage[key].append(ev)
        elif ev.event_type == "status_applied":
            key = (ev.turn_index, ev.target_id)
            if key not in status:
                status[key] = []
                slots.append(("status", key))
            status[key].append(ev)
        else:
            slots.append(("single", ev))

    out: list[Candidate] = []
    avoid = list(recent_verbs)
    for kind, ref in slots:
        if kind == "damage":
            cand = damage_candidate(
                damage[ref], seed_key=seed_key, tone=tone, avoid_verbs=avoid  # type: ignore[index]
            )
            # later groups in the same batch prefer a different lead verb
            lead = cand.verb_for(0)
            if lead:
                avoid.append(lead)
        elif kind == "status":
            cand = status_candidate(status[ref], seed_key=seed_key)  # type: ignore[index]
        else:
            maybe = passthrough_candidate(ref, seed_key=seed_key)  # type: ignore[arg-type]
            if maybe is None:
                continue
            cand = maybe
        out.append(cand)

    if enemy_traits:
        persona = personality_candidate(events, enemy_traits, seed_key=seed_key, tone=tone)
        if persona is not None:
            out.append(persona)
    return out
