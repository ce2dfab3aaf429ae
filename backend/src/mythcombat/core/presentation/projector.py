from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from mythcombat.core.engine.rng import hash_line
from mythcombat.core.presentation.effects import VisualEffect, build_visual_effects
from mythcombat.core.presentation.history import LineHistoryBuffer, compact
from mythcombat.core.presentation.narration import Candidate, build_candidates
from mythcombat.core.presentation.normalize import Tile, prepare
from mythcombat.core.presentation.tone import tone_seed_line
from mythcombat.core.presentation.word_banks import FALLBACK_LINE

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINES = 4
MAX_LINES_CAP = 8


@dataclass(frozen=True)
class NarrationLine:
    text: str
    template: str
    content_hash: str


@dataclass
class Projection:
    lines: list[NarrationLine]
    effects: list[VisualEffect]
    history: LineHistoryBuffer
    cursor: Optional[str] = None
    used_fallback: bool = False
    tone: str = "minimalist"

    @property
    def texts(self) -> list[str]:
        return [line.text for line in self.lines]


def _line(text: str, template: str) -> NarrationLine:
    return NarrationLine(text=text, template=template, content_hash=hash_line(text))


def clamp_max_lines(value: Optional[int]) -> int:
    if value is None:
        return DEFAULT_MAX_LINES
    return max(1, min(MAX_LINES_CAP, int(value)))


@dataclass
class PresentationProjector:
    """Turns an ordered slice of the event log into narration and effect descriptors.

    Output depends only on the events, the history buffer's starting state and
    the settings below. Accepted lines are committed into the buffer.
    """

    seed_key: str
    tone: str = "minimalist"
    max_lines: int = DEFAULT_MAX_LINES
    enemy_traits: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    names: Mapping[str, str] = field(default_factory=dict)
    positions: Mapping[str, Tile] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.max_lines = clamp_max_lines(self.max_lines)

    def project(
        self,
        events: Iterable[Any],
        history: Optional[LineHistoryBuffer] = None,
        *,
        ai_lines: Sequence[str] = (),
    ) -> Projection:
        history = history if history is not None else LineHistoryBuffer()
        raw = list(events)
        prepared = prepare(raw, self.names)

        candidates: list[Candidate] = [
            Candidate(template="ai", variants=[compact(t)]) for t in ai_lines if compact(t)
        ]
        try:
            candidates += build_candidates(
                prepared,
                seed_key=self.seed_key,
                tone=self.tone,
                recent_verbs=history.verbs,
                enemy_traits=self.enemy_traits,
            )
        except (KeyError, TypeError, ValueError, ArithmeticError):
            logger.warning("presentation.candidates_failed seed=%s", self.seed_key, exc_info=True)

        shifted = history.last_tone is not None and history.last_tone != self.tone
        if shifted and self.tone != "minimalist":
            seed = f"{self.seed_key}:{len(history.lines)}"
            candidates.append(
                Candidate(template="tone", variants=[tone_seed_line(self.tone, seed)])
            )

        lines = self._select(candidates, history)
        used_fallback = not lines
        if used_fallback:
            lines = [_line(FALLBACK_LINE, "fallback")]

        try:
            effects = build_visual_effects(prepared, self.positions)
        except (KeyError, TypeError, ValueError):
            logger.warning("presentation.effects_failed seed=%s", self.seed_key, exc_info=True)
            effects = []

        history.last_tone = self.tone
        return Projection(
            lines=lines,
            effects=effects,
            history=history,
            cursor=_last_cursor(raw),
            used_fallback=used_fallback,
            tone=self.tone,
        )

    def _select(
        self, candidates: Sequence[Candidate], history: LineHistoryBuffer
    ) -> list[NarrationLine]:
        accepted: list[NarrationLine] = []
        for cand in candidates:
            if len(accepted) >= self.max_lines:
                break
            for i, text in enumerate(cand.variants):
                if history.should_reject(text):
                    continue
                history.push(text)
                verb = cand.verb_for(i)
                if verb:
                    history.remember_verb(verb)
                accepted.append(_line(text, cand.template))
                break
        return accepted


def _last_cursor(events: Sequence[Any]) -> Optional[str]:
    best = None
    for ev in events:
        key = getattr(ev, "sort_key", None)
        if key is not None and (best is None or key > best[0]):
            best = (key, ev.cursor)
    return best[1] if best else None
