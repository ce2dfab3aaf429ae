"""Recent-line memory and the similarity tests behind the anti-repetition filter."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

from mythcombat.core.engine.rng import dedupe_keep_order

DEFAULT_HISTORY_SIZE = 20
MIN_HISTORY_SIZE = 8
MAX_HISTORY_SIZE = 64
DEFAULT_SIMILARITY = 0.76
MIN_SIMILARITY = 0.55
MAX_SIMILARITY = 0.94
FRAGMENT_WINDOW = 3
FRAGMENT_LIMIT = 64
FRAGMENT_OVERLAP_LIMIT = 3
VERB_MEMORY = 8

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WS = re.compile(r"\s+")
_TOKEN = re.compile(r"[a-z0-9]+")


def compact(text: str) -> str:
    return _WS.sub(" ", text.strip())


def normalize_text(text: str) -> str:
    return _WS.sub(" ", _NON_ALNUM.sub(" ", text.strip().lower())).strip()


def tokenize(text: str) -> list[str]:
    return _TOKEN.findall(normalize_text(text))


def build_fragments(text: str) -> list[str]:
    tokens = tokenize(text)
    if len(tokens) < FRAGMENT_WINDOW:
        return [" ".join(tokens)] if tokens else []
    return dedupe_keep_order(
        " ".join(tokens[i : i + FRAGMENT_WINDOW])
        for i in range(len(tokens) - FRAGMENT_WINDOW + 1)
    )


def jaccard(left: Iterable[str], right: Iterable[str]) -> float:
    a, b = set(left), set(right)
    if not a or not b:
        return 0.0
    inter = len(a & b)
    return inter / (len(a) + len(b) - inter)


def _bigrams(text: str) -> list[str]:
    return [text[i : i + 2] for i in range(len(text) - 1)]


def bigram_dice(left: str, right: str) -> float:
    a, b = _bigrams(normalize_text(left)), _bigrams(normalize_text(right))
    if not a or not b:
        return 0.0
    overlap = sum((Counter(a) & Counter(b)).values())
    return 2 * overlap / (len(a) + len(b))


def line_similarity(left: str, right: str) -> float:
    return max(jaccard(tokenize(left), tokenize(right)), bigram_dice(left, right))


@dataclass
class LineHistoryBuffer:
    max_lines: int = DEFAULT_HISTORY_SIZE
    similarity_threshold: float = DEFAULT_SIMILARITY
    lines: list[str] = field(default_factory=list)
    fragments: list[str] = field(default_factory=list)
    verbs: list[str] = field(default_factory=list)
    last_tone: Optional[str] = None

    def __post_init__(self) -> None:
        self.max_lines = max(MIN_HISTORY_SIZE, min(MAX_HISTORY_SIZE, int(self.max_lines)))
        self.similarity_threshold = max(
            MIN_SIMILARITY, min(MAX_SIMILARITY, float(self.similarity_threshold))
        )
        self.lines = [c for c in (compact(str(x)) for x in self.lines) if c][-self.max_lines :]
        if self.fragments:
            frags = (compact(str(f).lower()) for f in self.fragments)
            self.fragments = [f for f in frags if f][-FRAGMENT_LIMIT:]
        else:
            self.fragments = dedupe_keep_order(
                f for line in self.lines for f in build_fragments(line)
            )[-FRAGMENT_LIMIT:]
        self.verbs = list(self.verbs)[-VERB_MEMORY:]

    def should_reject(self, candidate: str) -> bool:
        clean = compact(candidate)
        if not clean:
            return True
        norm = normalize_text(clean)
        if any(normalize_text(line) == norm for line in self.lines):
            return True
        if any(line_similarity(line, clean) >= self.similarity_threshold for line in self.lines):
            return True
        known = set(self.fragments)
        overlap = sum(1 for f in build_fragments(clean) if f in known)
        return overlap >= FRAGMENT_OVERLAP_LIMIT

    def push(self, line: str) -> None:
        clean = compact(line)
        if not clean:
            return
        self.lines = [*self.lines, clean][-self.max_lines :]
        self.fragments = dedupe_keep_order([*self.fragments, *build_fragments(clean)])[
            -FRAGMENT_LIMIT:
        ]

    def remember_verb(self, verb: str) -> None:
        self.verbs = [*self.verbs, verb][-VERB_MEMORY:]

    def copy(self) -> "LineHistoryBuffer":
        return LineHistoryBuffer(
            max_lines=self.max_lines,
            similarity_threshold=self.similarity_threshold,
            lines=list(self.lines),
            fragments=list(self.fragments),
            verbs=list(self.verbs),
            last_tone=self.last_tone,
        )
