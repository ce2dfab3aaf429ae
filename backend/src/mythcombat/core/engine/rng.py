"""Seeded value source.

Every pseudo-random choice in a combat session goes through here. The hash is
FNV-1a over UTF-8 bytes with 32-bit wraparound, so the same (key, salt) pair
produces the same value on any platform and in any process.
"""

from __future__ import annotations

import re
from typing import Hashable, Iterable, Mapping, Optional, Sequence, TypeVar

from mythcombat.core.errors import EmptyPoolError

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

FNV_OFFSET = 2166136261
FNV_PRIME = 16777619
FLOAT_RESOLUTION = 1_000_000
MIN_WEIGHT = 0.001

_WS_RE = re.compile(r"\s+")


def hash32(seed_key: str) -> int:
    h = FNV_OFFSET
    for b in seed_key.encode("utf-8"):
        h ^= b
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return h


def stable_int(key: str, salt: str = "") -> int:
    return hash32(f"{key}::{salt}")


def stable_float(key: str, salt: str = "") -> float:
    return (stable_int(key, salt) % FLOAT_RESOLUTION) / FLOAT_RESOLUTION


def roll_range(key: str, salt: str, lo: int, hi: int) -> int:
    """Integer in [lo, hi] inclusive."""
    if hi < lo:
        lo, hi = hi, lo
    return lo + stable_int(key, salt) % (hi - lo + 1)


def pick(pool: Sequence[T], key: str, salt: str = "") -> T:
    if not pool:
        raise EmptyPoolError("cannot pick from an empty pool", salt=salt)
    return pool[stable_int(key, salt) % len(pool)]


def pick_without_immediate_repeat(
    pool: Sequence[T], key: str, last: Optional[T] = None, salt: str = ""
) -> T:
    if not pool:
        raise EmptyPoolError("cannot pick from an empty pool", salt=salt)
    if len(pool) == 1:
        return pool[0]
    filtered = [x for x in pool if x != last]
    return pick(filtered or list(pool), key, salt)


def weighted_pick_without_immediate_repeat(
    weights: Mapping[K, float],
    key: str,
    last: Optional[K] = None,
    salt: str = "",
) -> K:
    keys = list(weights.keys())
    if not keys:
        raise EmptyPoolError("cannot pick from an empty weight table", salt=salt)

    candidates = [k for k in keys if weights[k] > 0] or keys
    if len(candidates) > 1 and last in candidates:
        candidates = [k for k in candidates if k != last]

    floored = [max(MIN_WEIGHT, float(weights[k])) for k in candidates]
    total = sum(floored)
    roll = stable_float(key, salt) * total

    cursor = 0.0
    for k, w in zip(candidates, floored):
        cursor += w
        if roll <= cursor:
            return k
    return candidates[-1]


def hash_line(text: str) -> str:
    """Content hash for a narration line, insensitive to case and spacing."""
    norm = _WS_RE.sub(" ", text.strip().lower())
    return f"{hash32(norm):08x}"


def dedupe_keep_order(items: Iterable[T]) -> list[T]:
    seen: set = set()
    out: list[T] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


class SeededValueSource:
    """Binds a seed key so call sites only pass the salt."""

    def __init__(self, key: str | int):
        self.key = str(key)

    def value(self, salt: str) -> int:
        return stable_int(self.key, salt)

    def unit(self, salt: str) -> float:
        return stable_float(self.key, salt)

    def between(self, salt: str, lo: int, hi: int) -> int:
        return roll_range(self.key, salt, lo, hi)

    def pick(self, pool: Sequence[T], salt: str) -> T:
        return pick(pool, self.key, salt)

    def derive(self, salt: str) -> "SeededValueSource":
        return SeededValueSource(f"{self.key}:{salt}")
