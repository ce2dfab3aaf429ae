from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, Optional

from mythcombat.core.presentation.effects import VisualEffect

DEFAULT_CADENCE_MS = 180
SEEN_LIMIT = 512


class EffectQueue:
    """Observer-side FIFO that releases one effect per cadence tick.

    Changing board type flushes pending effects; nothing is replayed or retried.
    """

    def __init__(self, *, cadence_ms: int = DEFAULT_CADENCE_MS, board_type: Optional[str] = None):
        if cadence_ms <= 0:
            raise ValueError("cadence_ms must be positive")
        self.cadence_ms = cadence_ms
        self.board_type = board_type
        self._pending: Deque[VisualEffect] = deque()
        self._seen: Deque[str] = deque(maxlen=SEEN_LIMIT)
        self._next_due_ms: Optional[int] = None

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(self, effects: Iterable[VisualEffect]) -> int:
        added = 0
        for fx in effects:
            key = f"{fx.kind}:{fx.seed_key}"
            if key in self._seen:
                continue
            self._seen.append(key)
            self._pending.append(fx)
            added += 1
        return added

    def set_board_type(self, board_type: str) -> int:
        """Returns how many pending effects were dropped."""
        if board_type == self.board_type:
            return 0
        self.board_type = board_type
        return self.flush()

    def flush(self) -> int:
        dropped = len(self._pending)
        self._pending.clear()
        self._next_due_ms = None
        return dropped

    def drain(self, now_ms: int) -> list[VisualEffect]:
        out: list[VisualEffect] = []
        while self._pending and (self._next_due_ms is None or now_ms >= self._next_due_ms):
            out.append(self._pending.popleft())
            base = now_ms if self._next_due_ms is None else self._next_due_ms
            self._next_due_ms = base + self.cadence_ms
        if not self._pending and (self._next_due_ms is None or now_ms >= self._next_due_ms):
            self._next_due_ms = None
        return out
