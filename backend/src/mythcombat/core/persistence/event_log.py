from __future__ import annotations

import time
import uuid
from typing import Callable, Optional, Protocol, Sequence

from pydantic import ValidationError as PayloadError
from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from mythcombat.core.engine.events import ActionEvent, EventDraft, parse_cursor
from mythcombat.core.errors import ConflictError, ValidationError
from mythcombat.core.persistence.state_codec import event_from_row, event_to_row
from mythcombat.db.models import ActionEventRow

Clock = Callable[[], int]


def wall_clock_us() -> int:
    return time.time_ns() // 1000


def _materialize(session_id: str, draft: EventDraft, created_at: int) -> ActionEvent:
    try:
        checked = draft.validated()
    except PayloadError as exc:
        raise ValidationError(
            f"invalid {draft.event_type} payload",
            code="invalid_payload",
            errors=exc.errors(include_url=False, include_context=False),
        ) from exc
    return ActionEvent(
        **checked.model_dump(),
        id=str(uuid.uuid4()),
        session_id=session_id,
        created_at=created_at,
    )


def _cursor_key(since: Optional[str]) -> Optional[tuple[int, int, str]]:
    if not since:
        return None
    try:
        return parse_cursor(since)
    except ValueError as exc:
        raise ValidationError(str(exc), code="bad_cursor") from exc


class ActionEventLog(Protocol):
    def append(
        self, session_id: str, draft: EventDraft, *, dedupe_key: Optional[str] = None
    ) -> ActionEvent: ...

    def read(self, session_id: str, since: Optional[str] = None) -> list[ActionEvent]: ...

    def find_latest(
        self, session_id: str, event_type: str, *, player_id: Optional[str] = None
    ) -> Optional[ActionEvent]: ...

    def last_turn_index(self, session_id: str) -> Optional[int]: ...


def _matches_player(ev: ActionEvent, player_id: Optional[str]) -> bool:
    return player_id is None or ev.payload.get("player_id") == player_id


class InMemoryActionEventLog:
    """Process-local log with the same ordering and dedupe rules as the SQL one."""

    def __init__(self, clock: Clock = wall_clock_us):
        self._clock = clock
        self._events: dict[str, list[ActionEvent]] = {}
        self._dedupe: dict[tuple[str, str], ActionEvent] = {}

    def append(
        self, session_id: str, draft: EventDraft, *, dedupe_key: Optional[str] = None
    ) -> ActionEvent:
        if dedupe_key is not None and (session_id, dedupe_key) in self._dedupe:
            raise ConflictError(
                "event already appended", code="duplicate_event", dedupe_key=dedupe_key
            )
        stream = self._events.setdefault(session_id, [])
        last = max((e.created_at for e in stream), default=0)
        ev = _materialize(session_id, draft, max(self._clock(), last + 1))
        stream.append(ev)
        if dedupe_key is not None:
            self._dedupe[(session_id, dedupe_key)] = ev
        return ev

    def append_many(self, session_id: str, drafts: Sequence[EventDraft]) -> list[ActionEvent]:
        return [self.append(session_id, d) for d in drafts]

    def read(self, session_id: str, since: Optional[str] = None) -> list[ActionEvent]:
        out = sorted(self._events.get(session_id, []), key=lambda e: e.sort_key)
        after = _cursor_key(since)
        if after is not None:
            out = [e for e in out if e.sort_key > after]
        return out

    def find_latest(
        self, session_id: str, event_type: str, *, player_id: Optional[str] = None
    ) -> Optional[ActionEvent]:
        for ev in reversed(self.read(session_id)):
            if ev.event_type == event_type and _matches_player(ev, player_id):
                return ev
        return None

    def last_turn_index(self, session_id: str) -> Optional[int]:
        stream = self._events.get(session_id)
        return max(e.turn_index for e in stream) if stream else None


class SqlActionEventLog:
    """Appends go into the caller's Session; the caller owns commit/rollback."""

    def __init__(self, db: Session, clock: Clock = wall_clock_us):
        self.db = db
        self._clock = clock

    def _last_created_at(self, session_id: str) -> int:
        stmt = select(func.max(ActionEventRow.created_at)).where(
            ActionEventRow.session_id == session_id
        )
        return int(self.db.execute(stmt).scalar() or 0)

    def append(
        self, session_id: str, draft: EventDraft, *, dedupe_key: Optional[str] = None
    ) -> ActionEvent:
        ev = _materialize(
            session_id, draft, max(self._clock(), self._last_created_at(session_id) + 1)
        )
        self.db.add(event_to_row(ev, dedupe_key=dedupe_key))
        # surfaces IntegrityError on a dedupe_key collision before commit
        self.db.flush()
        return ev

    def append_many(self, session_id: str, drafts: Sequence[EventDraft]) -> list[ActionEvent]:
        return [self.append(session_id, d) for d in drafts]

    def read(self, session_id: str, since: Optional[str] = None) -> list[ActionEvent]:
        stmt = select(ActionEventRow).where(ActionEventRow.session_id == session_id)
        after = _cursor_key(since)
        if after is not None:
            t, c, i = after
            stmt = stmt.where(
                or_(
                    ActionEventRow.turn_index > t,
                    and_(ActionEventRow.turn_index == t, ActionEventRow.created_at > c),
                    and_(
                        ActionEventRow.turn_index == t,
                        ActionEventRow.created_at == c,
                        ActionEventRow.id > i,
                    ),
                )
            )
        stmt = stmt.order_by(
            ActionEventRow.turn_index, ActionEventRow.created_at, ActionEventRow.id
        )
        return [event_from_row(r) for r in self.db.scalars(stmt)]

    def find_latest(
        self, session_id: str, event_type: str, *, player_id: Optional[str] = None
    ) -> Optional[ActionEvent]:
        stmt = (
            select(ActionEventRow)
            .where(
                ActionEventRow.session_id == session_id,
                ActionEventRow.event_type == event_type,
            )
            .order_by(
                ActionEventRow.turn_index.desc(),
                ActionEventRow.created_at.desc(),
                ActionEventRow.id.desc(),
            )
        )
        for row in self.db.scalars(stmt):
            ev = event_from_row(row)
            if _matches_player(ev, player_id):
                return ev
        return None

    def last_turn_index(self, session_id: str) -> Optional[int]:
        stmt = select(func.max(ActionEventRow.turn_index)).where(
            ActionEventRow.session_id == session_id
        )
        return self.db.execute(stmt).scalar()
