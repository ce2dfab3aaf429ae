import pytest

from mythcombat.core.engine.events import (
    EventDraft,
    ev_damage,
    ev_turn_end,
    ev_turn_start,
    parse_cursor,
)
from mythcombat.core.errors import ConflictError, ValidationError
from mythcombat.core.persistence.event_log import InMemoryActionEventLog


class FrozenClock:
    def __init__(self, now=1_000):
        self.now = now

    def __call__(self):
        return self.now


def test_created_at_is_strictly_increasing_per_session():
    log = InMemoryActionEventLog(clock=FrozenClock())
    evs = [log.append("s1", ev_turn_start(turn_index=0, actor_id="a")) for _ in range(3)]
    assert [e.created_at for e in evs] == [1_000, 1_001, 1_002]

    other = log.append("s2", ev_turn_start(turn_index=0, actor_id="a"))
    assert other.created_at == 1_000


def test_read_orders_by_turn_then_created_at_and_honors_cursor():
    clock = FrozenClock()
    log = InMemoryActionEventLog(clock=clock)
    late = log.append("s", ev_turn_start(turn_index=2, actor_id="a"))
    clock.now = 5_000
    early = log.append("s", ev_turn_start(turn_index=1, actor_id="b"))
    last = log.append("s", ev_damage(turn_index=2, actor_id="a", target_id="b", amount=3))

    assert [e.id for e in log.read("s")] == [early.id, late.id, last.id]
    assert [e.id for e in log.read("s", since=late.cursor)] == [last.id]
    assert log.read("s", since=last.cursor) == []
    assert parse_cursor(late.cursor) == (2, late.created_at, late.id)


def test_bad_cursor_is_a_validation_error():
    log = InMemoryActionEventLog()
    with pytest.raises(ValidationError) as exc:
        log.read("s", since="nonsense")
    assert exc.value.code == "bad_cursor"


def test_payload_is_validated_against_event_type():
    log = InMemoryActionEventLog()
    bad = EventDraft(
        turn_index=0,
        event_type="damage",
        actor_id="a",
        target_id="b",
        amount=4,
        payload={"mana_color": "blue"},
    )
    with pytest.raises(ValidationError) as exc:
        log.append("s", bad)
    assert exc.value.code == "invalid_payload"
    assert log.read("s") == []


def test_payload_defaults_are_filled_in():
    log = InMemoryActionEventLog()
    ev = log.append("s", ev_damage(turn_index=0, actor_id="a", target_id="b", amount=4))
    assert ev.payload == {"is_critical": False}


def test_dedupe_key_collision_is_a_conflict():
    log = InMemoryActionEventLog()
    draft = ev_turn_start(turn_index=0, actor_id="a")
    log.append("s", draft, dedupe_key="once")
    with pytest.raises(ConflictError):
        log.append("s", draft, dedupe_key="once")
    # other sessions have their own keys
    log.append("t", draft, dedupe_key="once")


def test_find_latest_filters_by_player():
    log = InMemoryActionEventLog()
    for pid in ("p1", "p2", "p1"):
        log.append(
            "s",
            EventDraft(
                turn_index=0,
                event_type="item_used",
                actor_id="a",
                payload={"item_id": pid},
            ),
        )
    assert log.find_latest("s", "item_used") is not None
    assert log.find_latest("s", "damage") is None
    assert log.last_turn_index("s") == 0
    assert log.last_turn_index("empty") is None


def test_turn_end_closes_the_turn_and_tracks_last_turn_index():
    log = InMemoryActionEventLog(clock=FrozenClock())
    assert log.last_turn_index("s") is None

    log.append("s", ev_turn_start(turn_index=0, actor_id="a"))
    closed = log.append("s", ev_turn_end(turn_index=0, actor_id="a"))
    log.append("s", ev_turn_start(turn_index=1, actor_id="b"))

    assert closed.payload == {"actor_combatant_id": "a"}
    assert log.find_latest("s", "turn_end").id == closed.id
    assert log.last_turn_index("s") == 1
