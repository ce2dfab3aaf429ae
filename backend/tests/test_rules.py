from mythcombat.core.engine.events import EventDraft, ev_damage, ev_death
from mythcombat.core.engine.rules.apply import apply_event, replay
from mythcombat.core.engine.rules.validator import validate_event
from mythcombat.core.engine.state import CombatantState, StatusRef
from mythcombat.core.persistence.event_log import InMemoryActionEventLog


def _roster():
    return {
        "player:c1": CombatantState(
            id="player:c1", name="Aria", entity_type="player", hp=40, hp_max=50,
            power=10, power_max=20, armor=5,
        ),
        "npc:1": CombatantState(id="npc:1", name="Ink Ghoul 1", hp=30, hp_max=30),
    }


def test_damage_floors_hp_at_zero():
    state = _roster()
    touched = apply_event(
        state, ev_damage(turn_index=1, actor_id="player:c1", target_id="npc:1", amount=45)
    )
    assert touched == ["npc:1"]
    assert state["npc:1"].hp == 0
    # hp 0 alone does not kill; a death event does
    assert state["npc:1"].is_alive


def test_heal_and_power_are_capped():
    state = _roster()
    apply_event(state, EventDraft(turn_index=1, event_type="healed", target_id="player:c1", amount=99))
    apply_event(state, EventDraft(turn_index=1, event_type="power_gain", actor_id="player:c1", amount=99))
    apply_event(state, EventDraft(turn_index=1, event_type="armor_shred", target_id="player:c1", amount=9))
    p = state["player:c1"]
    assert (p.hp, p.power, p.armor) == (50, 20, 0)


def test_status_lifecycle_and_death():
    state = _roster()
    apply_event(
        state,
        EventDraft(
            turn_index=1,
            event_type="status_applied",
            target_id="npc:1",
            status_id="burn",
            payload={"expires_turn": 3},
        ),
    )
    assert state["npc:1"].statuses == [StatusRef(id="burn", expires_turn=3)]

    apply_event(state, EventDraft(turn_index=2, event_type="status_expired", target_id="npc:1", status_id="burn"))
    assert state["npc:1"].statuses == []

    apply_event(state, ev_death(turn_index=2, target_id="npc:1", actor_id="player:c1"))
    assert not state["npc:1"].is_alive
    assert state["npc:1"].hp == 0


def test_moved_updates_position():
    state = _roster()
    apply_event(
        state,
        EventDraft(turn_index=1, event_type="moved", actor_id="player:c1", to_tile=(4, 2)),
    )
    assert state["player:c1"].position == (4, 2)


def test_replay_rebuilds_state_from_log():
    initial = list(_roster().values())
    log = InMemoryActionEventLog()
    log.append("s", ev_damage(turn_index=1, actor_id="player:c1", target_id="npc:1", amount=12))
    log.append("s", ev_damage(turn_index=1, actor_id="npc:1", target_id="player:c1", amount=7))
    log.append("s", ev_death(turn_index=2, target_id="npc:1"))

    state = replay(initial, log.read("s"))
    assert state["player:c1"].hp == 33
    assert not state["npc:1"].is_alive
    # the opening roster is untouched
    assert initial[1].is_alive and initial[1].hp == 30


def test_validator_rejects_bad_drafts():
    state = _roster()

    def code(draft, last=None):
        res = validate_event(state, draft, last_turn_index=last)
        return None if res.ok else res.errors[0].code

    assert code(ev_damage(turn_index=1, actor_id="player:c1", target_id="npc:1", amount=3)) is None
    assert code(ev_damage(turn_index=1, actor_id="player:c1", target_id="npc:9", amount=3)) == "UNKNOWN_TARGET"
    assert code(ev_damage(turn_index=1, actor_id="ghost", target_id="npc:1", amount=3)) == "UNKNOWN_ACTOR"
    assert code(ev_damage(turn_index=1, actor_id="player:c1", target_id="npc:1", amount=-1)) == "NEGATIVE_AMOUNT"
    assert code(ev_damage(turn_index=1, actor_id="player:c1", target_id="npc:1", amount=3), last=4) == "TURN_INDEX_REGRESSION"
    assert code(EventDraft(turn_index=1, event_type="moved", actor_id="player:c1")) == "TILE_REQUIRED"
    assert code(EventDraft(turn_index=1, event_type="reward_granted")) == "RESERVED_EVENT_TYPE"
    assert code(EventDraft(turn_index=1, event_type="status_applied", target_id="npc:1")) == "STATUS_REQUIRED"

    state["npc:1"].is_alive = False
    assert code(ev_damage(turn_index=1, actor_id="npc:1", target_id="player:c1", amount=3)) == "ACTOR_DEAD"
