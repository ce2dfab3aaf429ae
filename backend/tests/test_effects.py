from mythcombat.core.presentation.effect_queue import EffectQueue
from mythcombat.core.presentation.effects import MAX_EFFECTS, build_visual_effects
from mythcombat.core.presentation.normalize import prepare

POSITIONS = {"player:c1": (1, 1), "npc:1": (9, 2)}


def _ev(eid, event_type, at, turn=1, **kw):
    return {"id": eid, "turn_index": turn, "created_at": at, "event_type": event_type, **kw}


def effects_for(raw):
    return build_visual_effects(prepare(raw), POSITIONS)


def test_grouped_damage_emits_windup_and_crit_multi_impact():
    fx = effects_for(
        [
            _ev("e1", "damage", 1, actor_id="player:c1", target_id="npc:1", amount=30),
            _ev("e2", "damage", 2, actor_id="player:c1", target_id="npc:1", amount=25),
        ]
    )
    kinds = [f.kind for f in fx]
    assert kinds == ["attack_windup", "hit_impact"]
    windup, impact = fx
    assert windup.anchor_tile == (1, 1)
    assert impact.anchor_entity_id == "npc:1"
    assert impact.anchor_tile == (9, 2)
    assert impact.magnitude == 55
    assert impact.style_tags == ("crit", "multi")
    assert impact.meta == {"hits": 2}
    assert impact.seed_key == "e1|e2"


def test_small_single_hit_is_not_crit():
    fx = effects_for([_ev("e1", "damage", 1, actor_id="player:c1", target_id="npc:1", amount=49)])
    assert fx[-1].style_tags == ()


def test_flagged_critical_is_tagged():
    fx = effects_for(
        [
            _ev(
                "e1", "damage", 1, actor_id="player:c1", target_id="npc:1", amount=3,
                payload={"is_critical": True},
            )
        ]
    )
    assert "crit" in fx[-1].style_tags


def test_status_effects_group_and_barriers_split_out():
    fx = effects_for(
        [
            _ev("e1", "status_applied", 1, target_id="npc:1", status_id="slow"),
            _ev("e2", "status_applied", 2, target_id="npc:1", status_id="burn"),
            _ev("e3", "status_applied", 3, target_id="player:c1", status_id="shield"),
        ]
    )
    by_kind = {f.kind: f for f in fx}
    assert by_kind["status_apply_multi"].style_tags == ("burn", "slow")
    assert by_kind["barrier_gain"].anchor_entity_id == "player:c1"


def test_move_trail_tracks_position_and_distance():
    fx = effects_for([_ev("e1", "moved", 1, actor_id="player:c1", to_tile=[4, 3])])
    assert fx[0].kind == "move_trail"
    assert fx[0].anchor_tile == (4, 3)
    assert fx[0].magnitude == 3


def test_effects_are_sorted_and_capped():
    raw = [
        _ev(f"e{i}", "turn_start", 10_000 - i, turn=i, actor_id="player:c1")
        for i in range(100)
    ]
    fx = effects_for(raw)
    assert len(fx) == MAX_EFFECTS
    assert fx[0].tick == 20
    assert [f.tick for f in fx] == sorted(f.tick for f in fx)


def _queue_items(n):
    return effects_for(
        [_ev(f"e{i}", "turn_end", i, turn=i, actor_id="player:c1") for i in range(n)]
    )


def test_queue_drains_one_effect_per_cadence():
    q = EffectQueue(cadence_ms=100, board_type="combat")
    assert q.enqueue(_queue_items(3)) == 3
    assert len(q.drain(0)) == 1
    assert q.drain(50) == []
    assert len(q.drain(100)) == 1
    assert len(q.drain(200)) == 1
    assert len(q) == 0


def test_queue_ignores_already_seen_effects():
    q = EffectQueue(cadence_ms=100)
    items = _queue_items(2)
    q.enqueue(items)
    assert q.enqueue(items) == 0
    assert len(q) == 2


def test_board_change_flushes_without_replay():
    q = EffectQueue(cadence_ms=100, board_type="combat")
    items = _queue_items(4)
    q.enqueue(items)
    q.drain(0)
    assert q.set_board_type("combat") == 0
    assert q.set_board_type("town") == 3
    assert q.drain(10_000) == []
    # flushed effects stay dropped
    assert q.enqueue(items) == 0
