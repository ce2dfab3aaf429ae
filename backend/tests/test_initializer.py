from mythcombat.core.engine.formulas import ResourceFormulas
from mythcombat.core.engine.initializer import (
    GRID_HEIGHT,
    PLAYER_SPAWN,
    build_encounter,
    enemy_count,
    order_turns,
    prologue,
)
from mythcombat.core.engine.state import CharacterSnapshot, CombatantState, StatBlock


def _snapshot(**kw):
    base = dict(
        character_id="c1",
        player_id="p1",
        campaign_id="camp",
        name="Aria",
        level=1,
        stats=StatBlock(10, 10, 10, 10, 10, 10),
    )
    base.update(kw)
    return CharacterSnapshot(**base)


def test_same_seed_same_encounter():
    a = build_encounter(seed=777, snapshot=_snapshot())
    b = build_encounter(seed=777, snapshot=_snapshot())
    assert a == b


def test_roster_shape():
    setup = build_encounter(seed=31337, snapshot=_snapshot())
    player = setup.combatant("player:c1")
    npcs = [c for c in setup.combatants if c.entity_type == "npc"]

    assert player.position == PLAYER_SPAWN
    assert 2 <= len(npcs) <= 4
    assert len(npcs) == enemy_count(31337)
    assert [c.id for c in npcs] == [f"npc:{i + 1}" for i in range(len(npcs))]
    for c in npcs:
        assert 8 <= c.position[0] <= 10
        assert 0 <= c.position[1] < GRID_HEIGHT
        assert c.hp == c.hp_max == 100
        for v in c.stats.as_dict().values():
            assert 0 <= v <= 100


def test_player_resources_use_default_formulas():
    setup = build_encounter(seed=1, snapshot=_snapshot())
    player = setup.combatant("player:c1")
    # 100 + 10 // 2 + 10 // 4
    assert player.hp_max == 107
    # 50 + 10 // 2 + 10 // 4
    assert player.power_max == 57
    assert player.hp == player.hp_max


def test_formulas_are_injectable():
    formulas = ResourceFormulas(hp_max=lambda level, s: 40, power_max=lambda level, s: 9)
    setup = build_encounter(seed=1, snapshot=_snapshot(), formulas=formulas)
    player = setup.combatant("player:c1")
    assert (player.hp_max, player.power_max) == (40, 9)


def test_equipment_bonuses_are_clamped_and_sanitized():
    snap = _snapshot(
        stats=StatBlock(95, 10, 10, 10, 10, 10),
        equipment=[
            {"offense": 20, "hp_max": 12, "armor": 3},
            {"offense": "lots", "defense": float("nan"), "armor": True, "resist": 4.7},
        ],
    )
    player = build_encounter(seed=5, snapshot=snap).combatant("player:c1")
    assert player.stats.offense == 100
    assert player.stats.defense == 10
    assert player.armor == 3
    assert player.resist == 4
    assert player.hp_max == 107 + 12


def test_elite_profile_changes_enemy_resources():
    setup = build_encounter(seed=9, snapshot=_snapshot(), reason="elite")
    npcs = [c for c in setup.combatants if c.entity_type == "npc"]
    assert all(c.hp_max == 160 and c.power_max == 30 for c in npcs)
    assert all(c.name.startswith("Ink Warden") for c in npcs)


def test_turn_order_ties_break_by_name():
    roster = [
        CombatantState(id="b", name="Bram", initiative=20),
        CombatantState(id="a", name="Aria", initiative=20),
        CombatantState(id="c", name="Cole", initiative=25),
    ]
    order = order_turns(roster)
    assert [e.combatant_id for e in order] == ["c", "a", "b"]
    assert [e.turn_index for e in order] == [0, 1, 2]


def test_blocked_tiles_avoid_occupied_tiles():
    setup = build_encounter(seed=2024, snapshot=_snapshot())
    occupied = {c.position for c in setup.combatants}
    assert 0 < len(setup.blocked_tiles) <= 6
    for x, y in setup.blocked_tiles:
        assert 2 <= x <= 7 and 1 <= y <= 4
        assert (x, y) not in occupied


def test_prologue_opens_round_and_first_turn():
    setup = build_encounter(seed=77, snapshot=_snapshot())
    round_start, turn_start = prologue(setup)

    assert round_start.event_type == "round_start"
    assert round_start.turn_index == 0
    snap = round_start.payload["initiative_snapshot"]
    assert [s["combatant_id"] for s in snap] == [e.combatant_id for e in setup.turn_order]

    assert turn_start.event_type == "turn_start"
    assert turn_start.actor_id == setup.turn_order[0].combatant_id
