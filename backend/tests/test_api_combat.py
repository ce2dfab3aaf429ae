from sqlalchemy import select

from mythcombat.db.models import Board


def _start(client, campaign_id, player_id="p1", seed=4242, **extra):
    body = {"campaign_id": campaign_id, "player_id": player_id, "seed": seed, **extra}
    r = client.post("/combat/start", json=body)
    assert r.status_code == 200, r.text
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_start_combat_builds_roster_and_prologue(client, new_player):
    campaign_id, character = new_player(
        items=[{"name": "Ash Edge Blade", "slot": "weapon", "stat_mods": {"offense": 5, "weapon_power": 4}}]
    )
    data = _start(client, campaign_id)

    assert data["ok"] is True
    assert data["seed"] == 4242
    ids = [c["id"] for c in data["combatants"]]
    assert ids[0] == f"player:{character['id']}"
    assert 3 <= len(ids) <= 5

    player = data["combatants"][0]
    assert player["stats"]["offense"] == 15
    assert player["hp"] == player["hp_max"]

    assert [e["event_type"] for e in data["events"]] == ["round_start", "turn_start"]
    assert data["events"][1]["actor_id"] == data["turn_order"][0]["combatant_id"]


def test_same_seed_same_roster(client, new_player):
    campaign_id, _ = new_player()
    a = _start(client, campaign_id, seed=99)
    b = _start(client, campaign_id, seed=99)
    assert a["combat_session_id"] != b["combat_session_id"]
    assert a["combatants"] == b["combatants"]
    assert a["turn_order"] == b["turn_order"]


def test_start_without_seed_derives_one(client, new_player):
    campaign_id, _ = new_player()
    r = client.post("/combat/start", json={"campaign_id": campaign_id, "player_id": "p1"})
    assert r.status_code == 200, r.text
    assert 0 <= r.json()["seed"] < 2147483647


def test_start_errors(client, new_player):
    campaign_id, _ = new_player()

    r = client.post("/combat/start", json={"campaign_id": campaign_id, "player_id": "nobody"})
    assert r.status_code == 404
    assert r.json()["code"] == "character_missing"

    r = client.post("/combat/start", json={"campaign_id": "missing", "player_id": "p1"})
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


def test_exactly_one_combat_board_bound_to_latest_session(client, new_player, TestingSessionLocal):
    campaign_id, _ = new_player()
    _start(client, campaign_id, seed=1)
    second = _start(client, campaign_id, seed=2)

    with TestingSessionLocal() as db:
        boards = db.scalars(
            select(Board).where(Board.campaign_id == campaign_id, Board.status == "active")
        ).all()
    assert len(boards) == 1
    assert boards[0].board_type == "combat"
    assert boards[0].combat_session_id == second["combat_session_id"]
    assert boards[0].state_json["seed"] == 2


def test_events_apply_to_state_and_page_by_cursor(client, new_player):
    campaign_id, character = new_player()
    data = _start(client, campaign_id)
    sid = data["combat_session_id"]
    me = f"player:{character['id']}"

    r = client.post(
        f"/combat/{sid}/events",
        json={"turn_index": 0, "event_type": "damage", "actor_id": me, "target_id": "npc:1", "amount": 30},
    )
    assert r.status_code == 200, r.text
    cursor = r.json()["cursor"]

    r = client.post(
        f"/combat/{sid}/events",
        json={"turn_index": 1, "event_type": "moved", "actor_id": me, "to_tile": [3, 2]},
    )
    assert r.status_code == 200, r.text

    state = client.get(f"/combat/{sid}").json()
    by_id = {c["id"]: c for c in state["combatants"]}
    assert by_id["npc:1"]["hp"] == by_id["npc:1"]["hp_max"] - 30
    assert by_id[me]["position"] == {"x": 3, "y": 2}

    r = client.get(f"/combat/{sid}/events")
    assert [e["event_type"] for e in r.json()] == ["round_start", "turn_start", "damage", "moved"]
    created = [e["created_at"] for e in r.json()]
    assert created == sorted(set(created))

    r = client.get(f"/combat/{sid}/events", params={"since": cursor})
    assert [e["event_type"] for e in r.json()] == ["moved"]


def test_invalid_events_are_rejected(client, new_player):
    campaign_id, character = new_player()
    sid = _start(client, campaign_id)["combat_session_id"]
    me = f"player:{character['id']}"

    def post(body):
        return client.post(f"/combat/{sid}/events", json=body)

    r = post({"turn_index": 0, "event_type": "reward_granted", "actor_id": me})
    assert r.status_code == 422
    assert r.json()["code"] == "reserved_event_type"

    r = post({"turn_index": 0, "event_type": "damage", "actor_id": me, "target_id": "npc:99", "amount": 1})
    assert r.json()["code"] == "unknown_target"

    r = post(
        {
            "turn_index": 0,
            "event_type": "damage",
            "actor_id": me,
            "target_id": "npc:1",
            "amount": 1,
            "payload": {"bogus": True},
        }
    )
    assert r.status_code == 422
    assert r.json()["code"] == "invalid_payload"

    r = post({"turn_index": 0, "event_type": "teleported"})
    assert r.status_code == 422


def test_end_combat_is_idempotent_and_closes_the_log(client, new_player):
    campaign_id, character = new_player()
    sid = _start(client, campaign_id)["combat_session_id"]

    r = client.post(f"/combat/{sid}/end")
    assert r.status_code == 200, r.text
    first = r.json()
    assert first["status"] == "ended"
    assert first["outcome"]["player_alive"] is True

    assert client.post(f"/combat/{sid}/end").json() == first

    r = client.post(
        f"/combat/{sid}/events",
        json={"turn_index": 0, "event_type": "turn_end", "actor_id": f"player:{character['id']}"},
    )
    assert r.status_code == 409
    assert r.json()["code"] == "combat_ended"


def test_unknown_session_is_404(client):
    assert client.get("/combat/nope").status_code == 404
    assert client.post("/combat/nope/end").status_code == 404


def _add_character(client, campaign_id, name, player_id="p1"):
    r = client.post(
        f"/campaigns/{campaign_id}/characters", json={"player_id": player_id, "name": name}
    )
    assert r.status_code == 200, r.text
    return r.json()


def test_newest_character_is_used_when_created_back_to_back(client, new_player):
    campaign_id, _ = new_player()
    second = _add_character(client, campaign_id, "Brannoc")
    third = _add_character(client, campaign_id, "Corvin")

    for _ in range(3):
        player = _start(client, campaign_id)["combatants"][0]
        assert player["id"] == f"player:{third['id']}"
        assert player["name"] == "Corvin"
    assert second["id"] != third["id"]


def test_new_character_replaces_cached_snapshot(client, new_player):
    campaign_id, first = new_player()
    assert _start(client, campaign_id)["combatants"][0]["id"] == f"player:{first['id']}"

    second = _add_character(client, campaign_id, "Brannoc")
    player = _start(client, campaign_id)["combatants"][0]
    assert player["id"] == f"player:{second['id']}"
    assert player["name"] == "Brannoc"


def test_other_players_keep_their_character(client, new_player):
    campaign_id, first = new_player()
    _add_character(client, campaign_id, "Brannoc", player_id="p2")
    assert _start(client, campaign_id)["combatants"][0]["id"] == f"player:{first['id']}"
