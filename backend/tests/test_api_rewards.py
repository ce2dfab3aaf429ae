from sqlalchemy.exc import SQLAlchemyError

from mythcombat.core.runtime.rewards import RewardResolver


def _finished_combat(client, new_player, *, kill_all=True, player_id="p1"):
    campaign_id, character = new_player(player_id=player_id)
    r = client.post(
        "/combat/start", json={"campaign_id": campaign_id, "player_id": player_id, "seed": 4242}
    )
    assert r.status_code == 200, r.text
    data = r.json()
    sid = data["combat_session_id"]
    me = f"player:{character['id']}"

    npcs = [c["id"] for c in data["combatants"] if c["entity_type"] == "npc"]
    targets = npcs if kill_all else npcs[:1]
    for npc in targets:
        r = client.post(
            f"/combat/{sid}/events",
            json={"turn_index": 1, "event_type": "death", "actor_id": me, "target_id": npc},
        )
        assert r.status_code == 200, r.text

    r = client.post(f"/combat/{sid}/end")
    assert r.status_code == 200, r.text
    return campaign_id, character, sid, len(npcs)


def _claim(client, campaign_id, sid, player_id="p1"):
    return client.post(
        "/rewards/claim",
        json={"campaign_id": campaign_id, "combat_session_id": sid},
        headers={"X-Player-Id": player_id},
    )


def test_claim_grants_xp_levels_and_loot(client, new_player):
    campaign_id, character, sid, n_npcs = _finished_combat(client, new_player)

    r = _claim(client, campaign_id, sid)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["ok"] is True
    assert body["already_granted"] is False
    assert body["warnings"] == []

    rewards = body["rewards"]
    assert rewards["outcome"]["defeated_npcs"] == n_npcs
    assert rewards["outcome"]["surviving_npcs"] == 0
    assert rewards["xp_gained"] == 45 + 34 * n_npcs + 28 + 18
    assert rewards["level_before"] == 1
    assert len(rewards["loot"]) == max(1, min(3, (n_npcs + 1) // 2))

    after = client.get(f"/characters/{character['id']}").json()
    assert after["level"] == rewards["level_after"]
    assert after["xp"] == rewards["xp_after"]
    assert after["stats"] == rewards["stats_after"]

    inventory = client.get(f"/characters/{character['id']}/inventory").json()
    backpack = {i["item_id"] for i in inventory if i["container"] == "backpack"}
    assert backpack == {i["item_id"] for i in rewards["loot"]}


def test_second_claim_returns_the_first_grant(client, new_player):
    campaign_id, character, sid, _ = _finished_combat(client, new_player)

    first = _claim(client, campaign_id, sid).json()
    second = _claim(client, campaign_id, sid).json()
    assert second["already_granted"] is True
    assert second["rewards"] == first["rewards"]

    after = client.get(f"/characters/{character['id']}").json()
    assert after["xp"] == first["rewards"]["xp_after"]

    events = client.get(f"/combat/{sid}/events").json()
    assert [e["event_type"] for e in events].count("reward_granted") == 1


def test_claim_survives_a_restart_via_the_log(client, new_player):
    campaign_id, _, sid, _ = _finished_combat(client, new_player)
    first = _claim(client, campaign_id, sid).json()

    client.app.state.reward_cache.clear()
    again = _claim(client, campaign_id, sid).json()
    assert again["already_granted"] is True
    assert again["rewards"] == first["rewards"]


def test_losing_claim_race_returns_winner(client, new_player, TestingSessionLocal):
    campaign_id, character, sid, _ = _finished_combat(client, new_player)
    winner = _claim(client, campaign_id, sid).json()

    with TestingSessionLocal() as db:
        resolver = RewardResolver(db)
        real_prior = resolver._prior_grant
        calls = []

        def stale_then_real(session_id, player_id):
            calls.append(session_id)
            # the first lookup runs before the winner's commit is visible
            return None if len(calls) == 1 else real_prior(session_id, player_id)

        resolver._prior_grant = stale_then_real
        result = resolver.claim(campaign_id=campaign_id, combat_session_id=sid, player_id="p1")

    assert result.already_granted is True
    assert result.rewards.model_dump(mode="json") == winner["rewards"]
    after = client.get(f"/characters/{character['id']}").json()
    assert after["xp"] == winner["rewards"]["xp_after"]


def test_loot_failure_still_grants_xp(client, new_player, monkeypatch):
    campaign_id, character, sid, _ = _finished_combat(client, new_player)

    def broken(self, campaign_id, character_id, items):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(RewardResolver, "_persist_loot", broken)
    r = _claim(client, campaign_id, sid)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["ok"] is True
    assert body["rewards"]["loot"] == []
    assert body["warnings"] == ["loot_persistence_failed", "loot_empty"]
    assert client.get(f"/characters/{character['id']}").json()["xp"] == body["rewards"]["xp_after"]


def test_claim_before_end_is_a_conflict(client, new_player):
    campaign_id, _ = new_player()
    sid = client.post(
        "/combat/start", json={"campaign_id": campaign_id, "player_id": "p1", "seed": 1}
    ).json()["combat_session_id"]

    r = _claim(client, campaign_id, sid)
    assert r.status_code == 409
    assert r.json()["code"] == "combat_not_ended"


def test_claim_errors(client, new_player):
    campaign_id, _, sid, _ = _finished_combat(client, new_player, kill_all=False)

    assert _claim(client, "other-campaign", sid).status_code == 404
    assert _claim(client, campaign_id, sid, player_id="stranger").status_code == 404

    r = client.post("/rewards/claim", json={"campaign_id": campaign_id, "combat_session_id": sid})
    assert r.status_code == 422


def test_partial_win_outcome(client, new_player):
    campaign_id, _, sid, n_npcs = _finished_combat(client, new_player, kill_all=False)
    rewards = _claim(client, campaign_id, sid).json()["rewards"]
    assert rewards["outcome"]["defeated_npcs"] == 1
    assert rewards["outcome"]["surviving_npcs"] == n_npcs - 1
    assert rewards["xp_gained"] == 45 + 34 + 18
