from __future__ import annotations

from uuid import uuid4


def _create(client, **body) -> dict:  # type: ignore[no-untyped-def]
    resp = client.post("/session", json=body)
    assert resp.status_code == 201
    return resp.json()


def test_create_session_builds_initial_deck(client_and_redis) -> None:
    client, r = client_and_redis

    data = _create(client, seed=7, variables={"$coins": 3, "_mood": "calm"})
    assert data["seed"] == 7
    assert data["deck"]["Well"] == 0
    assert data["deck"]["Market"] == 1
    assert data["persistent"] == {"coins": 3}
    assert data["temporary"] == {"mood": "calm"}
    assert "rng_state" not in data

    # Persisted in Redis and listed.
    assert r.sismember("qbn:sessions", data["session_id"])
    listed = client.get("/session").json()["sessions"]
    assert [s["session_id"] for s in listed] == [data["session_id"]]
    assert "rng_state" not in listed[0]


def test_create_rejects_bad_variable_names(client_and_redis) -> None:
    client, _r = client_and_redis
    resp = client.post("/session", json={"variables": {"coins": 3}})
    assert resp.status_code == 422
    assert "coins" in resp.json()["detail"]


def test_lifespan_loads_configured_story(client_and_redis) -> None:
    client, _r = client_and_redis
    story = client.app.state.story
    assert "Ferry" in story
    assert len(story) == 8
    assert client.get("/info").status_code == 404


def test_unknown_session_is_404(client_and_redis) -> None:
    client, _r = client_and_redis
    sid = uuid4()
    assert client.get(f"/session/{sid}").status_code == 404
    assert client.post(f"/session/{sid}/visit", json={"title": "Well"}).status_code == 404
    assert client.post(f"/session/{sid}/passages", json={}).status_code == 404


def test_passages_follow_variables_and_visits(client_and_redis) -> None:
    client, _r = client_and_redis
    sid = _create(client, seed=1)["session_id"]

    resp = client.post(f"/session/{sid}/passages", json={})
    assert resp.json()["passages"] == ["Market", "Oracle", "Tavern", "Well"]

    resp = client.put(f"/session/{sid}/variables", json={"variables": {"$coins": 6}})
    assert resp.status_code == 200
    assert resp.json()["persistent"]["coins"] == 6

    resp = client.post(f"/session/{sid}/passages", json={"overrides": {"tide": "high", "fare": 1}})
    assert resp.json()["passages"] == ["Ferry", "Market", "Oracle", "Stranger", "Tavern", "Well"]

    resp = client.post(f"/session/{sid}/visit", json={"title": "Stranger"})
    assert resp.status_code == 200
    assert "Stranger" not in resp.json()["deck"]
    assert resp.json()["visits"] == ["Stranger"]

    resp = client.post(f"/session/{sid}/passages", json={"n": 2})
    passages = resp.json()["passages"]
    assert len(passages) == 2
    assert "Stranger" not in passages


def test_visit_unknown_passage_is_422(client_and_redis) -> None:
    client, _r = client_and_redis
    sid = _create(client)["session_id"]
    resp = client.post(f"/session/{sid}/visit", json={"title": "Nowhere"})
    assert resp.status_code == 422
    assert resp.json()["detail"] == 'No such passage "Nowhere".'


def test_add_and_remove_cards(client_and_redis) -> None:
    client, _r = client_and_redis
    sid = _create(client)["session_id"]

    resp = client.post(f"/session/{sid}/cards/add", json={"title": "Notes", "sticky": True})
    assert resp.json()["deck"]["Notes"] == 1

    resp = client.post(f"/session/{sid}/cards/remove", json={"title": "Notes", "always": False})
    assert resp.json()["deck"]["Notes"] == 1

    resp = client.post(f"/session/{sid}/cards/remove", json={"title": "Notes"})
    assert "Notes" not in resp.json()["deck"]

    resp = client.post(f"/session/{sid}/cards/add", json={"title": "Nowhere"})
    assert resp.status_code == 422


def test_draw_cards_into_named_hand(client_and_redis) -> None:
    client, _r = client_and_redis
    sid = _create(client, seed=3)["session_id"]

    resp = client.post(f"/session/{sid}/cards/draw", json={"count": 2, "pool": ["Well", "Market", "Oracle"]})
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["hand"]) == 2
    assert body["drawn"] == body["hand"]

    resp = client.post(f"/session/{sid}/cards/draw", json={"count": 3, "pool": ["Well", "Market", "Oracle"]})
    body = resp.json()
    assert sorted(body["hand"]) == ["Market", "Oracle", "Well"]
    assert len(body["drawn"]) == 1

    state = client.get(f"/session/{sid}").json()
    assert sorted(state["persistent"]["hand"]) == ["Market", "Oracle", "Well"]


def test_draw_cards_bad_hand_name(client_and_redis) -> None:
    client, _r = client_and_redis
    sid = _create(client)["session_id"]
    resp = client.post(f"/session/{sid}/cards/draw", json={"hand": "hand", "count": 1})
    assert resp.status_code == 422
    assert "failed to set hand" in resp.json()["detail"]


def test_same_seed_replays_the_same_draws(client_and_redis) -> None:
    client, _r = client_and_redis

    def run() -> list[list[str]]:
        sid = _create(client, seed=99)["session_id"]
        out = []
        for _ in range(3):
            out.append(client.post(f"/session/{sid}/passages", json={"n": 2}).json()["passages"])
        return out

    assert run() == run()


def test_range_classification(client_and_redis) -> None:
    client, _r = client_and_redis
    sid = _create(client, variables={"$age": 15})["session_id"]

    resp = client.post(f"/session/{sid}/range", json={"name": "$age", "ranges": ["low", 10, "mid", 20, "high"]})
    assert resp.status_code == 200
    assert resp.json() == {"label": "mid"}
    assert client.get(f"/session/{sid}").json()["persistent"]["mid_age"] is True


def test_invalid_range_does_not_mutate(client_and_redis) -> None:
    client, _r = client_and_redis
    sid = _create(client, variables={"$age": 15})["session_id"]
    before = client.get(f"/session/{sid}").json()

    resp = client.post(f"/session/{sid}/range", json={"name": "$age", "ranges": ["low", 20, "mid", 10]})
    assert resp.status_code == 422
    assert "strictly increasing" in resp.json()["detail"]

    resp = client.post(f"/session/{sid}/range", json={"name": "$nope", "ranges": ["low", 10, "high"]})
    assert resp.status_code == 422
    assert "no such variable" in resp.json()["detail"]

    after = client.get(f"/session/{sid}").json()
    assert after["persistent"] == before["persistent"]


def test_range_rejects_boolean_boundaries(client_and_redis) -> None:
    client, _r = client_and_redis
    sid = _create(client, variables={"$age": 0.5})["session_id"]

    resp = client.post(f"/session/{sid}/range", json={"name": "$age", "ranges": ["low", True, "high"]})
    assert resp.status_code == 422
    assert "may only contain strings and numbers" in resp.json()["detail"]
    assert "low_age" not in client.get(f"/session/{sid}").json()["persistent"]


def test_include_consumes_single_use(client_and_redis) -> None:
    client, _r = client_and_redis
    sid = _create(client)["session_id"]

    resp = client.post(f"/session/{sid}/include", json={"titles": ["Market", "Well"], "separator": " / "})
    assert resp.status_code == 200
    assert resp.json()["text"] == "Stalls and shouting. / An old well, dry as bone."

    deck = client.get(f"/session/{sid}").json()["deck"]
    assert "Well" not in deck
    assert "Market" in deck


def test_busy_session_is_rejected(client_and_redis) -> None:
    client, r = client_and_redis
    sid = _create(client)["session_id"]

    r.set(f"lock:qbn:session:{sid}", "1")
    resp = client.post(f"/session/{sid}/visit", json={"title": "Well"})
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Session is busy"

    r.delete(f"lock:qbn:session:{sid}")
    assert client.post(f"/session/{sid}/visit", json={"title": "Well"}).status_code == 200
