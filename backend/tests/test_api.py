import json

from retainly.clock import DAY_MS

from conftest import T0


def _create(client, prompt="der Hund", answer="the dog", **extra):
    resp = client.post("/cards", json={"prompt": prompt, "answer": answer, **extra})
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_create_card_with_initial_schedule(client):
    card = _create(client, note="from a shared article")

    assert card["created_at"] == T0
    assert card["next_review_at"] == T0
    assert card["interval_days"] == 0
    assert card["ease_factor"] == 2.5
    assert card["note"] == "from a shared article"

    resp = client.get(f"/cards/{card['id']}")
    assert resp.json() == card


def test_create_card_rejects_blank_answer(client):
    resp = client.post("/cards", json={"prompt": "der Hund", "answer": "  "})
    assert resp.status_code == 422


def test_unknown_card_is_404(client):
    assert client.get("/cards/4242").status_code == 404


def test_due_list_and_stats(client):
    older = _create(client, prompt="older", created_at=T0 - 1000)
    newer = _create(client, prompt="newer", created_at=T0 - 10)
    _create(client, prompt="future", created_at=T0 + DAY_MS)

    due = client.get("/cards/due").json()
    assert [c["id"] for c in due["items"]] == [older["id"], newer["id"]]
    assert due["as_of"] == T0

    later = client.get("/cards/due", params={"as_of": T0 + DAY_MS}).json()
    assert later["total"] == 3

    stats = client.get("/cards/stats").json()
    assert stats == {"total_items": 3, "due": 2, "as_of": T0}


def test_review_session_round_trip(client):
    card = _create(client)

    started = client.post("/review/sessions")
    assert started.status_code == 201
    view = started.json()
    sid = view["session_id"]
    assert view["state"] == "presenting"
    assert view["prompt"] == "der Hund"
    assert view["answer"] is None

    revealed = client.post(f"/review/sessions/{sid}/reveal").json()
    assert revealed["state"] == "answered"
    assert revealed["answer"] == "the dog"

    done = client.post(f"/review/sessions/{sid}/respond", json={"quality": 4}).json()
    assert done["state"] == "exhausted"
    assert done["reviewed"] == 1

    stored = client.get(f"/cards/{card['id']}").json()
    assert stored["interval_days"] == 1
    assert stored["next_review_at"] == T0 + DAY_MS
    assert stored["version"] == 1


def test_respond_uses_clock_at_response_time(client, clock):
    card = _create(client)
    sid = client.post("/review/sessions").json()["session_id"]
    client.post(f"/review/sessions/{sid}/reveal")

    answered_at = clock.advance(90_000)
    client.post(f"/review/sessions/{sid}/respond", json={"quality": 3})

    stored = client.get(f"/cards/{card['id']}").json()
    assert stored["next_review_at"] == answered_at + DAY_MS


def test_respond_before_reveal_is_conflict(client):
    _create(client)
    sid = client.post("/review/sessions").json()["session_id"]

    resp = client.post(f"/review/sessions/{sid}/respond", json={"quality": 3})
    assert resp.status_code == 409


def test_out_of_scale_quality_is_422(client):
    _create(client)
    sid = client.post("/review/sessions").json()["session_id"]
    client.post(f"/review/sessions/{sid}/reveal")

    resp = client.post(f"/review/sessions/{sid}/respond", json={"quality": 5})
    assert resp.status_code == 422
    assert client.get(f"/review/sessions/{sid}").json()["state"] == "answered"


def test_skip_and_abandon(client):
    first = _create(client, prompt="a", created_at=T0 - 2)
    _create(client, prompt="b", created_at=T0 - 1)
    sid = client.post("/review/sessions").json()["session_id"]

    skipped = client.post(f"/review/sessions/{sid}/skip").json()
    assert skipped["skipped"] == [first["id"]]
    assert skipped["prompt"] == "b"

    assert client.delete(f"/review/sessions/{sid}").status_code == 204
    assert client.get(f"/review/sessions/{sid}").status_code == 404


def test_unknown_session_is_404(client):
    assert client.post("/review/sessions/nope/reveal").status_code == 404


def test_due_stream_sends_snapshot(client):
    card = _create(client, created_at=T0 - 1)

    resp = client.get("/cards/due/stream", params={"max_events": 1})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")

    events = [line for line in resp.text.splitlines() if line.startswith("data: ")]
    assert len(events) == 1
    payload = json.loads(events[0][len("data: "):])
    assert payload["as_of"] == T0
    assert [i["id"] for i in payload["items"]] == [card["id"]]


def test_finished_session_is_released(client):
    _create(client)
    sid = client.post("/review/sessions").json()["session_id"]
    client.post(f"/review/sessions/{sid}/reveal")

    done = client.post(f"/review/sessions/{sid}/respond", json={"quality": 3}).json()
    assert done["state"] == "exhausted"
    assert client.get(f"/review/sessions/{sid}").status_code == 404


def test_quality_is_not_coerced(client):
    card = _create(client)
    sid = client.post("/review/sessions").json()["session_id"]
    client.post(f"/review/sessions/{sid}/reveal")

    for quality in (True, "3", 3.0):
        resp = client.post(f"/review/sessions/{sid}/respond", json={"quality": quality})
        assert resp.status_code == 422, quality

    assert client.get(f"/review/sessions/{sid}").json()["state"] == "answered"
    assert client.get(f"/cards/{card['id']}").json()["version"] == 0
