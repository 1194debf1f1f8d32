DAY = "/days/2026-01-10"


def _seed_day(client):
    r = client.put(
        f"{DAY}/blocks",
        json={
            "blocks": [
                {"id": "a", "title": "Task A", "start_minute": 540, "duration_minutes": 90},
                {"id": "b", "title": "Event B", "kind": "event", "flexibility": "fixed",
                 "start_minute": 660, "duration_minutes": 75},
            ]
        },
    )
    assert r.status_code == 200
    return r


def test_put_and_get_blocks(api_client):
    _seed_day(api_client)
    r = api_client.get(f"{DAY}/blocks")
    assert r.status_code == 200
    body = r.json()
    assert [b["id"] for b in body["blocks"]] == ["a", "b"]
    assert body["blocks"][0]["end_minute"] == 630
    assert body["conflicts"] == []
    assert body["suggested_durations"] == {}


def test_put_tasks_are_mapped(api_client):
    r = api_client.put(
        f"{DAY}/blocks",
        json={"tasks": [{"id": 3, "title": "Physics", "tags": "class", "start_minute": 600}]},
    )
    block = r.json()["blocks"][0]
    assert block["id"] == "3"
    assert block["kind"] == "event"
    assert block["flexibility"] == "fixed"


def test_duplicate_ids_rejected(api_client):
    block = {"id": "a", "title": "A", "start_minute": 540, "duration_minutes": 30}
    r = api_client.put(f"{DAY}/blocks", json={"blocks": [block, block]})
    assert r.status_code == 400


def test_invalid_date(api_client):
    assert api_client.get("/days/10-01-2026/blocks").status_code == 400


def test_invalid_block_is_422(api_client):
    r = api_client.put(
        f"{DAY}/blocks",
        json={"blocks": [{"title": "A", "start_minute": 540, "duration_minutes": 0}]},
    )
    assert r.status_code == 422


def test_late_commit_and_undo(api_client):
    _seed_day(api_client)

    r = api_client.post(f"{DAY}/late", json={"block_id": "a", "actual_end_minute": 675})
    assert r.status_code == 200
    body = r.json()
    assert body["committed"] is True
    assert body["applied_overrun_minutes"] == 45
    assert len(body["conflicts"]) == 1
    assert [s["kind"] for s in body["suggestions"]] == [
        "shorten-block", "move-block", "spill-to-next-day",
    ]

    stored = api_client.get(f"{DAY}/blocks").json()
    assert stored["blocks"][0]["duration_minutes"] == 135
    assert len(stored["conflicts"]) == 1

    r = api_client.post(f"{DAY}/undo")
    assert r.status_code == 200
    assert r.json()["blocks"][0]["duration_minutes"] == 90
    assert api_client.post(f"{DAY}/undo").status_code == 404


def test_late_preview_does_not_commit(api_client):
    _seed_day(api_client)
    r = api_client.post(
        f"{DAY}/late", json={"block_id": "a", "actual_end_minute": 675, "commit": False}
    )
    assert r.json()["committed"] is False
    assert api_client.get(f"{DAY}/blocks").json()["blocks"][0]["duration_minutes"] == 90


def test_late_unknown_block_is_noop(api_client):
    _seed_day(api_client)
    r = api_client.post(f"{DAY}/late", json={"block_id": "zz", "actual_end_minute": 900})
    body = r.json()
    assert body["committed"] is False
    assert body["applied_overrun_minutes"] == 0
    assert body["conflicts"] == [] and body["suggestions"] == []


def test_apply_move_suggestion(api_client):
    _seed_day(api_client)
    late = api_client.post(f"{DAY}/late", json={"block_id": "a", "actual_end_minute": 675}).json()
    move = next(s for s in late["suggestions"] if s["kind"] == "move-block")

    r = api_client.post(f"{DAY}/suggestions/apply", json={"suggestion": move})
    assert r.status_code == 200
    body = r.json()
    assert body["conflicts"] == []
    assert [b["id"] for b in body["blocks"]] == ["b", "a"]
    assert body["blocks"][1]["start_minute"] == 735


def test_apply_spill_carries_to_next_day(api_client):
    _seed_day(api_client)
    spill = {"kind": "spill-to-next-day", "block_id": "a", "conflict_index": 0, "minutes": 30}
    r = api_client.post(f"{DAY}/suggestions/apply", json={"suggestion": spill})
    assert r.json()["spilled"]["id"] == "a-spill"

    tomorrow = api_client.get("/days/2026-01-11/blocks").json()
    assert [b["id"] for b in tomorrow["blocks"]] == ["a-spill"]
    assert tomorrow["blocks"][0]["duration_minutes"] == 30


def test_repeated_spill_accumulates_on_next_day(api_client):
    _seed_day(api_client)
    spill = {"kind": "spill-to-next-day", "block_id": "a", "conflict_index": 0, "minutes": 30}
    for _ in range(2):
        assert api_client.post(f"{DAY}/suggestions/apply", json={"suggestion": spill}).status_code == 200

    today = api_client.get(f"{DAY}/blocks").json()["blocks"]
    assert next(b for b in today if b["id"] == "a")["duration_minutes"] == 30
    tomorrow = api_client.get("/days/2026-01-11/blocks").json()["blocks"]
    assert [b["id"] for b in tomorrow] == ["a-spill"]
    assert tomorrow[0]["duration_minutes"] == 60


def test_apply_suggestion_clears_undo(api_client):
    _seed_day(api_client)
    api_client.post(f"{DAY}/late", json={"block_id": "a", "actual_end_minute": 675})
    spill = {"kind": "spill-to-next-day", "block_id": "a", "conflict_index": 0, "minutes": 30}
    api_client.post(f"{DAY}/suggestions/apply", json={"suggestion": spill})

    assert api_client.post(f"{DAY}/undo").status_code == 404
    today = api_client.get(f"{DAY}/blocks").json()["blocks"]
    tomorrow = api_client.get("/days/2026-01-11/blocks").json()["blocks"]
    a_today = next(b for b in today if b["id"] == "a")["duration_minutes"]
    assert a_today + sum(b["duration_minutes"] for b in tomorrow) == 135


def test_apply_suggested_duration_clears_undo(api_client):
    _seed_day(api_client)
    api_client.post("/learning/completions", json={"key": "Task A", "actual_minutes": 60})
    api_client.post(f"{DAY}/late", json={"block_id": "a", "actual_end_minute": 675})

    r = api_client.post(f"{DAY}/blocks/a/suggested-duration/apply")
    assert r.status_code == 200
    assert next(b for b in r.json()["blocks"] if b["id"] == "a")["duration_minutes"] == 60
    assert api_client.post(f"{DAY}/undo").status_code == 404


def test_apply_suggestion_unknown_block(api_client):
    _seed_day(api_client)
    move = {"kind": "move-block", "block_id": "zz", "conflict_index": 0, "new_start_minute": 0}
    assert api_client.post(f"{DAY}/suggestions/apply", json={"suggestion": move}).status_code == 404


def test_conflicts_endpoint(api_client):
    api_client.put(
        f"{DAY}/blocks",
        json={
            "blocks": [
                {"id": "x", "title": "X", "start_minute": 540, "duration_minutes": 60},
                {"id": "y", "title": "Y", "start_minute": 570, "duration_minutes": 60,
                 "flexibility": "fixed"},
            ]
        },
    )
    body = api_client.get(f"{DAY}/conflicts").json()
    assert len(body["conflicts"]) == 1
    assert {s["block_id"] for s in body["suggestions"]} == {"x"}
