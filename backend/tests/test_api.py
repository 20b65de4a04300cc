from datetime import datetime, timedelta


def _due_in(days: float) -> str:
    return (datetime.utcnow() + timedelta(days=days)).replace(microsecond=0).isoformat()


def _create_task(client, **overrides) -> dict:
    payload = {
        "title": "Read chapter 4",
        "type": "reading",
        "course_id": "HIST110",
        "due_at": _due_in(5),
        "estimated_hours": 2,
    }
    payload.update(overrides)
    response = client.post("/tasks/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _blocks_for(client, task_id: int) -> list[dict]:
    response = client.get("/blocks/", params={"task_id": task_id})
    assert response.status_code == 200
    return response.json()


def test_creating_a_task_schedules_it(client):
    task = _create_task(client)

    blocks = _blocks_for(client, task["id"])

    assert task["schedule_status"] == "fully_scheduled"
    assert task["unscheduled_hours"] == 0
    assert len(blocks) == 1
    assert blocks[0]["origin"] == "work"
    assert blocks[0]["is_pinned"] is False


def test_completing_a_task_clears_its_blocks(client):
    task = _create_task(client)
    other = _create_task(client, title="Essay draft", type="assignment", estimated_hours=3)

    response = client.post(f"/tasks/{task['id']}/complete")

    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert _blocks_for(client, task["id"]) == []
    assert _blocks_for(client, other["id"])


def test_pinned_block_survives_recompute(client):
    task = _create_task(client, estimated_hours=4)
    start = (datetime.utcnow() + timedelta(days=2)).replace(hour=6, minute=0, second=0, microsecond=0)
    payload = {
        "task_id": task["id"],
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=1)).isoformat(),
    }

    created = client.post("/blocks/", json=payload)
    recompute = client.post("/schedule/recompute")

    assert created.status_code == 201
    assert created.json()["is_pinned"] is True
    assert recompute.status_code == 200
    ids = [block["id"] for block in _blocks_for(client, task["id"])]
    assert created.json()["id"] in ids


def test_moving_a_block_pins_it(client):
    task = _create_task(client)
    block = _blocks_for(client, task["id"])[0]
    new_start = datetime.fromisoformat(block["start_time"]) - timedelta(hours=1)

    response = client.patch(
        f"/blocks/{block['id']}",
        json={
            "start_time": new_start.isoformat(),
            "end_time": (new_start + timedelta(hours=2)).isoformat(),
        },
    )

    assert response.status_code == 200
    assert response.json()["is_pinned"] is True
    assert [item["id"] for item in _blocks_for(client, task["id"])] == [block["id"]]


def test_event_validation_and_lifecycle(client):
    start = datetime.utcnow() + timedelta(days=1)
    bad = client.post(
        "/events/",
        json={
            "title": "Backwards",
            "start_at": start.isoformat(),
            "end_at": (start - timedelta(hours=1)).isoformat(),
        },
    )
    good = client.post(
        "/events/",
        json={
            "title": "Clinical rotation",
            "type": "clinical",
            "start_at": start.isoformat(),
            "end_at": (start + timedelta(hours=8)).isoformat(),
        },
    )

    assert bad.status_code == 422
    assert good.status_code == 201
    assert client.delete(f"/events/{good.json()['id']}").status_code == 204
    assert client.get("/events/").json() == []


def test_unknown_ids_return_404(client):
    assert client.patch("/tasks/999", json={"title": "x"}).status_code == 404
    assert client.post("/tasks/999/complete").status_code == 404
    assert client.delete("/blocks/missing").status_code == 404
    response = client.post(
        "/blocks/",
        json={
            "task_id": 999,
            "start_time": "2025-03-03T09:00:00",
            "end_time": "2025-03-03T10:00:00",
        },
    )
    assert response.status_code == 404


def test_scheduler_config_round_trip(client):
    config = client.get("/schedule/config").json()
    config["daily_max_hours"] = 3
    config["spread_strategy"] = "compressed"

    updated = client.put("/schedule/config", json=config)

    assert updated.status_code == 200
    stored = client.get("/schedule/config").json()
    assert stored["daily_max_hours"] == 3
    assert stored["spread_strategy"] == "compressed"
    assert stored["complexity_multipliers"]["5"] == 2.0


def test_energy_feedback_updates_profile(client):
    response = client.post("/energy/feedback", json={"hour": 9, "observed": 0.2, "learning_rate": 0.5})

    assert response.status_code == 200
    assert response.json()["hourly"]["9"] == 0.55
    assert client.get("/energy/").json()["hourly"]["9"] == 0.55


def test_status_reports_statistics(client):
    _create_task(client)
    _create_task(client, title="Impossible", type="project", estimated_hours=200, due_at=_due_in(1))

    status = client.get("/schedule/status").json()

    assert status["state"] == "idle"
    assert {report["status"] for report in status["reports"]} == {
        "fully_scheduled",
        "partially_scheduled",
    }
    assert status["statistics"]["total_blocks"] >= 2
    assert status["statistics"]["shortfall_hours"] > 0


def test_preview_does_not_touch_stored_schedule(client):
    response = client.post(
        "/schedule/preview",
        json={
            "tasks": [
                {
                    "id": 1,
                    "title": "Quiz prep",
                    "type": "quiz",
                    "due_at": "2025-03-08T09:00:00",
                    "estimated_hours": 2,
                }
            ],
            "now": "2025-03-03T08:00:00",
            "seed": 1,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["blocks"]
    assert body["unscheduled"] == []
    assert client.get("/blocks/").json() == []


def test_task_created_after_a_deletion_is_scheduled(client):
    first = _create_task(client, due_at=_due_in(6))
    assert client.delete(f"/tasks/{first['id']}").status_code == 204

    second = _create_task(client, title="Read chapter 5", due_at=_due_in(6))

    assert second["schedule_status"] == "fully_scheduled"
    assert _blocks_for(client, second["id"])
