# tests/test_notification_routes.py

import json

import pytest


@pytest.fixture()
def assigned(client, admin_headers, member_user):
    resp = client.post("/task/create", json={
        "title": "Design mock",
        "assignees": [str(member_user["_id"])],
        "due_date": "2025-01-10",
    }, headers=admin_headers)
    return resp.get_json()["task"]


def test_recent_assignment_shows_up_in_feed(client, assigned, member_headers):
    body = client.get("/notifications", headers=member_headers).get_json()
    assert body["unread"] == 1
    [item] = body["notifications"]
    assert item["type"] == "task_assigned"
    assert item["taskId"] == assigned["id"]

    # a second look does not add a duplicate
    assert len(client.get("/notifications", headers=member_headers).get_json()["notifications"]) == 1


def test_mark_read(client, assigned, member_headers, admin_headers):
    [item] = client.get("/notifications", headers=member_headers).get_json()["notifications"]

    assert client.post(f"/notifications/{item['id']}/read", headers=admin_headers).status_code == 404

    resp = client.post(f"/notifications/{item['id']}/read", headers=member_headers)
    assert resp.status_code == 200
    assert resp.get_json()["notification"]["read"] is True
    assert client.get("/notifications", headers=member_headers).get_json()["unread"] == 0


def test_mark_read_invalid_id(client, member_headers):
    assert client.post("/notifications/nope/read", headers=member_headers).status_code == 400


def test_mark_all_read(client, assigned, member_headers):
    client.get("/notifications", headers=member_headers)
    resp = client.post("/notifications/read-all", headers=member_headers)
    assert resp.get_json()["updated"] == 1
    assert client.post("/notifications/read-all", headers=member_headers).get_json()["updated"] == 0


def test_stream_sends_current_feed(client, assigned, member_headers):
    resp = client.get("/notifications/stream", headers=member_headers)
    assert resp.mimetype == "text/event-stream"
    [event] = [line for line in resp.get_data(as_text=True).splitlines() if line.startswith("data: ")]
    payload = json.loads(event[len("data: "):])
    assert payload["unread"] == 1
    assert payload["notifications"][0]["type"] == "task_assigned"
