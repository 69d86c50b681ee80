# tests/test_tasks_api.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from task_api.app.main import create_app

ADMIN = {"x-user-role": "ADMIN"}
USER = {"x-user-role": "USER"}
MISSING_ID = "00000000-0000-0000-0000-000000000000"


def create(client, **fields) -> dict:
    body = {"title": "New Task", "description": "Task Description"}
    body.update(fields)
    res = client.post("/api/tasks", json=body)
    assert res.status_code == 201, res.text
    return res.json()["data"]


def test_health(client) -> None:
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_create_task(client) -> None:
    res = client.post(
        "/api/tasks",
        json={"title": "New Task", "description": "Task Description", "priority": "HIGH"},
    )

    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "Task created successfully"
    assert body["data"]["title"] == "New Task"
    assert body["data"]["priority"] == "HIGH"
    assert body["data"]["status"] == "TODO"
    assert body["data"]["id"]
    assert "createdAt" in body["data"] and "updatedAt" in body["data"]
    assert "dueDate" not in body["data"]
    assert res.headers["X-Request-ID"]


def test_create_strips_html(client) -> None:
    task = create(client, title="<b>Bold</b> task", description="<script>alert(1)</script>Long description")

    assert task["title"] == "Bold task"
    assert task["description"] == "Long description"


@pytest.mark.parametrize(
    "body",
    [
        {"title": "Task without description"},
        {"title": "Task", "description": "Description", "status": "INVALID_STATUS"},
        {"title": "Task title", "description": "Description long", "dueDate": "not-a-date"},
        {"title": "Task title", "description": "Description long", "dueDate": "2001-01-01T00:00:00Z"},
    ],
)
def test_create_rejects_invalid_body(client, body) -> None:
    res = client.post("/api/tasks", json=body)

    assert res.status_code == 400
    assert res.json()["success"] is False
    assert res.json()["error"] == "Validation failed"
    assert res.json()["errors"]


def test_list_filter_and_paginate(client) -> None:
    create(client, title="Task 1", status="TODO")
    create(client, title="Task 2", status="IN_PROGRESS")

    everything = client.get("/api/tasks").json()
    assert everything["success"] is True
    assert len(everything["data"]) == 2
    assert everything["pagination"] == {"page": 1, "limit": 10, "total": 2, "totalPages": 1}

    todo = client.get("/api/tasks", params={"status": "TODO"}).json()
    assert [t["status"] for t in todo["data"]] == ["TODO"]

    paged = client.get("/api/tasks", params={"page": 1, "limit": 1}).json()
    assert len(paged["data"]) == 1
    assert paged["pagination"]["total"] == 2
    assert paged["pagination"]["totalPages"] == 2


def test_list_sorts_by_priority_rank(client) -> None:
    for p in ("MEDIUM", "HIGH", "LOW"):
        create(client, priority=p)

    asc = client.get("/api/tasks", params={"sortBy": "priority"}).json()
    desc = client.get("/api/tasks", params={"sortBy": "priority", "sortOrder": "desc"}).json()

    assert [t["priority"] for t in asc["data"]] == ["LOW", "MEDIUM", "HIGH"]
    assert [t["priority"] for t in desc["data"]] == ["HIGH", "MEDIUM", "LOW"]


def test_list_high_priority_due_soon(client) -> None:
    soon = (datetime.now(timezone.utc) + timedelta(days=2)).isoformat()
    later = (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()
    create(client, title="Soon", priority="HIGH", dueDate=soon)
    create(client, title="Later", priority="HIGH", dueDate=later)
    create(client, title="Undated", priority="HIGH")

    res = client.get("/api/tasks", params={"highPriorityDueSoon": "true"}).json()

    assert [t["title"] for t in res["data"]] == ["Soon"]


@pytest.mark.parametrize(
    "params",
    [
        {"status": "NOPE"},
        {"sortBy": "description"},
        {"sortOrder": "sideways"},
        {"page": 0},
        {"limit": 101},
        {"highPriorityDueSoon": "maybe"},
    ],
)
def test_list_rejects_bad_query(client, params) -> None:
    res = client.get("/api/tasks", params=params)
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_get_by_id(client) -> None:
    task = create(client)

    res = client.get(f"/api/tasks/{task['id']}")

    assert res.status_code == 200
    assert res.json()["data"]["id"] == task["id"]


def test_get_missing_and_malformed_ids(client) -> None:
    missing = client.get(f"/api/tasks/{MISSING_ID}")
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "error": f"Task with id '{MISSING_ID}' not found"}

    assert client.get("/api/tasks/not-a-uuid").status_code == 400


def test_put_updates_task(client) -> None:
    task = create(client, title="Original Task", description="Original Description")

    res = client.put(
        f"/api/tasks/{task['id']}",
        json={"title": "Updated Task", "description": "Updated Description", "status": "IN_PROGRESS"},
        headers=USER,
    )

    assert res.status_code == 200
    body = res.json()
    assert body["message"] == "Task updated successfully"
    assert body["data"]["title"] == "Updated Task"
    assert body["data"]["status"] == "IN_PROGRESS"


def test_put_keeps_omitted_fields(client) -> None:
    task = create(client, priority="HIGH")

    res = client.put(f"/api/tasks/{task['id']}", json={"status": "IN_PROGRESS"}, headers=ADMIN)

    assert res.json()["data"]["priority"] == "HIGH"
    assert res.json()["data"]["title"] == task["title"]


def test_patch_partially_updates_task(client) -> None:
    task = create(client, title="Original Task", description="Original Description")

    res = client.patch(f"/api/tasks/{task['id']}", json={"status": "DONE"}, headers=USER)

    assert res.status_code == 200
    assert res.json()["message"] == "Task partially updated successfully"
    assert res.json()["data"]["status"] == "DONE"
    assert res.json()["data"]["title"] == "Original Task"


def test_update_requires_role_header(client) -> None:
    task = create(client)

    missing = client.patch(f"/api/tasks/{task['id']}", json={"status": "DONE"})
    invalid = client.patch(f"/api/tasks/{task['id']}", json={"status": "DONE"}, headers={"x-user-role": "root"})

    assert missing.status_code == 401
    assert invalid.status_code == 401
    assert invalid.json()["error"] == "Invalid role. Must be ADMIN or USER"


def test_update_with_empty_body_is_rejected(client) -> None:
    task = create(client)

    res = client.patch(f"/api/tasks/{task['id']}", json={}, headers=ADMIN)

    assert res.status_code == 400


def test_update_missing_task_is_404(client) -> None:
    res = client.put(f"/api/tasks/{MISSING_ID}", json={"title": "Whatever"}, headers=ADMIN)
    assert res.status_code == 404


def test_done_task_edit_rules(client) -> None:
    task = create(client, status="DONE")
    url = f"/api/tasks/{task['id']}"

    forbidden = client.put(url, json={"title": "Changed title"}, headers=USER)
    assert forbidden.status_code == 403
    assert forbidden.json()["success"] is False
    assert "Only priority can be updated" in forbidden.json()["error"]

    priority_only = client.patch(url, json={"priority": "HIGH"}, headers={"x-user-role": "user"})
    assert priority_only.status_code == 200
    assert priority_only.json()["data"]["priority"] == "HIGH"

    admin = client.put(url, json={"title": "Changed title"}, headers=ADMIN)
    assert admin.status_code == 200
    assert admin.json()["data"]["title"] == "Changed title"


def test_delete_task(client) -> None:
    task = create(client, title="Task to Delete", description="Will be deleted")

    assert client.delete(f"/api/tasks/{task['id']}").status_code == 401

    res = client.delete(f"/api/tasks/{task['id']}", headers=USER)
    assert res.status_code == 200
    assert res.json()["data"]["id"] == task["id"]

    assert client.get(f"/api/tasks/{task['id']}").status_code == 404
    assert client.delete(f"/api/tasks/{task['id']}", headers=USER).status_code == 404


def test_delete_all_tasks(client) -> None:
    create(client, title="Task 1", description="Description 1")
    create(client, title="Task 2", description="Description 2")

    res = client.delete("/api/tasks", headers=ADMIN)

    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "Deleted 2 task(s)", "count": 2}
    assert client.get("/api/tasks").json()["data"] == []


def test_unknown_route(client) -> None:
    res = client.get("/api/nothing-here")
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Route not found"}


def test_apps_do_not_share_tasks(settings) -> None:
    with TestClient(create_app(settings)) as first, TestClient(create_app(settings)) as second:
        create(first)
        assert second.get("/api/tasks").json()["data"] == []


def test_cors_preflight(client) -> None:
    res = client.options(
        "/api/tasks",
        headers={"Origin": "http://localhost:4200", "Access-Control-Request-Method": "POST"},
    )
    assert res.status_code == 200
    assert res.headers["access-control-allow-origin"] == "http://localhost:4200"
