import json
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from todo_api.errors import PersistenceError
from todo_api.main import create_app
from todo_api.services import TodoService
from todo_api.store import TodoStore

BASE = "/api/todos"


def create_todo_payload(title="Test Task", body="Do something"):
    return {"title": title, "body": body}


def parse_ts(value: str) -> datetime:
    # Pydantic renders UTC as a trailing "Z"
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def assert_todo_shape(todo: dict):
    for key in ["id", "title", "body", "completed", "createdAt", "updatedAt"]:
        assert key in todo
    assert isinstance(todo["id"], int)
    assert isinstance(todo["title"], str)
    assert isinstance(todo["body"], str)
    assert isinstance(todo["completed"], bool)
    parse_ts(todo["createdAt"])
    parse_ts(todo["updatedAt"])


def assert_error(res, status_code: int, message: str):
    assert res.status_code == status_code
    assert res.json() == {"success": False, "error": message}


def seed(client, count):
    ids = []
    for i in range(count):
        res = client.post(BASE, json=create_todo_payload(title=f"Task {i}", body=f"Body {i}"))
        assert res.status_code == 201
        ids.append(res.json()["data"]["id"])
    return ids


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/health")
        assert res.status_code == 200
        data = res.json()
        assert data["success"] is True
        assert data["message"] == "Server is healthy"
        assert data["uptime"] >= 0
        parse_ts(data["timestamp"])

    def test_welcome(self, client):
        res = client.get("/")
        assert res.status_code == 200
        assert res.json()["endpoints"]["todos"] == "/api/todos"


class TestTodosCRUD:
    def test_lifecycle_scenario(self, client):
        res_create = client.post(BASE, json={"title": "Learn Rust", "body": "Systems programming"})
        assert res_create.status_code == 201
        created = res_create.json()
        assert created["success"] is True
        assert created["message"] == "Todo created successfully"
        assert_todo_shape(created["data"])
        assert created["data"]["id"] == 1
        assert created["data"]["completed"] is False

        res_get = client.get(f"{BASE}/1")
        assert res_get.status_code == 200
        assert res_get.json() == {"success": True, "data": created["data"]}

        res_patch = client.patch(f"{BASE}/1", json={"completed": True})
        assert res_patch.status_code == 200
        patched = res_patch.json()
        assert patched["message"] == "Todo updated successfully"
        assert patched["data"]["completed"] is True
        assert patched["data"]["title"] == "Learn Rust"
        assert patched["data"]["body"] == "Systems programming"
        assert patched["data"]["createdAt"] == created["data"]["createdAt"]
        assert parse_ts(patched["data"]["updatedAt"]) > parse_ts(created["data"]["updatedAt"])

        res_del = client.delete(f"{BASE}/1")
        assert res_del.status_code == 200
        assert res_del.json() == {"success": True, "message": "Todo deleted successfully"}

        assert_error(client.get(f"{BASE}/1"), 404, "Todo with ID 1 not found")

    def test_list_all_in_insertion_order(self, client):
        seed(client, 3)
        res = client.get(BASE)
        assert res.status_code == 200
        body = res.json()
        assert body["success"] is True
        assert [t["title"] for t in body["data"]] == ["Task 0", "Task 1", "Task 2"]

    def test_list_empty(self, client):
        res = client.get(BASE)
        assert res.status_code == 200
        assert res.json() == {"success": True, "data": []}

    def test_create_trims_input(self, client):
        res = client.post(BASE, json={"title": "  Read book  ", "body": "\tChapter one\n"})
        assert res.status_code == 201
        data = res.json()["data"]
        assert data["title"] == "Read book"
        assert data["body"] == "Chapter one"

    def test_create_ignores_client_supplied_fields(self, client):
        res = client.post(BASE, json={"title": "Sneaky", "body": "x", "id": 50, "completed": True})
        assert res.status_code == 201
        data = res.json()["data"]
        assert data["id"] == 1
        assert data["completed"] is False

    def test_put_is_partial_update(self, client):
        (tid,) = seed(client, 1)
        res = client.put(f"{BASE}/{tid}", json={"title": "Replaced title"})
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["title"] == "Replaced title"
        assert data["body"] == "Body 0"

    def test_update_with_empty_or_missing_body(self, client):
        (tid,) = seed(client, 1)
        assert client.patch(f"{BASE}/{tid}", json={}).status_code == 200
        res = client.patch(f"{BASE}/{tid}")
        assert res.status_code == 200
        assert res.json()["data"]["title"] == "Task 0"

    def test_update_cannot_change_id(self, client):
        (tid,) = seed(client, 1)
        res = client.patch(f"{BASE}/{tid}", json={"id": 77, "title": "Still one"})
        assert res.status_code == 200
        assert res.json()["data"]["id"] == tid
        assert client.get(f"{BASE}/77").status_code == 404

    def test_update_not_found(self, client):
        assert_error(client.patch(f"{BASE}/123", json={"title": "Nope"}), 404, "Todo with ID 123 not found")
        assert_error(client.put(f"{BASE}/123", json={"title": "Nope"}), 404, "Todo with ID 123 not found")

    def test_delete_twice(self, client):
        (tid,) = seed(client, 1)
        assert client.delete(f"{BASE}/{tid}").status_code == 200
        assert_error(client.delete(f"{BASE}/{tid}"), 404, f"Todo with ID {tid} not found")

    def test_state_persists_to_file(self, client, db_path):
        seed(client, 2)
        client.patch(f"{BASE}/2", json={"completed": True})
        client.delete(f"{BASE}/1")
        on_disk = json.loads(db_path.read_text(encoding="utf-8"))
        assert [(t["id"], t["completed"]) for t in on_disk] == [(2, True)]

    def test_restart_keeps_todos(self, settings):
        with TestClient(create_app(settings)) as first:
            seed(first, 2)
        with TestClient(create_app(settings)) as second:
            res = second.get(BASE)
            assert [t["id"] for t in res.json()["data"]] == [1, 2]
            assert second.post(BASE, json=create_todo_payload()).json()["data"]["id"] == 3


class TestPagination:
    def test_pages(self, client):
        seed(client, 25)
        res1 = client.get(f"{BASE}/paginated?page=1&limit=10")
        assert res1.status_code == 200
        page1 = res1.json()
        assert page1["success"] is True
        assert len(page1["data"]) == 10
        assert page1["pagination"] == {"page": 1, "limit": 10, "total": 25, "totalPages": 3}

        page3 = client.get(f"{BASE}/paginated?page=3&limit=10").json()
        assert [t["title"] for t in page3["data"]] == [f"Task {i}" for i in range(20, 25)]

        # Past the end is an empty page, not an error
        res4 = client.get(f"{BASE}/paginated?page=4&limit=10")
        assert res4.status_code == 200
        assert res4.json()["data"] == []
        assert res4.json()["pagination"]["total"] == 25

    def test_defaults(self, client):
        seed(client, 12)
        body = client.get(f"{BASE}/paginated").json()
        assert len(body["data"]) == 10
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 12, "totalPages": 2}

    def test_limit_bounds_accepted(self, client):
        seed(client, 2)
        assert client.get(f"{BASE}/paginated?limit=1").status_code == 200
        assert client.get(f"{BASE}/paginated?limit=100").status_code == 200

    @pytest.mark.parametrize(
        "query,message",
        [
            ("page=0", "Page must be greater than 0"),
            ("page=-3", "Page must be greater than 0"),
            ("page=abc", "Page must be greater than 0"),
            ("limit=101", "Limit must be between 1 and 100"),
            ("limit=0", "Limit must be between 1 and 100"),
        ],
    )
    def test_invalid_params(self, client, query, message):
        assert_error(client.get(f"{BASE}/paginated?{query}"), 400, message)


class TestStats:
    def test_stats(self, client):
        seed(client, 3)
        client.patch(f"{BASE}/2", json={"completed": True})
        res = client.get(f"{BASE}/stats")
        assert res.status_code == 200
        assert res.json() == {"success": True, "data": {"total": 3, "completed": 1, "pending": 2}}

    def test_stats_empty(self, client):
        res = client.get(f"{BASE}/stats")
        assert res.json()["data"] == {"total": 0, "completed": 0, "pending": 0}


class TestValidationErrors:
    def test_title_boundary(self, client):
        assert_error(
            client.post(BASE, json=create_todo_payload(title="ab")),
            400,
            "Title must be at least 3 characters long",
        )
        assert_error(
            client.post(BASE, json=create_todo_payload(title="  ab   ")),
            400,
            "Title must be at least 3 characters long",
        )
        assert client.post(BASE, json=create_todo_payload(title="abc")).status_code == 201
        assert client.post(BASE, json=create_todo_payload(title=" abc ")).status_code == 201

    def test_whitespace_body_rejected(self, client):
        assert_error(client.post(BASE, json=create_todo_payload(body="   ")), 400, "Body cannot be empty")

    @pytest.mark.parametrize(
        "payload",
        [{"title": "Only title"}, {"body": "Only body"}, {"title": "", "body": "x"}, {}],
    )
    def test_missing_fields(self, client, payload):
        assert_error(client.post(BASE, json=payload), 400, "Title and body are required")

    def test_missing_request_body(self, client):
        assert_error(client.post(BASE), 400, "Title and body are required")

    def test_non_string_fields(self, client):
        assert_error(
            client.post(BASE, json={"title": 12345, "body": "text"}),
            400,
            "Title and body must be strings",
        )

    def test_update_rules(self, client):
        (tid,) = seed(client, 1)
        url = f"{BASE}/{tid}"
        assert_error(client.patch(url, json={"title": "ab"}), 400, "Title must be at least 3 characters long")
        assert_error(client.patch(url, json={"title": None}), 400, "Title must be at least 3 characters long")
        assert_error(client.patch(url, json={"body": "  "}), 400, "Body cannot be empty")
        assert_error(client.patch(url, json={"completed": "yes"}), 400, "Completed must be a boolean")
        assert_error(client.put(url, json={"completed": 1}), 400, "Completed must be a boolean")

        # Rejected updates leave the todo untouched
        data = client.get(url).json()["data"]
        assert data["title"] == "Task 0"
        assert data["completed"] is False

    def test_update_trims_input(self, client):
        (tid,) = seed(client, 1)
        res = client.patch(f"{BASE}/{tid}", json={"title": "  New title ", "body": " New body "})
        data = res.json()["data"]
        assert data["title"] == "New title"
        assert data["body"] == "New body"

    @pytest.mark.parametrize("bad_id", ["abc", "0", "-1", "1.5"])
    def test_invalid_id(self, client, bad_id):
        assert_error(client.get(f"{BASE}/{bad_id}"), 400, "Invalid todo ID")
        assert_error(client.patch(f"{BASE}/{bad_id}", json={"completed": True}), 400, "Invalid todo ID")
        assert_error(client.delete(f"{BASE}/{bad_id}"), 400, "Invalid todo ID")


class TestErrorHandling:
    def test_unknown_route(self, client):
        assert_error(client.get("/api/nothing-here"), 404, "Route not found")

    def test_method_not_allowed_keeps_allow_header(self, client):
        res = client.post("/health")
        assert_error(res, 405, "Method Not Allowed")
        assert "GET" in res.headers["allow"]

    def test_store_failure_on_list_is_400(self, client, monkeypatch):
        def boom(self):
            raise PersistenceError("disk failure")

        monkeypatch.setattr(TodoStore, "find_all", boom)
        assert_error(client.get(BASE), 400, "Failed to fetch todos")

    def test_store_failure_on_create_is_400(self, client, db_path):
        db_path.unlink()
        db_path.mkdir()
        assert_error(client.post(BASE, json=create_todo_payload()), 400, "Failed to create todo")
        # Nothing half-created is visible afterwards
        assert client.get(BASE).json()["data"] == []
        db_path.rmdir()
        assert client.post(BASE, json=create_todo_payload()).json()["data"]["id"] == 1

    def test_failed_update_is_not_visible(self, client, db_path):
        (tid,) = seed(client, 1)
        db_path.unlink()
        db_path.mkdir()
        assert_error(client.patch(f"{BASE}/{tid}", json={"completed": True}), 400, "Failed to update todo")
        assert client.get(f"{BASE}/{tid}").json()["data"]["completed"] is False

    def test_paginated_store_failure_is_500(self, client, monkeypatch):
        def boom(self, page=1, limit=10):
            raise PersistenceError("disk failure")

        monkeypatch.setattr(TodoStore, "paginate", boom)
        assert_error(client.get(f"{BASE}/paginated"), 500, "Failed to fetch paginated todos")

    def test_unhandled_error_is_generic_500(self, app, monkeypatch):
        def boom(self):
            raise RuntimeError("secret internals")

        monkeypatch.setattr(TodoService, "get_all_todos", boom)
        with TestClient(app, raise_server_exceptions=False) as c:
            res = c.get(BASE)
            assert_error(res, 500, "Internal server error")
            assert "secret" not in res.text
            # The app keeps serving after the failure
            assert c.get("/health").status_code == 200
