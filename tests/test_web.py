"""Tests for the plan store HTTP endpoints."""

import pytest
from starlette.testclient import TestClient

from planflow.store.local import LocalStore
from planflow.web import create_app

from .helpers import PROJECT, make_entry

PLAN_A = {"project": PROJECT, "filename": "a.md"}


@pytest.fixture
def client(local_store: LocalStore) -> TestClient:
	"""A test client over a store seeded with one plan."""
	local_store.create(PROJECT, make_entry("a.md", topic="auth", content="# A"))
	return TestClient(create_app(store=local_store))


def test_ping(client: TestClient):
	resp = client.get("/v1/ping")
	assert resp.status_code == 200
	assert resp.json() == {"status": "ok"}


def test_list_plans(client: TestClient):
	resp = client.get("/v1/plans", params={"project": PROJECT})
	assert resp.status_code == 200
	data = resp.json()
	assert [p["filename"] for p in data] == ["a.md"]
	assert "content" not in data[0]


def test_list_plans_filters(client: TestClient):
	def count(**params) -> int:
		return len(client.get("/v1/plans", params={"project": PROJECT, **params}).json())

	assert count(status="ready") == 1
	assert count(status="done") == 0
	assert count(topic="auth") == 1
	assert count(topic="ui") == 0


def test_create_plan(client: TestClient):
	resp = client.post(
		"/v1/plans",
		params={"project": PROJECT},
		json={"filename": "b.md", "description": "B", "content": "# B"},
	)
	assert resp.status_code == 201
	assert resp.json()["filename"] == "b.md"
	assert "content" not in resp.json()
	content = client.get("/v1/plan/content", params={"project": PROJECT, "filename": "b.md"})
	assert content.json() == {"content": "# B"}


def test_missing_project_is_400(client: TestClient):
	resp = client.get("/v1/plans")
	assert resp.status_code == 400
	assert resp.json()["error"] == "invalid_input"


def test_missing_filename_param_is_400(client: TestClient):
	resp = client.get("/v1/plan", params={"project": PROJECT})
	assert resp.status_code == 400
	assert "filename" in resp.json()["message"]


def test_get_missing_is_404(client: TestClient):
	resp = client.get("/v1/plan", params={"project": PROJECT, "filename": "ghost.md"})
	assert resp.status_code == 404
	body = resp.json()
	assert body["error"] == "not_found"
	assert "ghost.md" in body["message"]


def test_keys_with_slashes(client: TestClient):
	key = {"project": "team/app", "filename": "docs/plans/x.md"}
	resp = client.post("/v1/plans", params={"project": "team/app"}, json={"filename": "docs/plans/x.md"})
	assert resp.status_code == 201
	assert client.get("/v1/plan", params=key).json()["filename"] == "docs/plans/x.md"


def test_duplicate_is_409(client: TestClient):
	resp = client.post("/v1/plans", params={"project": PROJECT}, json={"filename": "a.md"})
	assert resp.status_code == 409
	assert resp.json()["error"] == "already_exists"


def test_invalid_json_is_400(client: TestClient):
	resp = client.post(
		"/v1/plans",
		params={"project": PROJECT},
		content=b"{not json",
		headers={"content-type": "application/json"},
	)
	assert resp.status_code == 400
	assert resp.json()["error"] == "invalid_input"


def test_non_object_body_is_400(client: TestClient):
	resp = client.post("/v1/plans", params={"project": PROJECT}, json=["a.md"])
	assert resp.status_code == 400
	assert resp.json()["error"] == "invalid_input"


def test_missing_filename_field_is_400(client: TestClient):
	resp = client.post("/v1/plans", params={"project": PROJECT}, json={"status": "ready"})
	assert resp.status_code == 400
	assert resp.json()["error"] == "invalid_input"


def test_update_plan(client: TestClient):
	resp = client.put("/v1/plan", params=PLAN_A, json={"filename": "a.md", "status": "planning"})
	assert resp.status_code == 200
	assert client.get("/v1/plan", params=PLAN_A).json()["status"] == "planning"


def test_rename_requires_new_filename(client: TestClient):
	resp = client.post("/v1/plan/rename", params=PLAN_A, json={})
	assert resp.status_code == 400
	assert resp.json()["error"] == "invalid_input"


def test_rename(client: TestClient):
	resp = client.post("/v1/plan/rename", params=PLAN_A, json={"new_filename": "b.md"})
	assert resp.status_code == 200
	assert client.get("/v1/plan", params={"project": PROJECT, "filename": "b.md"}).status_code == 200
	assert client.get("/v1/plan", params=PLAN_A).status_code == 404


def test_set_content_requires_string(client: TestClient):
	resp = client.put("/v1/plan/content", params=PLAN_A, json={"content": 7})
	assert resp.status_code == 400


def test_topics(client: TestClient):
	params = {"project": PROJECT}
	resp = client.post(
		"/v1/topics", params=params, json={"name": "auth", "created_at": "2026-01-30T00:00:00+00:00"}
	)
	assert resp.status_code == 201
	assert [t["name"] for t in client.get("/v1/topics", params=params).json()] == ["auth"]
	assert client.post("/v1/topics", params=params, json={"name": "auth"}).status_code == 409


def test_closed_store_is_500(client: TestClient, local_store: LocalStore):
	local_store.close()
	resp = client.get("/v1/plan", params=PLAN_A)
	assert resp.status_code == 500
	assert resp.json()["error"] == "internal"


def test_unknown_route_is_404(client: TestClient):
	assert client.get("/v2/nothing").status_code == 404


def test_wrong_method_is_405(client: TestClient):
	assert client.delete("/v1/plan", params=PLAN_A).status_code == 405
