from __future__ import annotations

from app.services.allocation_guard import allocation_guard


def _agent(client, capacity=2):
    return client.post("/api/agents", json={"name": "Alice", "capacity": capacity}).json()["id"]


def test_missing_or_malformed_agent_id_is_400(client):
    for body in ({}, {"agentId": ""}, {"agentId": "abc"}):
        r = client.post("/api/assign", json=body)
        assert r.status_code == 400, body
        assert r.json()["kind"] == "invalid_argument"


def test_missing_body_is_400(client):
    r = client.post("/api/assign")
    assert r.status_code == 400
    assert r.json()["kind"] == "invalid_argument"


def test_unknown_agent_is_404(client):
    r = client.post("/api/assign", json={"agentId": 999})
    assert r.status_code == 404
    assert r.json()["entity"] == "agent"


def test_empty_queue_is_404_no_available_work(client):
    agent_id = _agent(client)
    r = client.post("/api/assign", json={"agentId": agent_id})
    assert r.status_code == 404
    assert r.json()["kind"] == "no_available_work"


def test_complete_without_active_assignment_is_404(client):
    agent_id = _agent(client)
    r = client.post("/api/complete", json={"agentId": agent_id, "itemId": "nope"})
    assert r.status_code == 404
    assert r.json()["entity"] == "active_assignment"


def test_unassign_unknown_item_is_404(client):
    r = client.post("/api/unassign-item", json={"itemId": "nope"})
    assert r.status_code == 404
    assert r.json()["entity"] == "item"


def test_held_allocator_is_409_retryable(client):
    agent_id = _agent(client)
    assert allocation_guard.try_acquire()
    try:
        r = client.post("/api/assign", json={"agentId": agent_id})
    finally:
        allocation_guard.release()

    assert r.status_code == 409
    assert r.json()["kind"] == "concurrent_assignment_in_progress"
    assert r.json()["retryable"] is True


def test_bad_agent_payload_is_400(client):
    r = client.post("/api/agents", json={"name": "", "capacity": 0})
    assert r.status_code == 400


def test_unknown_export_is_404(client):
    assert client.get("/api/download/everything").status_code == 404


def test_bad_upload_mode_is_400(client):
    r = client.post(
        "/api/upload-items",
        params={"mode": "later"},
        files={"file": ("x.csv", b"abstract_product_id\nA\n", "text/csv")},
    )
    assert r.status_code == 400


def test_error_body_echoes_the_request_id(client):
    r = client.post("/api/assign", json={"agentId": 999}, headers={"X-Request-ID": "trace-123"})
    assert r.status_code == 404
    assert r.headers["X-Request-ID"] == "trace-123"
    assert r.json()["request_id"] == "trace-123"


def test_malformed_request_id_is_replaced(client):
    r = client.get("/api/health", headers={"X-Request-ID": "bad id with spaces"})
    assert r.headers["X-Request-ID"] != "bad id with spaces"
