import uuid

import pytest
from fastapi.testclient import TestClient

from session_finder.main import app
from session_finder.search_tasks import search_controller


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


def worked_payload(**overrides):
    payload = {
        "days": [
            {"date_key": 301, "label": "3/1(Mon)", "availability": {"Alice": "○", "Bob": "○", "Carol": "○"}},
            {"date_key": 302, "label": "3/2(Tue)", "availability": {"Alice": "○", "Bob": "○", "Carol": "○"}},
            {
                "date_key": 303,
                "label": "3/3(Wed)",
                "day_type": "holiday",
                "availability": {"Alice": "available", "Bob": "×", "Carol": "○"},
            },
        ],
        "lead": ["Alice"],
        "required_hours": 6,
        "pool": ["Bob", "Carol"],
        "group_size": 1,
    }
    payload.update(overrides)
    return payload


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_search_returns_ranked_candidates(client):
    resp = client.post("/api/search", json=worked_payload())
    assert resp.status_code == 200
    body = resp.json()

    assert body["status"] == "completed"
    assert body["num_results"] == 3
    assert [r["group"] for r in body["results"]] == [["Carol"], ["Bob"], ["Carol"]]
    assert body["results"][0]["days"][0]["label"] == "3/3(Wed)"


def test_search_with_role_slots(client):
    payload = worked_payload(pool=None, group_size=None, role_slots=[{"label": "HO1", "candidates": ["Bob"]}])
    body = client.post("/api/search", json=payload).json()

    assert body["num_results"] == 1
    assert body["results"][0]["slots"] == [{"label": "HO1", "name": "Bob"}]


def test_maybe_symbol_and_policy(client):
    payload = worked_payload()
    payload["days"][2]["availability"]["Carol"] = "△"

    allowed = client.post("/api/search", json=payload).json()
    assert [r["uses_maybe"] for r in allowed["results"]] == [False, False, True]

    strict = client.post("/api/search", json={**payload, "allow_maybe": False}).json()
    assert strict["num_results"] == 2


def test_unbounded_and_capped_results(client):
    assert client.post("/api/search", json=worked_payload(max_results="unbounded")).json()["num_results"] == 3
    assert client.post("/api/search", json=worked_payload(max_results=2)).json()["num_results"] == 2


def test_precondition_violations(client):
    assert client.post("/api/search", json=worked_payload(required_hours=0)).status_code == 422
    resp = client.post("/api/search", json=worked_payload(group_size=5))
    assert resp.status_code == 400
    assert "group_size" in resp.json()["detail"]
    both = worked_payload(role_slots=[{"label": "HO1", "candidates": ["Bob"]}])
    assert client.post("/api/search", json=both).status_code == 400


def test_lead_cannot_double_as_supporting_member(client):
    resp = client.post("/api/search", json=worked_payload(pool=["Alice"]))
    assert resp.status_code == 400
    assert "lead participants" in resp.json()["detail"]

    slots = worked_payload(pool=None, group_size=None, role_slots=[{"label": "HO1", "candidates": ["Alice", "Bob"]}])
    assert client.post("/api/search", json=slots).status_code == 400


def test_run_lifecycle(client):
    request_id = f"api-{uuid.uuid4().hex[:8]}"
    resp = client.post("/api/search/runs", json={"request_id": request_id, "payload": worked_payload()})
    assert resp.status_code == 200
    assert resp.json()["request_id"] == request_id

    search_controller.wait(request_id, timeout=10)
    body = client.get(f"/api/search/runs/{request_id}").json()
    assert body["status"] == "completed"
    assert body["active"] is True
    assert body["result"]["num_results"] == 3

    listed = client.get("/api/search/runs").json()
    assert request_id in [run["request_id"] for run in listed["runs"]]
    assert listed["active_request_id"] == request_id

    reused = client.post("/api/search/runs", json={"request_id": request_id, "payload": worked_payload()})
    assert reused.status_code == 409


def test_cancel_unknown_run_is_ignored(client):
    resp = client.post("/api/search/runs/not-a-run/cancel")
    assert resp.status_code == 200
    assert resp.json()["accepted"] is False


def test_unknown_run_is_404(client):
    assert client.get("/api/search/runs/missing").status_code == 404


def test_rerank_existing_results(client):
    results = client.post("/api/search", json=worked_payload()).json()["results"]

    resp = client.post("/api/results/rank", json={"results": results, "sort_mode": "weekday-first"})
    assert resp.status_code == 200
    ranked = resp.json()["results"]
    assert [[d["date_key"] for d in r["days"]] for r in ranked] == [[301, 302], [301, 302], [303]]
    assert [r["group"] for r in ranked] == [["Bob"], ["Carol"], ["Carol"]]
