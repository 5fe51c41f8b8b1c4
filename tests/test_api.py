import pytest
from fastapi.testclient import TestClient

from main import create_app
from store import InMemoryStore


@pytest.fixture
def client():
    return TestClient(create_app(InMemoryStore.with_fixtures()))


def post_token(client, source, slot_id="doc-A-slot-1", **extra):
    body = {"doctor_id": "doc-A", "slot_id": slot_id, "source": source, **extra}
    return client.post("/tokens", json=body)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_list_doctors(client):
    resp = client.get("/doctors")
    assert resp.status_code == 200
    doctors = resp.json()
    assert [d["id"] for d in doctors] == ["doc-A", "doc-B", "doc-C"]
    assert doctors[1]["department"] == "Pediatrics"
    assert all(d["slots_count"] == 3 for d in doctors)


def test_doctor_slots(client):
    post_token(client, "ONLINE")
    resp = client.get("/doctors/doc-A/slots")
    assert resp.status_code == 200
    slots = resp.json()["slots"]
    assert len(slots) == 3
    assert slots[0]["occupants"][0]["source"] == "ONLINE"


def test_doctor_slots_unknown_doctor(client):
    assert client.get("/doctors/doc-Z/slots").status_code == 404


def test_create_token_allocated(client):
    resp = post_token(client, "ONLINE", priority=40)
    assert resp.status_code == 201
    data = resp.json()
    assert data["result"]["status"] == "ALLOCATED"
    assert data["result"]["allocated_token"]["status"] == "CONFIRMED"
    assert data["slot"]["tokens_count"] == 1
    assert data["slot"]["capacity"]["max"] == 5


def test_create_token_displaces(client):
    post_token(client, "WALK_IN", priority=20)
    post_token(client, "ONLINE", priority=40)
    post_token(client, "ONLINE", priority=40)
    data = post_token(client, "WALK_IN", priority=60).json()
    assert data["result"]["status"] == "DISPLACED"
    assert data["result"]["displaced_token"]["priority"] == 20
    assert data["slot"]["tokens_count"] == 3
    assert data["slot"]["waitlist_count"] == 1


def test_create_token_rejected(client):
    for _ in range(3):
        post_token(client, "ONLINE")
    data = post_token(client, "WALK_IN").json()
    assert data["result"]["status"] == "REJECTED"
    assert data["result"]["allocated_token"] is None


def test_create_token_unknown_slot(client):
    assert post_token(client, "ONLINE", slot_id="doc-A-slot-9").status_code == 404


def test_create_token_validates_body(client):
    assert post_token(client, "TELEPHONE").status_code == 422
    assert post_token(client, "ONLINE", priority=50).status_code == 422


def test_cancel_promotes_from_waitlist(client):
    first = post_token(client, "ONLINE").json()["result"]["allocated_token"]
    post_token(client, "ONLINE")
    post_token(client, "ONLINE")
    waiting = post_token(client, "ONLINE").json()
    assert waiting["result"]["status"] == "WAITLISTED"

    resp = client.post(f"/tokens/{first['id']}/cancel")
    assert resp.status_code == 200
    data = resp.json()
    assert data["removed"] is True
    assert data["token"]["status"] == "CANCELLED"
    assert data["promoted"]["id"] == waiting["result"]["allocated_token"]["id"]
    assert data["slot"]["waitlist_count"] == 0


def test_cancel_waitlisted_token_leaves_slot_unchanged(client):
    for _ in range(3):
        post_token(client, "ONLINE")
    waiting = post_token(client, "ONLINE").json()["result"]["allocated_token"]

    data = client.post(f"/tokens/{waiting['id']}/cancel").json()
    assert data["removed"] is False
    assert data["slot"]["tokens_count"] == 3
    assert data["slot"]["waitlist_count"] == 1


def test_no_show(client):
    token = post_token(client, "FOLLOW_UP").json()["result"]["allocated_token"]
    data = client.post(f"/tokens/{token['id']}/no-show").json()
    assert data["token"]["status"] == "NO_SHOW"
    assert data["message"] == "Token marked as no-show"


def test_unknown_token_is_404(client):
    for action in ("cancel", "no-show", "check-in", "complete"):
        assert client.post(f"/tokens/missing/{action}").status_code == 404


def test_check_in_and_complete(client):
    token = post_token(client, "ONLINE").json()["result"]["allocated_token"]
    assert client.post(f"/tokens/{token['id']}/check-in").json()["status"] == "CHECKED_IN"
    done = client.post(f"/tokens/{token['id']}/complete").json()
    assert done["status"] == "COMPLETED"
    assert done["completed_at"] is not None


def test_reset(client):
    post_token(client, "ONLINE")
    assert client.post("/admin/reset").status_code == 200
    slots = client.get("/doctors/doc-A/slots").json()["slots"]
    assert slots[0]["occupants"] == []


def test_reset_reports_reseed(client):
    assert client.post("/admin/reset").json() == {"detail": "State re-seeded"}
