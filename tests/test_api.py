"""HTTP tests for the trip, room, guest, assignment and occupancy routes."""

import pytest
from fastapi.testclient import TestClient

from tripstay.api.deps import store_dependency
from tripstay.api.factory import create_app
from tripstay.observability.correlation import CORRELATION_ID_HEADER


@pytest.fixture
def client(store):
    app = create_app()
    app.dependency_overrides[store_dependency] = lambda: store
    return TestClient(app)


@pytest.fixture
def setup(client):
    trip = client.post("/trips", json={"name": "Lisbon"}).json()
    room = client.post(f"/trips/{trip['id']}/rooms", json={"name": "Blue", "capacity": 2}).json()
    person = client.post(f"/trips/{trip['id']}/persons", json={"name": "Ana"}).json()
    return trip["id"], room["id"], person["id"]


def _assign(client, trip_id, room_id, person_id, start, end, **params):
    return client.post(
        f"/trips/{trip_id}/assignments",
        params=params,
        json={"room_id": room_id, "person_id": person_id, "start_date": start, "end_date": end},
    )


def test_health_echoes_correlation_id(client):
    resp = client.get("/health", headers={CORRELATION_ID_HEADER: "abc"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers[CORRELATION_ID_HEADER] == "abc"


class TestAssignments:
    def test_create_and_list(self, client, setup):
        trip_id, room_id, person_id = setup
        resp = _assign(client, trip_id, room_id, person_id, "2026-03-02", "2026-03-05")
        assert resp.status_code == 201
        body = resp.json()
        assert body["conflict"] is False

        listed = client.get(f"/trips/{trip_id}/assignments", params={"room_id": room_id})
        assert [a["id"] for a in listed.json()] == [body["id"]]

    def test_conflict_returns_409_unless_allowed(self, client, setup):
        trip_id, room_id, person_id = setup
        _assign(client, trip_id, room_id, person_id, "2024-07-15", "2024-07-19")

        resp = _assign(client, trip_id, room_id, person_id, "2024-07-19", "2024-07-22")
        assert resp.status_code == 409

        resp = _assign(
            client, trip_id, room_id, person_id, "2024-07-19", "2024-07-22", allow_conflict="true"
        )
        assert resp.status_code == 201
        assert resp.json()["conflict"] is True

    def test_invalid_range_is_422(self, client, setup):
        trip_id, room_id, person_id = setup
        resp = _assign(client, trip_id, room_id, person_id, "2026-03-05", "2026-03-02")
        assert resp.status_code == 422

    def test_patch_and_ownership(self, client, setup):
        trip_id, room_id, person_id = setup
        created = _assign(client, trip_id, room_id, person_id, "2026-03-02", "2026-03-05").json()

        resp = client.patch(
            f"/trips/{trip_id}/assignments/{created['id']}", json={"end_date": "2026-03-06"}
        )
        assert resp.status_code == 200
        assert resp.json()["end_date"] == "2026-03-06"

        other = client.post("/trips", json={"name": "Other"}).json()
        resp = client.patch(
            f"/trips/{other['id']}/assignments/{created['id']}", json={"end_date": "2026-03-07"}
        )
        assert resp.status_code == 403

        resp = client.patch(f"/trips/{trip_id}/assignments/missing", json={})
        assert resp.status_code == 404

    def test_delete_is_idempotent(self, client, setup):
        trip_id, room_id, person_id = setup
        created = _assign(client, trip_id, room_id, person_id, "2026-03-02", "2026-03-05").json()
        url = f"/trips/{trip_id}/assignments/{created['id']}"
        assert client.delete(url).status_code == 204
        assert client.delete(url).status_code == 204

    def test_conflict_check_endpoint(self, client, setup):
        trip_id, room_id, person_id = setup
        _assign(client, trip_id, room_id, person_id, "2024-07-15", "2024-07-19")
        resp = client.post(
            f"/trips/{trip_id}/assignments/conflicts",
            json={"person_id": person_id, "start_date": "2024-07-20", "end_date": "2024-07-22"},
        )
        assert resp.json() == {"conflict": False}

    def test_patch_rejects_null_ids(self, client, setup):
        trip_id, room_id, person_id = setup
        created = _assign(client, trip_id, room_id, person_id, "2026-03-02", "2026-03-05").json()
        url = f"/trips/{trip_id}/assignments/{created['id']}"

        resp = client.patch(url, json={"room_id": None, "person_id": None})
        assert resp.status_code == 422

        listed = client.get(f"/trips/{trip_id}/assignments").json()
        assert listed[0]["room_id"] == room_id
        assert listed[0]["person_id"] == person_id

    def test_patch_to_foreign_room_is_403(self, client, setup):
        trip_id, room_id, person_id = setup
        created = _assign(client, trip_id, room_id, person_id, "2026-03-02", "2026-03-05").json()
        other = client.post("/trips", json={"name": "Other"}).json()
        foreign = client.post(
            f"/trips/{other['id']}/rooms", json={"name": "Far", "capacity": 1}
        ).json()

        resp = client.patch(
            f"/trips/{trip_id}/assignments/{created['id']}", json={"room_id": foreign["id"]}
        )
        assert resp.status_code == 403

        resp = client.patch(
            f"/trips/{trip_id}/assignments/{created['id']}", json={"person_id": "ghost"}
        )
        assert resp.status_code == 404

        listed = client.get(f"/trips/{trip_id}/assignments").json()
        assert listed[0]["room_id"] == room_id

    def test_patch_conflict_returns_409_unless_allowed(self, client, setup):
        trip_id, room_id, person_id = setup
        _assign(client, trip_id, room_id, person_id, "2026-03-06", "2026-03-08")
        created = _assign(client, trip_id, room_id, person_id, "2026-03-02", "2026-03-04").json()
        url = f"/trips/{trip_id}/assignments/{created['id']}"

        resp = client.patch(url, json={"end_date": "2026-03-06"})
        assert resp.status_code == 409

        resp = client.patch(url, params={"allow_conflict": "true"}, json={"end_date": "2026-03-06"})
        assert resp.status_code == 200
        assert resp.json()["end_date"] == "2026-03-06"


class TestRoomsAndOccupancy:
    def test_occupancy_grid(self, client, setup):
        trip_id, room_id, person_id = setup
        other = client.post(f"/trips/{trip_id}/persons", json={"name": "Bruno"}).json()
        _assign(client, trip_id, room_id, person_id, "2026-03-02", "2026-03-05")
        _assign(client, trip_id, room_id, other["id"], "2026-03-03", "2026-03-06")

        resp = client.get(
            f"/trips/{trip_id}/rooms/{room_id}/occupancy",
            params={"start": "2026-03-02", "end": "2026-03-07"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["peak_occupancy"] == 2
        assert body["is_full"] is True
        assert [n["occupancy"] for n in body["nights"]] == [1, 2, 2, 1, 0]

    def test_occupancy_range_cap(self, client, setup, monkeypatch):
        trip_id, room_id, _ = setup
        monkeypatch.setenv("MAX_OCCUPANCY_RANGE_DAYS", "7")
        resp = client.get(
            f"/trips/{trip_id}/rooms/{room_id}/occupancy",
            params={"start": "2026-03-01", "end": "2026-03-20"},
        )
        assert resp.status_code == 422

    def test_occupants_exclude_checkout(self, client, setup):
        trip_id, room_id, person_id = setup
        _assign(client, trip_id, room_id, person_id, "2026-03-02", "2026-03-05")
        resp = client.get(f"/trips/{trip_id}/occupants", params={"day": "2026-03-05"})
        assert resp.json()["assignments"] == []

    def test_reorder_rejection_is_422(self, client, setup):
        trip_id, room_id, _ = setup
        resp = client.put(f"/trips/{trip_id}/rooms/order", json={"room_ids": [room_id, room_id]})
        assert resp.status_code == 422

    def test_delete_trip_cascades(self, client, setup):
        trip_id, room_id, person_id = setup
        _assign(client, trip_id, room_id, person_id, "2026-03-02", "2026-03-05")
        assert client.delete(f"/trips/{trip_id}").status_code == 204
        assert client.get(f"/trips/{trip_id}").status_code == 404
        assert client.get(f"/trips/{trip_id}/assignments").json() == []
