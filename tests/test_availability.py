"""
Availability read, legacy direct set and the "finished" flow.
"""
from sqlalchemy.exc import SQLAlchemyError

from tortilla_watch.services.archive_service import ArchiveService
from tests.conftest import rate, vote

NO_CACHE = "no-store, no-cache, must-revalidate, proxy-revalidate"


def test_initial_state(client):
    response = client.get("/api/availability")
    assert response.status_code == 200
    assert response.headers["cache-control"] == NO_CACHE
    body = response.json()
    assert body["isAvailable"] is False
    assert body["availableVotes"] == 0
    assert body["unavailableVotes"] == 0
    assert body["lastUpdated"] == "2025-03-12T10:00:00+00:00"


def test_legacy_set_rule(client):
    response = client.post("/api/availability", json={"availableVotes": 2, "unavailableVotes": 1})
    assert response.status_code == 200
    assert response.json() == {"isAvailable": True, "availableVotes": 2, "unavailableVotes": 1}
    assert client.get("/api/availability").json()["isAvailable"] is True

    response = client.post("/api/availability", json={"availableVotes": 3, "unavailableVotes": 2})
    assert response.json()["isAvailable"] is False

    response = client.post("/api/availability", json={"availableVotes": 1, "unavailableVotes": 0})
    assert response.json()["isAvailable"] is False


def test_legacy_set_validation(client):
    response = client.post("/api/availability", json={"availableVotes": 2})
    assert response.status_code == 400
    assert response.json()["error"] == "missing_required_fields"

    response = client.post("/api/availability", json={"availableVotes": -1, "unavailableVotes": 0})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_vote_counts"

    response = client.post("/api/availability", json={"availableVotes": "lots", "unavailableVotes": 0})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"


def test_end_requires_fingerprint(client):
    response = client.post("/api/availability/end", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "fingerprint_required"


def test_end_needs_two_votes(available):
    client = available

    first = client.post("/api/availability/end", json={"fingerprint": "x"}).json()
    assert first["finished"] is False
    assert first["votes"] == 1
    assert first["message"] == "1 persona dice que se acabó la tortilla"
    assert client.get("/api/availability").json()["isAvailable"] is True

    second = client.post("/api/availability/end", json={"fingerprint": "y"}).json()
    assert second["success"] is True
    assert second["finished"] is True
    assert "votes" not in second

    state = client.get("/api/availability").json()
    assert state == {
        "isAvailable": False,
        "availableVotes": 0,
        "unavailableVotes": 0,
        "lastUpdated": state["lastUpdated"],
    }


def test_end_counts_regular_outage_votes(available):
    client = available
    vote(client, "x", "outage")
    body = client.post("/api/availability/end", json={"fingerprint": "y"}).json()
    assert body["finished"] is True


def test_end_archives_todays_ratings(available):
    client = available
    assert rate(client, "rater", comment="muy buena").status_code == 200
    assert client.get("/api/ratings/comments").json()["total"] == 1

    client.post("/api/availability/end", json={"fingerprint": "x"})
    client.post("/api/availability/end", json={"fingerprint": "y"})

    assert client.get("/api/ratings/comments").json() == {"comments": [], "total": 0}
    top = client.get("/api/history/top-comments").json()["top"]
    assert [item["comment"] for item in top] == ["muy buena"]


def test_end_succeeds_when_archiving_fails(available, monkeypatch):
    client = available
    assert rate(client, "rater", comment="se queda").status_code == 200

    async def broken_archive(db, start, end, deleted_at):
        raise SQLAlchemyError("archive table unavailable")

    monkeypatch.setattr(ArchiveService, "archive_ratings_between", staticmethod(broken_archive))

    client.post("/api/availability/end", json={"fingerprint": "x"})
    response = client.post("/api/availability/end", json={"fingerprint": "y"})
    assert response.status_code == 200
    assert response.json()["finished"] is True

    state = client.get("/api/availability").json()
    assert state["isAvailable"] is False
    assert state["availableVotes"] == 0
    assert state["unavailableVotes"] == 0
    # the ratings were not cleared
    assert client.get("/api/ratings/comments").json()["total"] == 1
