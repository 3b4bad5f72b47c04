"""
Batch quorum workflow.
"""


def create(client, fingerprint="cook"):
    return client.post("/api/batches/new", json={"fingerprint": fingerprint})


def confirm(client, batch_id, fingerprint):
    return client.post("/api/batches/confirm", json={"batchId": batch_id, "fingerprint": fingerprint})


def test_create_requires_fingerprint(client):
    response = client.post("/api/batches/new", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "fingerprint_required"


def test_second_fingerprint_confirms(client):
    batch_id = create(client).json()["batchId"]
    assert len(batch_id) == 36

    response = confirm(client, batch_id, "eater")
    assert response.status_code == 200
    assert response.json() == {"confirmed": True, "votes": 2}

    batch = client.get("/api/today/status").json()["recentBatches"][0]
    assert batch["confirmationsNeeded"] == 0
    assert batch["confirmedCount"] == 2
    assert batch["pendingUntil"] is None


def test_duplicate_vote_is_ignored(client):
    batch_id = create(client).json()["batchId"]
    assert confirm(client, batch_id, "cook").json() == {"confirmed": False, "votes": 1}
    assert confirm(client, batch_id, "cook").json() == {"confirmed": False, "votes": 1}


def test_unknown_batch(client):
    response = confirm(client, "missing", "eater")
    assert response.status_code == 404
    assert response.json()["error"] == "batch_not_found"


def test_expired_batch(client, clock):
    batch_id = create(client).json()["batchId"]
    clock.advance(minutes=4)
    response = confirm(client, batch_id, "eater")
    assert response.status_code == 410
    assert response.json()["error"] == "batch_expired"


def test_confirm_missing_fields(client):
    response = client.post("/api/batches/confirm", json={"fingerprint": "eater"})
    assert response.status_code == 400
    assert response.json()["error"] == "missing_required_fields"
