"""
Today status and history views.
"""
from tests.conftest import rate, vote


def react(client, rating_id, fingerprint, reaction="🔥"):
    return client.post(
        "/api/ratings/comments/reactions",
        json={"ratingId": rating_id, "fingerprint": fingerprint, "reaction": reaction},
    )


def comment_ids(client):
    return {c["comment"]: c["id"] for c in client.get("/api/ratings/comments").json()["comments"]}


def test_empty_status(client):
    response = client.get("/api/today/status")
    assert response.headers["cache-control"].startswith("no-store")
    body = response.json()
    assert body["today"] == "2025-03-12"
    assert body["batches"] == {"active": 0, "completed": 0, "total": 0}
    assert body["outageVotes"] == {"outage": 0, "working": 0, "total": 0}
    assert body["ratings"]["count"] == 0
    assert body["ratings"]["average"] is None
    assert body["ratings"]["sabor"] is None
    assert body["recentBatches"] == []


def test_status_with_votes_and_ratings(available):
    client = available
    rate(client, "A")
    rate(client, "B", sabor=10, jugosidad=10, cuajada=10, temperatura=10)

    body = client.get("/api/today/status").json()
    assert body["outageVotes"] == {"outage": 0, "working": 2, "total": 2}
    ratings = body["ratings"]
    assert ratings["count"] == 2
    assert ratings["average"] == 8.75
    assert ratings["sabor"] == 9.0
    assert ratings["cuajada"] == 8.0


def test_status_lists_todays_batches(client):
    batch_id = client.post("/api/batches/new", json={"fingerprint": "cook"}).json()["batchId"]

    body = client.get("/api/today/status").json()
    assert body["batches"] == {"active": 1, "completed": 0, "total": 1}
    batch = body["recentBatches"][0]
    assert batch["id"] == batch_id
    assert batch["createdByFingerprint"] == "cook"
    assert batch["confirmedCount"] == 1
    assert batch["ratings"] == []


def test_status_vote_window(client, clock):
    vote(client, "a", "outage")
    clock.advance(minutes=31)
    assert client.get("/api/today/status").json()["outageVotes"]["outage"] == 0


def test_top_comments_ranked_by_reactions(available):
    client = available
    rate(client, "A", comment="normalita")
    rate(client, "B", comment="espectacular")
    ids = comment_ids(client)

    react(client, ids["espectacular"], "x")
    react(client, ids["espectacular"], "y", "🐐")
    react(client, ids["normalita"], "x", "😂")

    response = client.get("/api/history/top-comments")
    assert response.headers["cache-control"].startswith("no-store")
    top = response.json()["top"]
    assert [(item["comment"], item["reactions"]) for item in top] == [
        ("espectacular", 2),
        ("normalita", 1),
    ]
    assert top[0]["average"] == 8


def test_top_comments_survive_archive(available):
    client = available
    rate(client, "A", comment="archivada")
    react(client, comment_ids(client)["archivada"], "x")

    client.post("/api/availability/end", json={"fingerprint": "x"})
    client.post("/api/availability/end", json={"fingerprint": "y"})

    top = client.get("/api/history/top-comments").json()["top"]
    assert top == [{
        "id": top[0]["id"],
        "comment": "archivada",
        "createdAt": "2025-03-12T10:00:00+00:00",
        "average": 8,
        "reactions": 1,
    }]


def test_top_comments_only_last_week(available, clock):
    rate(available, "A", comment="vieja")
    clock.advance(days=8)
    assert available.get("/api/history/top-comments").json()["top"] == []


def test_daily_history(available, clock):
    client = available
    rate(client, "A")
    rate(client, "B", sabor=10, jugosidad=10, cuajada=10, temperatura=10)

    client.post("/api/availability/end", json={"fingerprint": "x"})
    client.post("/api/availability/end", json={"fingerprint": "y"})

    clock.advance(days=1)
    vote(client, "voter-3")
    vote(client, "voter-4")
    rate(client, "A", sabor=5, jugosidad=5, cuajada=5, temperatura=5)

    history = client.get("/api/history/daily").json()["history"]
    assert history == [
        {"date": "2025-03-13", "average": 5.0, "count": 1},
        {"date": "2025-03-12", "average": 9.0, "count": 2},
    ]
