"""
Health and probe endpoints.
"""


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "healthy"
    assert body["storage"] == "not_configured"
    assert body["timestamp"] == "2025-03-12T10:00:00+00:00"


def test_probes(client):
    assert client.get("/live").json() == {"status": "alive"}
    assert client.get("/ready").json() == {"status": "ready"}

    root = client.get("/")
    assert root.json()["name"] == "Tortilla Watch"
    assert "x-process-time" in root.headers


def test_unknown_route_is_404(client):
    assert client.get("/api/nope").status_code == 404
