"""Application wiring: health, root and error bodies."""


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"] == "connected"
    assert body["checks"]["escalation_scheduler"] == "stopped"
    assert body["checks"]["pending_emails"] == 0


async def test_root_lists_modules(client):
    response = await client.get("/")
    assert response.json()["modules"]["tickets"] == "/api/tickets"


async def test_error_body_carries_correlation_id(client, world, auth):
    response = await client.get(
        "/api/tickets/6f1c2a9e-3b7d-4e21-9a51-0c2f7d8e9b10",
        headers={**auth(world.admin), "X-Correlation-ID": "trace-7"},
    )

    assert response.status_code == 404
    assert response.json() == {
        "detail": "Ticket with id '6f1c2a9e-3b7d-4e21-9a51-0c2f7d8e9b10' not found",
        "correlation_id": "trace-7",
    }


async def test_response_time_header(client):
    response = await client.get("/health")
    assert response.headers["X-Response-Time"].endswith("s")
