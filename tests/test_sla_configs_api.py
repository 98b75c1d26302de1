"""HTTP tests for the SLA policy table."""

import uuid


def config_payload(sbu_id, **overrides):
    payload = {"sbu_id": sbu_id, "ticket_status": "new", "sla_time": 45}
    payload.update(overrides)
    return payload


async def test_only_admins_manage_configs(client, world, auth):
    for profile in (world.manager, world.agent, world.user):
        response = await client.post("/api/sla-configs", json=config_payload(world.loans.id), headers=auth(profile))
        assert response.status_code == 403


async def test_create_normalizes_new_to_open(client, world, auth):
    response = await client.post("/api/sla-configs", json=config_payload(world.loans.id), headers=auth(world.admin))

    assert response.status_code == 201
    config = response.json()["slaConfig"]
    assert config["ticket_status"] == "open"
    assert config["sla_time"] == 45
    assert config["sbu"]["name"] == "Loans"


async def test_new_config_applies_to_new_tickets(client, world, auth):
    await client.post("/api/sla-configs", json=config_payload(world.loans.id), headers=auth(world.admin))

    response = await client.post(
        "/api/tickets",
        json={"title": "Loan statement", "description": "Missing statement", "priority": "low", "sbu_id": world.loans.id},
        headers=auth(world.user),
    )
    assert response.json()["ticket"]["sla_time"] == 45


async def test_duplicate_key_conflicts(client, world, auth):
    response = await client.post(
        "/api/sla-configs", json=config_payload(world.cards.id, ticket_status="open"), headers=auth(world.admin)
    )
    assert response.status_code == 409


async def test_unknown_key_rejected(client, world, auth):
    response = await client.post(
        "/api/sla-configs", json=config_payload(world.cards.id, ticket_status="on_hold"), headers=auth(world.admin)
    )
    assert response.status_code == 400


async def test_negative_minutes_rejected(client, world, auth):
    response = await client.post(
        "/api/sla-configs", json=config_payload(world.loans.id, sla_time=-5), headers=auth(world.admin)
    )
    assert response.status_code == 400


async def test_unknown_sbu(client, world, auth):
    response = await client.post(
        "/api/sla-configs", json=config_payload(str(uuid.uuid4())), headers=auth(world.admin)
    )
    assert response.status_code == 404


async def test_list_by_sbu(client, world, auth):
    response = await client.get(f"/api/sla-configs?sbu_id={world.cards.id}", headers=auth(world.manager))

    assert response.status_code == 200
    table = {c["ticket_status"]: c["sla_time"] for c in response.json()["slaConfigs"]}
    assert table == {"open": 30, "escalated_tier1": 60, "escalated_tier2": 120, "escalated_tier3": 240}


async def test_customers_cannot_read_configs(client, world, auth):
    response = await client.get("/api/sla-configs", headers=auth(world.user))
    assert response.status_code == 403


async def test_update_and_delete(client, world, auth):
    headers = auth(world.admin)
    created = await client.post(
        "/api/sla-configs",
        json=config_payload(world.loans.id, ticket_status="escalated_tier1", sla_time=90),
        headers=headers,
    )
    config_id = created.json()["slaConfig"]["id"]

    updated = await client.put(
        f"/api/sla-configs?id={config_id}", json={"sla_time": 75, "warning_seconds": 120}, headers=headers
    )
    assert updated.status_code == 200
    assert updated.json()["slaConfig"]["sla_time"] == 75
    assert updated.json()["slaConfig"]["warning_seconds"] == 120

    deleted = await client.delete(f"/api/sla-configs?id={config_id}", headers=headers)
    assert deleted.status_code == 204

    again = await client.delete(f"/api/sla-configs?id={config_id}", headers=headers)
    assert again.status_code == 404


async def test_update_to_taken_key_conflicts(client, world, auth):
    listing = await client.get(f"/api/sla-configs?sbu_id={world.cards.id}", headers=auth(world.admin))
    open_config = next(c for c in listing.json()["slaConfigs"] if c["ticket_status"] == "open")

    response = await client.put(
        f"/api/sla-configs?id={open_config['id']}", json={"ticket_status": "escalated_tier1"}, headers=auth(world.admin)
    )
    assert response.status_code == 409
