"""Tests for agent device self-service endpoints"""


async def test_agent_creates_pending_device(client, agent_headers):
    response = await client.post("/api/agent/devices", headers=agent_headers)
    assert response.status_code == 201

    device = response.json()["device"]
    assert device["username"].startswith("acme_")
    assert len(device["password"]) == 6

    listing = await client.get("/api/agent/devices", headers=agent_headers)
    assert listing.status_code == 200
    devices = listing.json()
    assert len(devices) == 1
    assert devices[0]["status"] == "pending"
    assert devices[0]["agent_name"] == "acme"


async def test_admin_cannot_use_agent_create(client, admin_headers):
    response = await client.post("/api/agent/devices", headers=admin_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Insufficient permissions"}


async def test_create_requires_login(client):
    response = await client.post("/api/agent/devices")
    assert response.status_code == 401


async def test_listing_is_empty_for_wrong_or_missing_role(client, admin_headers, agent_headers):
    await client.post("/api/agent/devices", headers=agent_headers)

    assert (await client.get("/api/agent/devices")).json() == []
    as_admin = await client.get("/api/agent/devices", headers=admin_headers)
    assert as_admin.status_code == 200
    assert as_admin.json() == []


async def test_agents_only_see_their_own_devices(client, create_user, login, agent_headers):
    await create_user("globex")
    other_headers = await login("globex")

    await client.post("/api/agent/devices", headers=agent_headers)
    await client.post("/api/agent/devices", headers=other_headers)

    mine = (await client.get("/api/agent/devices", headers=agent_headers)).json()
    assert [d["agent_name"] for d in mine] == ["acme"]
