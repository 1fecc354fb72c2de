"""Tests for admin device review and agent management endpoints"""
import uuid

import pytest

from device_portal.services import device_service


@pytest.fixture
async def pending_device(client, agent_headers):
    response = await client.post("/api/agent/devices", headers=agent_headers)
    return response.json()["device"]


async def _device(client, headers, device_id):
    devices = (await client.get("/api/admin/devices", headers=headers)).json()
    return next((d for d in devices if d["id"] == device_id), None)


# ── Devices ──────────────────────────────────────────────────────────
async def test_pending_listing_includes_owner(client, admin_headers, pending_device):
    response = await client.get("/api/admin/devices/pending", headers=admin_headers)
    assert response.status_code == 200
    [device] = response.json()
    assert device["id"] == pending_device["id"]
    assert device["agent_name"] == "acme"
    # Admins can see the cleartext password again
    assert device["password"] == pending_device["password"]


async def test_approve_twice(client, admin_headers, pending_device):
    url = f"/api/admin/devices/{pending_device['id']}/approve"
    first = await client.post(url, headers=admin_headers)
    second = await client.post(url, headers=admin_headers)

    assert first.status_code == second.status_code == 200
    assert (await _device(client, admin_headers, pending_device["id"]))["status"] == "active"
    pending = await client.get("/api/admin/devices/pending", headers=admin_headers)
    assert pending.json() == []


async def test_agent_cannot_approve(client, agent_headers, pending_device):
    response = await client.post(
        f"/api/admin/devices/{pending_device['id']}/approve", headers=agent_headers,
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Insufficient permissions"}


async def test_approve_unknown_device(client, admin_headers):
    response = await client.post(f"/api/admin/devices/{uuid.uuid4()}/approve", headers=admin_headers)
    assert response.status_code == 404
    assert response.json() == {"error": "Device not found"}


async def test_delete_device(client, admin_headers, pending_device):
    response = await client.delete(f"/api/admin/devices/{pending_device['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert await _device(client, admin_headers, pending_device["id"]) is None


async def test_transfer_device(client, admin_headers, pending_device, create_user):
    other = await create_user("globex")
    response = await client.post(
        f"/api/admin/devices/{pending_device['id']}/transfer",
        headers=admin_headers,
        json={"new_agent_id": str(other.id)},
    )
    assert response.status_code == 200
    assert "globex" in response.json()["success"]

    device = await _device(client, admin_headers, pending_device["id"])
    assert device["agent_id"] == str(other.id)
    assert device["status"] == "pending"


async def test_transfer_to_admin_rejected(client, admin, admin_headers, agent, pending_device):
    response = await client.post(
        f"/api/admin/devices/{pending_device['id']}/transfer",
        headers=admin_headers,
        json={"new_agent_id": str(admin.id)},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Target user must be an agent"

    device = await _device(client, admin_headers, pending_device["id"])
    assert device["agent_id"] == str(agent.id)


async def test_transfer_to_unknown_agent(client, admin_headers, pending_device):
    response = await client.post(
        f"/api/admin/devices/{pending_device['id']}/transfer",
        headers=admin_headers,
        json={"new_agent_id": str(uuid.uuid4())},
    )
    assert response.status_code == 404


async def test_remove_ownership(client, admin_headers, pending_device):
    response = await client.post(
        f"/api/admin/devices/{pending_device['id']}/remove-ownership", headers=admin_headers,
    )
    assert response.status_code == 200

    device = await _device(client, admin_headers, pending_device["id"])
    assert device["agent_id"] is None
    assert device["agent_name"] is None
    assert device["status"] == "pending"


async def test_import_csv(client, admin_headers):
    response = await client.post(
        "/api/admin/devices/import",
        headers=admin_headers,
        json={"csv_data": "bob,pw1\n\n alice , pw2 \n"},
    )
    assert response.status_code == 200
    assert response.json()["imported_count"] == 2

    devices = (await client.get("/api/admin/devices", headers=admin_headers)).json()
    assert sorted(d["username"] for d in devices) == ["alice", "bob"]
    assert all(d["status"] == "active" and d["agent_id"] is None for d in devices)


async def test_import_csv_validation_error_creates_nothing(client, admin_headers):
    response = await client.post(
        "/api/admin/devices/import",
        headers=admin_headers,
        json={"csv_data": "bob,pw1\nalice,\n"},
    )
    assert response.status_code == 400
    data = response.json()
    assert "Line 2" in data["error"]
    assert data["lines"][0]["line"] == 2
    assert (await client.get("/api/admin/devices", headers=admin_headers)).json() == []


async def test_import_csv_partial_failure(client, admin_headers, monkeypatch):
    real_insert = device_service._insert_device

    async def flaky_insert(session, **kwargs):
        if kwargs["username"] == "broken":
            from sqlalchemy.exc import SQLAlchemyError

            raise SQLAlchemyError("disk full")
        return await real_insert(session, **kwargs)

    monkeypatch.setattr(device_service, "_insert_device", flaky_insert)

    response = await client.post(
        "/api/admin/devices/import",
        headers=admin_headers,
        json={"csv_data": "ok1,pw\nbroken,pw\nok2,pw"},
    )
    assert response.status_code == 207
    data = response.json()
    assert "broken" in data["error"]
    assert data["imported"] == ["ok1", "ok2"]
    assert data["imported_count"] == 2

    devices = (await client.get("/api/admin/devices", headers=admin_headers)).json()
    assert sorted(d["username"] for d in devices) == ["ok1", "ok2"]


async def test_admin_listings_empty_for_agents(client, agent_headers, pending_device):
    for url in ("/api/admin/devices", "/api/admin/devices/pending", "/api/admin/agents"):
        response = await client.get(url, headers=agent_headers)
        assert response.status_code == 200
        assert response.json() == []


# ── Agents ───────────────────────────────────────────────────────────
async def test_create_device_for_agent(client, admin_headers, agent):
    response = await client.post(
        f"/api/admin/agents/{agent.id}/devices",
        headers=admin_headers,
        json={"agent_name": "acme-east"},
    )
    assert response.status_code == 201
    device = response.json()["device"]
    assert device["username"].startswith("acme-east_")

    stored = await _device(client, admin_headers, device["id"])
    assert stored["agent_id"] == str(agent.id)
    assert stored["status"] == "pending"


async def test_create_device_for_agent_defaults_to_username(client, admin_headers, agent):
    response = await client.post(f"/api/admin/agents/{agent.id}/devices", headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["device"]["username"].startswith("acme_")


async def test_list_agents_with_device_counts(client, admin_headers, pending_device, create_user):
    await create_user("globex")
    response = await client.get("/api/admin/agents", headers=admin_headers)
    assert response.status_code == 200
    counts = {a["username"]: a["device_count"] for a in response.json()}
    assert counts == {"acme": 1, "globex": 0}


async def test_get_agent_profile(client, admin, admin_headers, agent):
    response = await client.get(f"/api/admin/agents/{agent.id}", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["company_name"] == "Acme Ltd"
    assert data["contact_person"] == "Jane Roe"

    # Admin accounts are not agent profiles
    response = await client.get(f"/api/admin/agents/{admin.id}", headers=admin_headers)
    assert response.json() is None


async def test_create_agent(client, admin_headers, login):
    response = await client.post(
        "/api/admin/agents",
        headers=admin_headers,
        json={"username": "initech", "password": "secret123", "confirm_password": "secret123"},
    )
    assert response.status_code == 201
    await login("initech")


async def test_delete_agent_releases_devices_and_sessions(
    client, admin_headers, agent, agent_headers, pending_device,
):
    response = await client.delete(f"/api/admin/agents/{agent.id}", headers=admin_headers)
    assert response.status_code == 200

    # The agent's session is gone with the account
    assert (await client.get("/api/auth/me", headers=agent_headers)).status_code == 401
    # The device survives, unowned
    device = await _device(client, admin_headers, pending_device["id"])
    assert device is not None
    assert device["agent_id"] is None


async def test_admin_cannot_delete_self(client, admin, admin_headers):
    response = await client.delete(f"/api/admin/agents/{admin.id}", headers=admin_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "You cannot delete your own account"}
    assert (await client.get("/api/auth/me", headers=admin_headers)).status_code == 200


async def test_change_agent_password_forces_relogin(client, admin_headers, agent, agent_headers, login):
    response = await client.post(
        f"/api/admin/agents/{agent.id}/password",
        headers=admin_headers,
        json={"new_password": "reset-by-admin", "confirm_password": "reset-by-admin"},
    )
    assert response.status_code == 200

    assert (await client.get("/api/auth/me", headers=agent_headers)).status_code == 401
    new_headers = await login("acme", "reset-by-admin")
    assert (await client.get("/api/auth/me", headers=new_headers)).status_code == 200


async def test_change_agent_password_mismatch(client, admin_headers, agent):
    response = await client.post(
        f"/api/admin/agents/{agent.id}/password",
        headers=admin_headers,
        json={"new_password": "reset-by-admin", "confirm_password": "something-else"},
    )
    assert response.status_code == 400
