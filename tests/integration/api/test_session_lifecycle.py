from datetime import timedelta
from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import update

from src.domain.base import utc_now
from src.domain.entities import UserSession
from tests.utils.client_helpers import ADMIN_HEADERS, auth_headers, login, register
from tests.utils.json_compare import assert_error


async def backdate_session(db_session, auth, **delta):
    """Move a session's login and last activity into the past"""
    await db_session.execute(
        update(UserSession)
        .where(UserSession.id == UUID(auth["session_id"]))
        .values(
            login_at=utc_now() - timedelta(**delta),
            last_activity=utc_now() - timedelta(**delta),
        )
    )
    await db_session.commit()


@pytest.mark.asyncio
async def test_second_device_terminates_first(client: AsyncClient):
    """
    Given I am logged in on device A
    When I log in on device B a few seconds later
    Then requests with device A's session get SESSION_TERMINATED
    And requests with device B's session succeed
    """
    await register(client, "alice")
    device_a = await login(client, "alice", device="device_a")
    device_b = await login(client, "alice", device="device_b")

    assert device_b["replaced_sessions"] == 1

    response_a = await client.get("/auth/me", headers=auth_headers(device_a))
    assert response_a.status_code == 403
    body = response_a.json()
    assert_error(body, "SESSION_TERMINATED")
    assert body["reason"] == "CONCURRENT_LOGIN_DETECTED"

    response_b = await client.get("/auth/me", headers=auth_headers(device_b))
    assert response_b.status_code == 200
    assert response_b.json()["session"]["session_id"] == device_b["session_id"]

    events = await client.get(
        "/admin/audit-events", params={"action": "concurrent_login"}, headers=ADMIN_HEADERS
    )
    user_agents = [e["metadata"].get("new_user_agent") for e in events.json()["events"]]
    assert "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_5) Safari/605.1" in user_agents


@pytest.mark.asyncio
async def test_stale_session_is_terminated_on_next_use(client: AsyncClient, db_session):
    """A session idle for a while is left alone at login and loses on its next request"""
    first = await register(client, "alice")
    await backdate_session(db_session, first, minutes=10)

    second = await login(client, "alice", device="device_b")
    assert second["replaced_sessions"] == 0

    response = await client.get("/auth/me", headers=auth_headers(first))
    assert response.status_code == 403
    assert_error(response.json(), "SESSION_TERMINATED")

    assert (await client.get("/auth/me", headers=auth_headers(second))).status_code == 200


@pytest.mark.asyncio
async def test_me_counts_api_calls(client: AsyncClient):
    auth = await register(client, "alice")

    first = await client.get("/auth/me", headers=auth_headers(auth))
    second = await client.get("/auth/me", headers=auth_headers(auth))

    assert first.status_code == 200
    data = second.json()
    assert data["user"]["email"] == "alice@example.com"
    assert "status" not in data["user"]
    # The first call's activity write ran after its response
    assert data["session"]["total_api_calls"] == 2


@pytest.mark.asyncio
async def test_idle_session_expires(client: AsyncClient, db_session):
    auth = await register(client, "alice")
    await backdate_session(db_session, auth, minutes=31)

    response = await client.get("/auth/me", headers=auth_headers(auth))

    assert response.status_code == 401
    body = response.json()
    assert_error(body, "SESSION_EXPIRED")
    assert body["idleTimeoutMinutes"] == 30

    again = await client.get("/auth/me", headers=auth_headers(auth))
    assert again.status_code == 401
    assert_error(again.json(), "SESSION_INVALID")


@pytest.mark.asyncio
async def test_heartbeat_keeps_session_alive(client: AsyncClient, db_session):
    auth = await register(client, "alice")
    await backdate_session(db_session, auth, minutes=31)

    # Heartbeats never time a session out, they refresh it
    response = await client.post("/auth/heartbeat", headers=auth_headers(auth))

    assert response.status_code == 200
    assert response.json()["status"] == "active"
    assert response.json()["session_id"] == auth["session_id"]

    assert (await client.get("/auth/me", headers=auth_headers(auth))).status_code == 200


@pytest.mark.asyncio
async def test_logout(client: AsyncClient):
    auth = await register(client, "alice")

    response = await client.post("/auth/logout", headers=auth_headers(auth))

    assert response.status_code == 200
    assert response.json()["status"] == "success"

    after = await client.get("/auth/me", headers=auth_headers(auth))
    assert after.status_code == 401
    assert_error(after.json(), "SESSION_INVALID")


async def login_on_device(client: AsyncClient):
    await register(client, "alice")
    return await login(client, "alice", device="device_a")


@pytest.mark.asyncio
async def test_active_session(client: AsyncClient):
    auth = await login_on_device(client)

    response = await client.get("/auth/active-session", headers=auth_headers(auth))

    data = response.json()
    assert data["has_active_session"] is True
    assert data["active_session"]["session_id"] == auth["session_id"]
    assert data["active_session"]["ip_address"] == "203.0.113.10"

    await client.post("/auth/logout", headers=auth_headers(auth))
    after = await client.get("/auth/active-session", headers=auth_headers(auth))
    assert after.json() == {"has_active_session": False, "active_session": None}


@pytest.mark.asyncio
async def test_session_token_required(client: AsyncClient):
    auth = await register(client, "alice")
    headers = {"Authorization": auth_headers(auth)["Authorization"]}

    me = await client.get("/auth/me", headers=headers)
    heartbeat = await client.post("/auth/heartbeat", headers=headers)

    for response in (me, heartbeat):
        assert response.status_code == 401
        assert_error(response.json(), "SESSION_REQUIRED")


@pytest.mark.asyncio
async def test_jwt_required(client: AsyncClient):
    response = await client.get("/auth/me")

    assert response.status_code == 401
    assert_error(response.json(), "UNAUTHORIZED")

    invalid = await client.get("/auth/me", headers={"Authorization": "Bearer garbage"})
    assert invalid.status_code == 401
    assert_error(invalid.json(), "INVALID_TOKEN")


@pytest.mark.asyncio
async def test_session_of_another_user_is_rejected(client: AsyncClient):
    alice = await register(client, "alice")
    bob = await register(client, "bob")
    headers = {
        "Authorization": auth_headers(alice)["Authorization"],
        "X-Session-Token": bob["session_token"],
    }

    response = await client.get("/auth/me", headers=headers)

    assert response.status_code == 401
    assert_error(response.json(), "SESSION_INVALID")


@pytest.mark.asyncio
async def test_logout_with_session_of_another_user_is_rejected(client: AsyncClient):
    alice = await register(client, "alice")
    bob = await register(client, "bob")
    headers = {
        "Authorization": auth_headers(bob)["Authorization"],
        "X-Session-Token": alice["session_token"],
    }

    logout = await client.post("/auth/logout", headers=headers)
    heartbeat = await client.post("/auth/heartbeat", headers=headers)

    assert logout.status_code == 401
    assert_error(logout.json(), "SESSION_INVALID")
    assert heartbeat.status_code == 401
    assert_error(heartbeat.json(), "SESSION_INVALID")
    assert (await client.get("/auth/me", headers=auth_headers(alice))).status_code == 200
