import pytest
from httpx import AsyncClient

from tests.utils.client_helpers import auth_headers, login, register
from tests.utils.json_compare import assert_error, exclude_keys


@pytest.mark.asyncio
async def test_register_opens_first_session(client: AsyncClient, test_data):
    """
    Given a new email and username
    When I register
    Then my account is created on the free tier
    And I receive a JWT and a session token usable right away
    """
    response = await client.post("/auth/register", json=test_data.user("alice"))

    assert response.status_code == 201
    data = response.json()
    assert exclude_keys(data) == {
        "user": {
            "email": "alice@example.com",
            "username": "alice",
            "subscription_type": "free",
        },
        "replaced_sessions": 0,
    }
    assert data["access_token"] and data["session_token"]

    me = await client.get("/auth/me", headers=auth_headers(data))
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, test_data):
    await register(client, "alice")
    payload = test_data.user("alice")
    payload["username"] = "alice_two"

    response = await client.post("/auth/register", json=payload)

    assert response.status_code == 409
    assert_error(response.json(), "EMAIL_ALREADY_EXISTS")


@pytest.mark.asyncio
async def test_register_duplicate_username(client: AsyncClient, test_data):
    await register(client, "alice")
    payload = test_data.user("alice")
    payload["email"] = "someone.else@example.com"

    response = await client.post("/auth/register", json=payload)

    assert response.status_code == 409
    assert_error(response.json(), "USERNAME_ALREADY_EXISTS")


@pytest.mark.asyncio
async def test_register_validation(client: AsyncClient):
    response = await client.post(
        "/auth/register",
        json={"email": "not-an-email", "username": "x", "password": "short"},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_by_email_and_username(client: AsyncClient, test_data):
    await register(client, "bob")

    by_email = await client.post("/auth/login", json=test_data.credentials("bob", by="email"))
    by_username = await client.post("/auth/login", json=test_data.credentials("bob", by="username"))

    assert by_email.status_code == 200
    assert by_username.status_code == 200
    assert by_username.json()["user"]["username"] == "bob_writer"
    assert by_username.json()["user"]["last_login_at"] is not None


@pytest.mark.asyncio
async def test_login_invalid_credentials(client: AsyncClient, test_data):
    await register(client, "alice")
    payload = test_data.credentials("alice")
    payload["password"] = "WrongPassword!"

    response = await client.post("/auth/login", json=payload)

    assert response.status_code == 401
    assert_error(response.json(), "INVALID_CREDENTIALS")


@pytest.mark.asyncio
async def test_login_unknown_user(client: AsyncClient):
    response = await client.post(
        "/auth/login", json={"email": "ghost@example.com", "password": "SecurePass123!"}
    )

    # Same answer as a wrong password, so accounts cannot be enumerated
    assert response.status_code == 401
    assert_error(response.json(), "INVALID_CREDENTIALS")


@pytest.mark.asyncio
async def test_login_replaces_session_in_use(client: AsyncClient):
    registered = await register(client, "alice")

    logged_in = await login(client, "alice")

    assert logged_in["replaced_sessions"] == 1
    assert logged_in["session_id"] != registered["session_id"]
