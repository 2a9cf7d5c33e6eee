from typing import Dict, Optional

from httpx import AsyncClient

from config import ApplicationConfig
from tests.fixtures.json_loader import TestDataLoader

ADMIN_HEADERS = {"X-Admin-API-Key": ApplicationConfig.ADMIN_API_KEY, "X-Admin-User": "ops"}


def auth_headers(auth: Dict) -> Dict[str, str]:
    """JWT plus session token from a register/login response body"""
    return {
        "Authorization": f"Bearer {auth['access_token']}",
        ApplicationConfig.SESSION_TOKEN_HEADER: auth["session_token"],
    }


async def register(client: AsyncClient, name: str = "alice") -> Dict:
    response = await client.post("/auth/register", json=TestDataLoader.user(name))
    assert response.status_code == 201, response.text
    return response.json()


async def login(client: AsyncClient, name: str = "alice", device: Optional[str] = None) -> Dict:
    headers = TestDataLoader.device(device) if device else None
    response = await client.post(
        "/auth/login", json=TestDataLoader.credentials(name), headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()


async def update_rate_limit_config(client: AsyncClient, changes: Dict) -> Dict:
    response = await client.put("/admin/rate-limit/config", json=changes, headers=ADMIN_HEADERS)
    assert response.status_code == 200, response.text
    return response.json()


async def record_usage(client: AsyncClient, auth: Dict, module_id: str = "write-story", **extra):
    return await client.post(
        "/usage/record",
        json={"module_id": module_id, "module_name": "Write Story", **extra},
        headers=auth_headers(auth),
    )
