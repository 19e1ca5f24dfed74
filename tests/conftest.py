"""Test fixtures for the API and service tests.

Provides:
- A fresh FastAPI app (and so a fresh in-memory workspace) per test
- Async HTTP client for API testing
- Admin bearer headers for the back-office endpoints
- Two registered tenant users (alpha, beta), each in their own tenant
"""

from __future__ import annotations

import os

# Cheap bcrypt and a fixed secret; must be set before the settings are cached
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-not-for-production"

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.legalsaas.config import get_settings  # noqa: E402
from src.legalsaas.main import create_app  # noqa: E402
from src.legalsaas.workspace import Workspace  # noqa: E402

USER_PASSWORD = "senha-forte-123"


@pytest_asyncio.fixture
async def app():
    """Create the FastAPI app with its own empty workspace."""
    return create_app()


@pytest.fixture
def workspace(app) -> Workspace:
    return app.state.workspace


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_headers(client) -> dict[str, str]:
    """Bearer headers of the seeded back-office administrator."""
    settings = get_settings()
    response = await client.post(
        "/api/admin/auth/login",
        json={"email": settings.ADMIN_EMAIL, "password": settings.ADMIN_PASSWORD},
    )
    assert response.status_code == 200, f"Admin login failed: {response.text}"
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def register_user(
    client: AsyncClient,
    admin_headers: dict[str, str],
    *,
    email: str,
    name: str,
    tenant_name: str | None = None,
    tenant_id: str | None = None,
    account_type: str = "SIMPLES",
) -> dict:
    """Issue a registration key as admin and register a user with it."""
    key_response = await client.post(
        "/api/admin/keys",
        json={"tenant_id": tenant_id, "account_type": account_type},
        headers=admin_headers,
    )
    assert key_response.status_code == 201, f"Key generation failed: {key_response.text}"

    response = await client.post(
        "/api/auth/register",
        json={
            "email": email,
            "password": USER_PASSWORD,
            "name": name,
            "key": key_response.json()["key"],
            "tenant_name": tenant_name,
        },
    )
    assert response.status_code == 201, f"Registration failed: {response.text}"
    data = response.json()
    return {
        **data["user"],
        "password": USER_PASSWORD,
        "access_token": data["access_token"],
        "refresh_token": data["refresh_token"],
        "headers": {"Authorization": f"Bearer {data['access_token']}"},
    }


@pytest.fixture
def register(client, admin_headers):
    """register_user() bound to the test client and admin headers."""

    async def _register(**kwargs) -> dict:
        return await register_user(client, admin_headers, **kwargs)

    return _register


@pytest_asyncio.fixture
async def alpha_user(client, admin_headers) -> dict:
    """COMPOSTA user of tenant "Silva Advogados"."""
    return await register_user(
        client,
        admin_headers,
        email="ana@silva-advogados.com.br",
        name="Ana Silva",
        tenant_name="Silva Advogados",
        account_type="COMPOSTA",
    )


@pytest_asyncio.fixture
async def beta_user(client, admin_headers) -> dict:
    """COMPOSTA user of tenant "Costa Juridico"."""
    return await register_user(
        client,
        admin_headers,
        email="bruno@costa-juridico.com.br",
        name="Bruno Costa",
        tenant_name="Costa Juridico",
        account_type="COMPOSTA",
    )


@pytest.fixture
def alpha_headers(alpha_user) -> dict[str, str]:
    return alpha_user["headers"]


@pytest.fixture
def beta_headers(beta_user) -> dict[str, str]:
    return beta_user["headers"]
