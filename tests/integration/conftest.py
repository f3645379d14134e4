"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.

These tests need a migrated PostgreSQL and a Redis; they are skipped unless
RUN_INTEGRATION=1.
"""

import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.main import app

PASSWORD = "TestPass123"


def pytest_runtest_setup(item: pytest.Item) -> None:
    if os.environ.get("RUN_INTEGRATION") != "1":
        pytest.skip("set RUN_INTEGRATION=1 with PostgreSQL and Redis running")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register_and_login(client: AsyncClient, label: str) -> dict[str, str]:
    """Register a fresh profile and return its Authorization header."""
    email = f"{label}_{uuid.uuid4().hex[:8]}@example.com"
    reg = await client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": PASSWORD, "full_name": label.title()},
    )
    assert reg.status_code == 201, reg.text
    login = await client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    token = login.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def seller_headers(client: AsyncClient) -> dict[str, str]:
    return await register_and_login(client, "seller")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def alice_headers(client: AsyncClient) -> dict[str, str]:
    return await register_and_login(client, "alice")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def bob_headers(client: AsyncClient) -> dict[str, str]:
    return await register_and_login(client, "bob")
