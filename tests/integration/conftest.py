"""Integration test fixtures: the HTTP API over a per-test SQLite database."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from payroll_run_engine.api.app import create_app


@pytest.fixture
def app(collaborators, session_factory, emitter):
    return create_app(
        collaborators=collaborators,
        session_factory=session_factory,
        emitter=emitter,
    )


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app in-process."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def draft(client: AsyncClient) -> dict:
    """A generated March 2026 draft for ACME-EG."""
    response = await client.post(
        "/api/v1/payroll/generate-draft",
        headers={"X-Actor-ID": "sp-1", "X-Actor-Role": "payroll_specialist"},
        json={"entity": "ACME-EG", "payroll_period": "2026-03-01"},
    )
    assert response.status_code == 201, response.text
    return response.json()
