"""Integration test fixtures: the FastAPI app over a per-test SQLite file."""

from collections.abc import AsyncGenerator

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from payroll_ledger.api.app import create_app


@pytest_asyncio.fixture
async def app(session_factory, clock) -> AsyncGenerator[FastAPI, None]:
    """App bound to the test database and the pinned clock."""
    app = create_app(session_factory=session_factory, clock=clock)
    yield app
    await app.state.propagator.drain()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
