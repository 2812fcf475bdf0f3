"""
Recuerdos Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures (function-scoped, fresh for each test):
    ├── store:         empty InMemoryRecordStore
    ├── service:       MemoryService over `store`
    ├── owner / other_owner: two distinct owner ids
    ├── memory_fields: a valid MemoryCreate
    ├── app:           FastAPI app bound to `store`
    └── test_client:   HTTPX AsyncClient talking to `app` via ASGITransport
"""

import os

# Override settings BEFORE any recuerdos import: `settings` is built at import time
os.environ["STORE_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from recuerdos.main import create_app
from recuerdos.schemas.memory import MemoryCreate
from recuerdos.services.memory_service import MemoryService
from recuerdos.stores.memory_store import InMemoryRecordStore


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def service(store):
    return MemoryService(store)


@pytest.fixture
def owner():
    return "user-ana"


@pytest.fixture
def other_owner():
    return "user-bruno"


@pytest.fixture
def memory_fields():
    """A complete, valid create body using attribute names."""
    return MemoryCreate(
        title="Atardecer en la playa",
        description="Primer viaje del verano",
        location="Cádiz",
        date="2024-06-15",
        image_url="https://images.example.com/playa.jpg",
        latitude=36.5271,
        longitude=-6.2886,
    )


@pytest.fixture
def app(store):
    return create_app(store=store)


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient routed straight into the app (no server, no lifespan).

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
