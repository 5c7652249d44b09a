# tests/conftest.py
import pytest
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from fixhub.db import mongo
from fixhub.main import app
from fixhub.models.user import Actor
from fixhub.services import accounts
from fixhub.services import llm_adapter


class FakeCache:
    """Dict-backed stand-in for the Redis enhancer cache."""

    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value):
        self.store[key] = value


@pytest.fixture
def mongo_client(monkeypatch):
    """Swap the cached Motor client for an in-memory one."""
    client = AsyncMongoMockClient()
    monkeypatch.setattr(mongo, "_mongo_client", client)
    return client


@pytest.fixture
async def db(mongo_client):
    await mongo.init_db()
    return mongo.get_db()


@pytest.fixture(autouse=True)
def fake_cache(monkeypatch):
    cache = FakeCache()
    monkeypatch.setattr(llm_adapter, "cache", cache)
    return cache


@pytest.fixture
async def client(db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


async def _register(name: str, role: str):
    res = await accounts.register(name, f"{name.lower().replace(' ', '.')}@example.com", "secret123", role)
    return Actor(id=res["user"]["id"], role=role), res["access_token"]


@pytest.fixture
async def register(db):
    """Factory: await register("Hank", "homeowner") -> (Actor, token)."""
    return _register


@pytest.fixture
async def homeowner(register):
    actor, _ = await register("Hana Owner", "homeowner")
    return actor


@pytest.fixture
async def fixer(register):
    actor, _ = await register("Felix Fixer", "fixer")
    return actor


@pytest.fixture
async def other_fixer(register):
    actor, _ = await register("Fiona Fixer", "fixer")
    return actor
