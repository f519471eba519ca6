"""Shared fixtures: in-memory Mongo, in-memory Redis and an ASGI test client."""

import pytest
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from megajob.config import settings
from megajob.core.kv_store import KeyValueStore, get_kv_store
from megajob.core.security import create_access_token, get_password_hash
from megajob.db.mongo import create_indexes, get_db
from megajob.main import app
from megajob.services.account_service import new_user_document


class FakeRedis:
    """The handful of redis.asyncio commands the key-value store uses."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, key):
        self.ttls.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0

    async def ping(self):
        return True

    async def aclose(self):
        pass


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["megajobnepal_test"]
    await create_indexes(database)
    return database


@pytest.fixture
def redis_client():
    return FakeRedis()


@pytest.fixture
def kv(redis_client):
    return KeyValueStore(settings, client=redis_client)


@pytest.fixture
async def client(db, kv):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_kv_store] = lambda: kv
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Insert a user straight into the database and return ``(user, headers)``."""

    async def _make_user(role="job_seeker", email=None, password="secret123", is_active=True):
        email = email or f"{role}@example.com"
        user = new_user_document(
            email=email,
            password_hash=get_password_hash(password),
            role=role,
            first_name=role.title(),
            last_name="Tester",
            is_verified=True,
        )
        user["is_active"] = is_active
        result = await db.users.insert_one(user)
        user["_id"] = result.inserted_id
        headers = {"Authorization": f"Bearer {create_access_token(user)}"}
        return user, headers

    return _make_user


@pytest.fixture
def expose_dev_secrets(monkeypatch):
    monkeypatch.setattr(settings, "EXPOSE_DEV_SECRETS", True)


@pytest.fixture(autouse=True)
def client_storage_path(tmp_path, monkeypatch):
    path = tmp_path / "client_storage.json"
    monkeypatch.setattr(settings, "CLIENT_STORAGE_PATH", str(path))
    return path
