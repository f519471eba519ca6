from redis.exceptions import ConnectionError

from megajob.config import settings
from megajob.core.kv_store import KeyValueStore


async def test_values_are_prefixed_json_with_ttl(kv, redis_client):
    assert await kv.set("signup:abc", {"email": "a@example.com"}, ttl=600)

    assert redis_client.data["megajobnepal:signup:abc"] == '{"email": "a@example.com"}'
    assert redis_client.ttls["megajobnepal:signup:abc"] == 600
    assert await kv.get("signup:abc") == {"email": "a@example.com"}

    assert await kv.delete("signup:abc") is True
    assert await kv.get("signup:abc") is None


async def test_corrupt_value_is_dropped(kv, redis_client):
    redis_client.data["megajobnepal:password_reset:t"] = "{broken"

    assert await kv.get("password_reset:t") is None
    assert "megajobnepal:password_reset:t" not in redis_client.data


async def test_unconnected_store_is_unavailable():
    store = KeyValueStore(settings)

    assert await store.is_healthy() is False
    assert await store.set("revoked:x", True, ttl=60) is False
    assert await store.get("revoked:x") is None


async def test_transient_connection_errors_are_retried(kv, redis_client, monkeypatch):
    calls = []
    real_get = redis_client.get

    async def flaky_get(key):
        calls.append(key)
        if len(calls) < 3:
            raise ConnectionError("connection reset")
        return await real_get(key)

    monkeypatch.setattr(redis_client, "get", flaky_get)
    redis_client.data["megajobnepal:revoked:j1"] = "true"

    assert await kv.get("revoked:j1") is True
    assert len(calls) == 3
    assert await kv.is_healthy() is True
