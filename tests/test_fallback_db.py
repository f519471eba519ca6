import asyncio
import json
import re

import httpx
import pytest

from megajob.client.api_client import APIClient
from megajob.client.fallback_db import FallbackDB, generate_id, resolve_data_mode, with_timeout
from megajob.client.storage import ClientStorage


@pytest.fixture
def fallback():
    return FallbackDB(ClientStorage())


def test_generated_ids_are_base36():
    ids = {generate_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(re.fullmatch(r"[0-9a-z]{15,}", i) for i in ids)


async def test_create_job_then_list_active(fallback):
    job = await fallback.create_job({"title": "Designer", "status": "active", "company_id": "c1"})
    await fallback.create_job({"title": "Closed", "status": "inactive"})

    active = await fallback.get_jobs({"status": "active"})
    assert [j["id"] for j in active] == [job["id"]]

    assert await fallback.delete_job(job["id"]) is True
    assert await fallback.get_jobs({"status": "active"}) == []
    assert await fallback.delete_job(job["id"]) is False


async def test_job_pagination_and_company_filter(fallback):
    for i in range(5):
        await fallback.create_job({"title": f"Job {i}", "status": "active", "company_id": "c1" if i % 2 else "c2"})

    assert [j["title"] for j in await fallback.get_jobs(skip=1, limit=2)] == ["Job 1", "Job 2"]
    assert len(await fallback.get_jobs({"company_id": "c1"})) == 2


async def test_update_merges_fields(fallback):
    user = await fallback.create_user({"email": "a@example.com", "role": "job_seeker"})
    updated = await fallback.update_user(user["id"], {"phone": "123"})

    assert updated["phone"] == "123"
    assert updated["email"] == "a@example.com"
    assert (await fallback.get_user_by_email("a@example.com"))["phone"] == "123"
    assert await fallback.update_user("missing", {"phone": "1"}) is None


async def test_company_filters_and_no_cascade(fallback):
    featured = await fallback.create_company({"name": "Daraz", "is_featured": True})
    await fallback.create_company({"name": "Hiring Co", "is_top_hiring": True})
    job = await fallback.create_job({"title": "Dev", "status": "active", "company_id": featured["id"]})

    assert [c["name"] for c in await fallback.get_companies({"is_featured": True})] == ["Daraz"]
    assert [c["name"] for c in await fallback.get_companies({"is_top_hiring": True})] == ["Hiring Co"]

    assert await fallback.delete_company(featured["id"]) is True
    assert await fallback.get_job_by_id(job["id"]) is not None


async def test_applications_are_not_unique(fallback):
    first = await fallback.create_application({"job_id": "j1", "job_seeker_id": "u1", "status": "pending"})
    await fallback.create_application({"job_id": "j1", "job_seeker_id": "u1", "status": "pending"})
    await fallback.create_application({"job_id": "j2", "job_seeker_id": "u2", "status": "pending"})

    assert first["applied_at"]
    assert len(await fallback.get_applications({"job_id": "j1", "job_seeker_id": "u1"})) == 2

    updated = await fallback.update_application(first["id"], {"status": "reviewed"})
    assert updated["status"] == "reviewed"


async def test_job_categories(fallback):
    await fallback.create_job_category({"name": "IT", "tier": "premium"})
    basic = await fallback.create_job_category({"name": "Sales", "tier": "basic"})

    assert [c["name"] for c in await fallback.get_job_categories({"tier": "basic"})] == ["Sales"]
    assert (await fallback.get_job_category_by_id(basic["id"]))["name"] == "Sales"


async def test_storage_file_round_trip(tmp_path):
    path = tmp_path / "client" / "storage.json"
    db = FallbackDB(ClientStorage(str(path)))
    await db.setup_database()
    await db.create_job({"title": "Persisted", "status": "active"})

    reopened = FallbackDB(ClientStorage(str(path)))
    assert [j["title"] for j in await reopened.get_jobs()] == ["Persisted"]
    assert "megajobnepal_jobs" in json.loads(path.read_text())


def test_corrupt_storage_file_reads_empty(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{not json")
    assert ClientStorage(str(path)).keys() == []


async def test_check_connection(fallback):
    assert await fallback.check_connection() is True


async def test_with_timeout():
    assert await with_timeout(asyncio.sleep(0, result="done"), 1) == "done"

    with pytest.raises(TimeoutError, match="Operation timed out"):
        await with_timeout(asyncio.sleep(1), 0.01)


async def test_resolve_data_mode(fallback):
    healthy = APIClient(
        base_url="http://backend.test/api",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"status": "OK"})),
    )
    assert await resolve_data_mode(healthy, fallback) == "backend"

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    down = APIClient(base_url="http://backend.test/api", transport=httpx.MockTransport(refuse))
    assert await resolve_data_mode(down, fallback) == "local"
    assert await resolve_data_mode(None, fallback) == "local"
    assert fallback.storage.get_item("megajobnepal_users") == "[]"
