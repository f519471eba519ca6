import json

import httpx
import pytest

from megajob.client.api_client import AUTH_TOKEN_KEY, APIClient, APIError, BackendUnavailableError
from megajob.client.storage import ClientStorage

BASE_URL = "http://backend.test/api"


def make_client(handler, storage=None):
    return APIClient(base_url=BASE_URL, storage=storage or ClientStorage(), transport=httpx.MockTransport(handler))


def refuse(request):
    raise httpx.ConnectError("connection refused", request=request)


async def test_login_persists_token_and_sends_it():
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path == "/api/auth/login":
            return httpx.Response(200, json={"token": "jwt-123", "user": {"id": "u1"}})
        return httpx.Response(200, json={"id": "u1"})

    storage = ClientStorage()
    client = make_client(handler, storage)
    await client.login("a@example.com", "pw")

    assert client.is_authenticated()
    assert storage.get_item(AUTH_TOKEN_KEY) == "jwt-123"
    assert json.loads(seen[0].content) == {"email": "a@example.com", "password": "pw"}

    await client.get_profile()
    assert seen[1].headers["Authorization"] == "Bearer jwt-123"
    assert seen[1].headers["Content-Type"] == "application/json"

    client.logout()
    assert not client.is_authenticated()
    assert storage.get_item(AUTH_TOKEN_KEY) is None


async def test_token_is_loaded_from_storage():
    storage = ClientStorage()
    storage.set_item(AUTH_TOKEN_KEY, "saved-token")
    client = make_client(lambda request: httpx.Response(200, json={}), storage)
    assert client.get_token() == "saved-token"


async def test_error_message_comes_from_body():
    client = make_client(lambda request: httpx.Response(400, json={"error": "Invalid email or password"}))
    with pytest.raises(APIError) as exc_info:
        await client.login("a@example.com", "bad")
    assert exc_info.value.message == "Invalid email or password"
    assert exc_info.value.status_code == 400


async def test_error_message_falls_back_to_status_text():
    client = make_client(lambda request: httpx.Response(502, text="<html>bad gateway</html>"))
    with pytest.raises(APIError) as exc_info:
        await client.get_jobs()
    assert exc_info.value.message == "HTTP 502: Bad Gateway"


async def test_transport_failure_is_reported_as_unavailable():
    client = make_client(refuse)
    with pytest.raises(BackendUnavailableError):
        await client.get_jobs()


async def test_query_params_skip_unset_values():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"jobs": [], "pagination": {}})

    client = make_client(handler)
    await client.get_jobs(page=2, search="python", type="full_time")
    assert dict(seen[0].url.params) == {"page": "2", "search": "python", "type": "full_time"}

    await client.get_companies(top_hiring=True)
    assert dict(seen[1].url.params) == {"topHiring": "true"}


async def test_apply_for_job_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json={"message": "ok", "applicationId": "a1"})

    client = make_client(handler)
    response = await client.apply_for_job("job-1", cover_letter="Hello")
    assert response["applicationId"] == "a1"
    assert json.loads(seen[0].content) == {"jobId": "job-1", "coverLetter": "Hello"}


async def test_health_probe_hits_server_root():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"status": "OK", "database": "Connected"})

    client = make_client(handler)
    assert await client.is_backend_available() is True
    assert str(seen[0].url) == "http://backend.test/health"


async def test_probes_never_raise():
    client = make_client(refuse)

    health = await client.check_health()
    assert health["status"] == "Error"
    assert await client.is_backend_available() is False

    status = await client.get_status()
    assert status["status"] == "Disconnected"


async def test_unhealthy_backend_is_unavailable():
    client = make_client(lambda request: httpx.Response(503, json={"error": "down"}))
    assert await client.is_backend_available() is False
