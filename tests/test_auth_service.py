import json
from datetime import timedelta

import httpx
import pytest

from megajob.client.api_client import APIClient
from megajob.client.auth_service import ACCESS_TOKEN_KEY, USER_KEY, AuthService
from megajob.client.storage import ClientStorage
from megajob.utils import helpers


@pytest.fixture
def storage():
    return ClientStorage()


@pytest.fixture
def auth(storage):
    return AuthService(storage=storage, latency=0)


def backend(handler, storage):
    return APIClient(base_url="http://backend.test/api", storage=storage, transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "email, password, role, user_id",
    [
        ("jobseeker.demo@megajobnepal.com", "jobseeker123", "job_seeker", "demo-jobseeker-12345"),
        ("employer.demo@megajobnepal.com", "employer123", "employer", "demo-employer-12345"),
        ("admin.demo@megajobnepal.com", "admin123", "admin", "demo-admin-12345"),
    ],
)
async def test_demo_logins(auth, storage, email, password, role, user_id):
    response = await auth.login(email, password)

    assert response.success is True
    assert response.user.role == role
    assert response.access_token == f"demo-token-{user_id}"
    assert storage.get_item(ACCESS_TOKEN_KEY) == response.access_token
    assert auth.get_user().id == user_id


async def test_unknown_credentials_still_succeed_in_simulation(auth):
    response = await auth.login("stranger@example.com", "whatever")

    assert response.success is True
    assert response.user.role == "job_seeker"
    assert response.user.email == "stranger@example.com"
    assert response.access_token.startswith("demo-token-demo-user-")


async def test_admin_login_synthesizes_admin(auth):
    demo = await auth.admin_login("admin.demo@megajobnepal.com", "admin123")
    assert demo.user.id == "demo-admin-12345"

    other = await auth.admin_login("someone@example.com", "x")
    assert other.success is True
    assert other.user.role == "admin"


async def test_logout_clears_token_and_user(auth, storage):
    await auth.login("employer.demo@megajobnepal.com", "employer123")

    response = await auth.logout()

    assert response.success is True
    assert not auth.is_authenticated()
    assert storage.get_item(ACCESS_TOKEN_KEY) is None
    assert storage.get_item(USER_KEY) is None


async def test_logout_survives_server_failure(storage):
    def handler(request):
        if request.url.path == "/api/auth/logout":
            return httpx.Response(500, json={"error": "Internal server error"})
        return httpx.Response(200, json={"success": True, "token": "jwt-1", "user": {
            "id": "u1", "email": "a@example.com", "role": "job_seeker",
        }})

    auth = AuthService(storage=storage, api_client=backend(handler, storage), latency=0)
    await auth.login("a@example.com", "pw")
    assert auth.get_access_token() == "jwt-1"

    response = await auth.logout()
    assert response.success is True
    assert storage.get_item(ACCESS_TOKEN_KEY) is None
    assert storage.get_item(USER_KEY) is None


async def test_validate_session_trusts_demo_token(auth):
    await auth.login("jobseeker.demo@megajobnepal.com", "jobseeker123")
    response = await auth.validate_session()
    assert response.success is True
    assert response.user.email == "jobseeker.demo@megajobnepal.com"


async def test_validate_session_without_session(auth):
    response = await auth.validate_session()
    assert response.success is False
    assert response.error == "Session invalid"


async def test_simulated_signup_requires_matching_otp(auth):
    signup = await auth.signup("new@example.com", "pw123456", "Ram", "Shrestha", role="employer")
    assert signup.success is True
    assert signup.otp == "123456"

    wrong = await auth.verify_otp(signup.temp_signup_id, "654321")
    assert wrong.success is False
    assert wrong.error == "Invalid OTP"

    right = await auth.verify_otp(signup.temp_signup_id, "123456")
    assert right.success is True
    assert right.user.email == "new@example.com"
    assert right.user.role == "employer"
    assert auth.is_authenticated()

    replay = await auth.verify_otp(signup.temp_signup_id, "123456")
    assert replay.error == "Invalid or expired signup session"


async def test_simulated_signup_expires(auth, monkeypatch):
    signup = await auth.signup("late@example.com", "pw123456", "Late", "Comer")

    real_utcnow = helpers.utcnow
    monkeypatch.setattr(helpers, "utcnow", lambda: real_utcnow() + timedelta(minutes=11))

    expired = await auth.verify_otp(signup.temp_signup_id, "123456")
    assert expired.error == "OTP expired"
    again = await auth.verify_otp(signup.temp_signup_id, "123456")
    assert again.error == "Invalid or expired signup session"


async def test_unknown_operation_defaults_to_success(auth):
    response = await auth.change_password("old", "new-password")
    assert response.success is True
    assert response.message == "Operation completed"


async def test_backend_responses_are_mapped(storage):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={
            "success": True,
            "message": "Login successful",
            "token": "jwt-abc",
            "user": {"id": "665f", "email": "a@example.com", "role": "employer", "profile": {}},
        })

    auth = AuthService(storage=storage, api_client=backend(handler, storage), latency=0)
    response = await auth.login("a@example.com", "pw")

    assert seen[0].url.path == "/api/auth/login"
    assert response.access_token == "jwt-abc"
    assert response.user.role == "employer"
    assert auth.get_access_token() == "jwt-abc"


async def test_backend_errors_are_reported(storage):
    def handler(request):
        return httpx.Response(401, json={"error": "Invalid email or password"})

    auth = AuthService(storage=storage, api_client=backend(handler, storage), latency=0)
    response = await auth.login("a@example.com", "bad")

    assert response.success is False
    assert response.error == "Invalid email or password"
    assert not auth.is_authenticated()


async def test_unreachable_backend_falls_back_to_simulation(storage):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    auth = AuthService(storage=storage, api_client=backend(handler, storage), latency=0)
    response = await auth.signup("a@example.com", "pw123456", "A", "B")

    assert response.success is True
    assert response.otp == "123456"


async def test_server_signup_fields(storage):
    def handler(request):
        assert json.loads(request.content)["firstName"] == "Gita"
        return httpx.Response(200, json={"success": True, "tempSignupId": "abc", "message": "OTP sent"})

    auth = AuthService(storage=storage, api_client=backend(handler, storage), latency=0)
    response = await auth.signup("g@example.com", "pw123456", "Gita", "Rai")
    assert response.temp_signup_id == "abc"
    assert response.otp is None


async def test_update_profile_in_simulation(auth):
    await auth.login("jobseeker.demo@megajobnepal.com", "jobseeker123")
    response = await auth.update_profile({"phone": "+977-9800000001", "role": "admin"})

    assert response.success is True
    assert auth.get_user().phone == "+977-9800000001"
    assert auth.get_user().role == "job_seeker"


async def test_update_profile_with_wrong_type_is_reported(auth):
    await auth.login("jobseeker.demo@megajobnepal.com", "jobseeker123")
    response = await auth.update_profile({"phone": 9800000000})

    assert response.success is False
    assert response.error == "Invalid value for phone"
    assert auth.get_user().phone == "+977-9812345678"


async def test_malformed_server_profile_is_reported(storage):
    def handler(request):
        return httpx.Response(200, json={"id": "665f", "email": "a@example.com", "role": "employer", "phone": 98})

    storage.set_item(ACCESS_TOKEN_KEY, "jwt-abc")
    auth = AuthService(storage=storage, api_client=backend(handler, storage), latency=0)
    response = await auth.get_profile()

    assert response.success is False
    assert response.error == "Invalid response from server"


async def test_default_storage_keeps_session_between_instances(client_storage_path):
    first = AuthService(latency=0)
    await first.login("employer.demo@megajobnepal.com", "employer123")
    assert client_storage_path.exists()

    second = AuthService(latency=0)
    assert second.get_access_token() == "demo-token-demo-employer-12345"
    assert second.get_user().role == "employer"

    await second.logout()
    assert not AuthService(latency=0).is_authenticated()
