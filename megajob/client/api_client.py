"""
HTTP client for the MegaJobNepal API.

Wraps ``httpx.AsyncClient``; the bearer token is kept in client storage so
it survives restarts.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from megajob.client.storage import ClientStorage
from megajob.config import settings

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "megajobnepal_auth_token"


class APIError(Exception):
    """Non-2xx response. ``message`` is the server's error text."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BackendUnavailableError(APIError):
    """The request never got a response (connection refused, timeout, ...)."""


def _drop_none(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


class APIClient:
    """Async client for the ``/api`` endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        storage: Optional[ClientStorage] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.storage = storage if storage is not None else ClientStorage.default()
        self.timeout = timeout if timeout is not None else settings.API_TIMEOUT_SECONDS
        self.transport = transport
        self.token: Optional[str] = self.storage.get_item(AUTH_TOKEN_KEY)

    # ==================== Token persistence ====================

    def _save_token(self, token: str):
        try:
            self.storage.set_item(AUTH_TOKEN_KEY, token)
        except OSError as e:
            logger.error(f"Could not save token to storage: {e}")
        self.token = token

    def _remove_token(self):
        try:
            self.storage.remove_item(AUTH_TOKEN_KEY)
        except OSError as e:
            logger.warning(f"Could not remove token from storage: {e}")
        self.token = None

    def is_authenticated(self) -> bool:
        return bool(self.token)

    def get_token(self) -> Optional[str]:
        return self.token

    # ==================== Transport ====================

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> Any:
        """
        Send a request relative to the base URL and return the decoded body.

        Raises:
            APIError: the server answered with a non-2xx status
            BackendUnavailableError: no response was received
        """
        url = f"{self.base_url}{endpoint}"
        headers = {"Content-Type": "application/json"}
        bearer = token or self.token
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"

        try:
            async with self._client() as client:
                response = await client.request(
                    method,
                    url,
                    json=json,
                    params=_drop_none(params) if params else None,
                    headers=headers,
                )
        except httpx.TransportError as e:
            logger.error(f"API request failed: {method} {url}: {e}")
            raise BackendUnavailableError(str(e) or e.__class__.__name__) from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = None
            if isinstance(body, dict):
                message = body.get("error") or body.get("detail")
            if not message:
                message = f"HTTP {response.status_code}: {response.reason_phrase}"
            logger.warning(f"API request failed: {method} {url}: {message}")
            raise APIError(str(message), response.status_code)

        try:
            return response.json()
        except ValueError:
            return None

    # ==================== Authentication ====================

    async def register(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        """``user_data``: email, password, fullName, userType, phone."""
        response = await self.request("/auth/register", method="POST", json=user_data)
        if response and response.get("token"):
            self._save_token(response["token"])
        return response

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        response = await self.request("/auth/login", method="POST", json={"email": email, "password": password})
        if response and response.get("token"):
            self._save_token(response["token"])
        return response

    def logout(self):
        self._remove_token()

    # ==================== Users ====================

    async def get_profile(self) -> Dict[str, Any]:
        return await self.request("/users/profile")

    async def update_profile(self, profile_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("/users/profile", method="PUT", json=profile_data)

    # ==================== Jobs ====================

    async def get_jobs(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        category: Optional[str] = None,
        location: Optional[str] = None,
        type: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            "page": page,
            "limit": limit,
            "category": category,
            "location": location,
            "type": type,
            "search": search,
        }
        return await self.request("/jobs", params=params)

    async def get_job(self, job_id: str) -> Dict[str, Any]:
        return await self.request(f"/jobs/{job_id}")

    async def create_job(self, job_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("/jobs", method="POST", json=job_data)

    # ==================== Companies ====================

    async def get_companies(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        featured: Optional[bool] = None,
        top_hiring: Optional[bool] = None,
    ) -> Dict[str, Any]:
        params = {
            "page": page,
            "limit": limit,
            "featured": str(featured).lower() if featured is not None else None,
            "topHiring": str(top_hiring).lower() if top_hiring is not None else None,
        }
        return await self.request("/companies", params=params)

    # ==================== Applications ====================

    async def apply_for_job(
        self,
        job_id: str,
        cover_letter: Optional[str] = None,
        resume_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = _drop_none({"jobId": job_id, "coverLetter": cover_letter, "resumeUrl": resume_url})
        return await self.request("/applications", method="POST", json=payload)

    async def get_applications(self):
        return await self.request("/applications")

    # ==================== Health ====================

    async def get_status(self) -> Dict[str, Any]:
        """Database status; never raises."""
        try:
            return await self.request("/status")
        except APIError as e:
            logger.error(f"Backend status check failed: {e.message}")
            return {"status": "Disconnected", "error": e.message}

    async def check_health(self) -> Dict[str, Any]:
        """Health probe on the server root; never raises."""
        root = self.base_url[: -len("/api")] if self.base_url.endswith("/api") else self.base_url
        try:
            async with self._client() as client:
                response = await client.get(f"{root}/health")
            if response.is_error:
                return {"status": "Error", "error": f"HTTP {response.status_code}: {response.reason_phrase}"}
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Backend health check failed: {e}")
            return {"status": "Error", "error": str(e) or e.__class__.__name__}

    async def is_backend_available(self) -> bool:
        health = await self.check_health()
        available = isinstance(health, dict) and health.get("status") == "OK"
        if not available:
            logger.warning("Backend is not available, falling back to local storage mode")
        return available
