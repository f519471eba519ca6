"""Client layer: API client, auth service and the local fallback store."""

from megajob.client.api_client import APIClient, APIError, BackendUnavailableError
from megajob.client.auth_service import AuthResponse, AuthService, User
from megajob.client.fallback_db import FallbackDB, resolve_data_mode, with_timeout
from megajob.client.storage import ClientStorage

__all__ = [
    "APIClient",
    "APIError",
    "AuthResponse",
    "AuthService",
    "BackendUnavailableError",
    "ClientStorage",
    "FallbackDB",
    "User",
    "resolve_data_mode",
    "with_timeout",
]
