"""
Local document store used when the API is unreachable.

Every collection is one JSON array in client storage under
``megajobnepal_<collection>``. Reads scan the array, inserts append,
updates replace the matching element, deletes filter it out. There is no
indexing, no uniqueness and no referential integrity: deleting a company
leaves its jobs and applications alone.
"""

import asyncio
import logging
import secrets
import string
import time
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

from megajob.client.api_client import APIClient
from megajob.client.storage import ClientStorage
from megajob.config import settings
from megajob.utils import helpers

logger = logging.getLogger(__name__)

T = TypeVar("T")

COLLECTIONS = ("users", "companies", "jobs", "job_categories", "applications")

_BASE36 = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Nine random base-36 characters followed by the base-36 millisecond clock."""
    random_part = "".join(secrets.choice(_BASE36) for _ in range(9))
    return random_part + to_base36(int(time.time() * 1000))


async def with_timeout(awaitable: Awaitable[T], seconds: float = 5) -> T:
    """Await with a deadline; raises ``TimeoutError("Operation timed out")``."""
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        raise TimeoutError("Operation timed out") from None


class FallbackDB:
    """Multi-collection document store on top of ``ClientStorage``."""

    def __init__(self, storage: Optional[ClientStorage] = None):
        self.storage = storage if storage is not None else ClientStorage.default()

    @staticmethod
    def _storage_key(collection: str) -> str:
        return f"megajobnepal_{collection}"

    def _get_data(self, collection: str) -> List[Dict[str, Any]]:
        data = self.storage.get_json(self._storage_key(collection), [])
        return data if isinstance(data, list) else []

    def _set_data(self, collection: str, data: List[Dict[str, Any]]):
        try:
            self.storage.set_json(self._storage_key(collection), data)
        except OSError as e:
            logger.error(f"Failed to save {collection}: {e}")

    # ==================== Generic helpers ====================

    def _insert(self, collection: str, data: Dict[str, Any], created_field: str = "created_at") -> Dict[str, Any]:
        documents = self._get_data(collection)
        now = helpers.utcnow().isoformat()
        document = {**data, "id": generate_id(), created_field: now, "updated_at": now}
        documents.append(document)
        self._set_data(collection, documents)
        return document

    def _find_by_id(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        return next((d for d in self._get_data(collection) if d.get("id") == doc_id), None)

    def _update(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        documents = self._get_data(collection)
        for index, document in enumerate(documents):
            if document.get("id") == doc_id:
                documents[index] = {**document, **updates, "updated_at": helpers.utcnow().isoformat()}
                self._set_data(collection, documents)
                return documents[index]
        return None

    def _delete(self, collection: str, doc_id: str) -> bool:
        documents = self._get_data(collection)
        remaining = [d for d in documents if d.get("id") != doc_id]
        self._set_data(collection, remaining)
        return len(remaining) < len(documents)

    # ==================== Connection ====================

    async def check_connection(self) -> bool:
        """True when the storage accepts a write."""
        test_key = "megajobnepal_connection_test"
        try:
            self.storage.set_item(test_key, "test")
            self.storage.remove_item(test_key)
            return True
        except OSError:
            return False

    # ==================== Users ====================

    async def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("users", user_data)

    async def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return next((u for u in self._get_data("users") if u.get("email") == email), None)

    async def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._find_by_id("users", user_id)

    async def update_user(self, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("users", user_id, updates)

    # ==================== Companies ====================

    async def create_company(self, company_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("companies", company_data)

    async def get_companies(self, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        filter = filter or {}
        companies = self._get_data("companies")
        if filter.get("is_featured") is True:
            return [c for c in companies if c.get("is_featured")]
        if filter.get("is_top_hiring") is True:
            return [c for c in companies if c.get("is_top_hiring")]
        return companies

    async def get_company_by_id(self, company_id: str) -> Optional[Dict[str, Any]]:
        return self._find_by_id("companies", company_id)

    async def update_company(self, company_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("companies", company_id, updates)

    async def delete_company(self, company_id: str) -> bool:
        return self._delete("companies", company_id)

    # ==================== Jobs ====================

    async def create_job(self, job_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("jobs", job_data)

    async def get_jobs(
        self,
        filter: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        filter = filter or {}
        jobs = self._get_data("jobs")
        if filter.get("status"):
            jobs = [j for j in jobs if j.get("status") == filter["status"]]
        if filter.get("company_id"):
            jobs = [j for j in jobs if j.get("company_id") == filter["company_id"]]
        if skip:
            jobs = jobs[skip:]
        if limit:
            jobs = jobs[:limit]
        return jobs

    async def get_job_by_id(self, job_id: str) -> Optional[Dict[str, Any]]:
        return self._find_by_id("jobs", job_id)

    async def update_job(self, job_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("jobs", job_id, updates)

    async def delete_job(self, job_id: str) -> bool:
        return self._delete("jobs", job_id)

    # ==================== Job categories ====================

    async def create_job_category(self, category_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._insert("job_categories", category_data)

    async def get_job_categories(self, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        filter = filter or {}
        categories = self._get_data("job_categories")
        if filter.get("tier"):
            return [c for c in categories if c.get("tier") == filter["tier"]]
        return categories

    async def get_job_category_by_id(self, category_id: str) -> Optional[Dict[str, Any]]:
        return self._find_by_id("job_categories", category_id)

    # ==================== Applications ====================

    async def create_application(self, application_data: Dict[str, Any]) -> Dict[str, Any]:
        # No (job, job_seeker) uniqueness check here; the server enforces it
        return self._insert("applications", application_data, created_field="applied_at")

    async def get_applications(self, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        filter = filter or {}
        applications = self._get_data("applications")
        if filter.get("job_id"):
            applications = [a for a in applications if a.get("job_id") == filter["job_id"]]
        if filter.get("job_seeker_id"):
            applications = [a for a in applications if a.get("job_seeker_id") == filter["job_seeker_id"]]
        return applications

    async def update_application(self, application_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("applications", application_id, updates)

    # ==================== Setup ====================

    async def setup_database(self):
        """Make sure every collection key holds an array."""
        logger.info("Setting up local fallback database")
        for collection in COLLECTIONS:
            if self.storage.get_item(self._storage_key(collection)) is None:
                logger.info(f"Initializing {collection} collection")
                self._set_data(collection, [])
        logger.info("Local fallback database setup completed")


async def resolve_data_mode(
    api_client: Optional[APIClient],
    fallback_db: FallbackDB,
    timeout: Optional[float] = None,
) -> str:
    """
    Pick where data operations should go: ``"backend"`` when the API answers
    its health probe within the timeout, otherwise ``"local"``.
    """
    seconds = settings.CONNECTION_CHECK_TIMEOUT_SECONDS if timeout is None else timeout
    if api_client is not None:
        try:
            if await with_timeout(api_client.is_backend_available(), seconds):
                return "backend"
        except TimeoutError:
            logger.warning("Backend health check timed out")

    await fallback_db.setup_database()
    return "local"
