"""MongoDB connection, indexes and document helpers."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from megajob.config import settings

logger = logging.getLogger(__name__)

COLLECTIONS = ("users", "jobs", "companies", "applications")


class MongoDB:
    """
    Holds the process-wide motor client.

    Connected in the FastAPI lifespan; route handlers reach the database
    through the ``get_db`` dependency.
    """

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> AsyncIOMotorDatabase:
        """Connect, ping and make sure indexes exist."""
        logger.info("Connecting to MongoDB database %s", settings.MONGODB_DB_NAME)
        try:
            self.client = AsyncIOMotorClient(
                settings.MONGODB_URI,
                serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
                connectTimeoutMS=settings.MONGODB_CONNECT_TIMEOUT_MS,
            )
            self.db = self.client[settings.MONGODB_DB_NAME]
            await self.client.admin.command("ping")
        except Exception as e:
            logger.error("MongoDB connection error: %s", e)
            raise

        logger.info("Connected to MongoDB successfully")
        await create_indexes(self.db)
        return self.db

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            logger.info("MongoDB connection closed")
        self.client = None
        self.db = None


mongo = MongoDB()


async def get_db() -> Optional[AsyncIOMotorDatabase]:
    """Dependency to get the database handle."""
    return mongo.db


async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create indexes for the collections. Existing indexes are left alone."""
    try:
        # Users
        await db.users.create_index("email", unique=True)
        await db.users.create_index("role")
        await db.users.create_index("is_verified")

        # Jobs
        await db.jobs.create_index("company_id")
        await db.jobs.create_index("category_id")
        await db.jobs.create_index("status")
        await db.jobs.create_index("location")
        await db.jobs.create_index([("created_at", DESCENDING)])

        # Companies
        await db.companies.create_index("name")
        await db.companies.create_index("employer_id")

        # Applications
        await db.applications.create_index("job_id")
        await db.applications.create_index("job_seeker_id")
        await db.applications.create_index("status")
        await db.applications.create_index(
            [("job_id", ASCENDING), ("job_seeker_id", ASCENDING)],
            unique=True,
            name="unique_job_seeker_application",
        )

        logger.info("Database indexes created successfully")
    except Exception as e:
        logger.warning("Index creation error (may already exist): %s", e)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse a string id. Returns None for anything that is not an ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize_document(doc: Optional[Dict[str, Any]], exclude: tuple = ()) -> Optional[Dict[str, Any]]:
    """Render a Mongo document as JSON-safe dict with a string ``id``."""
    if doc is None:
        return None

    result: Dict[str, Any] = {}
    for key, value in doc.items():
        if key in exclude:
            continue
        if key == "_id":
            result["id"] = str(value)
        elif isinstance(value, ObjectId):
            result[key] = str(value)
        elif isinstance(value, datetime):
            result[key] = value.isoformat()
        elif isinstance(value, dict):
            result[key] = serialize_document(value)
        else:
            result[key] = value
    return result


def serialize_user(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Public view of a user document."""
    return serialize_document(doc, exclude=("password_hash",))
