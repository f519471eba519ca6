"""Job endpoints - browse, search and post jobs."""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pymongo import DESCENDING

from megajob.api.deps import get_current_user, get_db, require_roles
from megajob.config import settings
from megajob.core.security import Role
from megajob.db.mongo import serialize_document, to_object_id
from megajob.schemas.job import JobCreate
from megajob.utils import helpers

logger = structlog.get_logger(__name__)

router = APIRouter()

require_employer = require_roles(Role.EMPLOYER, detail="Only employers can create jobs")


@router.get("")
async def list_jobs(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Items per page"),
    category: Optional[str] = Query(None, description="Filter by category id"),
    location: Optional[str] = Query(None, description="Case-insensitive partial match on location"),
    job_type: Optional[str] = Query(None, alias="type", description="Employment type (exact)"),
    search: Optional[str] = Query(None, description="Case-insensitive match on title or description"),
    db=Depends(get_db),
):
    """
    Paginated list of active jobs, newest first.

    **Examples:**
    ```
    GET /api/jobs?page=1&limit=20
    GET /api/jobs?location=kathmandu&type=full_time
    GET /api/jobs?search=python
    ```
    """
    query: Dict[str, Any] = {"status": "active"}

    if category:
        query["category_id"] = category
    if location:
        query["location"] = helpers.contains_pattern(location)
    if job_type:
        query["employment_type"] = job_type
    if search:
        query["$or"] = [
            {"title": helpers.contains_pattern(search)},
            {"description": helpers.contains_pattern(search)},
        ]

    cursor = (
        db.jobs.find(query)
        .sort("created_at", DESCENDING)
        .skip(helpers.paginate(page, limit))
        .limit(limit)
    )
    jobs = await cursor.to_list(length=limit)
    total = await db.jobs.count_documents(query)

    return {
        "jobs": [serialize_document(job) for job in jobs],
        "pagination": helpers.pagination_meta(page, limit, total),
    }


@router.get("/{job_id}")
async def get_job(job_id: str, db=Depends(get_db)):
    oid = to_object_id(job_id)
    job = await db.jobs.find_one({"_id": oid}) if oid else None
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return serialize_document(job)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_job(
    job: JobCreate,
    current_user: Dict[str, Any] = Depends(require_employer),
    db=Depends(get_db),
):
    now = helpers.utcnow()
    document = helpers.strip_operator_keys(job.model_dump(exclude_none=True))
    document.update(
        {
            "posted_by": str(current_user["_id"]),
            "status": "active",
            "created_at": now,
            "updated_at": now,
        }
    )

    result = await db.jobs.insert_one(document)
    logger.info("job_created", job_id=str(result.inserted_id), posted_by=document["posted_by"])
    return {"message": "Job created successfully", "jobId": str(result.inserted_id)}


@router.delete("/{job_id}")
async def delete_job(
    job_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
):
    """Remove a job. Allowed for the employer who posted it and for admins."""
    oid = to_object_id(job_id)
    job = await db.jobs.find_one({"_id": oid}) if oid else None
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    is_owner = job.get("posted_by") == str(current_user["_id"])
    if not is_owner and current_user.get("role") != Role.ADMIN.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    await db.jobs.delete_one({"_id": oid})
    logger.info("job_deleted", job_id=job_id, deleted_by=str(current_user["_id"]))
    return {"success": True, "message": "Job deleted successfully"}
