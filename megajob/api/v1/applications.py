"""Job application endpoints."""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from megajob.api.deps import get_current_user, get_db, require_roles
from megajob.core.security import Role
from megajob.db.mongo import serialize_document, to_object_id
from megajob.schemas.job import ApplicationCreate, ApplicationStatusUpdate
from megajob.utils import helpers

logger = structlog.get_logger(__name__)

router = APIRouter()

require_job_seeker = require_roles(Role.JOB_SEEKER, detail="Only job seekers can apply for jobs")

ALREADY_APPLIED = "You have already applied for this job"


@router.post("", status_code=status.HTTP_201_CREATED)
async def apply_for_job(
    application: ApplicationCreate,
    current_user: Dict[str, Any] = Depends(require_job_seeker),
    db=Depends(get_db),
):
    """
    Apply for a job.

    The insert is an upsert keyed on (job, applicant) so concurrent
    submissions create at most one application.
    """
    job_oid = to_object_id(application.job_id)
    job = await db.jobs.find_one({"_id": job_oid}, {"_id": 1}) if job_oid else None
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    key = {"job_id": str(job["_id"]), "job_seeker_id": str(current_user["_id"])}
    now = helpers.utcnow()
    try:
        result = await db.applications.update_one(
            key,
            {
                "$setOnInsert": {
                    **key,
                    "cover_letter": application.cover_letter,
                    "resume_url": application.resume_url,
                    "status": "pending",
                    "applied_at": now,
                    "updated_at": now,
                }
            },
            upsert=True,
        )
    except DuplicateKeyError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=ALREADY_APPLIED)

    if result.upserted_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=ALREADY_APPLIED)

    logger.info("application_submitted", application_id=str(result.upserted_id), **key)
    return {"message": "Application submitted successfully", "applicationId": str(result.upserted_id)}


@router.get("")
async def list_applications(
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
):
    """Job seekers see their own, employers see those for their jobs, admin and hr see all."""
    role = current_user.get("role")
    user_id = str(current_user["_id"])

    if role == Role.JOB_SEEKER.value:
        query: Dict[str, Any] = {"job_seeker_id": user_id}
    elif role == Role.EMPLOYER.value:
        jobs = await db.jobs.find({"posted_by": user_id}, {"_id": 1}).to_list(length=None)
        query = {"job_id": {"$in": [str(job["_id"]) for job in jobs]}}
    elif role in (Role.ADMIN.value, Role.HR.value):
        query = {}
    else:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    applications = await db.applications.find(query).sort("applied_at", DESCENDING).to_list(length=None)
    return [serialize_document(a) for a in applications]


@router.put("/{application_id}/status")
async def update_application_status(
    application_id: str,
    update: ApplicationStatusUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    db=Depends(get_db),
):
    oid = to_object_id(application_id)
    application = await db.applications.find_one({"_id": oid}) if oid else None
    if not application:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")

    if current_user.get("role") != Role.ADMIN.value:
        job_oid = to_object_id(application.get("job_id"))
        job = await db.jobs.find_one({"_id": job_oid}, {"posted_by": 1}) if job_oid else None
        if not job or job.get("posted_by") != str(current_user["_id"]):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    updated = await db.applications.find_one_and_update(
        {"_id": oid},
        {"$set": {"status": update.status, "updated_at": helpers.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    logger.info("application_status_updated", application_id=application_id, status=update.status)
    return serialize_document(updated)
