"""Company endpoints."""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pymongo import DESCENDING

from megajob.api.deps import get_db, require_admin, require_roles
from megajob.config import settings
from megajob.core.security import Role
from megajob.db.mongo import serialize_document, to_object_id
from megajob.schemas.job import CompanyCreate
from megajob.utils import helpers

logger = structlog.get_logger(__name__)

router = APIRouter()

require_company_editor = require_roles(
    Role.EMPLOYER, Role.ADMIN, detail="Only employers can create companies"
)


@router.get("")
async def list_companies(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    featured: Optional[bool] = Query(None, description="Only featured companies"),
    top_hiring: Optional[bool] = Query(None, alias="topHiring", description="Only top hiring companies"),
    db=Depends(get_db),
):
    query: Dict[str, Any] = {}
    if featured:
        query["is_featured"] = True
    if top_hiring:
        query["is_top_hiring"] = True

    cursor = (
        db.companies.find(query)
        .sort("created_at", DESCENDING)
        .skip(helpers.paginate(page, limit))
        .limit(limit)
    )
    companies = await cursor.to_list(length=limit)
    total = await db.companies.count_documents(query)

    return {
        "companies": [serialize_document(c) for c in companies],
        "pagination": helpers.pagination_meta(page, limit, total),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_company(
    company: CompanyCreate,
    current_user: Dict[str, Any] = Depends(require_company_editor),
    db=Depends(get_db),
):
    now = helpers.utcnow()
    document = helpers.strip_operator_keys(company.model_dump(exclude_none=True))
    if current_user.get("role") != Role.ADMIN.value:
        # Verification is granted by admins only
        document["is_verified"] = False
    else:
        document.setdefault("is_verified", False)
    document.update({"employer_id": str(current_user["_id"]), "created_at": now, "updated_at": now})

    result = await db.companies.insert_one(document)
    logger.info("company_created", company_id=str(result.inserted_id), name=document["name"])
    return {"message": "Company created successfully", "companyId": str(result.inserted_id)}


@router.delete("/{company_id}")
async def delete_company(
    company_id: str,
    current_user: Dict[str, Any] = Depends(require_admin),
    db=Depends(get_db),
):
    """Delete a company record. Jobs and applications referencing it are left in place."""
    oid = to_object_id(company_id)
    result = await db.companies.delete_one({"_id": oid}) if oid else None
    if result is None or result.deleted_count == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    logger.info("company_deleted", company_id=company_id, deleted_by=str(current_user["_id"]))
    return {"success": True, "message": "Company deleted successfully"}
