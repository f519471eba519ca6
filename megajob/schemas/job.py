"""Job, company and application request schemas."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobCreate(BaseModel):
    """Job posting. Unknown fields are stored as given."""

    model_config = ConfigDict(extra="allow")

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    category_id: Optional[str] = None
    location: Optional[str] = None
    employment_type: Optional[str] = None
    salary_range: Optional[str] = None


class CompanyCreate(BaseModel):
    """Company record. Unknown fields are stored as given."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)
    industry: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None
    is_featured: bool = False
    is_top_hiring: bool = False


class ApplicationCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., min_length=1, alias="jobId")
    cover_letter: Optional[str] = Field(None, alias="coverLetter")
    resume_url: Optional[str] = Field(None, alias="resumeUrl")


class ApplicationStatusUpdate(BaseModel):
    status: Literal["pending", "reviewed", "accepted", "rejected"]
