# fixhub/models/job.py
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from fixhub.models.user import Location


class JobCategory(str, Enum):
    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    CARPENTRY = "carpentry"
    PAINTING = "painting"
    APPLIANCE = "appliance"
    LANDSCAPING = "landscaping"
    GENERAL = "general"


class JobStatus(str, Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# Legal lifecycle edges; everything else is an InvalidStateError
TRANSITIONS = {
    JobStatus.OPEN: {JobStatus.ASSIGNED, JobStatus.CANCELLED},
    JobStatus.ASSIGNED: {JobStatus.COMPLETED},
    JobStatus.COMPLETED: set(),
    JobStatus.CANCELLED: set(),
}


class JobCreate(BaseModel):
    # loosely typed on purpose: the lifecycle service owns the validation
    # rules so they hold for callers that never go through HTTP
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    budget: Optional[float] = None
    location: Optional[Location] = None
    tags: List[str] = Field(default_factory=list)


class ApplyIn(BaseModel):
    message: Optional[str] = None
    price: Optional[float] = None
    estimated_time: Optional[str] = None


class Application(BaseModel):
    fixer_id: str
    fixer_name: Optional[str] = None
    message: str
    price: float
    estimated_time: Optional[str] = None
    status: ApplicationStatus = ApplicationStatus.PENDING
    applied_at: datetime


class JobOut(BaseModel):
    id: str
    title: str
    description: str
    category: JobCategory
    budget: float
    location: Location
    tags: List[str] = Field(default_factory=list)
    status: JobStatus
    homeowner_id: str
    homeowner_name: Optional[str] = None
    assigned_fixer: Optional[str] = None
    applications: List[Application] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class JobList(BaseModel):
    items: List[JobOut]
    count: int
