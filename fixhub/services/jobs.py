# fixhub/services/jobs.py
"""
Job lifecycle state machine.

    open ──> assigned ──> completed
      └────> cancelled

Every operation takes the calling Actor explicitly and returns the full job
aggregate (job fields plus the embedded applications). Preconditions are
checked against a fresh read for error reporting, but the write itself is
always a conditional update in fixhub.repositories.jobs, so two racing calls
can never both succeed.
"""
import logging
import math
from typing import Any, Dict, List, Optional, Union

from fixhub.core.config import settings
from fixhub.core.errors import (
    ValidationError, UnauthorizedError, ForbiddenError, NotFoundError,
    InvalidStateError, ConflictError, DuplicateError,
)
from fixhub.models.job import JobCategory, JobStatus, ApplicationStatus, TRANSITIONS
from fixhub.models.user import Actor, Location, Role
from fixhub.repositories import jobs as jobs_repo
from fixhub.repositories import users as users_repo
from fixhub.repositories.base import now

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


# -- guards ---------------------------------------------------------------

def require_actor(actor: Optional[Actor]) -> Actor:
    if actor is None or not actor.id:
        raise UnauthorizedError("Authentication required")
    return actor

def require_role(actor: Optional[Actor], role: Role) -> Actor:
    actor = require_actor(actor)
    if Role(actor.role) != role:
        raise ForbiddenError(f"Forbidden: requires role {role.value}")
    return actor

def is_participant(job: Dict[str, Any], actor_id: str) -> bool:
    """Owner, assigned fixer, or any fixer who applied."""
    if job.get("homeowner_id") == actor_id or job.get("assigned_fixer") == actor_id:
        return True
    return any(a.get("fixer_id") == actor_id for a in job.get("applications") or [])

def _ensure_transition(job: Dict[str, Any], target: JobStatus):
    current = JobStatus(job["status"])
    if target not in TRANSITIONS[current]:
        raise InvalidStateError(f"Job is {current.value}; cannot move to {target.value}")

async def load_job(job_id: str) -> Dict[str, Any]:
    job = await jobs_repo.find_job(job_id)
    if not job:
        raise NotFoundError("Job not found")
    return job

async def _load_owned_job(actor: Optional[Actor], job_id: str) -> Dict[str, Any]:
    actor = require_role(actor, Role.HOMEOWNER)
    job = await load_job(job_id)
    if job["homeowner_id"] != actor.id:
        raise ForbiddenError("Not authorized")
    return job


# -- input validation -----------------------------------------------------

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)

def _require_text(value: Optional[str], field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()

def _validate_location(location: Union[Location, Dict[str, Any], None]) -> Dict[str, float]:
    if isinstance(location, Location):
        location = location.model_dump()
    if not isinstance(location, dict):
        raise ValidationError("location is required")
    lat, lng = location.get("lat"), location.get("lng")
    if not _is_number(lat) or not _is_number(lng):
        raise ValidationError("location must carry numeric lat and lng")
    if not -90 <= lat <= 90 or not -180 <= lng <= 180:
        raise ValidationError("location is out of range")
    return {"lat": float(lat), "lng": float(lng)}

def _validate_category(category: Optional[str]) -> str:
    try:
        return JobCategory(category).value
    except ValueError:
        allowed = ", ".join(c.value for c in JobCategory)
        raise ValidationError(f"category must be one of: {allowed}")

def _validate_amount(value: Any, field: str) -> float:
    if not _is_number(value):
        raise ValidationError(f"{field} must be a number")
    if value < 0:
        raise ValidationError(f"{field} must be non-negative")
    return float(value)

def _clean_tags(tags: Optional[List[str]]) -> List[str]:
    out: List[str] = []
    for t in tags or []:
        if isinstance(t, str) and t.strip() and t.strip() not in out:
            out.append(t.strip())
    return out


# -- operations -----------------------------------------------------------

async def create_job(
    actor: Optional[Actor],
    title: Optional[str],
    description: Optional[str],
    category: Optional[str],
    budget: Any,
    location: Union[Location, Dict[str, Any], None],
    tags: Optional[List[str]] = None,
) -> Dict[str, Any]:
    actor = require_role(actor, Role.HOMEOWNER)
    payload = {
        "title": _require_text(title, "title"),
        "description": _require_text(description, "description"),
        "category": _validate_category(category),
        "budget": _validate_amount(budget, "budget"),
        "location": _validate_location(location),
        "tags": _clean_tags(tags),
        "status": JobStatus.OPEN.value,
        "homeowner_id": actor.id,
        "homeowner_name": None,
        "assigned_fixer": None,
        "applications": [],
        "completed_at": None,
        "cancelled_at": None,
    }
    owner = await users_repo.get_user(actor.id)
    if owner:
        payload["homeowner_name"] = owner.get("name")
    job = await jobs_repo.insert_job(payload)
    logger.info("Job %s created by homeowner %s", job["id"], actor.id)
    return job

async def list_jobs(
    actor: Optional[Actor],
    category: Optional[str] = None,
    status: Optional[str] = None,
    min_budget: Optional[float] = None,
    max_budget: Optional[float] = None,
    mine: bool = False,
    skip: int = 0,
    limit: int = DEFAULT_PAGE_SIZE,
) -> List[Dict[str, Any]]:
    """
    Homeowners see their own jobs. Fixers browse open jobs, or with
    ``mine=True`` the jobs they were assigned or applied to.
    """
    actor = require_actor(actor)
    if skip < 0 or not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be 1..{MAX_PAGE_SIZE} and skip non-negative")

    query: Dict[str, Any] = {}
    if category is not None:
        query["category"] = _validate_category(category)
    if status is not None:
        try:
            status = JobStatus(status).value
        except ValueError:
            raise ValidationError("unknown status filter")

    if Role(actor.role) == Role.HOMEOWNER:
        query["homeowner_id"] = actor.id
        if status:
            query["status"] = status
    elif mine:
        query["$or"] = [{"assigned_fixer": actor.id}, {"applications.fixer_id": actor.id}]
        if status:
            query["status"] = status
    else:
        query["status"] = JobStatus.OPEN.value

    budget: Dict[str, float] = {}
    if min_budget is not None:
        budget["$gte"] = _validate_amount(min_budget, "min_budget")
    if max_budget is not None:
        budget["$lte"] = _validate_amount(max_budget, "max_budget")
    if budget:
        query["budget"] = budget

    return await jobs_repo.list_jobs(query, skip=skip, limit=limit)

async def get_job(actor: Optional[Actor], job_id: str) -> Dict[str, Any]:
    require_actor(actor)
    return await load_job(job_id)

async def apply(
    actor: Optional[Actor],
    job_id: str,
    message: Optional[str],
    price: Any,
    estimated_time: Optional[str] = None,
) -> Dict[str, Any]:
    actor = require_role(actor, Role.FIXER)
    message = _require_text(message, "message")
    price = _validate_amount(price, "price")
    fixer = await users_repo.get_user(actor.id)

    application = {
        "fixer_id": actor.id,
        "fixer_name": fixer.get("name") if fixer else None,
        "message": message,
        "price": price,
        "estimated_time": estimated_time.strip() if isinstance(estimated_time, str) and estimated_time.strip() else None,
        "status": ApplicationStatus.PENDING.value,
        "applied_at": now(),
    }
    job = await jobs_repo.push_application(job_id, application)
    if job:
        logger.info("Fixer %s applied to job %s", actor.id, job_id)
        return job

    # the conditional push matched nothing; work out which precondition failed
    current = await load_job(job_id)
    if current["status"] != JobStatus.OPEN.value:
        raise InvalidStateError("Job is no longer accepting applications")
    if any(a.get("fixer_id") == actor.id for a in current.get("applications") or []):
        raise DuplicateError("You have already applied for this job")
    raise ConflictError("Job changed while applying; please retry")

async def accept_application(actor: Optional[Actor], job_id: str, fixer_id: str) -> Dict[str, Any]:
    """
    Assign the job to ``fixer_id``: status, assigned fixer, the accepted
    application and every rejected sibling land in one compare-and-swap write.
    Losing the swap to a write that left the job open (a new application, a
    rejection) means re-reading and trying again; losing it to another accept
    means the re-read sees ``assigned`` and fails with InvalidStateError.
    """
    for attempt in range(settings.JOB_CAS_MAX_RETRIES + 1):
        job = await _load_owned_job(actor, job_id)
        _ensure_transition(job, JobStatus.ASSIGNED)
        applications = job.get("applications") or []
        if not any(a.get("fixer_id") == fixer_id for a in applications):
            raise NotFoundError("Application not found")

        decided = []
        for a in applications:
            a = dict(a)
            if a.get("fixer_id") == fixer_id:
                a["status"] = ApplicationStatus.ACCEPTED.value
            else:
                a["status"] = ApplicationStatus.REJECTED.value
            decided.append(a)

        updated = await jobs_repo.compare_and_swap(
            job_id,
            expected_status=JobStatus.OPEN.value,
            expected_version=job.get("version", 0),
            fields={
                "status": JobStatus.ASSIGNED.value,
                "assigned_fixer": fixer_id,
                "applications": decided,
            },
        )
        if updated:
            logger.info("Job %s assigned to fixer %s", job_id, fixer_id)
            return updated
        logger.info("Job %s changed during accept (attempt %d); re-reading", job_id, attempt + 1)

    raise ConflictError("Job kept changing while accepting; please retry")

async def reject_application(actor: Optional[Actor], job_id: str, fixer_id: str) -> Dict[str, Any]:
    job = await _load_owned_job(actor, job_id)
    if job["status"] != JobStatus.OPEN.value:
        raise InvalidStateError("Applications can only be rejected while the job is open")
    if not any(a.get("fixer_id") == fixer_id for a in job.get("applications") or []):
        raise NotFoundError("Application not found")

    updated = await jobs_repo.set_application_status(
        job_id, fixer_id, ApplicationStatus.REJECTED.value, expected_status=JobStatus.OPEN.value,
    )
    if not updated:
        raise InvalidStateError("Applications can only be rejected while the job is open")
    logger.info("Job %s: application from fixer %s rejected", job_id, fixer_id)
    return updated

async def complete_job(actor: Optional[Actor], job_id: str) -> Dict[str, Any]:
    job = await _load_owned_job(actor, job_id)
    _ensure_transition(job, JobStatus.COMPLETED)
    updated = await jobs_repo.transition(
        job_id, JobStatus.ASSIGNED.value, JobStatus.COMPLETED.value, {"completed_at": now()},
    )
    if not updated:
        raise InvalidStateError("Only assigned jobs can be completed")
    logger.info("Job %s completed", job_id)
    return updated

async def cancel_job(actor: Optional[Actor], job_id: str) -> Dict[str, Any]:
    job = await _load_owned_job(actor, job_id)
    _ensure_transition(job, JobStatus.CANCELLED)
    updated = await jobs_repo.transition(
        job_id, JobStatus.OPEN.value, JobStatus.CANCELLED.value, {"cancelled_at": now()},
    )
    if not updated:
        raise InvalidStateError("Only open jobs can be cancelled")
    logger.info("Job %s cancelled", job_id)
    return updated
