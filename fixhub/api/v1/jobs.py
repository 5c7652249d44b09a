# fixhub/api/v1/jobs.py
from typing import Optional
from fastapi import APIRouter, Depends, Query

from fixhub.api.v1.auth import get_current_actor
from fixhub.models.job import JobCreate, ApplyIn, JobOut, JobList
from fixhub.models.user import Actor
from fixhub.services import jobs as lifecycle

router = APIRouter()

@router.post("/jobs", status_code=201, response_model=JobOut)
async def create_job(payload: JobCreate, actor: Actor = Depends(get_current_actor)):
    return await lifecycle.create_job(
        actor,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        budget=payload.budget,
        location=payload.location,
        tags=payload.tags,
    )

@router.get("/jobs", response_model=JobList)
async def list_jobs(
    actor: Actor = Depends(get_current_actor),
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    min_budget: Optional[float] = Query(None),
    max_budget: Optional[float] = Query(None),
    mine: bool = Query(False),
    skip: int = Query(0),
    limit: int = Query(lifecycle.DEFAULT_PAGE_SIZE),
):
    rows = await lifecycle.list_jobs(
        actor, category=category, status=status, min_budget=min_budget,
        max_budget=max_budget, mine=mine, skip=skip, limit=limit,
    )
    return {"items": rows, "count": len(rows)}

@router.get("/jobs/{job_id}", response_model=JobOut)
async def get_job(job_id: str, actor: Actor = Depends(get_current_actor)):
    return await lifecycle.get_job(actor, job_id)

@router.post("/jobs/{job_id}/apply", status_code=201, response_model=JobOut)
async def apply(job_id: str, payload: ApplyIn, actor: Actor = Depends(get_current_actor)):
    return await lifecycle.apply(actor, job_id, payload.message, payload.price, payload.estimated_time)

@router.post("/jobs/{job_id}/applications/{fixer_id}/accept", response_model=JobOut)
async def accept_application(job_id: str, fixer_id: str, actor: Actor = Depends(get_current_actor)):
    return await lifecycle.accept_application(actor, job_id, fixer_id)

@router.post("/jobs/{job_id}/applications/{fixer_id}/reject", response_model=JobOut)
async def reject_application(job_id: str, fixer_id: str, actor: Actor = Depends(get_current_actor)):
    return await lifecycle.reject_application(actor, job_id, fixer_id)

@router.post("/jobs/{job_id}/complete", response_model=JobOut)
async def complete_job(job_id: str, actor: Actor = Depends(get_current_actor)):
    return await lifecycle.complete_job(actor, job_id)

@router.post("/jobs/{job_id}/cancel", response_model=JobOut)
async def cancel_job(job_id: str, actor: Actor = Depends(get_current_actor)):
    return await lifecycle.cancel_job(actor, job_id)
