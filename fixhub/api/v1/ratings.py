# fixhub/api/v1/ratings.py
from fastapi import APIRouter, Depends

from fixhub.api.v1.auth import get_current_actor
from fixhub.models.rating import RatingCreate, RatingSummary
from fixhub.models.user import Actor
from fixhub.services import ratings as ledger

router = APIRouter()

@router.post("/ratings", status_code=201, response_model=RatingSummary)
async def create_rating(payload: RatingCreate, actor: Actor = Depends(get_current_actor)):
    """Rate the fixer of a completed job; answers with the fixer's fresh summary."""
    return await ledger.create_rating(actor, payload.fixer_id, payload.job_id, payload.score, payload.comment)

@router.get("/ratings/fixer/{fixer_id}", response_model=RatingSummary)
async def get_fixer_ratings(fixer_id: str):
    return await ledger.get_fixer_rating_summary(fixer_id)
