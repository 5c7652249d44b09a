# fixhub/models/rating.py
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

MAX_COMMENT_LENGTH = 500


class RatingCreate(BaseModel):
    fixer_id: str
    job_id: str
    score: Optional[int] = None
    comment: Optional[str] = None


class RecentRating(BaseModel):
    id: str
    score: int
    comment: str
    fixer_id: str
    homeowner_id: str
    homeowner_name: Optional[str] = None
    job_id: str
    job_title: Optional[str] = None
    created_at: datetime


class RatingSummary(BaseModel):
    fixer_id: str
    average_rating: float = 0.0
    total_ratings: int = 0
    recent_ratings: List[RecentRating] = Field(default_factory=list)
