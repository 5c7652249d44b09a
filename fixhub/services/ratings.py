# fixhub/services/ratings.py
"""
Rating ledger: one rating per (fixer, homeowner, job), written only once the
job is completed. The fixer's running summary is recomputed from the ledger
after every insert and cached on the fixer's user record; a summary over
fewer ratings never replaces a newer cached one.
"""
import logging
from typing import Any, Dict, Optional

from fixhub.core.errors import ValidationError, ForbiddenError, InvalidStateError
from fixhub.models.job import JobStatus
from fixhub.models.rating import MAX_COMMENT_LENGTH
from fixhub.models.user import Actor, Role
from fixhub.repositories import jobs as jobs_repo
from fixhub.repositories import ratings as ratings_repo
from fixhub.repositories import users as users_repo
from fixhub.services.jobs import require_role, load_job

logger = logging.getLogger(__name__)

RECENT_RATINGS = 5

def _validate_score(score: Any) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError("Rating must be a whole number between 1 and 5")
    if not 1 <= score <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    return score

def _validate_comment(comment: Optional[str]) -> str:
    if not isinstance(comment, str) or not comment.strip():
        raise ValidationError("comment is required")
    comment = comment.strip()
    if len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"comment must be at most {MAX_COMMENT_LENGTH} characters")
    return comment

async def create_rating(
    actor: Optional[Actor],
    fixer_id: str,
    job_id: str,
    score: Any,
    comment: Optional[str],
) -> Dict[str, Any]:
    actor = require_role(actor, Role.HOMEOWNER)
    score = _validate_score(score)
    comment = _validate_comment(comment)

    job = await load_job(job_id)
    if job["homeowner_id"] != actor.id:
        raise ForbiddenError("Only the homeowner who posted this job can rate it")
    if job["status"] != JobStatus.COMPLETED.value:
        raise InvalidStateError("Jobs can only be rated once completed")
    if job.get("assigned_fixer") != fixer_id:
        raise ValidationError("This fixer was not assigned to the job")

    await ratings_repo.insert_rating(fixer_id, actor.id, job["id"], score, comment)
    logger.info("Fixer %s rated %d for job %s", fixer_id, score, job_id)

    summary = await get_fixer_rating_summary(fixer_id)
    try:
        await users_repo.set_rating_summary(fixer_id, summary["average_rating"], summary["total_ratings"])
    except Exception:
        # the rating is stored; the cached copy catches up on the next rating
        logger.exception("Failed to cache rating summary for fixer %s", fixer_id)
    return summary

async def get_fixer_rating_summary(fixer_id: str) -> Dict[str, Any]:
    average, total = await ratings_repo.summarize(fixer_id)
    recent = await ratings_repo.recent_ratings(fixer_id, limit=RECENT_RATINGS)

    raters = await users_repo.get_users_by_ids(r["homeowner_id"] for r in recent)
    titles = await jobs_repo.get_titles(r["job_id"] for r in recent)
    for r in recent:
        rater = raters.get(r["homeowner_id"])
        r["homeowner_name"] = rater.get("name") if rater else None
        r["job_title"] = titles.get(r["job_id"])

    return {
        "fixer_id": fixer_id,
        "average_rating": average,
        "total_ratings": total,
        "recent_ratings": recent,
    }
