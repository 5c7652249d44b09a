# fixhub/repositories/ratings.py
from typing import List, Dict, Any, Tuple
from pymongo.errors import DuplicateKeyError

from fixhub.core.errors import DuplicateError
from fixhub.db.mongo import get_db, RATINGS_COLLECTION
from fixhub.repositories.base import now, to_id

async def insert_rating(fixer_id: str, homeowner_id: str, job_id: str, score: int, comment: str) -> Dict[str, Any]:
    db = get_db()
    payload = {
        "fixer_id": fixer_id,
        "homeowner_id": homeowner_id,
        "job_id": job_id,
        "score": score,
        "comment": comment,
        "created_at": now(),
        "updated_at": now(),
    }
    try:
        res = await db[RATINGS_COLLECTION].insert_one(payload)
    except DuplicateKeyError:
        # unique (fixer_id, homeowner_id, job_id) index
        raise DuplicateError("You have already rated this job")
    payload["_id"] = res.inserted_id
    return to_id(payload)

async def summarize(fixer_id: str) -> Tuple[float, int]:
    db = get_db()
    rows = await db[RATINGS_COLLECTION].aggregate([
        {"$match": {"fixer_id": fixer_id}},
        {"$group": {"_id": "$fixer_id", "average_rating": {"$avg": "$score"}, "total_ratings": {"$sum": 1}}},
    ]).to_list(length=None)
    if not rows:
        return 0.0, 0
    return float(rows[0]["average_rating"] or 0.0), int(rows[0]["total_ratings"])

async def recent_ratings(fixer_id: str, limit: int = 5) -> List[Dict[str, Any]]:
    db = get_db()
    cur = db[RATINGS_COLLECTION].find({"fixer_id": fixer_id}, sort=[("created_at", -1), ("_id", -1)], limit=limit)
    return [to_id(d) for d in await cur.to_list(length=None)]
