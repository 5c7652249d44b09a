# fixhub/repositories/jobs.py
"""
Storage for the Job aggregate.

Each mutating helper is a single conditional ``find_one_and_update``: the
filter carries the precondition (expected status, expected version, absence of
an application) so MongoDB's per-document atomicity enforces it. A ``None``
return means the precondition did not hold at write time; the caller re-reads
to find out why.
"""
from typing import Optional, List, Dict, Any
from pymongo import ReturnDocument

from fixhub.db.mongo import get_db, JOBS_COLLECTION
from fixhub.repositories.base import now, to_id, parse_oid

async def insert_job(payload: Dict[str, Any]) -> Dict[str, Any]:
    db = get_db()
    doc = dict(payload)
    doc.setdefault("applications", [])
    doc["version"] = 0
    doc["created_at"] = now()
    doc["updated_at"] = doc["created_at"]
    res = await db[JOBS_COLLECTION].insert_one(doc)
    doc["_id"] = res.inserted_id
    return to_id(doc)

async def find_job(job_id: str) -> Optional[Dict[str, Any]]:
    oid = parse_oid(job_id)
    if oid is None:
        return None
    db = get_db()
    return to_id(await db[JOBS_COLLECTION].find_one({"_id": oid}))

async def list_jobs(query: Dict[str, Any], skip: int = 0, limit: int = 50) -> List[Dict[str, Any]]:
    db = get_db()
    cur = db[JOBS_COLLECTION].find(query, sort=[("created_at", -1), ("_id", -1)], skip=skip, limit=limit)
    return [to_id(d) for d in await cur.to_list(length=None)]

async def get_titles(job_ids) -> Dict[str, str]:
    oids = [oid for oid in (parse_oid(j) for j in set(job_ids)) if oid is not None]
    if not oids:
        return {}
    db = get_db()
    docs = await db[JOBS_COLLECTION].find({"_id": {"$in": oids}}, {"title": 1}).to_list(length=None)
    return {str(d["_id"]): d.get("title") for d in docs}

async def push_application(job_id: str, application: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Append an application iff the job is open and this fixer has none yet."""
    oid = parse_oid(job_id)
    if oid is None:
        return None
    db = get_db()
    doc = await db[JOBS_COLLECTION].find_one_and_update(
        {
            "_id": oid,
            "status": "open",
            "applications.fixer_id": {"$ne": application["fixer_id"]},
        },
        {
            "$push": {"applications": application},
            "$set": {"updated_at": now()},
            "$inc": {"version": 1},
        },
        return_document=ReturnDocument.AFTER,
    )
    return to_id(doc)

async def compare_and_swap(job_id: str, expected_status: str, expected_version: int, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Overwrite ``fields`` only if nobody has written the job since it was read."""
    oid = parse_oid(job_id)
    if oid is None:
        return None
    db = get_db()
    update = dict(fields)
    update["updated_at"] = now()
    doc = await db[JOBS_COLLECTION].find_one_and_update(
        {"_id": oid, "status": expected_status, "version": expected_version},
        {"$set": update, "$inc": {"version": 1}},
        return_document=ReturnDocument.AFTER,
    )
    return to_id(doc)

async def set_application_status(job_id: str, fixer_id: str, status: str, expected_status: str) -> Optional[Dict[str, Any]]:
    oid = parse_oid(job_id)
    if oid is None:
        return None
    db = get_db()
    doc = await db[JOBS_COLLECTION].find_one_and_update(
        {"_id": oid, "status": expected_status, "applications.fixer_id": fixer_id},
        {
            "$set": {"applications.$.status": status, "updated_at": now()},
            "$inc": {"version": 1},
        },
        return_document=ReturnDocument.AFTER,
    )
    return to_id(doc)

async def transition(job_id: str, from_status: str, to_status: str, extra: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    oid = parse_oid(job_id)
    if oid is None:
        return None
    db = get_db()
    update = dict(extra or {})
    update["status"] = to_status
    update["updated_at"] = now()
    doc = await db[JOBS_COLLECTION].find_one_and_update(
        {"_id": oid, "status": from_status},
        {"$set": update, "$inc": {"version": 1}},
        return_document=ReturnDocument.AFTER,
    )
    return to_id(doc)
