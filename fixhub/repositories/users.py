# fixhub/repositories/users.py
from typing import Optional, List, Dict, Any, Iterable
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from fixhub.core.errors import DuplicateError
from fixhub.db.mongo import get_db, USERS_COLLECTION
from fixhub.repositories.base import now, to_id, parse_oid

async def create_user(name: str, email: str, password_hash: str, role: str) -> Dict[str, Any]:
    db = get_db()
    payload = {
        "name": name,
        "email": email.lower(),
        "password_hash": password_hash,
        "role": role,
        "location": None,
        "rating_summary": None,
        "created_at": now(),
        "updated_at": now(),
    }
    try:
        res = await db[USERS_COLLECTION].insert_one(payload)
    except DuplicateKeyError:
        raise DuplicateError("User already exists")
    payload["_id"] = res.inserted_id
    return to_id(payload)

async def get_user(user_id: str) -> Optional[Dict[str, Any]]:
    oid = parse_oid(user_id)
    if oid is None:
        return None
    db = get_db()
    return to_id(await db[USERS_COLLECTION].find_one({"_id": oid}))

async def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    db = get_db()
    return to_id(await db[USERS_COLLECTION].find_one({"email": email.lower()}))

async def get_users_by_ids(user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    oids = [oid for oid in (parse_oid(u) for u in set(user_ids)) if oid is not None]
    if not oids:
        return {}
    db = get_db()
    docs = await db[USERS_COLLECTION].find({"_id": {"$in": oids}}).to_list(length=None)
    out = {}
    for d in docs:
        d = to_id(d)
        out[d["id"]] = d
    return out

async def update_user(user_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    oid = parse_oid(user_id)
    if oid is None:
        return None
    db = get_db()
    update = dict(fields)
    update["updated_at"] = now()
    doc = await db[USERS_COLLECTION].find_one_and_update(
        {"_id": oid},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )
    return to_id(doc)

async def set_rating_summary(user_id: str, average_rating: float, total_ratings: int) -> Optional[Dict[str, Any]]:
    """
    Cache a summary read from the ledger. Ratings are never removed, so a
    summary over fewer ratings is older and must not overwrite a newer one.
    Returns None when a newer summary is already stored.
    """
    oid = parse_oid(user_id)
    if oid is None:
        return None
    db = get_db()
    doc = await db[USERS_COLLECTION].find_one_and_update(
        {
            "_id": oid,
            "$or": [
                {"rating_summary": None},
                {"rating_summary.total_ratings": {"$lt": total_ratings}},
            ],
        },
        {"$set": {
            "rating_summary": {"average_rating": average_rating, "total_ratings": total_ratings},
            "updated_at": now(),
        }},
        return_document=ReturnDocument.AFTER,
    )
    return to_id(doc)
