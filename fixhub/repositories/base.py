# fixhub/repositories/base.py
from typing import Any, Dict, Optional
from datetime import datetime
from bson import ObjectId
from bson.errors import InvalidId

def now() -> datetime:
    return datetime.utcnow()

def to_id(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    # convert Mongo's _id (ObjectId) to str when returning
    if not doc:
        return None
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc["_id"])
        del doc["_id"]
    return doc

def parse_oid(value: Any) -> Optional[ObjectId]:
    """Malformed ids map to None so callers can answer 'not found'."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None
