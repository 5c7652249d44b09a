# fixhub/repositories/messages.py
from typing import List, Dict, Any, Optional
from fixhub.db.mongo import get_db, MESSAGES_COLLECTION
from fixhub.repositories.base import now, to_id

async def insert_message(job_id: str, sender_id: str, content: str, sender_name: Optional[str] = None) -> Dict[str, Any]:
    db = get_db()
    payload = {
        "job_id": job_id,
        "sender_id": sender_id,
        "sender_name": sender_name,
        "content": content,
        "created_at": now(),
    }
    res = await db[MESSAGES_COLLECTION].insert_one(payload)
    payload["_id"] = res.inserted_id
    return to_id(payload)

async def list_messages(job_id: str) -> List[Dict[str, Any]]:
    db = get_db()
    # _id breaks ties between messages stamped in the same millisecond
    cur = db[MESSAGES_COLLECTION].find({"job_id": job_id}, sort=[("created_at", 1), ("_id", 1)])
    return [to_id(d) for d in await cur.to_list(length=None)]
