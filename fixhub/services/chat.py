# fixhub/services/chat.py
"""
Messaging relay: chat messages grouped by job id, plus the in-process room
registry that fans persisted messages out to connected WebSocket sessions.

Delivery is fire-and-forget. A session whose send fails is dropped from its
rooms; nothing is retried or queued for later.
"""
import logging
from typing import Any, Dict, List, Optional, Set

from fixhub.core.errors import ValidationError, ForbiddenError, InvalidStateError
from fixhub.models.job import JobStatus
from fixhub.models.message import MAX_MESSAGE_LENGTH, MessageOut
from fixhub.models.user import Actor
from fixhub.repositories import messages as messages_repo
from fixhub.repositories import users as users_repo
from fixhub.repositories.base import parse_oid
from fixhub.services.jobs import require_actor, is_participant, load_job

logger = logging.getLogger(__name__)

# chat stays usable until the job reaches a terminal state
_CHAT_OPEN_STATES = {JobStatus.OPEN.value, JobStatus.ASSIGNED.value}


class RoomHub:
    """
    Maps room keys (job ids) to connected sessions. A session is anything
    with an async ``send_json``; in production that is a Starlette WebSocket.
    """

    def __init__(self):
        self._rooms: Dict[str, Set[Any]] = {}

    def join(self, room: str, session) -> None:
        self._rooms.setdefault(room, set()).add(session)

    def leave(self, room: str, session) -> None:
        members = self._rooms.get(room)
        if not members:
            return
        members.discard(session)
        if not members:
            del self._rooms[room]

    def leave_all(self, session) -> None:
        for room in list(self._rooms):
            self.leave(room, session)

    def members(self, room: str) -> Set[Any]:
        return set(self._rooms.get(room, ()))

    async def broadcast(self, room: str, payload: Dict[str, Any]) -> int:
        """Send a JSON-ready payload to everyone in the room; returns how many sessions got it."""
        delivered = 0
        for session in self.members(room):
            try:
                await session.send_json(payload)
                delivered += 1
            except Exception:
                logger.warning("Dropping unreachable session from room %s", room, exc_info=True)
                self.leave_all(session)
        return delivered


# process-wide registry used by the API layer
hub = RoomHub()


def room_key(job_id: str) -> str:
    """Canonical room name for a job id, whatever hex case the client used."""
    oid = parse_oid(job_id)
    return str(oid) if oid is not None else job_id


async def _load_chat_job(actor: Actor, job_id: str) -> Dict[str, Any]:
    job = await load_job(job_id)
    if not is_participant(job, actor.id):
        raise ForbiddenError("You are not part of this job's conversation")
    return job

async def authorize_join(actor: Optional[Actor], job_id: str) -> Dict[str, Any]:
    actor = require_actor(actor)
    return await _load_chat_job(actor, job_id)

async def send_message(actor: Optional[Actor], job_id: str, content: Optional[str]) -> Dict[str, Any]:
    """Validate and persist a message; the caller broadcasts the returned row."""
    actor = require_actor(actor)
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Message content cannot be empty")
    content = content.strip()
    if len(content) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")

    job = await _load_chat_job(actor, job_id)
    if job["status"] not in _CHAT_OPEN_STATES:
        raise InvalidStateError("Cannot send messages for completed or cancelled jobs")

    sender = await users_repo.get_user(actor.id)
    return await messages_repo.insert_message(
        job["id"], actor.id, content, sender_name=sender.get("name") if sender else None,
    )

async def send_and_broadcast(actor: Optional[Actor], job_id: str, content: Optional[str], room_hub: RoomHub = hub) -> Dict[str, Any]:
    message = await send_message(actor, job_id, content)
    data = MessageOut(**message).model_dump(mode="json")
    await room_hub.broadcast(room_key(message["job_id"]), {"event": "receive_message", "data": data})
    return message

async def fetch_history(actor: Optional[Actor], job_id: str) -> List[Dict[str, Any]]:
    actor = require_actor(actor)
    job = await _load_chat_job(actor, job_id)
    return await messages_repo.list_messages(job["id"])
