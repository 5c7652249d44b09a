# fixhub/api/v1/chat.py
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from fixhub.api.v1.auth import get_current_actor
from fixhub.core.errors import FixHubError, UnauthorizedError, ValidationError
from fixhub.models.message import MessageIn, MessageOut, MessageHistory
from fixhub.models.user import Actor
from fixhub.services import chat as relay
from fixhub.services.accounts import actor_from_token

logger = logging.getLogger(__name__)

router = APIRouter()
ws_router = APIRouter()

@router.get("/chat/{job_id}", response_model=MessageHistory)
async def get_history(job_id: str, actor: Actor = Depends(get_current_actor)):
    rows = await relay.fetch_history(actor, job_id)
    return {"items": rows, "count": len(rows)}

@router.post("/chat/{job_id}", status_code=201, response_model=MessageOut)
async def post_message(job_id: str, payload: MessageIn, actor: Actor = Depends(get_current_actor)):
    return await relay.send_and_broadcast(actor, job_id, payload.content)


async def _handle_event(websocket: WebSocket, actor: Actor, data: Dict[str, Any]):
    event = data.get("event")
    job_id = data.get("job_id")
    if not isinstance(job_id, str) or not job_id:
        raise ValidationError("job_id is required")

    if event == "join_chat":
        job = await relay.authorize_join(actor, job_id)
        relay.hub.join(job["id"], websocket)
        logger.info("User %s joined chat room %s", actor.id, job["id"])
        await websocket.send_json({"event": "joined", "job_id": job["id"]})
    elif event == "leave_chat":
        room = relay.room_key(job_id)
        relay.hub.leave(room, websocket)
        await websocket.send_json({"event": "left", "job_id": room})
    elif event == "send_message":
        await relay.send_and_broadcast(actor, job_id, data.get("content"))
    else:
        raise ValidationError(f"Unknown event {event!r}")

@ws_router.websocket("/ws/chat")
async def chat_socket(websocket: WebSocket, token: Optional[str] = Query(None)):
    """
    Client events: join_chat, leave_chat, send_message ({"event", "job_id", "content"}).
    Server events: joined, left, receive_message, error.
    """
    try:
        actor = await actor_from_token(token)
    except UnauthorizedError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
                if not isinstance(data, dict):
                    raise ValidationError("Events must be JSON objects")
                await _handle_event(websocket, actor, data)
            except json.JSONDecodeError:
                await websocket.send_json({"event": "error", "code": ValidationError.code, "detail": "Malformed JSON"})
            except FixHubError as exc:
                await websocket.send_json({"event": "error", **exc.to_dict()})
            except WebSocketDisconnect:
                raise
            except Exception:
                logger.exception("Error handling chat event from user %s", actor.id)
                await websocket.send_json({"event": "error", "code": "internal_error", "detail": "Failed to send message"})
    except WebSocketDisconnect:
        pass
    finally:
        relay.hub.leave_all(websocket)
