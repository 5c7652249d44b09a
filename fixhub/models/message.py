# fixhub/models/message.py
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

MAX_MESSAGE_LENGTH = 2000


class MessageIn(BaseModel):
    content: Optional[str] = None


class MessageOut(BaseModel):
    id: str
    job_id: str
    sender_id: str
    sender_name: Optional[str] = None
    content: str
    created_at: datetime


class MessageHistory(BaseModel):
    items: List[MessageOut]
    count: int
