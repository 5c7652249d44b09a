# fixhub/api/v1/llm.py
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from fixhub.api.v1.auth import get_current_actor
from fixhub.models.user import Actor
from fixhub.services import llm_adapter

router = APIRouter()

class EnhanceIn(BaseModel):
    description: Optional[str] = None

class EnhanceOut(BaseModel):
    enhanced_description: str
    tags: List[str]

class AssistantIn(BaseModel):
    message: Optional[str] = None
    model: Optional[str] = None

class AssistantOut(BaseModel):
    role: str = "assistant"
    content: str

@router.post("/llm/enhance-job", response_model=EnhanceOut)
async def enhance_job(payload: EnhanceIn, actor: Actor = Depends(get_current_actor)):
    return await llm_adapter.enhance_description(payload.description)

@router.post("/llm/chat", response_model=AssistantOut)
async def assistant_chat(payload: AssistantIn, actor: Actor = Depends(get_current_actor)):
    return await llm_adapter.ask_assistant(payload.message, payload.model)
