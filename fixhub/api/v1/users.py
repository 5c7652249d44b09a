# fixhub/api/v1/users.py
from fastapi import APIRouter, Depends

from fixhub.api.v1.auth import get_current_actor
from fixhub.models.user import Actor, ProfileUpdate, UserOut, PublicUserOut
from fixhub.services import accounts

router = APIRouter()

@router.get("/users/me", response_model=UserOut)
async def get_me(actor: Actor = Depends(get_current_actor)):
    return await accounts.get_profile(actor)

@router.put("/users/me", response_model=UserOut)
async def update_me(payload: ProfileUpdate, actor: Actor = Depends(get_current_actor)):
    location = payload.location.model_dump() if payload.location else None
    return await accounts.update_profile(actor, name=payload.name, location=location)

@router.get("/users/{user_id}", response_model=PublicUserOut)
async def get_user(user_id: str, actor: Actor = Depends(get_current_actor)):
    return await accounts.get_public_profile(user_id)
