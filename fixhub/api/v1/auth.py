# fixhub/api/v1/auth.py
from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from fixhub.models.user import Actor, RegisterIn, LoginIn, TokenOut
from fixhub.services import accounts

router = APIRouter()

@router.post("/auth/register", status_code=201, response_model=TokenOut)
async def register(payload: RegisterIn):
    return await accounts.register(payload.name, payload.email, payload.password, payload.role.value)

@router.post("/auth/login", response_model=TokenOut)
async def login(payload: LoginIn):
    return await accounts.login(payload.email, payload.password)

# Dependency to get the calling actor (id + role)
security = HTTPBearer(auto_error=False)

async def get_current_actor(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Actor:
    # missing/invalid tokens surface as UnauthorizedError -> 401
    return await accounts.actor_from_token(credentials.credentials if credentials else None)
