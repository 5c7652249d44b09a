# fixhub/services/accounts.py
"""
Registration, login and profile reads/writes for the identity store.
"""
import logging
from typing import Any, Dict, Optional

from fixhub.core.errors import ValidationError, UnauthorizedError, NotFoundError
from fixhub.core.security import (
    JWTError, hash_password, verify_password, create_access_token, decode_access_token,
)
from fixhub.models.user import Actor, Role
from fixhub.repositories import users as users_repo

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# never leave the server
_PRIVATE_FIELDS = ("password_hash",)

def public_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in doc.items() if k not in _PRIVATE_FIELDS}

def _token_response(user: Dict[str, Any]) -> Dict[str, Any]:
    token = create_access_token(user["id"], user["role"])
    return {"access_token": token, "token_type": "bearer", "user": public_user(user)}

async def register(name: str, email: str, password: str, role: str) -> Dict[str, Any]:
    if not name or not name.strip():
        raise ValidationError("Name is required")
    if not email or not email.strip():
        raise ValidationError("Email is required")
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    try:
        role = Role(role).value
    except ValueError:
        raise ValidationError('Role must be either "homeowner" or "fixer"')

    user = await users_repo.create_user(name.strip(), email.strip(), hash_password(password), role)
    logger.info("Registered %s %s", role, user["id"])
    return _token_response(user)

async def login(email: str, password: str) -> Dict[str, Any]:
    user = await users_repo.get_user_by_email(email or "")
    if not user or not verify_password(password or "", user["password_hash"]):
        raise UnauthorizedError("Invalid credentials")
    return _token_response(user)

async def actor_from_token(token: Optional[str]) -> Actor:
    """Resolve a bearer token to the acting user; the user must still exist."""
    if not token:
        raise UnauthorizedError("No authentication token, access denied")
    try:
        td = decode_access_token(token)
    except JWTError:
        raise UnauthorizedError("Token verification failed")
    if not td.sub:
        raise UnauthorizedError("Invalid token")
    user = await users_repo.get_user(td.sub)
    if not user:
        raise UnauthorizedError("User not found")
    return Actor(id=user["id"], role=user["role"])

async def get_profile(actor: Actor) -> Dict[str, Any]:
    user = await users_repo.get_user(actor.id)
    if not user:
        raise NotFoundError("User not found")
    return public_user(user)

async def update_profile(actor: Actor, name: Optional[str] = None, location: Optional[Dict[str, float]] = None) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    if name is not None:
        if not name.strip():
            raise ValidationError("Name cannot be blank")
        fields["name"] = name.strip()
    if location is not None:
        fields["location"] = location
    if not fields:
        return await get_profile(actor)
    user = await users_repo.update_user(actor.id, fields)
    if not user:
        raise NotFoundError("User not found")
    return public_user(user)

async def get_public_profile(user_id: str) -> Dict[str, Any]:
    user = await users_repo.get_user(user_id)
    if not user:
        raise NotFoundError("User not found")
    return {
        "id": user["id"],
        "name": user["name"],
        "role": user["role"],
        "location": user.get("location"),
        "rating_summary": user.get("rating_summary"),
    }
