# fixhub/models/user.py
from enum import Enum
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


class Role(str, Enum):
    HOMEOWNER = "homeowner"
    FIXER = "fixer"


class Location(BaseModel):
    lat: float
    lng: float


class Actor(BaseModel):
    """Who is calling. Every core operation takes one explicitly."""
    id: str
    role: Role


class RatingSummaryBrief(BaseModel):
    average_rating: float = 0.0
    total_ratings: int = 0


class RegisterIn(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str
    role: Role


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[Location] = None


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    location: Optional[Location] = None
    rating_summary: Optional[RatingSummaryBrief] = None
    created_at: Optional[datetime] = None


class PublicUserOut(BaseModel):
    id: str
    name: str
    role: Role
    location: Optional[Location] = None
    rating_summary: Optional[RatingSummaryBrief] = None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
