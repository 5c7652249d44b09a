# fixhub/db/mongo.py
from typing import Optional
import logging
from functools import lru_cache

import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING
from pydantic_settings import BaseSettings

from fixhub.core.config import settings as app_settings

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
JOBS_COLLECTION = "jobs"
RATINGS_COLLECTION = "ratings"
MESSAGES_COLLECTION = "messages"

class MongoSettings(BaseSettings):
    MONGODB_URI: str = app_settings.MONGODB_URI or "mongodb://localhost:27017/fixhub"
    MONGODB_DB: str = app_settings.MONGODB_DB or "fixhub"

@lru_cache()
def get_mongo_settings() -> MongoSettings:
    return MongoSettings()

_mongo_client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None

def get_mongo_client():
    """
    Returns a cached Motor client.
    """
    global _mongo_client
    if _mongo_client is None:
        settings = get_mongo_settings()
        _mongo_client = motor.motor_asyncio.AsyncIOMotorClient(settings.MONGODB_URI)
    return _mongo_client

def get_db():
    client = get_mongo_client()
    settings = get_mongo_settings()
    return client[settings.MONGODB_DB]

async def init_db():
    """
    Create the indexes the core relies on. The unique ones are load-bearing:
    duplicate emails and duplicate (fixer, homeowner, job) ratings are
    rejected by the store itself.
    """
    db = get_db()
    await db[USERS_COLLECTION].create_index([("email", ASCENDING)], unique=True)
    await db[JOBS_COLLECTION].create_index([("status", ASCENDING), ("created_at", DESCENDING)])
    await db[JOBS_COLLECTION].create_index([("homeowner_id", ASCENDING)])
    await db[JOBS_COLLECTION].create_index([("applications.fixer_id", ASCENDING)])
    await db[RATINGS_COLLECTION].create_index(
        [("fixer_id", ASCENDING), ("homeowner_id", ASCENDING), ("job_id", ASCENDING)],
        unique=True,
    )
    await db[RATINGS_COLLECTION].create_index([("fixer_id", ASCENDING), ("created_at", DESCENDING)])
    await db[MESSAGES_COLLECTION].create_index([("job_id", ASCENDING), ("created_at", ASCENDING)])
    logger.info("MongoDB indexes ensured on database %s", get_mongo_settings().MONGODB_DB)

def close_db():
    global _mongo_client
    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None
