# fixhub/services/enhancer_cache.py
import json
import hashlib
from typing import Any, Optional

import redis.asyncio as aioredis

from fixhub.core.config import settings

def make_cache_key(stage: str, payload: dict) -> str:
    # stable JSON stringify
    s = json.dumps({"stage": stage, "payload": payload}, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return f"llm:{stage}:{hashlib.sha256(s.encode('utf-8')).hexdigest()}"

class EnhancerCache:
    def __init__(self, url: Optional[str] = None, ttl: Optional[int] = None):
        self._url = url or settings.REDIS_URL
        self._ttl = ttl or settings.ENHANCER_CACHE_TTL
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = aioredis.from_url(self._url, decode_responses=True)
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        val = await self._get_client().get(key)
        if val is None:
            return None
        return json.loads(val)

    async def set(self, key: str, value: Any):
        await self._get_client().set(key, json.dumps(value, ensure_ascii=False), ex=self._ttl)

cache = EnhancerCache()
