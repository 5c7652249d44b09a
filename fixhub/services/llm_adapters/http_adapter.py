# fixhub/services/llm_adapters/http_adapter.py
"""
Async HTTP adapter for an Ollama-compatible server. Retries with linear backoff.

Settings:
- LLM_HTTP_URL: generate endpoint (default http://localhost:11434/api/generate)
- LLM_CHAT_URL: chat endpoint (default http://localhost:11434/api/chat)
- LLM_API_KEY: optional, sent as Authorization: Bearer <key>
- LLM_TIMEOUT_SEC, LLM_RETRIES, LLM_BACKOFF_FACTOR
"""

import asyncio
import json
import logging
import re
from typing import Dict, Any

import httpx

from fixhub.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_GENERATE_URL = "http://localhost:11434/api/generate"
DEFAULT_CHAT_URL = "http://localhost:11434/api/chat"

ENHANCE_PROMPT = """You are an AI assistant for a home repair platform. Given a homeowner's job description,
enhance it with additional helpful details and suggest relevant tags.

Original description:
"{description}"

Provide:
1. An enhanced version of the description with more details about what's needed
2. A list of 3-5 relevant tags for categorizing this job

Format your response as JSON:
{{"enhancedDescription": "...", "tags": ["tag1", "tag2", "tag3"]}}
"""

ASSISTANT_SYSTEM = (
    "Only answer the user question directly and concisely. Do not add greetings or follow-up "
    "questions. Limit your answer to 3 short sentences and 30 words."
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

def _headers() -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if settings.LLM_API_KEY:
        headers["Authorization"] = f"Bearer {settings.LLM_API_KEY}"
    return headers

async def _post(url: str, body: Dict[str, Any]) -> Dict[str, Any]:
    async with httpx.AsyncClient(timeout=settings.LLM_TIMEOUT_SEC) as client:
        last_exc = None
        for attempt in range(1, settings.LLM_RETRIES + 2):
            try:
                resp = await client.post(url, json=body, headers=_headers())
                resp.raise_for_status()
                return resp.json()
            except (httpx.HTTPError, ValueError) as exc:
                last_exc = exc
                if attempt <= settings.LLM_RETRIES:
                    logger.warning("LLM call to %s failed (attempt %d): %s", url, attempt, exc)
                    await asyncio.sleep(settings.LLM_BACKOFF_FACTOR * attempt)
        raise last_exc

def parse_enhancement(text: str) -> Dict[str, Any]:
    """Pull the first JSON object out of free-form model output."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ValueError("No JSON found in LLM response")
    data = json.loads(match.group(0))
    enhanced = data.get("enhancedDescription") or data.get("enhanced_description")
    tags = data.get("tags") or []
    if not isinstance(enhanced, str) or not enhanced.strip():
        raise ValueError("LLM response carries no enhanced description")
    if not isinstance(tags, list):
        raise ValueError("LLM tags must be a list")
    return {"enhanced_description": enhanced.strip(), "tags": [str(t) for t in tags][:5]}

async def run_stage(stage_name: str, payload: Dict[str, Any], seed: int = 42) -> Dict[str, Any]:
    if stage_name == "ENHANCE_JOB":
        url = str(settings.LLM_HTTP_URL or DEFAULT_GENERATE_URL)
        body = {
            "model": settings.LLM_MODEL,
            "prompt": ENHANCE_PROMPT.format(description=payload.get("description", "")),
            "stream": False,
            "options": {"seed": seed},
        }
        data = await _post(url, body)
        return parse_enhancement(data.get("response", ""))
    if stage_name == "ASSISTANT_CHAT":
        url = str(settings.LLM_CHAT_URL or DEFAULT_CHAT_URL)
        body = {
            "model": payload.get("model") or settings.LLM_CHAT_MODEL,
            "messages": [
                {"role": "system", "content": ASSISTANT_SYSTEM},
                {"role": "user", "content": payload.get("message", "")},
            ],
            "stream": False,
        }
        data = await _post(url, body)
        content = (data.get("message") or {}).get("content", "")
        return {"role": "assistant", "content": content.strip()}
    raise ValueError(f"Unknown stage {stage_name}")
