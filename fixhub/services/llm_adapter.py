# fixhub/services/llm_adapter.py
"""
Pluggable LLM adapter loader and facade for the job description enhancer and
the help assistant.

Settings:
- LLM_ADAPTER: "mock" (default) or "http", or a dotted module path
- LLM_ALLOW_FALLBACK: fall back to the mock adapter when the configured one fails

Public:
- async def run_stage(stage_name: str, payload: dict, seed: int = 42) -> dict
- async def enhance_description(description: str) -> dict
- async def ask_assistant(message: str, model: str | None = None) -> dict
"""

import importlib
import logging
from typing import Any, Dict, Optional

from fixhub.core.config import settings
from fixhub.core.errors import ValidationError
from fixhub.services.enhancer_cache import cache, make_cache_key

logger = logging.getLogger(__name__)

MOCK_ADAPTER = "fixhub.services.llm_adapters.mock_adapter"
HTTP_ADAPTER = "fixhub.services.llm_adapters.http_adapter"

STAGE_ENHANCE = "ENHANCE_JOB"
STAGE_ASSISTANT = "ASSISTANT_CHAT"

def _load_adapter(name: str):
    if name == "mock":
        mod = importlib.import_module(MOCK_ADAPTER)
    elif name == "http":
        mod = importlib.import_module(HTTP_ADAPTER)
    else:
        # try dynamic import
        mod = importlib.import_module(name)
    # adapter module must implement async run_stage
    if not hasattr(mod, "run_stage"):
        raise RuntimeError(f"Adapter {name} does not expose run_stage()")
    return mod

async def run_stage(stage_name: str, payload: Dict[str, Any], seed: int = 42) -> Dict[str, Any]:
    """
    Unified entry to call the configured adapter.
    If adapter fails and fallback is allowed, fall back to mock adapter.
    """
    adapter = _load_adapter(settings.LLM_ADAPTER)
    try:
        return await adapter.run_stage(stage_name, payload, seed=seed)
    except Exception as exc:
        if not settings.LLM_ALLOW_FALLBACK or adapter.__name__ == MOCK_ADAPTER:
            raise
        logger.warning("LLM adapter %s failed for %s, using mock: %s", settings.LLM_ADAPTER, stage_name, exc)
        mock = importlib.import_module(MOCK_ADAPTER)
        result = await mock.run_stage(stage_name, payload, seed=seed)
        result["fallback"] = True
        return result

async def _cached_stage(stage_name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    key = make_cache_key(stage_name, payload)
    try:
        cached = await cache.get(key)
        if cached is not None:
            return cached
    except Exception as exc:
        # don't fail the request for cache errors
        logger.debug("Cache get error for key %s: %s", key, exc)

    result = await run_stage(stage_name, payload)

    # fallback answers are not worth pinning for a day
    if not result.get("fallback"):
        try:
            await cache.set(key, result)
        except Exception as exc:
            logger.debug("Cache set error for key %s: %s", key, exc)
    return result

async def enhance_description(description: Optional[str]) -> Dict[str, Any]:
    if not isinstance(description, str) or not description.strip():
        raise ValidationError("Description is required")
    result = await _cached_stage(STAGE_ENHANCE, {"description": description.strip()})
    return {"enhanced_description": result["enhanced_description"], "tags": list(result.get("tags") or [])}

async def ask_assistant(message: Optional[str], model: Optional[str] = None) -> Dict[str, Any]:
    if not isinstance(message, str) or not message.strip():
        raise ValidationError("Message is required")
    result = await run_stage(STAGE_ASSISTANT, {"message": message.strip(), "model": model})
    return {"role": "assistant", "content": result.get("content", "")}
