# tests/test_llm_adapter.py
import httpx
import pytest

from fixhub.core.config import settings
from fixhub.core.errors import ValidationError
from fixhub.services import llm_adapter
from fixhub.services.enhancer_cache import make_cache_key
from fixhub.services.llm_adapters import http_adapter
from fixhub.services.llm_adapters.mock_adapter import suggest_tags


def test_mock_tags_follow_keywords():
    assert suggest_tags("Leaky pipe under the kitchen sink") == ["plumbing", "home repair", "maintenance"]
    tags = suggest_tags("Paint the wall, fix the light switch and the cabinet door, mow the lawn, new dishwasher, leaky faucet")
    assert len(tags) == 5
    assert tags[0] == "plumbing"
    assert suggest_tags("") == ["home repair", "maintenance", "general"]


def test_parse_enhancement_tolerates_chatter():
    text = 'Sure! Here you go:\n{"enhancedDescription": "Replace the faucet cartridge.", "tags": ["plumbing", "kitchen"]}\nThanks'
    assert http_adapter.parse_enhancement(text) == {
        "enhanced_description": "Replace the faucet cartridge.",
        "tags": ["plumbing", "kitchen"],
    }
    with pytest.raises(ValueError):
        http_adapter.parse_enhancement("no json at all")
    with pytest.raises(ValueError):
        http_adapter.parse_enhancement('{"tags": ["x"]}')


def test_cache_key_is_stable():
    a = make_cache_key("ENHANCE_JOB", {"description": "x", "n": 1})
    b = make_cache_key("ENHANCE_JOB", {"n": 1, "description": "x"})
    assert a == b
    assert a.startswith("llm:ENHANCE_JOB:")
    assert a != make_cache_key("ENHANCE_JOB", {"description": "y"})


@pytest.mark.asyncio
async def test_enhance_with_mock_adapter(monkeypatch, fake_cache):
    monkeypatch.setattr(settings, "LLM_ADAPTER", "mock")
    out = await llm_adapter.enhance_description("  Leaky faucet in the kitchen  ")
    assert out["enhanced_description"].startswith("Leaky faucet in the kitchen")
    assert "Additional details" in out["enhanced_description"]
    assert out["tags"][0] == "plumbing"
    assert len(fake_cache.store) == 1


@pytest.mark.asyncio
async def test_enhance_rejects_blank_description():
    with pytest.raises(ValidationError):
        await llm_adapter.enhance_description("   ")
    with pytest.raises(ValidationError):
        await llm_adapter.ask_assistant(None)


@pytest.mark.asyncio
async def test_http_failure_falls_back_to_mock_and_is_not_cached(monkeypatch, fake_cache):
    async def unreachable(stage_name, payload, seed=42):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(settings, "LLM_ADAPTER", "http")
    monkeypatch.setattr(settings, "LLM_ALLOW_FALLBACK", True)
    monkeypatch.setattr(http_adapter, "run_stage", unreachable)

    out = await llm_adapter.enhance_description("Broken outlet in the garage")
    assert out["tags"][0] == "electrical"
    assert fake_cache.store == {}

    reply = await llm_adapter.ask_assistant("How do I reset a breaker?")
    assert reply["role"] == "assistant"
    assert reply["content"]


@pytest.mark.asyncio
async def test_http_failure_without_fallback_propagates(monkeypatch):
    async def unreachable(stage_name, payload, seed=42):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(settings, "LLM_ADAPTER", "http")
    monkeypatch.setattr(settings, "LLM_ALLOW_FALLBACK", False)
    monkeypatch.setattr(http_adapter, "run_stage", unreachable)

    with pytest.raises(httpx.ConnectError):
        await llm_adapter.enhance_description("Broken outlet in the garage")


@pytest.mark.asyncio
async def test_cached_result_skips_the_adapter(monkeypatch, fake_cache):
    calls = []

    async def answer(stage_name, payload, seed=42):
        calls.append(payload)
        return {"enhanced_description": "Fix the gate hinge.", "tags": ["carpentry"]}

    monkeypatch.setattr(settings, "LLM_ADAPTER", "http")
    monkeypatch.setattr(http_adapter, "run_stage", answer)

    first = await llm_adapter.enhance_description("Gate hinge squeaks")
    second = await llm_adapter.enhance_description("Gate hinge squeaks")
    assert first == second == {"enhanced_description": "Fix the gate hinge.", "tags": ["carpentry"]}
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_http_adapter_posts_to_ollama(monkeypatch):
    def handler(request: httpx.Request):
        assert request.url.path == "/api/generate"
        return httpx.Response(200, json={
            "response": '{"enhancedDescription": "Replace the washer.", "tags": ["plumbing"]}',
        })

    real_client = httpx.AsyncClient

    def fake_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(http_adapter.httpx, "AsyncClient", fake_client)
    monkeypatch.setattr(settings, "LLM_HTTP_URL", "http://llm.local/api/generate")

    out = await http_adapter.run_stage("ENHANCE_JOB", {"description": "Dripping tap"})
    assert out == {"enhanced_description": "Replace the washer.", "tags": ["plumbing"]}


@pytest.mark.asyncio
async def test_enhance_and_assistant_endpoints(client, register, monkeypatch):
    monkeypatch.setattr(settings, "LLM_ADAPTER", "mock")
    _, token = await register("Hana Owner", "homeowner")
    headers = {"Authorization": f"Bearer {token}"}

    r = await client.post("/api/v1/llm/enhance-job", headers=headers, json={"description": "Water heater makes noise"})
    assert r.status_code == 200
    assert set(r.json()) == {"enhanced_description", "tags"}

    r = await client.post("/api/v1/llm/enhance-job", headers=headers, json={"description": ""})
    assert r.status_code == 422
    assert r.json()["code"] == "validation_error"

    r = await client.post("/api/v1/llm/chat", headers=headers, json={"message": "Who pays for parts?"})
    assert r.status_code == 200
    assert r.json()["role"] == "assistant"

    r = await client.post("/api/v1/llm/enhance-job", json={"description": "anything"})
    assert r.status_code == 401
