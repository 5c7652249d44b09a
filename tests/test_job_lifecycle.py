# tests/test_job_lifecycle.py
import asyncio
import pytest

from fixhub.core.errors import (
    ValidationError, UnauthorizedError, ForbiddenError, NotFoundError,
    InvalidStateError, ConflictError, DuplicateError,
)
from fixhub.core.config import settings
from fixhub.repositories import jobs as jobs_repo
from fixhub.services import jobs as lifecycle

FAUCET = dict(
    title="Leaky faucet",
    description="Kitchen faucet drips all night",
    category="plumbing",
    budget=150,
    location={"lat": 40.0, "lng": -74.0},
)


async def _post(homeowner, **overrides):
    fields = dict(FAUCET)
    fields.update(overrides)
    return await lifecycle.create_job(homeowner, **fields)


def _statuses(job):
    return {a["fixer_id"]: a["status"] for a in job["applications"]}


@pytest.mark.asyncio
async def test_create_job_starts_open_with_no_applications(homeowner):
    job = await _post(homeowner)
    assert job["status"] == "open"
    assert job["applications"] == []
    assert job["homeowner_id"] == homeowner.id
    assert job["homeowner_name"] == "Hana Owner"
    assert job["budget"] == 150.0
    assert job["location"] == {"lat": 40.0, "lng": -74.0}

    stored = await lifecycle.get_job(homeowner, job["id"])
    assert stored["title"] == "Leaky faucet"
    assert stored["assigned_fixer"] is None


@pytest.mark.asyncio
async def test_create_job_keeps_cleaned_tags(homeowner):
    job = await _post(homeowner, tags=["plumbing", " plumbing ", "", "kitchen"])
    assert job["tags"] == ["plumbing", "kitchen"]


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"title": "  "},
    {"description": None},
    {"category": "roofing"},
    {"budget": -1},
    {"budget": "150"},
    {"budget": float("nan")},
    {"location": None},
    {"location": {"lat": 40.0}},
    {"location": {"lat": float("inf"), "lng": 0.0}},
    {"location": {"lat": 120.0, "lng": 0.0}},
])
async def test_create_job_rejects_malformed_input(homeowner, overrides):
    with pytest.raises(ValidationError):
        await _post(homeowner, **overrides)


@pytest.mark.asyncio
async def test_only_homeowners_post_jobs(fixer):
    with pytest.raises(ForbiddenError):
        await _post(fixer)
    with pytest.raises(UnauthorizedError):
        await _post(None)


@pytest.mark.asyncio
async def test_apply_twice_is_a_duplicate(homeowner, fixer):
    job = await _post(homeowner)
    job = await lifecycle.apply(fixer, job["id"], "I can fix it", 100)
    assert _statuses(job) == {fixer.id: "pending"}
    assert job["applications"][0]["fixer_name"] == "Felix Fixer"

    with pytest.raises(DuplicateError):
        await lifecycle.apply(fixer, job["id"], "Me again", 90)

    job = await lifecycle.get_job(fixer, job["id"])
    assert len(job["applications"]) == 1


@pytest.mark.asyncio
async def test_concurrent_applies_from_same_fixer_land_once(homeowner, fixer):
    job = await _post(homeowner)
    results = await asyncio.gather(
        *[lifecycle.apply(fixer, job["id"], "I can fix it", 100) for _ in range(4)],
        return_exceptions=True,
    )
    assert sum(isinstance(r, dict) for r in results) == 1
    assert all(isinstance(r, (dict, DuplicateError)) for r in results)


@pytest.mark.asyncio
async def test_apply_errors(homeowner, fixer):
    with pytest.raises(NotFoundError):
        await lifecycle.apply(fixer, "not-an-id", "hi", 10)
    with pytest.raises(NotFoundError):
        await lifecycle.apply(fixer, "64b7f0c2a1b2c3d4e5f60718", "hi", 10)

    job = await _post(homeowner)
    with pytest.raises(ForbiddenError):
        await lifecycle.apply(homeowner, job["id"], "hi", 10)
    with pytest.raises(ValidationError):
        await lifecycle.apply(fixer, job["id"], "", 10)
    with pytest.raises(ValidationError):
        await lifecycle.apply(fixer, job["id"], "hi", -5)

    await lifecycle.cancel_job(homeowner, job["id"])
    with pytest.raises(InvalidStateError):
        await lifecycle.apply(fixer, job["id"], "hi", 10)


@pytest.mark.asyncio
async def test_accept_assigns_and_rejects_siblings(homeowner, fixer, other_fixer):
    job = await _post(homeowner)
    await lifecycle.apply(fixer, job["id"], "I can fix it", 100, estimated_time="2 hours")
    await lifecycle.apply(other_fixer, job["id"], "Me too", 120)

    job = await lifecycle.accept_application(homeowner, job["id"], fixer.id)
    assert job["status"] == "assigned"
    assert job["assigned_fixer"] == fixer.id
    assert _statuses(job) == {fixer.id: "accepted", other_fixer.id: "rejected"}
    assert job["applications"][0]["estimated_time"] == "2 hours"


@pytest.mark.asyncio
async def test_second_accept_fails_and_leaves_state_alone(homeowner, fixer, other_fixer):
    job = await _post(homeowner)
    await lifecycle.apply(fixer, job["id"], "I can fix it", 100)
    await lifecycle.apply(other_fixer, job["id"], "Me too", 120)
    first = await lifecycle.accept_application(homeowner, job["id"], fixer.id)

    with pytest.raises(InvalidStateError):
        await lifecycle.accept_application(homeowner, job["id"], fixer.id)
    with pytest.raises(InvalidStateError):
        await lifecycle.accept_application(homeowner, job["id"], other_fixer.id)

    after = await lifecycle.get_job(homeowner, job["id"])
    assert after["status"] == first["status"] == "assigned"
    assert after["assigned_fixer"] == fixer.id
    assert _statuses(after) == _statuses(first)


@pytest.mark.asyncio
async def test_racing_accepts_have_one_winner(homeowner, fixer, other_fixer):
    job = await _post(homeowner)
    await lifecycle.apply(fixer, job["id"], "I can fix it", 100)
    await lifecycle.apply(other_fixer, job["id"], "Me too", 120)

    results = await asyncio.gather(
        lifecycle.accept_application(homeowner, job["id"], fixer.id),
        lifecycle.accept_application(homeowner, job["id"], other_fixer.id),
        return_exceptions=True,
    )
    winners = [r for r in results if isinstance(r, dict)]
    losers = [r for r in results if isinstance(r, InvalidStateError)]
    assert len(winners) == 1 and len(losers) == 1

    final = await lifecycle.get_job(homeowner, job["id"])
    accepted = [a for a in final["applications"] if a["status"] == "accepted"]
    assert len(accepted) == 1
    assert accepted[0]["fixer_id"] == final["assigned_fixer"] == winners[0]["assigned_fixer"]


@pytest.mark.asyncio
async def test_accept_retries_when_job_changes_underneath(monkeypatch, homeowner, fixer, other_fixer):
    job = await _post(homeowner)
    await lifecycle.apply(fixer, job["id"], "I can fix it", 100)

    original_cas = jobs_repo.compare_and_swap
    calls = []

    async def cas_with_interleaved_apply(job_id, expected_status, expected_version, fields):
        calls.append(expected_version)
        if len(calls) == 1:
            # another fixer applies between accept's read and its write
            await lifecycle.apply(other_fixer, job_id, "Late bid", 80)
        return await original_cas(job_id, expected_status, expected_version, fields)

    monkeypatch.setattr(jobs_repo, "compare_and_swap", cas_with_interleaved_apply)

    job = await lifecycle.accept_application(homeowner, job["id"], fixer.id)
    assert len(calls) == 2
    assert calls[1] == calls[0] + 1
    # the late application was seen on the retry and rejected with the rest
    assert _statuses(job) == {fixer.id: "accepted", other_fixer.id: "rejected"}


@pytest.mark.asyncio
async def test_accept_authorization_and_lookup(register, homeowner, fixer):
    stranger, _ = await register("Sam Stranger", "homeowner")
    job = await _post(homeowner)
    await lifecycle.apply(fixer, job["id"], "I can fix it", 100)

    with pytest.raises(ForbiddenError):
        await lifecycle.accept_application(stranger, job["id"], fixer.id)
    with pytest.raises(ForbiddenError):
        await lifecycle.accept_application(fixer, job["id"], fixer.id)
    with pytest.raises(NotFoundError):
        await lifecycle.accept_application(homeowner, job["id"], "nobody")
    with pytest.raises(NotFoundError):
        await lifecycle.accept_application(homeowner, "64b7f0c2a1b2c3d4e5f60718", fixer.id)


@pytest.mark.asyncio
async def test_reject_touches_only_the_named_application(homeowner, fixer, other_fixer):
    job = await _post(homeowner)
    await lifecycle.apply(fixer, job["id"], "I can fix it", 100)
    await lifecycle.apply(other_fixer, job["id"], "Me too", 120)

    job = await lifecycle.reject_application(homeowner, job["id"], other_fixer.id)
    assert job["status"] == "open"
    assert _statuses(job) == {fixer.id: "pending", other_fixer.id: "rejected"}

    await lifecycle.accept_application(homeowner, job["id"], fixer.id)
    with pytest.raises(InvalidStateError):
        await lifecycle.reject_application(homeowner, job["id"], other_fixer.id)


@pytest.mark.asyncio
async def test_complete_requires_assigned(homeowner, fixer):
    job = await _post(homeowner)
    with pytest.raises(InvalidStateError):
        await lifecycle.complete_job(homeowner, job["id"])

    await lifecycle.apply(fixer, job["id"], "I can fix it", 100)
    await lifecycle.accept_application(homeowner, job["id"], fixer.id)
    with pytest.raises(ForbiddenError):
        await lifecycle.complete_job(fixer, job["id"])

    job = await lifecycle.complete_job(homeowner, job["id"])
    assert job["status"] == "completed"
    assert job["completed_at"] is not None
    assert _statuses(job) == {fixer.id: "accepted"}

    # terminal
    with pytest.raises(InvalidStateError):
        await lifecycle.complete_job(homeowner, job["id"])
    with pytest.raises(InvalidStateError):
        await lifecycle.cancel_job(homeowner, job["id"])


@pytest.mark.asyncio
async def test_cancel_only_from_open(homeowner, fixer):
    job = await _post(homeowner)
    cancelled = await lifecycle.cancel_job(homeowner, job["id"])
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancelled_at"] is not None
    with pytest.raises(InvalidStateError):
        await lifecycle.cancel_job(homeowner, job["id"])

    job = await _post(homeowner)
    await lifecycle.apply(fixer, job["id"], "I can fix it", 100)
    await lifecycle.accept_application(homeowner, job["id"], fixer.id)
    with pytest.raises(InvalidStateError):
        await lifecycle.cancel_job(homeowner, job["id"])


@pytest.mark.asyncio
async def test_list_jobs_by_role(register, homeowner, fixer, other_fixer):
    neighbour, _ = await register("Nina Neighbour", "homeowner")
    faucet = await _post(homeowner)
    await _post(homeowner, title="Rewire lamp", category="electrical", budget=60)
    await _post(neighbour, title="Mow lawn", category="landscaping", budget=40)
    await lifecycle.apply(fixer, faucet["id"], "I can fix it", 100)
    await lifecycle.accept_application(homeowner, faucet["id"], fixer.id)

    mine = await lifecycle.list_jobs(homeowner)
    assert {j["title"] for j in mine} == {"Leaky faucet", "Rewire lamp"}
    assigned = await lifecycle.list_jobs(homeowner, status="assigned")
    assert [j["title"] for j in assigned] == ["Leaky faucet"]

    browse = await lifecycle.list_jobs(other_fixer)
    assert {j["title"] for j in browse} == {"Rewire lamp", "Mow lawn"}
    cheap = await lifecycle.list_jobs(other_fixer, max_budget=50)
    assert [j["title"] for j in cheap] == ["Mow lawn"]
    electrical = await lifecycle.list_jobs(other_fixer, category="electrical")
    assert [j["title"] for j in electrical] == ["Rewire lamp"]

    fixer_jobs = await lifecycle.list_jobs(fixer, mine=True)
    assert [j["title"] for j in fixer_jobs] == ["Leaky faucet"]

    with pytest.raises(ValidationError):
        await lifecycle.list_jobs(fixer, category="roofing")
    with pytest.raises(ValidationError):
        await lifecycle.list_jobs(fixer, limit=0)


@pytest.mark.asyncio
async def test_accept_gives_up_with_conflict_after_bounded_retries(monkeypatch, homeowner, fixer):
    job = await _post(homeowner)
    await lifecycle.apply(fixer, job["id"], "I can fix it", 100)

    calls = []

    async def always_stale(*args, **kwargs):
        calls.append(kwargs.get("expected_version"))
        return None

    monkeypatch.setattr(jobs_repo, "compare_and_swap", always_stale)
    monkeypatch.setattr(settings, "JOB_CAS_MAX_RETRIES", 2)

    with pytest.raises(ConflictError) as exc:
        await lifecycle.accept_application(homeowner, job["id"], fixer.id)
    assert exc.value.status_code == 409
    assert exc.value.code == "conflict"
    assert isinstance(exc.value, InvalidStateError)
    assert len(calls) == 3

    current = await lifecycle.get_job(homeowner, job["id"])
    assert current["status"] == "open"
    assert current["assigned_fixer"] is None
    assert _statuses(current) == {fixer.id: "pending"}


@pytest.mark.asyncio
async def test_apply_reports_conflict_when_push_loses_without_a_known_cause(monkeypatch, homeowner, fixer):
    job = await _post(homeowner)

    async def lost_push(job_id, application):
        return None

    monkeypatch.setattr(jobs_repo, "push_application", lost_push)

    with pytest.raises(ConflictError) as exc:
        await lifecycle.apply(fixer, job["id"], "I can fix it", 100)
    assert exc.value.code == "conflict"
