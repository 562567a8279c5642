"""
Upstream client tests against a mocked platform.
"""
import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from app.errors import AuthError, UpstreamError
from app.models.job import JobState
from app.services.upstream_client import UpstreamClient
from app.services.windows import DateWindow
from conftest import FakePlatform, REPORT_NAME, raw_job


def run(platform, action):
    async def go():
        async with platform.client() as http:
            return await action(UpstreamClient(http, base_url="https://platform.test"))
    return asyncio.run(go())


def test_authenticate_returns_session_with_tenant():
    platform = FakePlatform()

    result = run(platform, lambda c: c.authenticate("user@example.com", "secret"))

    assert result.token == "PLAY_SESSION=session-token"
    assert result.tenant_id == "tenant-1"
    body = platform.body(0)
    assert body["email"] == "user@example.com"
    assert body["senha"] == "secret"
    assert body["so"] == "Win32"
    assert "Mozilla" in platform.requests[0].headers["user-agent"]


def test_authenticate_rejected_raises_auth_error():
    platform = FakePlatform(login_status=401)

    with pytest.raises(AuthError) as exc:
        run(platform, lambda c: c.authenticate("user@example.com", "wrong"))

    assert "401" in exc.value.message


def test_authenticate_without_cookie_raises_auth_error():
    platform = FakePlatform(login_cookie=False)

    with pytest.raises(AuthError, match="No session cookie"):
        run(platform, lambda c: c.authenticate("user@example.com", "secret"))


def test_authenticate_without_tenant_raises_auth_error():
    platform = FakePlatform(login_body={"empresa": {}})

    with pytest.raises(AuthError, match="tenant id"):
        run(platform, lambda c: c.authenticate("user@example.com", "secret"))


def test_list_jobs_sends_session_and_filter(session):
    created = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
    platform = FakePlatform(job_lists=[[raw_job(created=created, url="https://x/1")]])

    jobs = run(platform, lambda c: c.list_jobs(session))

    request = platform.requests[0]
    assert request.headers["cookie"] == "PLAY_SESSION=t"
    assert request.headers["cco"] == "tenant-1"
    body = platform.body(0)
    assert body["pageSize"] == 100
    assert body["page"] == 0
    assert body["sort"] == "createDate desc"
    assert body["model"]["states"] == [
        "SCHEDULED", "WAITING", "PROCESSING", "COMPLETED", "ERROR", "CANCELLED",
    ]

    assert len(jobs) == 1
    assert jobs[0].name == REPORT_NAME
    assert jobs[0].created_at == created
    assert jobs[0].state is JobState.COMPLETED
    assert jobs[0].result_url == "https://x/1"


def test_list_jobs_normalizes_legacy_shape(session):
    platform = FakePlatform(job_lists=[[
        raw_job(state="COMPLETED", url="https://x/legacy", legacy=True),
        raw_job(state="ARCHIVED", job_id=2),
    ]])

    jobs = run(platform, lambda c: c.list_jobs(session))

    assert jobs[0].state is JobState.COMPLETED
    assert jobs[0].result_url == "https://x/legacy"
    assert jobs[1].state is JobState.UNKNOWN
    assert jobs[1].raw_state == "ARCHIVED"


def test_list_jobs_failure_carries_status_and_body(session):
    def handler(request):
        return httpx.Response(503, text="maintenance")

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await UpstreamClient(http).list_jobs(session)

    with pytest.raises(UpstreamError) as exc:
        asyncio.run(go())

    assert exc.value.upstream_status == 503
    assert exc.value.body == "maintenance"


def test_transport_failure_becomes_upstream_error(session):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await UpstreamClient(http).list_jobs(session)

    with pytest.raises(UpstreamError, match="connection refused"):
        asyncio.run(go())


def test_trigger_export_posts_data_window(session):
    platform = FakePlatform()
    window = DateWindow(
        start=datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc),
        end=datetime(2026, 10, 18, 2, 59, 59, 999000, tzinfo=timezone.utc),
    )

    hint = run(platform, lambda c: c.trigger_export(session, window))

    assert hint is None
    assert platform.paths() == ["/journey/journey/exportv2"]
    body = platform.body(0)
    assert body["formatType"] == "SUMMARY-XLS"
    assert body["search"]["startDate"] == "2026-10-17T03:00:00.000Z"
    assert body["search"]["endDate"] == "2026-10-18T02:59:59.999Z"
    assert platform.requests[0].headers["cco"] == "tenant-1"


def test_trigger_export_returns_json_hint(session):
    def handler(request):
        return httpx.Response(200, json={"processId": 42})

    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            window = DateWindow(datetime.now(timezone.utc), datetime.now(timezone.utc))
            return await UpstreamClient(http).trigger_export(session, window)

    assert asyncio.run(go()) == {"processId": 42}


@pytest.mark.parametrize("create_date", ["yesterday", {"epoch": 1}, "17.6e11"])
def test_list_jobs_rejects_unreadable_create_date(session, create_date):
    entry = raw_job()
    entry["createDate"] = create_date
    platform = FakePlatform(job_lists=[[entry]])

    with pytest.raises(UpstreamError, match="createDate"):
        run(platform, lambda c: c.list_jobs(session))
