# tests/conftest.py
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.config import settings
from app.models.job import Job
from app.models.session import UpstreamSession

REPORT_NAME = settings.REPORT_NAME
FILE_URL = "https://files.example.com/exports/jornada.xls?X-Amz-Signature=abc"


def raw_job(name=REPORT_NAME, created=None, state="COMPLETED", url=None, legacy=False, job_id=1):
    """Build a process-list entry the way the platform sends it."""
    created = created or datetime.now(timezone.utc)
    entry = {
        "id": job_id,
        "name": name,
        "createDate": int(created.timestamp() * 1000),
    }
    if legacy:
        entry["status"] = {"state": {"id": state}}
        if url:
            entry["status"]["resultFileUrl"] = url
    else:
        entry["state"] = {"id": state}
        if url:
            entry["resultFileUrl"] = url
    return entry


def make_job(name=REPORT_NAME, created=None, state="COMPLETED", url=None, job_id=1):
    return Job.from_upstream(raw_job(name, created, state, url, job_id=job_id))


class FakePlatform:
    """
    Stand-in for the MaxTrack API and the object storage behind it.

    ``job_lists`` is consumed one entry per list call; the last entry
    repeats once the others are used up.
    """

    def __init__(self, job_lists=None, login_status=200, login_cookie=True,
                 file_status=200, file_body=b"PK\x03\x04 fake xls", file_headers=None,
                 login_body=None, file_stream=None):
        self.job_lists = list(job_lists or [[]])
        self.login_status = login_status
        self.login_cookie = login_cookie
        self.login_body = login_body if login_body is not None else {"empresa": {"uid": "tenant-1"}}
        self.file_status = file_status
        self.file_body = file_body
        self.file_stream = file_stream
        self.file_headers = file_headers if file_headers is not None else {
            "content-type": "application/vnd.ms-excel",
        }
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "files.example.com":
            if self.file_stream is not None:
                return httpx.Response(self.file_status, stream=self.file_stream, headers=self.file_headers)
            return httpx.Response(self.file_status, content=self.file_body, headers=self.file_headers)

        if path == "/security/login":
            if self.login_status != 200:
                return httpx.Response(self.login_status, text="invalid credentials")
            headers = {}
            if self.login_cookie:
                headers["set-cookie"] = "PLAY_SESSION=session-token; Path=/; HTTPOnly"
            return httpx.Response(200, json=self.login_body, headers=headers)

        if path == "/general/pm/list":
            jobs = self.job_lists.pop(0) if len(self.job_lists) > 1 else self.job_lists[0]
            return httpx.Response(200, json={"list": jobs})

        if path == "/journey/journey/exportv2":
            return httpx.Response(200)

        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def paths(self):
        return [r.url.path for r in self.requests]

    def body(self, index):
        return json.loads(self.requests[index].content)


class BrokenStream(httpx.AsyncByteStream):
    """Storage body whose connection drops after the first chunk."""

    def __init__(self, first_chunk=b"first-chunk"):
        self.first_chunk = first_chunk
        self.closed = False

    async def __aiter__(self):
        yield self.first_chunk
        raise httpx.ReadError("connection reset by peer")

    async def aclose(self):
        self.closed = True


class StubClient:
    """UpstreamClient replacement returning scripted job lists."""

    def __init__(self, job_lists):
        self.job_lists = list(job_lists)
        self.list_calls = 0
        self.triggered = []

    async def authenticate(self, identity, secret):
        return UpstreamSession(token="PLAY_SESSION=t", tenant_id="tenant-1")

    async def list_jobs(self, session, states=None):
        self.list_calls += 1
        if len(self.job_lists) > 1:
            return self.job_lists.pop(0)
        return self.job_lists[0]

    async def trigger_export(self, session, data_window):
        self.triggered.append(data_window)
        return None


class FakeClock:
    """Monotonic clock advanced only by the paired sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def session():
    return UpstreamSession(token="PLAY_SESSION=t", tenant_id="tenant-1")


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def recent():
    """A creation time inside the default job-search window."""
    return datetime.now(timezone.utc) - timedelta(minutes=10)
