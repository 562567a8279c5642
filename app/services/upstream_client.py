"""
MaxTrack platform client.

Wraps the login, process-list and journey-export endpoints. The client
holds no session state of its own: every call after login takes the
UpstreamSession explicitly. Nothing here retries; the poller owns retries.
"""
from typing import Any, Iterable, Optional

import httpx

from app.config import settings
from app.errors import AuthError, UpstreamError
from app.logging_config import get_logger
from app.models.job import Job, JobState
from app.models.session import UpstreamSession
from app.services.windows import DateWindow


LOGIN_PATH = "/security/login"
LIST_JOBS_PATH = "/general/pm/list"
EXPORT_JOURNEY_PATH = "/journey/journey/exportv2"

PAGE_SIZE = 100
SESSION_COOKIE = "PLAY_SESSION"

logger = get_logger(component="upstream_client")


class UpstreamClient:
    """Client for the fleet platform REST API."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        export_format: Optional[str] = None,
    ):
        self.http = http
        self.base_url = (base_url or settings.UPSTREAM_BASE_URL).rstrip("/")
        self.user_agent = user_agent or settings.UPSTREAM_USER_AGENT
        self.export_format = export_format or settings.EXPORT_FORMAT

    async def authenticate(self, identity: str, secret: str) -> UpstreamSession:
        """
        Log in with end-user credentials.

        Raises AuthError if the platform rejects the login or the response
        lacks the session cookie or the tenant id.
        """
        body = {
            "email": identity,
            "senha": secret,
            "userAgent": self.user_agent,
            "so": "Win32",
        }
        response = await self._post(LOGIN_PATH, body, session=None, operation="login")

        if not response.is_success:
            raise AuthError(f"Login failed: {response.status_code} - {response.text}")

        token = _session_cookie(response)
        if not token:
            raise AuthError("No session cookie received from login")

        try:
            data = response.json()
        except ValueError:
            raise AuthError("Login response was not valid JSON")

        empresa = data.get("empresa") if isinstance(data, dict) else None
        tenant_id = empresa.get("uid") if isinstance(empresa, dict) else None
        if not tenant_id:
            raise AuthError("Login response did not include a tenant id")

        logger.info("login_succeeded", tenant_id=tenant_id)
        return UpstreamSession(token=token, tenant_id=str(tenant_id))

    async def list_jobs(
        self,
        session: UpstreamSession,
        states: Optional[Iterable[JobState]] = None,
    ) -> list[Job]:
        """
        List export processes, newest first.

        Only the first page is fetched: the target job is always recent.
        """
        states = list(states) if states is not None else JobState.known()
        body = {
            "model": {
                "onlyActive": True,
                "justMine": False,
                "states": [state.value for state in states],
            },
            "page": 0,
            "pageSize": PAGE_SIZE,
            "parameters": {"errors": []},
            "sort": "createDate desc",
        }
        response = await self._post(LIST_JOBS_PATH, body, session, operation="list_jobs")
        _raise_for_status(response, "List processes failed")

        try:
            data = response.json()
        except ValueError:
            raise UpstreamError(
                "List processes returned invalid JSON",
                upstream_status=response.status_code,
                body=response.text,
            )

        entries = data.get("list") if isinstance(data, dict) else None
        return [Job.from_upstream(entry) for entry in entries or []]

    async def trigger_export(
        self,
        session: UpstreamSession,
        data_window: DateWindow,
    ) -> Optional[dict[str, Any]]:
        """
        Ask the platform to generate the journey report for ``data_window``.

        Returns the JSON body when there is one. An empty response also
        means the export was accepted.
        """
        start_date, end_date = data_window.iso_bounds()
        body = {
            "search": {
                "id": None,
                "validateFilter": None,
                "startDate": start_date,
                "endDate": end_date,
                "state": None,
                "sourceId": None,
                "registerType": None,
                "identifiers": None,
                "registrations": None,
                "persons": [],
                "userId": None,
                "operationals": None,
                "locals": [],
                "customers": [],
                "operatorUnits": [],
                "journeyErrorType": None,
            },
            "formatType": self.export_format,
            "ruleId": None,
        }
        response = await self._post(EXPORT_JOURNEY_PATH, body, session, operation="trigger_export")
        _raise_for_status(response, "Export journey failed")

        logger.info(
            "export_triggered",
            tenant_id=session.tenant_id,
            start_date=start_date,
            end_date=end_date,
        )

        if "application/json" in response.headers.get("content-type", "") and response.content:
            try:
                return response.json()
            except ValueError:
                return None
        return None

    async def _post(
        self,
        path: str,
        body: dict[str, Any],
        session: Optional[UpstreamSession],
        operation: str,
    ) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }
        if session is not None:
            headers.update(session.auth_headers())

        try:
            return await self.http.post(f"{self.base_url}{path}", json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error("upstream_request_failed", operation=operation, error=str(e))
            raise UpstreamError(f"Request to {path} failed: {e}") from e


def _session_cookie(response: httpx.Response) -> Optional[str]:
    """First name=value pair of the session Set-Cookie header."""
    cookies = response.headers.get_list("set-cookie")
    if not cookies:
        return None
    preferred = [c for c in cookies if c.strip().startswith(f"{SESSION_COOKIE}=")]
    pair = (preferred or cookies)[0].split(";")[0].strip()
    return pair or None


def _raise_for_status(response: httpx.Response, message: str) -> None:
    if response.is_success:
        return
    raise UpstreamError(
        f"{message}: {response.status_code} - {response.text}",
        upstream_status=response.status_code,
        body=response.text,
    )
