"""
Export resolution service.

Turns a pair of user credentials into the download URL of yesterday's
journey export: reuse a finished job, wait for a running one, or trigger a
new one and wait for it.
"""
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.config import PollingConfig, settings
from app.errors import UpstreamError
from app.logging_config import get_logger
from app.models.job import Job, JobState
from app.models.session import UpstreamSession
from app.routes.metrics import track_export_triggered
from app.services.job_matcher import find_match
from app.services.poller import JobPoller
from app.services.upstream_client import UpstreamClient
from app.services.windows import (
    DateWindow,
    local_now,
    recent_creation_window,
    yesterday_window,
)


logger = get_logger(component="export_service")


class ExportResolver:
    """Resolves the result URL of the daily journey export."""

    def __init__(
        self,
        client: UpstreamClient,
        polling: PollingConfig,
        report_name: Optional[str] = None,
        lookback: Optional[timedelta] = None,
        lookahead: Optional[timedelta] = None,
        poller: Optional[JobPoller] = None,
        now: Callable[[], datetime] = local_now,
    ):
        self.client = client
        self.report_name = report_name or settings.REPORT_NAME
        self.lookback = lookback or timedelta(minutes=settings.JOB_SEARCH_LOOKBACK_MINUTES)
        self.lookahead = lookahead or timedelta(minutes=settings.JOB_SEARCH_LOOKAHEAD_MINUTES)
        self.poller = poller or JobPoller(client, self.report_name, polling)
        self.now = now

    async def resolve(self, identity: str, secret: str) -> str:
        """
        Authenticate and return the result URL of yesterday's export.

        Raises AuthError, UpstreamError, JobFailedError or
        PollingTimeoutError.
        """
        session = await self.client.authenticate(identity, secret)
        return await self.resolve_for_session(session)

    async def resolve_for_session(self, session: UpstreamSession) -> str:
        now = self.now()
        data_window = yesterday_window(now)
        search_window = recent_creation_window(now, self.lookback, self.lookahead)
        log = logger.bind(tenant_id=session.tenant_id)

        jobs = await self.client.list_jobs(session)
        existing = find_match(jobs, self.report_name, search_window.start, search_window.end)

        if existing is not None and existing.state is JobState.COMPLETED:
            log.info("existing_export_completed", job_id=existing.id)
            return _result_url(existing)

        if existing is not None and not existing.state.is_terminal:
            log.info("existing_export_in_progress", job_id=existing.id, state=existing.state.value)
            job = await self.poller.wait_for_completion(session, search_window)
            return _result_url(job)

        if existing is not None:
            log.info("existing_export_failed", job_id=existing.id, state=existing.state.value)

        await self._trigger(session, data_window)
        job = await self.poller.wait_for_completion(session, search_window)
        return _result_url(job)

    async def _trigger(self, session: UpstreamSession, data_window: DateWindow) -> None:
        await self.client.trigger_export(session, data_window)
        track_export_triggered()


def _result_url(job: Job) -> str:
    if not job.result_url:
        raise UpstreamError("Export completed but no file URL was returned")
    return job.result_url
