"""
Export job poller.

Fixed-interval polling of the platform's process list until the target
job reaches a terminal state or the time budget runs out.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional

from app.config import PollingConfig
from app.errors import JobFailedError, PollingTimeoutError
from app.logging_config import get_logger
from app.models.job import Job, JobState
from app.models.session import UpstreamSession
from app.routes.metrics import track_poll_attempt
from app.services.job_matcher import find_match
from app.services.upstream_client import UpstreamClient
from app.services.windows import DateWindow


logger = get_logger(component="poller")

# Jobs listed on the first poll, for diagnostics
DIGEST_SIZE = 5


class JobPoller:
    """Waits for the named export job to finish."""

    def __init__(
        self,
        client: UpstreamClient,
        job_name: str,
        config: PollingConfig,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.job_name = job_name
        self.config = config
        self.clock = clock
        self.sleep = sleep

    async def wait_for_completion(
        self,
        session: UpstreamSession,
        window: DateWindow,
    ) -> Job:
        """
        Poll until the newest matching job in ``window`` is COMPLETED.

        Raises:
            JobFailedError: the job reached ERROR or CANCELLED.
            PollingTimeoutError: no terminal state within ``max_wait``.

        Errors from the client abort the loop immediately.
        """
        started = self.clock()
        attempts = 0
        log = logger.bind(tenant_id=session.tenant_id, job_name=self.job_name)

        # Job records may not be listed right after the export is triggered
        log.info("poll_initial_delay", delay_seconds=self.config.initial_delay)
        await self.sleep(self.config.initial_delay)

        while self.clock() - started < self.config.max_wait:
            attempts += 1
            elapsed = round(self.clock() - started, 1)
            track_poll_attempt()

            jobs = await self.client.list_jobs(session)
            if attempts == 1:
                self._log_digest(log, jobs, window)

            job = find_match(jobs, self.job_name, window.start, window.end)

            if job is None:
                log.info("poll_attempt", attempt=attempts, elapsed_seconds=elapsed, found=False)
                await self.sleep(self.config.interval)
                continue

            log.info(
                "poll_attempt",
                attempt=attempts,
                elapsed_seconds=elapsed,
                found=True,
                job_id=job.id,
                state=job.state.value,
            )

            if job.state is JobState.COMPLETED:
                log.info("job_completed", job_id=job.id, attempts=attempts, elapsed_seconds=elapsed)
                return job

            if job.state.is_failure:
                log.warning("job_failed", job_id=job.id, state=job.state.value)
                raise JobFailedError(job.state.value, job_id=job.id)

            if job.state is JobState.UNKNOWN:
                log.warning("unknown_job_state", job_id=job.id, raw_state=job.raw_state)

            await self.sleep(self.config.interval)

        log.error("poll_timeout", attempts=attempts, max_wait_seconds=self.config.max_wait)
        raise PollingTimeoutError(self.config.max_wait, attempts=attempts)

    def _log_digest(self, log, jobs: list[Job], window: DateWindow) -> None:
        if not jobs:
            return
        log.info(
            "recent_jobs",
            total=len(jobs),
            recent=[
                {
                    "name": job.name,
                    "state": job.raw_state,
                    "created_at": job.created_at.isoformat(),
                }
                for job in jobs[:DIGEST_SIZE]
            ],
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
        )
