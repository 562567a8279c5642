"""
Job matching.

Picks the export job this service cares about out of the platform's
process list.
"""
from datetime import datetime
from typing import Iterable, Optional

from app.models.job import Job


def find_match(
    jobs: Iterable[Job],
    exact_name: str,
    window_start: datetime,
    window_end: datetime,
) -> Optional[Job]:
    """
    Return the most recently created job named ``exact_name`` whose creation
    time lies in ``[window_start, window_end]``, or None.

    Name comparison is exact and case-sensitive.
    """
    matches = [
        job for job in jobs
        if job.name == exact_name and window_start <= job.created_at <= window_end
    ]
    if not matches:
        return None
    return max(matches, key=lambda job: job.created_at)
