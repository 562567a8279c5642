"""
Export job model.

Jobs are created and advanced by the upstream platform. This service only
observes them, so the model is a read-only snapshot built from the
platform's process list.
"""
import enum
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from app.errors import UpstreamError


class JobState(str, enum.Enum):
    """Job lifecycle state as reported by the platform."""
    SCHEDULED = "SCHEDULED"
    WAITING = "WAITING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES

    @property
    def is_failure(self) -> bool:
        return self in (JobState.ERROR, JobState.CANCELLED)

    @classmethod
    def known(cls) -> list["JobState"]:
        """All states the platform accepts as a list filter."""
        return [state for state in cls if state is not cls.UNKNOWN]


TERMINAL_STATES = frozenset({JobState.COMPLETED, JobState.ERROR, JobState.CANCELLED})


class Job(BaseModel):
    """
    Snapshot of one report-generation process.

    ``raw_state`` keeps the string the platform sent so that states mapped
    to ``UNKNOWN`` can still be logged.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: str
    created_at: datetime
    state: JobState
    raw_state: Optional[str] = None
    result_url: Optional[str] = None

    @classmethod
    def from_upstream(cls, raw: dict[str, Any]) -> "Job":
        """
        Normalize one entry of the platform's process list.

        The state shows up either as ``state.id`` or, in the older shape,
        as ``status.state.id``; the result URL likewise as ``resultFileUrl``
        or ``status.resultFileUrl``.
        """
        status = raw.get("status") or {}
        if not isinstance(status, dict):
            status = {}

        raw_state = _state_id(raw.get("state")) or _state_id(status.get("state"))
        result_url = raw.get("resultFileUrl") or status.get("resultFileUrl")

        job_id = raw.get("id")
        return cls(
            id=str(job_id) if job_id is not None else None,
            name=raw.get("name") or "",
            created_at=_from_epoch_ms(raw.get("createDate")),
            state=JobState(raw_state) if raw_state else JobState.UNKNOWN,
            raw_state=raw_state,
            result_url=result_url or None,
        )

    def __repr__(self):
        return f"<Job(id={self.id}, name={self.name!r}, state={self.state.value})>"


def _state_id(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("id")
    if isinstance(value, str) and value:
        return value
    return None


def _from_epoch_ms(value: Any) -> datetime:
    if value is None:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        raise UpstreamError(f"Unexpected createDate in process list: {value!r}")
