"""
Error taxonomy for the export workflow.

Every error carries the HTTP status it maps to and the message shown to
the caller in the ``{"success": false, "error": ...}`` envelope.
"""
from typing import Optional


class ExportError(Exception):
    """Base class for failures surfaced to the HTTP boundary."""
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CredentialsMissingError(ExportError):
    """The caller did not send both credential headers."""
    status_code = 400

    def __init__(self, message: str = "Email and password are required"):
        super().__init__(message)


class AuthError(ExportError):
    """Login was rejected or did not yield a usable session."""
    status_code = 401
    public_message = "Authentication failed: Invalid credentials"

    def __init__(self, message: str):
        super().__init__(message)


class UpstreamError(ExportError):
    """A platform call (other than login) failed."""

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body


class JobFailedError(ExportError):
    """The export job reached ERROR or CANCELLED."""

    def __init__(self, state: str, job_id: Optional[str] = None):
        super().__init__(f"Export job failed with state: {state}")
        self.state = state
        self.job_id = job_id


class PollingTimeoutError(ExportError, TimeoutError):
    """The export job did not reach a terminal state in time."""

    def __init__(self, max_wait: float, attempts: int = 0):
        super().__init__(
            f"Polling timeout: export job did not complete within {max_wait:g} seconds"
        )
        self.max_wait = max_wait
        self.attempts = attempts


class DownloadError(ExportError):
    """Fetching the finished file failed."""

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class ClientDisconnectedError(ExportError):
    """The caller went away while the export was being resolved."""
    status_code = 499

    def __init__(self, message: str = "Client disconnected"):
        super().__init__(message)
