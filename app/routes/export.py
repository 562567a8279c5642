"""
Journey export route.

Resolves yesterday's journey export for the caller's platform account and
returns the file itself, so BI tools can consume it as a static source.
"""
import asyncio
from typing import Callable, Optional

import httpx
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from app.config import PollingConfig, settings
from app.errors import ClientDisconnectedError, CredentialsMissingError, ExportError
from app.logging_config import get_logger
from app.routes.metrics import track_export_outcome
from app.sentry_config import capture_exception
from app.services.export_service import ExportResolver
from app.services.file_relay import RelayedFile, open_file
from app.services.upstream_client import UpstreamClient


router = APIRouter(prefix="/api", tags=["export"])

logger = get_logger(component="export_route")

HttpClientFactory = Callable[[], httpx.AsyncClient]


def get_http_client_factory() -> HttpClientFactory:
    """
    Dependency returning a factory for per-request HTTP clients.

    Each export gets its own client so no cookie jar is shared between
    callers. Tests override this to plug in a mock transport.
    """
    return lambda: httpx.AsyncClient(
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        follow_redirects=True,
    )


def get_polling_config() -> PollingConfig:
    """Dependency for poll timings."""
    return PollingConfig.from_settings(settings)


@router.get("/journey-export")
async def journey_export(
    request: Request,
    email: Optional[str] = Header(default=None),
    password: Optional[str] = Header(default=None),
    client_factory: HttpClientFactory = Depends(get_http_client_factory),
    polling: PollingConfig = Depends(get_polling_config),
):
    """
    Download yesterday's journey export.

    Requires ``email`` and ``password`` request headers with the caller's
    platform credentials. Returns the report file as an attachment.
    """
    if not email or not password:
        logger.warning("credentials_missing", has_email=bool(email), has_password=bool(password))
        track_export_outcome("validation_error")
        raise CredentialsMissingError()

    http = client_factory()
    try:
        resolver = ExportResolver(UpstreamClient(http), polling)
        file_url = await _cancel_on_disconnect(request, resolver.resolve(email, password))

        relayed = await open_file(
            http,
            file_url,
            default_content_type=settings.DEFAULT_CONTENT_TYPE,
            with_digests=settings.INCLUDE_FILE_DIGESTS,
        )
    except asyncio.CancelledError:
        await http.aclose()
        track_export_outcome("cancelled")
        raise
    except ExportError as e:
        await http.aclose()
        logger.warning("export_failed", error_type=type(e).__name__, error=e.message)
        track_export_outcome(type(e).__name__)
        if e.status_code >= 500:
            capture_exception(e)
        raise
    except Exception as e:
        await http.aclose()
        logger.exception("export_crashed", error=str(e))
        track_export_outcome("internal_error")
        capture_exception(e)
        raise ExportError(str(e)) from e

    track_export_outcome("success")
    logger.info("sending_file", filename=settings.EXPORT_FILENAME, content_type=relayed.content_type)

    return StreamingResponse(
        _stream_and_close(relayed, http),
        media_type=relayed.content_type,
        headers=_file_headers(relayed),
        background=BackgroundTask(_close_all, relayed, http),
    )


def _file_headers(relayed: RelayedFile) -> dict[str, str]:
    headers = {
        "Content-Disposition": f'attachment; filename="{settings.EXPORT_FILENAME}"',
    }
    if relayed.content_length is not None:
        headers["Content-Length"] = str(relayed.content_length)
    if relayed.md5:
        headers["X-File-MD5"] = relayed.md5
    if relayed.sha256:
        headers["X-File-SHA256"] = relayed.sha256
    return headers


async def _close_all(relayed: RelayedFile, http: httpx.AsyncClient):
    # Safe to call twice: httpx ignores aclose on closed objects
    await relayed.close()
    await http.aclose()


async def _stream_and_close(relayed: RelayedFile, http: httpx.AsyncClient):
    """Relay the body, closing the download and client even if it breaks off."""
    try:
        async for chunk in relayed.body:
            yield chunk
    finally:
        await _close_all(relayed, http)


async def _cancel_on_disconnect(request: Request, work):
    """
    Await ``work``, cancelling it if the caller goes away first.

    Raises ClientDisconnectedError once the disconnect is seen.
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=settings.DISCONNECT_CHECK_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning("client_disconnected", route=request.url.path)
                task.cancel()
                raise ClientDisconnectedError()
    finally:
        if not task.done():
            task.cancel()
            # Let the task unwind its in-flight request before the client closes
            await asyncio.wait({task})
