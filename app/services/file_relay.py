"""
File relay.

Opens the finished export (usually a pre-signed object-storage URL) and
hands its body back as an async byte stream.
"""
import hashlib
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional

import httpx

from app.errors import DownloadError
from app.logging_config import get_logger
from app.routes.metrics import track_bytes_relayed


logger = get_logger(component="file_relay")


@dataclass
class RelayedFile:
    """An open download ready to be streamed to the caller."""
    content_type: str
    content_length: Optional[int]
    body: AsyncIterator[bytes]
    close: Callable[[], Awaitable[None]]
    md5: Optional[str] = None
    sha256: Optional[str] = None


async def open_file(
    http: httpx.AsyncClient,
    url: str,
    default_content_type: str,
    with_digests: bool = False,
) -> RelayedFile:
    """
    Start downloading ``url``.

    The response stays open until ``close`` is awaited. With
    ``with_digests`` the whole body is read into memory first so MD5 and
    SHA-256 can be reported.
    """
    logger.info("file_relay_started", with_digests=with_digests)
    try:
        response = await http.send(http.build_request("GET", url), stream=True)
    except httpx.HTTPError as e:
        raise DownloadError(f"Failed to download file: {e}") from e

    if not response.is_success:
        await response.aclose()
        raise DownloadError(
            f"Failed to download file: {response.status_code} {response.reason_phrase}",
            upstream_status=response.status_code,
        )

    content_type = response.headers.get("content-type") or default_content_type

    if with_digests:
        try:
            data = await response.aread()
        except httpx.HTTPError as e:
            raise DownloadError(f"Failed to download file: {e}") from e
        finally:
            await response.aclose()
        md5 = hashlib.md5(data).hexdigest()
        sha256 = hashlib.sha256(data).hexdigest()
        logger.info("file_digests", size_bytes=len(data), md5=md5, sha256=sha256)
        track_bytes_relayed(len(data))
        return RelayedFile(
            content_type=content_type,
            content_length=len(data),
            body=_single_chunk(data),
            close=response.aclose,
            md5=md5,
            sha256=sha256,
        )

    # Content-Length describes the encoded body; httpx hands back decoded bytes
    length = response.headers.get("content-length")
    if response.headers.get("content-encoding"):
        length = None
    return RelayedFile(
        content_type=content_type,
        content_length=int(length) if length and length.isdigit() else None,
        body=_counted(response.aiter_bytes()),
        close=response.aclose,
    )


async def _counted(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    total = 0
    async for chunk in chunks:
        total += len(chunk)
        track_bytes_relayed(len(chunk))
        yield chunk
    logger.info("file_relay_finished", size_bytes=total)


async def _single_chunk(data: bytes) -> AsyncIterator[bytes]:
    yield data
