"""Downloads roster source files (images, PDFs) for extraction."""

import hashlib
from dataclasses import dataclass

import httpx
import structlog

from roster_sync.config import settings
from roster_sync.errors import FileDownloadError

logger = structlog.get_logger()

DEFAULT_MEDIA_TYPE = "image/jpeg"


@dataclass(frozen=True)
class FetchedFile:
    """A downloaded roster file."""

    content: bytes
    media_type: str
    fingerprint: str


class FileFetcher:
    """Fetches roster files over HTTP.

    The sha256 fingerprint of the content lets ingestion recognise a
    re-upload of the same file.
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None):
        """Initialize fetcher.

        Args:
            http_client: Optional httpx client for dependency injection
        """
        self._http = http_client or httpx.AsyncClient(
            timeout=settings.http_timeout_seconds,
            follow_redirects=True,
        )

    async def fetch(self, url: str) -> FetchedFile:
        """Download a file.

        Args:
            url: Location of the roster file

        Returns:
            FetchedFile with bytes, MIME type and fingerprint

        Raises:
            FileDownloadError: On transport errors or non-2xx responses
        """
        try:
            response = await self._http.get(url)
        except httpx.HTTPError as e:
            raise FileDownloadError(f"Failed to download file: {e}") from e

        if not response.is_success:
            raise FileDownloadError(
                f"Failed to download file: {response.status_code} "
                f"{response.reason_phrase}"
            )

        content = response.content
        media_type = response.headers.get("content-type", DEFAULT_MEDIA_TYPE)
        media_type = media_type.split(";")[0].strip() or DEFAULT_MEDIA_TYPE
        logger.info("roster file downloaded", url=url, size=len(content))
        return FetchedFile(
            content=content,
            media_type=media_type,
            fingerprint=hashlib.sha256(content).hexdigest(),
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()
