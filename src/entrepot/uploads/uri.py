"""Upload source for a remote HTTP(S) URL.

The URL is fetched on demand with httpx. Every request carries a bounded
timeout so a slow remote cannot block the calling put() indefinitely.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterator
from urllib.parse import unquote, urlsplit, urlunsplit

import httpx

from entrepot.config import load_fetch_timeout
from entrepot.errors import UploadError
from entrepot.upload import DEFAULT_CHUNK_SIZE, Upload

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Entrepot-Fetch/1.0"


def _sanitize_url(url: str) -> str:
    """Strip userinfo, query and fragment from a URL for messages and logs."""
    try:
        parts = urlsplit(url)
        host = parts.hostname or ""
        if not host:
            return "unknown"
        port = f":{parts.port}" if parts.port else ""
        return urlunsplit((parts.scheme, f"{host}{port}", parts.path, "", ""))
    except ValueError:
        return "unknown"


class URIUpload(Upload):
    """A file behind an HTTP(S) URL."""

    def __init__(
        self,
        url: str,
        *,
        name: str | None = None,
        timeout: float | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the URL upload.

        Args:
            url: Absolute HTTP(S) URL of the file.
            name: Explicit name; defaults to the last path segment of the URL.
            timeout: Fetch timeout in seconds; defaults to
                ENTREPOT_FETCH_TIMEOUT_SECONDS or 30.
            http_client: Optional httpx.Client for dependency injection (testing).
        """
        self.url = url
        self._name = name
        self._timeout = timeout
        self._http_client = http_client

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else load_fetch_timeout()

    def name(self) -> str:
        if self._name:
            return self._name
        try:
            parts = urlsplit(self.url)
        except ValueError:
            return "upload"
        basename = posixpath.basename(unquote(parts.path).rstrip("/"))
        return basename or parts.hostname or "upload"

    def path(self) -> str | None:
        return None

    def _client(self) -> tuple[httpx.Client, bool]:
        if self._http_client is not None:
            return self._http_client, False
        client = httpx.Client(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": DEFAULT_USER_AGENT},
        )
        return client, True

    def _fetch_error(self, exc: httpx.HTTPError) -> UploadError:
        safe_url = _sanitize_url(self.url)
        if isinstance(exc, httpx.HTTPStatusError):
            message = f"Could not fetch {safe_url}: HTTP {exc.response.status_code}"
        elif isinstance(exc, httpx.TimeoutException):
            message = f"Could not fetch {safe_url}: timed out after {self.timeout}s"
        else:
            message = f"Could not fetch {safe_url}: {type(exc).__name__}"
        logger.warning("%s", message)
        return UploadError(message, cause=exc)

    def contents(self) -> bytes:
        client, should_close = self._client()
        try:
            response = client.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            return response.content
        except httpx.HTTPError as e:
            raise self._fetch_error(e) from e
        finally:
            if should_close:
                client.close()

    def chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        client, should_close = self._client()
        try:
            with client.stream("GET", self.url, timeout=self.timeout) as response:
                response.raise_for_status()
                yield from response.iter_bytes(chunk_size)
        except httpx.HTTPError as e:
            raise self._fetch_error(e) from e
        finally:
            if should_close:
                client.close()

    def __repr__(self) -> str:
        return f"URIUpload(url={_sanitize_url(self.url)!r})"
