"""HTTP fetch for the collector.

One synchronous GET per call, bounded by a fixed timeout. There is no retry
and no partial-download semantics: anything short of a complete 2xx body is a
:class:`NetworkError`.

Tags:
    factspine, acquisition, http, httpx
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from factspine.core.errors import NetworkError
from factspine.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class FetchedDocument:
    """Complete response body plus the metadata the registry keeps."""

    url: str
    content: bytes
    mime_type: str
    http_status: int

    @property
    def size_bytes(self) -> int:
        return len(self.content)


class HttpFetcher:
    """Thin wrapper over ``httpx.Client``.

    Args:
        timeout_seconds: Whole-request timeout
        user_agent: Sent on every request
        transport: Optional httpx transport (``httpx.MockTransport`` in tests)
    """

    def __init__(
        self,
        *,
        timeout_seconds: float,
        user_agent: str,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client = httpx.Client(
            timeout=timeout_seconds,
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            transport=transport,
        )

    def fetch(self, url: str) -> FetchedDocument:
        """GET *url* and return the full body.

        Raises:
            NetworkError: On connection failure, timeout or non-2xx status
        """
        logger.info("fetch_started", url=url)
        try:
            response = self._client.get(url)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timed out fetching {url}", cause=e).with_context(url=url) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to fetch {url}: {e}", cause=e).with_context(url=url) from e

        if not response.is_success:
            raise NetworkError(
                f"HTTP {response.status_code} fetching {url}",
                http_status=response.status_code,
            ).with_context(url=url)

        mime_type = response.headers.get("content-type") or DEFAULT_MIME_TYPE
        document = FetchedDocument(
            url=url,
            content=response.content,
            mime_type=mime_type,
            http_status=response.status_code,
        )
        logger.info(
            "fetch_completed",
            url=url,
            http_status=response.status_code,
            size_bytes=document.size_bytes,
            mime_type=mime_type,
        )
        return document

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpFetcher:
        return self

    def __exit__(self, *args) -> None:
        self.close()


__all__ = ["DEFAULT_MIME_TYPE", "FetchedDocument", "HttpFetcher"]
