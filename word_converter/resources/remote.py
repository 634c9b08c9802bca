"""Async HTTP fetcher for images referenced by absolute URL.

WHY: Markdown images may point at http(s) URLs. They have to be
downloaded during conversion, without blocking other work, and a slow or
broken server must not abort the conversion.

HOW: RemoteFetcher wraps an httpx.AsyncClient and is used as an async
context manager so the connection pool is closed when the conversion
ends. fetch() returns the body bytes, or None on any HTTP or network
failure.

RULES:
- Use as: async with RemoteFetcher(timeout_s) as fetcher: ...
- Only http:// and https:// URLs are fetched
- Non-2xx responses, timeouts, and transport errors all return None
- Redirects are followed
- A custom transport may be injected (tests use httpx.MockTransport)
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

_REMOTE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


def is_remote_url(target: str) -> bool:
    return bool(_REMOTE_URL_RE.match(target.strip()))


class RemoteFetcher:
    """Downloads remote resources over HTTP(S)."""

    def __init__(
        self,
        timeout_s: Optional[float] = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> RemoteFetcher:
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout_s),
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> Optional[bytes]:
        """Download url and return its body, or None when it cannot be fetched."""
        if self._client is None:
            raise RuntimeError("RemoteFetcher must be used as an async context manager")
        url = url.strip()
        if not is_remote_url(url):
            return None
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Failed to fetch %s: %s", url, exc)
            return None
        if response.status_code < 200 or response.status_code >= 300:
            logger.warning("Failed to fetch %s: HTTP %d", url, response.status_code)
            return None
        return response.content
