"""Resource loading for embedded images: resolver calls and remote fetches.

WHY: The block scanner needs image bytes for three kinds of targets:
wikilinks, relative paths, and http(s) URLs. The first two belong to the
host (its link resolver knows the vault), the last is a plain download.
Either way a missing or slow resource must degrade to a placeholder
instead of failing the conversion.

HOW: ResourceLoader is an async context manager created once per
conversion. load() sends remote URLs to a RemoteFetcher and everything
else to the injected resolver, bounding each call with
asyncio.wait_for().

RULES:
- Resolver contract: async (link) -> bytes | None
- A resolver that raises is treated exactly like one returning None
- Timeouts (remote_fetch_timeout_s, None = unbounded) mean not found
- Without a resolver, non-remote targets are not found
- load() never raises; failures are logged at warning level
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from word_converter.resources.remote import RemoteFetcher, is_remote_url

logger = logging.getLogger(__name__)

ResourceResolver = Callable[[str], Awaitable[Optional[bytes]]]


class ResourceLoader:
    """Loads the bytes behind image targets for a single conversion."""

    def __init__(
        self,
        resolver: Optional[ResourceResolver] = None,
        timeout_s: Optional[float] = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.resolver = resolver
        self.timeout_s = timeout_s
        self._fetcher = RemoteFetcher(timeout_s, transport=transport)
        self._opened = False

    async def __aenter__(self) -> ResourceLoader:
        await self._fetcher.__aenter__()
        self._opened = True
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._opened:
            await self._fetcher.__aexit__(*exc_info)
            self._opened = False

    async def load(self, target: str) -> Optional[bytes]:
        """Return the bytes for target, or None when it cannot be loaded."""
        target = target.strip()
        if not target:
            return None
        if is_remote_url(target):
            return await self._bounded(self._fetcher.fetch(target), target)
        if self.resolver is None:
            logger.warning("No resource resolver available for %r", target)
            return None
        try:
            pending = self.resolver(target)
        except Exception as exc:
            logger.warning("Resource resolver failed for %r: %s", target, exc)
            return None
        return await self._bounded(pending, target)

    async def _bounded(self, pending: Awaitable[Optional[bytes]], target: str) -> Optional[bytes]:
        try:
            data = await asyncio.wait_for(pending, timeout=self.timeout_s)
        except asyncio.TimeoutError:
            logger.warning("Timed out loading %r after %ss", target, self.timeout_s)
            return None
        except Exception as exc:
            logger.warning("Failed to load %r: %s", target, exc)
            return None
        if not data:
            logger.warning("Resource not found: %r", target)
            return None
        return bytes(data)
