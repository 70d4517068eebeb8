# crawl_planner/crawler/fetcher.py
"""
Fetcher module: a single GET with a wall-clock timeout and a cap on bytes read.

The fetcher never decides whether a response means "blocked"; it hands back
``FetchResult(status, text)`` for any HTTP status and leaves classification to
the discovery engine.
"""
from __future__ import annotations

import asyncio
from typing import Mapping, Optional

from aiohttp import ClientError, ClientSession, ClientTimeout

from crawl_planner.crawler.models import FetchResult
from crawl_planner.errors import FetchTimeout, NetworkError
from crawl_planner.logger import get_logger

__all__ = ["BoundedFetcher", "DEFAULT_TIMEOUT", "DEFAULT_MAX_BYTES"]

DEFAULT_TIMEOUT: float = 7.0
DEFAULT_MAX_BYTES: int = 400_000

log = get_logger("fetcher")


class BoundedFetcher:
    """Handles HTTP GET with timeout, redirects and a soft byte budget."""

    def __init__(
        self,
        session: Optional[ClientSession] = None,
        *,
        user_agent: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_bytes: int = DEFAULT_MAX_BYTES,
        chunk_size: int = 16 * 1024,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        if max_bytes <= 0:
            raise ValueError("max_bytes must be > 0")
        self.session = session
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.chunk_size = chunk_size
        self._owns_session = session is None

    async def __aenter__(self) -> BoundedFetcher:
        if self.session is None:
            headers = {"User-Agent": self.user_agent} if self.user_agent else None
            self.session = ClientSession(headers=headers, raise_for_status=False)
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
        if self._owns_session:
            self.session = None

    async def fetch(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        *,
        timeout: Optional[float] = None,
        max_bytes: Optional[int] = None,
    ) -> FetchResult:
        """
        GET *url* and return its status and text.

        Raises FetchTimeout when the deadline passes before the body is read
        and NetworkError on DNS/connection failures. Partial state is dropped
        in both cases.
        """
        if not self.session:
            raise RuntimeError("Session not initialized")
        limit = self.timeout if timeout is None else timeout
        budget = self.max_bytes if max_bytes is None else max_bytes

        try:
            result = await asyncio.wait_for(self._get(url, headers, limit, budget), timeout=limit)
        except asyncio.TimeoutError as exc:
            log.debug("Timeout after %.1fs: %s", limit, url)
            raise FetchTimeout(url, limit) from exc
        except (ClientError, OSError) as exc:
            log.debug("Network error for %s: %s", url, exc)
            raise NetworkError(url, f"{exc.__class__.__name__}: {exc}") from exc

        log.debug(
            "GET %s -> HTTP %s (%d chars%s)",
            url,
            result.status,
            len(result.text),
            ", truncated" if result.truncated else "",
        )
        return result

    async def _get(
        self,
        url: str,
        headers: Optional[Mapping[str, str]],
        limit: float,
        budget: int,
    ) -> FetchResult:
        if self.session is None:
            raise RuntimeError("Session not initialized")
        async with self.session.get(
            url,
            headers=dict(headers) if headers else None,
            allow_redirects=True,
            raise_for_status=False,
            timeout=ClientTimeout(total=limit),
        ) as resp:
            status = resp.status
            stream = getattr(resp, "content", None)
            if stream is None or not hasattr(stream, "iter_chunked"):
                # no incremental reads: whole body, budget not enforced
                return FetchResult(status, await resp.text(errors="replace"))

            chunks: list[bytes] = []
            total = 0
            truncated = False
            async for chunk in stream.iter_chunked(self.chunk_size):
                total += len(chunk)
                if total > budget:
                    truncated = True
                    break
                chunks.append(chunk)
            return FetchResult(status, _decode(b"".join(chunks), resp.charset), truncated)


def _decode(body: bytes, charset: Optional[str]) -> str:
    # a cut at the byte budget may split a multi-byte sequence; replaced, not fixed
    try:
        return body.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")
