"""
Source Crawler Module
=====================

Unauthenticated HTTP fetching for the source adapters: browser-like
headers, retries, and cookie-based session continuation across an
initial search request and its redirect target.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from urllib.parse import urljoin

import httpx

from cellar_valuation.valuation.config import DEFAULT_USER_AGENT

if TYPE_CHECKING:
    from cellar_valuation.valuation.config import GlobalConfig

logger = logging.getLogger(__name__)

BROWSER_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


@dataclass
class FetchResult:
    """Result of fetching a URL."""

    url: str
    content: bytes
    mime_type: str
    status_code: int
    fetched_at: datetime
    location: str | None = None
    cookies: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if fetch was successful."""
        return self.error is None and 200 <= self.status_code < 300

    @property
    def is_redirect(self) -> bool:
        return self.error is None and 300 <= self.status_code < 400 and bool(self.location)

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @property
    def cookie_header(self) -> str:
        """Cookies from Set-Cookie headers, formatted for a follow-up request."""
        return "; ".join(c.split(";", 1)[0].strip() for c in self.cookies if c)


class Crawler:
    """
    HTTP client for scraping external valuation sources.

    Features:
    - Browser-like User-Agent and Accept headers
    - Configurable timeout and retries with exponential backoff
    - Manual redirect handling that carries session cookies forward
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        max_retries: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self._transport = transport

    @classmethod
    def from_config(
        cls,
        config: GlobalConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> Crawler:
        """Create crawler from configuration."""
        return cls(
            user_agent=config.user_agent,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            transport=transport,
        )

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent, **BROWSER_HEADERS}
        if extra:
            headers.update(extra)
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def fetch(
        self,
        url: str,
        follow_redirects: bool = True,
        headers: dict[str, str] | None = None,
    ) -> FetchResult:
        """
        Fetch a URL.

        Network errors never propagate; they are reported through
        ``FetchResult.error``.

        Args:
            url: URL to fetch
            follow_redirects: Let httpx follow redirects
            headers: Extra request headers (e.g. Cookie)

        Returns:
            FetchResult with content or error
        """
        fetched_at = datetime.now(UTC)

        last_error: str | None = None
        for attempt in range(self.max_retries):
            try:
                async with self._client() as client:
                    response = await client.get(
                        url,
                        headers=self._headers(headers),
                        follow_redirects=follow_redirects,
                    )

                    return FetchResult(
                        url=str(response.url),
                        content=response.content,
                        mime_type=response.headers.get("content-type", "").split(";")[0].strip(),
                        status_code=response.status_code,
                        fetched_at=fetched_at,
                        location=response.headers.get("location"),
                        cookies=response.headers.get_list("set-cookie"),
                    )

            except httpx.TimeoutException:
                last_error = f"Timeout after {self.timeout}s"
                logger.warning(f"Timeout fetching {url} (attempt {attempt + 1}/{self.max_retries})")
            except httpx.HTTPError as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning(f"HTTP error fetching {url}: {e} (attempt {attempt + 1}/{self.max_retries})")

            if attempt < self.max_retries - 1:
                await asyncio.sleep(2**attempt)

        return FetchResult(
            url=url,
            content=b"",
            mime_type="",
            status_code=0,
            fetched_at=fetched_at,
            error=last_error or "Unknown error",
        )

    async def fetch_with_session(self, url: str) -> FetchResult:
        """
        Fetch a URL whose server sets a session cookie and then redirects.

        The first request does not follow redirects; cookies it sets are
        sent with the request to the redirect target (or to the same URL
        when there is no redirect).

        Args:
            url: Initial search URL

        Returns:
            FetchResult of the follow-up request
        """
        initial = await self.fetch(url, follow_redirects=False)
        if initial.error is not None:
            return initial

        target_url = urljoin(url, initial.location) if initial.is_redirect else url
        headers = {"Cookie": initial.cookie_header} if initial.cookies else None
        return await self.fetch(target_url, follow_redirects=True, headers=headers)
