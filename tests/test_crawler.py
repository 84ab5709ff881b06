"""Tests for the source crawler."""

from datetime import UTC, datetime

import httpx
import pytest

from cellar_valuation.valuation.config import GlobalConfig
from cellar_valuation.valuation.crawler import Crawler, FetchResult


def _result(**kwargs) -> FetchResult:
    defaults = {
        "url": "https://example.com",
        "content": b"",
        "mime_type": "text/html",
        "status_code": 200,
        "fetched_at": datetime.now(UTC),
    }
    defaults.update(kwargs)
    return FetchResult(**defaults)


class TestFetchResult:
    """Tests for the FetchResult dataclass."""

    def test_success(self) -> None:
        assert _result().success is True

    def test_non_2xx_is_not_success(self) -> None:
        assert _result(status_code=404).success is False
        assert _result(status_code=302, location="/x").success is False

    def test_error_is_not_success(self) -> None:
        assert _result(status_code=0, error="Timeout").success is False

    def test_is_redirect(self) -> None:
        assert _result(status_code=302, location="/next").is_redirect is True
        assert _result(status_code=302).is_redirect is False

    def test_cookie_header(self) -> None:
        result = _result(cookies=["sid=abc; Path=/; HttpOnly", "geo=eu; Secure"])
        assert result.cookie_header == "sid=abc; geo=eu"

    def test_text_decodes_utf8(self) -> None:
        assert _result(content="Château".encode()).text == "Château"


class TestCrawler:
    """Tests for Crawler fetching through a mock transport."""

    @pytest.mark.asyncio
    async def test_fetch_sends_browser_headers(self) -> None:
        seen: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            return httpx.Response(200, text="<html></html>", headers={"content-type": "text/html; charset=utf-8"})

        crawler = Crawler(user_agent="TestAgent/1.0", transport=httpx.MockTransport(handler))
        result = await crawler.fetch("https://example.com/page")

        assert result.success
        assert result.mime_type == "text/html"
        assert seen["user-agent"] == "TestAgent/1.0"
        assert seen["accept-language"] == "en-US,en;q=0.9"

    @pytest.mark.asyncio
    async def test_fetch_timeout_is_reported(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        crawler = Crawler(timeout=5.0, transport=httpx.MockTransport(handler))
        result = await crawler.fetch("https://example.com")

        assert not result.success
        assert result.error == "Timeout after 5.0s"

    @pytest.mark.asyncio
    async def test_fetch_network_error_is_reported(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        crawler = Crawler(transport=httpx.MockTransport(handler))
        result = await crawler.fetch("https://example.com")

        assert result.status_code == 0
        assert "connection refused" in result.error

    @pytest.mark.asyncio
    async def test_fetch_retries(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            if calls["n"] == 1:
                raise httpx.ReadError("reset", request=request)
            return httpx.Response(200, text="ok")

        async def no_sleep(seconds: float) -> None:
            return None

        monkeypatch.setattr("cellar_valuation.valuation.crawler.asyncio.sleep", no_sleep)
        crawler = Crawler(max_retries=2, transport=httpx.MockTransport(handler))
        result = await crawler.fetch("https://example.com")

        assert result.success
        assert calls["n"] == 2

    @pytest.mark.asyncio
    async def test_fetch_with_session_carries_cookies(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.path == "/find/opus+one":
                return httpx.Response(
                    302,
                    headers=[
                        ("location", "/wine/opus-one"),
                        ("set-cookie", "sid=abc; Path=/"),
                        ("set-cookie", "geo=eu; Path=/"),
                    ],
                )
            return httpx.Response(200, text="final page")

        crawler = Crawler(transport=httpx.MockTransport(handler))
        result = await crawler.fetch_with_session("https://example.com/find/opus+one")

        assert result.success
        assert result.text == "final page"
        assert len(requests) == 2
        assert str(requests[1].url) == "https://example.com/wine/opus-one"
        assert requests[1].headers["cookie"] == "sid=abc; geo=eu"

    @pytest.mark.asyncio
    async def test_fetch_with_session_without_redirect(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text="page")

        crawler = Crawler(transport=httpx.MockTransport(handler))
        result = await crawler.fetch_with_session("https://example.com/find/x")

        assert result.success
        assert [str(r.url) for r in requests] == ["https://example.com/find/x"] * 2
        assert "cookie" not in requests[1].headers

    def test_from_config(self) -> None:
        crawler = Crawler.from_config(GlobalConfig(user_agent="UA", request_timeout=12.0, max_retries=3))
        assert crawler.user_agent == "UA"
        assert crawler.timeout == 12.0
        assert crawler.max_retries == 3
