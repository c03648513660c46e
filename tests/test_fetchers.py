"""Tests for HttpFetcher and AdaptiveFetcher."""

from unittest.mock import AsyncMock

import httpx
import pytest

from downmark.config import AppConfig, FetcherConfig
from downmark.exceptions import FetchError, FetchReason, InvalidUrl
from downmark.fetcher import AdaptiveFetcher, HttpFetcher
from downmark.models import FetchMethod, FetchOptions, PageData

STATIC_PAGE = (
    '<html lang="en"><head><title>Static</title></head>'
    '<body><p class="a b">Plain server-rendered content.</p></body></html>'
)

GATED_PAGE = (
    "<html><head><title>App</title></head>"
    "<body><div id='root'></div><p>Please enable JavaScript to continue.</p></body></html>"
)

NOSCRIPT_PAGE = (
    "<html><body><div id='app'></div>"
    "<noscript>You need to turn on JavaScript in your browser.</noscript></body></html>"
)


def browser_page() -> PageData:
    return PageData(html="<html><body>rendered</body></html>", method=FetchMethod.BROWSER)


def mock_browser() -> AsyncMock:
    browser = AsyncMock()
    browser.get_page_data.return_value = browser_page()
    return browser


class TestHttpFetcher:
    """Tests for the lightweight fetcher."""

    @pytest.mark.asyncio
    async def test_fetch_html(self, html_transport) -> None:
        calls: list[httpx.Request] = []
        config = FetcherConfig()
        async with HttpFetcher(config, transport=html_transport(STATIC_PAGE, calls=calls)) as fetcher:
            result = await fetcher.fetch("https://example.com/")

        assert result.method == FetchMethod.LIGHTWEIGHT
        assert result.metadata["title"] == "Static"
        assert result.metadata["lang"] == "en"
        request = calls[0]
        assert request.headers["User-Agent"] in config.user_agents
        assert request.headers["Accept-Language"] == "en-US,en;q=0.9"
        assert request.headers["Pragma"] == "no-cache"

    @pytest.mark.asyncio
    async def test_non_success_is_network_error(self, html_transport) -> None:
        fetcher = HttpFetcher(FetcherConfig(), transport=html_transport("nope", status_code=503))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://example.com/")
        await fetcher.close()

        assert exc_info.value.reason == FetchReason.NETWORK
        assert exc_info.value.context["status_code"] == 503

    @pytest.mark.asyncio
    async def test_non_html_content_type(self, html_transport) -> None:
        fetcher = HttpFetcher(
            FetcherConfig(), transport=html_transport("{}", content_type="application/json")
        )

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://example.com/data.json")
        await fetcher.close()

        assert exc_info.value.reason == FetchReason.NON_HTML

    @pytest.mark.asyncio
    async def test_xhtml_is_html(self, html_transport) -> None:
        fetcher = HttpFetcher(
            FetcherConfig(), transport=html_transport(STATIC_PAGE, content_type="application/xhtml+xml")
        )

        result = await fetcher.fetch("https://example.com/")
        await fetcher.close()

        assert "Plain server-rendered content." in result.html

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        fetcher = HttpFetcher(FetcherConfig(), transport=httpx.MockTransport(handler))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://example.com/")
        await fetcher.close()

        assert exc_info.value.reason == FetchReason.TIMEOUT

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        fetcher = HttpFetcher(FetcherConfig(), transport=httpx.MockTransport(handler))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://example.com/")
        await fetcher.close()

        assert exc_info.value.reason == FetchReason.NETWORK


class TestAdaptiveFetcher:
    """Tests for the fetch strategy decision."""

    def make_fetcher(self, transport: httpx.MockTransport, browser: AsyncMock) -> AdaptiveFetcher:
        config = AppConfig()
        return AdaptiveFetcher(config, http=HttpFetcher(config.fetcher, transport=transport), browser=browser)

    @pytest.mark.asyncio
    async def test_invalid_url_makes_no_request(self, html_transport) -> None:
        calls: list[httpx.Request] = []
        browser = mock_browser()
        fetcher = self.make_fetcher(html_transport(STATIC_PAGE, calls=calls), browser)

        for url in ("", "ftp://example.com/", "/relative/path", "https://"):
            with pytest.raises(InvalidUrl):
                await fetcher.fetch(url)

        assert calls == []
        browser.get_page_data.assert_not_called()

    @pytest.mark.asyncio
    async def test_static_page_stays_lightweight(self, html_transport) -> None:
        browser = mock_browser()
        fetcher = self.make_fetcher(html_transport(STATIC_PAGE), browser)

        page = await fetcher.fetch("https://example.com/")

        assert page.method == FetchMethod.LIGHTWEIGHT
        assert page.metadata["title"] == "Static"
        assert page.css_classes == frozenset()
        browser.get_page_data.assert_not_called()

    @pytest.mark.asyncio
    async def test_collects_css_classes_without_browser(self, html_transport) -> None:
        browser = mock_browser()
        fetcher = self.make_fetcher(html_transport(STATIC_PAGE), browser)

        page = await fetcher.fetch("https://example.com/", FetchOptions(collect_css_classes=True))

        assert page.css_classes == frozenset({"a", "b"})
        browser.get_page_data.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "options",
        [
            FetchOptions(force_browser=True),
            FetchOptions(extract_css=True),
            FetchOptions(extract_images=True),
            FetchOptions(extract_visibility=True),
        ],
    )
    async def test_extraction_options_go_straight_to_browser(self, html_transport, options) -> None:
        calls: list[httpx.Request] = []
        browser = mock_browser()
        fetcher = self.make_fetcher(html_transport(STATIC_PAGE, calls=calls), browser)

        page = await fetcher.fetch("https://example.com/", options)

        assert page.method == FetchMethod.BROWSER
        assert calls == []
        browser.get_page_data.assert_awaited_once_with("https://example.com/", options)

    @pytest.mark.asyncio
    async def test_known_javascript_domain(self, html_transport) -> None:
        calls: list[httpx.Request] = []
        browser = mock_browser()
        fetcher = self.make_fetcher(html_transport(STATIC_PAGE, calls=calls), browser)

        page = await fetcher.fetch("https://gist.github.com/someone/abc")

        assert page.method == FetchMethod.BROWSER
        assert calls == []

    def test_javascript_domain_matches_whole_labels(self) -> None:
        fetcher = AdaptiveFetcher(AppConfig(), browser=mock_browser())

        assert fetcher.requires_javascript_domain("https://x.com/user")
        assert fetcher.requires_javascript_domain("https://old.reddit.com/r/python")
        assert not fetcher.requires_javascript_domain("https://notgithub.com/")
        assert not fetcher.requires_javascript_domain("https://box.com/")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [GATED_PAGE, NOSCRIPT_PAGE])
    async def test_javascript_gated_page_escalates(self, html_transport, body: str) -> None:
        browser = mock_browser()
        fetcher = self.make_fetcher(html_transport(body), browser)

        page = await fetcher.fetch("https://example.com/app")

        assert page.method == FetchMethod.BROWSER
        browser.get_page_data.assert_awaited_once()

    def test_decorative_noscript_is_not_a_gate(self) -> None:
        fetcher = AdaptiveFetcher(AppConfig(), browser=mock_browser())
        html = '<html><body><p>Content</p><noscript><img src="pixel.gif"></noscript></body></html>'

        assert not fetcher.looks_javascript_gated(html)

    @pytest.mark.asyncio
    async def test_non_html_fails_fast(self, html_transport) -> None:
        browser = mock_browser()
        fetcher = self.make_fetcher(html_transport("%PDF", content_type="application/pdf"), browser)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://example.com/paper.pdf")

        assert exc_info.value.reason == FetchReason.NON_HTML
        browser.get_page_data.assert_not_called()

    @pytest.mark.asyncio
    async def test_lightweight_failure_escalates(self, html_transport) -> None:
        browser = mock_browser()
        fetcher = self.make_fetcher(html_transport("blocked", status_code=403), browser)

        page = await fetcher.fetch("https://example.com/")

        assert page.method == FetchMethod.BROWSER

    @pytest.mark.asyncio
    async def test_browser_failure_chains_lightweight_error(self, html_transport) -> None:
        browser = AsyncMock()
        browser.get_page_data.side_effect = FetchError(
            "Navigation failed", FetchReason.NAVIGATION_FAILED, url="https://example.com/"
        )
        fetcher = self.make_fetcher(html_transport("blocked", status_code=403), browser)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://example.com/")

        assert exc_info.value.reason == FetchReason.NAVIGATION_FAILED
        cause = exc_info.value.__cause__
        assert isinstance(cause, FetchError)
        assert cause.reason == FetchReason.NETWORK

    @pytest.mark.asyncio
    async def test_close_closes_http_only(self, html_transport) -> None:
        browser = mock_browser()
        http = AsyncMock()
        fetcher = AdaptiveFetcher(AppConfig(), http=http, browser=browser)

        await fetcher.close()

        http.close.assert_awaited_once()
        browser.close.assert_not_called()
