"""Cheap-first fetching that escalates to a real browser when needed."""

import logging

from bs4 import BeautifulSoup

from downmark.config import AppConfig
from downmark.exceptions import FetchError, FetchReason
from downmark.extractor.metadata import collect_css_classes
from downmark.fetcher.browser import BrowserSession
from downmark.fetcher.http_fetcher import HttpFetcher
from downmark.models import FetchOptions, PageData
from downmark.utils.url_utils import get_hostname, validate_url

logger = logging.getLogger(__name__)


class AdaptiveFetcher:
    """Fetch a page over plain HTTP, falling back to the browser.

    The browser is used directly when an extraction option needs a live
    DOM or the host is known to need JavaScript. Otherwise the lightweight
    fetch runs first, and its result is discarded in favor of the browser
    when it fails or looks JavaScript-gated.
    """

    def __init__(
        self,
        config: AppConfig,
        http: HttpFetcher | None = None,
        browser: BrowserSession | None = None,
    ):
        self.config = config
        self.http = http or HttpFetcher(config.fetcher)
        self._browser = browser

    @property
    def browser(self) -> BrowserSession:
        if self._browser is None:
            self._browser = BrowserSession.shared(
                self.config.browser, self.config.fetcher.user_agents
            )
        return self._browser

    async def close(self) -> None:
        """Close the HTTP client; the shared browser is closed on shutdown."""
        await self.http.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def requires_javascript_domain(self, url: str) -> bool:
        hostname = get_hostname(url)
        if not hostname:
            return False
        return any(
            hostname == domain or hostname.endswith("." + domain)
            for domain in self.config.fetcher.js_required_domains
        )

    def looks_javascript_gated(self, html: str) -> bool:
        """Check lightweight markup for signs that the real content needs JS."""
        lowered = html.lower()
        if any(indicator in lowered for indicator in self.config.fetcher.js_required_indicators):
            return True

        if "<noscript" not in lowered:
            return False
        soup = BeautifulSoup(html, "lxml")
        keywords = self.config.fetcher.noscript_keywords
        for noscript in soup.find_all("noscript"):
            text = noscript.get_text(" ", strip=True).lower()
            if any(keyword in text for keyword in keywords):
                return True
        return False

    async def fetch(self, url: str, options: FetchOptions | None = None) -> PageData:
        """Fetch a page with the cheapest strategy that yields real content.

        Raises:
            InvalidUrl: If the URL is not absolute http(s); nothing is fetched.
            FetchError: If the browser fails, or the page is not HTML.
        """
        url = validate_url(url)
        options = options or FetchOptions()

        if options.needs_browser:
            logger.info("Using browser for %s (extraction options require it)", url)
            return await self.browser.get_page_data(url, options)

        if self.requires_javascript_domain(url):
            logger.info("Using browser for %s (known JavaScript-heavy domain)", url)
            return await self.browser.get_page_data(url, options)

        try:
            result = await self.http.fetch(url)
        except FetchError as e:
            if e.reason == FetchReason.NON_HTML:
                raise
            logger.info("Lightweight fetch failed for %s (%s), escalating to browser", url, e)
            try:
                return await self.browser.get_page_data(url, options)
            except FetchError as browser_error:
                raise browser_error from e

        if self.looks_javascript_gated(result.html):
            logger.info("Page %s requires JavaScript, escalating to browser", url)
            return await self.browser.get_page_data(url, options)

        logger.info("Fetched %s with lightweight request", url)
        page_data = PageData.from_fetch_result(result)
        if options.collect_css_classes:
            page_data = page_data.model_copy(
                update={"css_classes": collect_css_classes(result.html)}
            )
        return page_data
