"""Shared Playwright browser with isolated per-request pages."""

import asyncio
import logging
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, ClassVar

from playwright.async_api import (
    Browser,
    Page,
    Playwright,
    Route,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from downmark.config import BrowserConfig
from downmark.exceptions import FetchError, FetchReason
from downmark.extractor.css import assemble_css, consolidate_styles
from downmark.fetcher.page_scripts import CHALLENGE_CLEARED, EXTRACT_PAGE_DATA
from downmark.models import (
    FetchMethod,
    FetchOptions,
    ImageInfo,
    PageData,
    VisibilityInfo,
)

logger = logging.getLogger(__name__)


class BrowserSession:
    """One long-lived Chromium process handing out isolated pages.

    The process is launched lazily on the first ``page()`` call and torn
    down by ``close()``. ``BrowserSession.shared()`` returns the
    process-wide instance used by the fetch pipeline.

    Usage:
        session = BrowserSession.shared()
        page_data = await session.get_page_data(url, FetchOptions(extract_css=True))
        ...
        await BrowserSession.shutdown_shared()
    """

    _shared: ClassVar["BrowserSession | None"] = None

    def __init__(self, config: BrowserConfig | None = None, user_agents: list[str] | None = None):
        self.config = config or BrowserConfig()
        self.user_agents = user_agents or []
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()
        self._closed = False

    @classmethod
    def shared(
        cls, config: BrowserConfig | None = None, user_agents: list[str] | None = None
    ) -> "BrowserSession":
        """Return the process-wide session, creating it on first use."""
        if cls._shared is None:
            cls._shared = cls(config, user_agents)
        return cls._shared

    @classmethod
    async def shutdown_shared(cls) -> None:
        """Close the process-wide session if one was ever created."""
        session = cls._shared
        cls._shared = None
        if session is not None:
            await session.close()

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def _ensure_browser(self) -> Browser:
        async with self._lock:
            if self._closed:
                raise FetchError(
                    "Browser session has been shut down", FetchReason.NAVIGATION_FAILED
                )
            if self._browser is None:
                logger.info("Starting Playwright browser...")
                self._playwright = await async_playwright().start()
                try:
                    self._browser = await self._playwright.chromium.launch(
                        headless=self.config.headless,
                        args=self.config.launch_args,
                    )
                except Exception:
                    await self._playwright.stop()
                    self._playwright = None
                    raise
                logger.info("Browser started (headless=%s)", self.config.headless)
            return self._browser

    async def close(self) -> None:
        """Shut the browser process down; later calls are no-ops."""
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._browser:
                try:
                    await self._browser.close()
                except Exception:
                    logger.warning("Failed to close browser", exc_info=True)
                self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None
            logger.info("Browser closed")

    def _pick_user_agent(self) -> str | None:
        return random.choice(self.user_agents) if self.user_agents else None

    async def _block_heavy_resources(self, route: Route) -> None:
        if route.request.resource_type in self.config.blocked_resource_types:
            await route.abort()
        else:
            await route.continue_()

    @asynccontextmanager
    async def page(self, block_resources: bool = True) -> AsyncIterator[Page]:
        """Open an isolated page; it is closed on every exit path."""
        browser = await self._ensure_browser()
        width, height = random.choice(self.config.viewports)
        context_options: dict[str, Any] = {
            "viewport": {"width": width, "height": height},
            "extra_http_headers": self.config.extra_headers,
        }
        user_agent = self._pick_user_agent()
        if user_agent:
            context_options["user_agent"] = user_agent

        context = await browser.new_context(**context_options)
        try:
            page = await context.new_page()
            if block_resources:
                await page.route("**/*", self._block_heavy_resources)
            yield page
        finally:
            try:
                await context.close()
            except Exception:
                logger.warning("Error closing page", exc_info=True)

    async def _wait_for_challenge(self, page: Page) -> None:
        """Give interstitial JS challenges time to finish; never fatal."""
        if self.config.challenge_timeout_ms <= 0:
            return
        try:
            await page.wait_for_function(
                CHALLENGE_CLEARED,
                arg=self.config.challenge_titles,
                timeout=self.config.challenge_timeout_ms,
            )
        except PlaywrightTimeoutError:
            logger.debug("Challenge wait timed out, continuing with current content")
        except PlaywrightError:
            logger.debug("Challenge wait failed", exc_info=True)

    async def _navigate(self, page: Page, url: str) -> None:
        try:
            await page.goto(
                url,
                wait_until=self.config.wait_strategy.value,
                timeout=self.config.navigation_timeout_ms,
                referer=self.config.referer,
            )
        except PlaywrightTimeoutError as e:
            raise FetchError(
                f"Navigation timed out after {self.config.navigation_timeout_ms}ms",
                FetchReason.TIMEOUT,
                url=url,
            ) from e
        except PlaywrightError as e:
            raise FetchError(
                f"Navigation failed: {e.message}", FetchReason.NAVIGATION_FAILED, url=url
            ) from e

    async def _evaluate(self, page: Page, url: str, options: FetchOptions) -> dict[str, Any]:
        opts = {
            "collectCssClasses": options.collect_css_classes,
            "extractVisibility": options.extract_visibility,
            "extractImages": options.extract_images,
            "extractCss": options.extract_css,
        }
        try:
            return await asyncio.wait_for(
                page.evaluate(EXTRACT_PAGE_DATA, opts),
                timeout=self.config.evaluate_timeout_ms / 1000,
            )
        except asyncio.TimeoutError as e:
            raise FetchError(
                f"Page evaluation timed out after {self.config.evaluate_timeout_ms}ms",
                FetchReason.TIMEOUT,
                url=url,
            ) from e
        except PlaywrightError as e:
            raise FetchError(
                f"Page evaluation failed: {e.message}",
                FetchReason.NAVIGATION_FAILED,
                url=url,
            ) from e

    async def get_page_data(self, url: str, options: FetchOptions | None = None) -> PageData:
        """Render a page in the browser and collect the requested extras."""
        options = options or FetchOptions()
        block_resources = not (options.extract_images or options.extract_css)

        try:
            async with self.page(block_resources=block_resources) as page:
                await self._navigate(page, url)
                await self._wait_for_challenge(page)
                raw = await self._evaluate(page, url, options)
        except FetchError:
            raise
        except PlaywrightError as e:
            raise FetchError(
                f"Browser error: {e.message}", FetchReason.NAVIGATION_FAILED, url=url
            ) from e

        return build_page_data(raw, url)


def build_page_data(raw: dict[str, Any], url: str) -> PageData:
    """Fold the in-page evaluation result into PageData."""
    html = raw.get("html", "")
    metadata = {str(k): str(v) for k, v in (raw.get("metadata") or {}).items()}

    visibility_info = None
    if raw.get("visibility"):
        v = raw["visibility"]
        visibility_info = VisibilityInfo.from_counts(
            total_elements=v.get("totalElements", 0),
            hidden_elements=v.get("hiddenElements", 0),
            invisible_elements=v.get("invisibleElements", 0),
            zero_opacity_elements=v.get("zeroOpacityElements", 0),
            offscreen_elements=v.get("offscreenElements", 0),
        )

    image_info = None
    if raw.get("images"):
        i = raw["images"]
        image_info = ImageInfo(
            total_images=i.get("totalImages", 0),
            total_svgs=i.get("totalSVGs", 0),
            images_with_dimensions=i.get("imagesWithDimensions", 0),
            images_added=i.get("imagesAdded", 0),
            svgs_with_dimensions=i.get("svgsWithDimensions", 0),
            svgs_added=i.get("svgsAdded", 0),
        )

    css_info = None
    if raw.get("css"):
        c = raw["css"]
        css_info = assemble_css(
            c.get("sheets", []),
            c.get("inline", []),
            url,
            total_inline_styles=c.get("totalInlineStyles"),
        )
        if css_info.extracted_css:
            html = consolidate_styles(html, css_info.extracted_css)

    return PageData(
        html=html,
        metadata=metadata,
        css_classes=frozenset(raw.get("cssClasses") or []),
        css_info=css_info,
        image_info=image_info,
        visibility_info=visibility_info,
        method=FetchMethod.BROWSER,
    )
