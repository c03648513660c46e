"""Pipeline that ties fetching, rendering and conversion together."""

import logging
import time
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from downmark.config import AppConfig, ConverterKind
from downmark.converter.frontmatter import generate_frontmatter, with_frontmatter
from downmark.converter.markdown import html_to_markdown
from downmark.converter.service import ConversionClient
from downmark.exceptions import DownmarkError, FetchError, RendererNotFound
from downmark.extractor.css import scope_css
from downmark.extractor.links import (
    LinkInfo,
    extract_all_links,
    transform_images_to_absolute,
    transform_links_to_htmx,
)
from downmark.extractor.main_content import extract_content, remove_boilerplate
from downmark.fetcher.adaptive import AdaptiveFetcher
from downmark.models import CssInfo, FetchOptions, ImageInfo, PageData, VisibilityInfo
from downmark.renderers.base import BaseRenderer, ProcessedContent, RendererResponse, escape
from downmark.renderers.registry import RendererRegistry, build_registry

logger = logging.getLogger(__name__)

READABILITY_RENDERER = "readability"


@dataclass
class StageTiming:
    """Wall-clock marks for one pass through the pipeline."""

    fetch_start: float = 0.0
    fetch_end: float = 0.0
    process_end: float = 0.0
    format_end: float = 0.0

    @property
    def fetch_duration(self) -> float:
        return max(0.0, self.fetch_end - self.fetch_start)

    @property
    def process_duration(self) -> float:
        return max(0.0, self.process_end - self.fetch_end)

    @property
    def format_duration(self) -> float:
        return max(0.0, self.format_end - self.process_end)

    @property
    def total_duration(self) -> float:
        return max(0.0, self.format_end - self.fetch_start)


@dataclass
class RenderOutcome:
    """Everything one render produced."""

    url: str
    renderer: BaseRenderer
    page_data: PageData
    processed: ProcessedContent
    response: RendererResponse
    timing: StageTiming = field(default_factory=StageTiming)


class MarkdownDocument(BaseModel):
    """A page exported as Markdown."""

    url: str
    markdown: str
    metadata: dict[str, str] = Field(default_factory=dict)
    renderer_used: str
    converter_used: ConverterKind


def url_input_swap(url: str) -> str:
    """Out-of-band swap that keeps the address bar in sync with the content."""
    return (
        f'<input type="text" name="q" id="urlInput" value="{escape(url)}" '
        'placeholder="Enter URL..." hx-swap-oob="true" />'
    )


def error_fragment(url: str, error: Exception) -> str:
    """Human-readable error block shown in place of the content."""
    message = error.message if isinstance(error, DownmarkError) else str(error)
    hint = ""
    if isinstance(error, FetchError):
        hint = (
            f'<p class="error-hint">Fetch failed ({escape(error.reason.value)}). '
            "The site may be slow, unreachable, or blocking automated access.</p>"
        )
    return (
        '<div class="error-message">'
        "<h3>Error Loading Page</h3>"
        f"<p><strong>URL:</strong> {escape(url)}</p>"
        f"<p><strong>Error:</strong> {escape(message)}</p>"
        f"{hint}"
        "</div>"
    )


class Pipeline:
    """Fetch -> select renderer -> process -> format, plus the side views.

    The pipeline owns the HTTP fetcher and the conversion client; the
    shared browser session outlives it and is closed by whoever runs the
    process (server lifespan or CLI).
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        registry: RendererRegistry | None = None,
        fetcher: AdaptiveFetcher | None = None,
        conversion: ConversionClient | None = None,
    ):
        self.config = config or AppConfig()
        self.registry = registry or build_registry(self.config)
        self.fetcher = fetcher or AdaptiveFetcher(self.config)
        self.conversion = conversion or ConversionClient(self.config.conversion)

    async def close(self) -> None:
        await self.fetcher.close()
        await self.conversion.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def resolve_renderer(self, url: str, renderer_name: str | None = None) -> BaseRenderer:
        """Pick the named renderer, or dispatch on the URL.

        Raises:
            RendererNotFound: If ``renderer_name`` is not registered.
        """
        if renderer_name:
            return self.registry.get(renderer_name)
        return self.registry.select(url)

    async def render(
        self,
        url: str,
        renderer_name: str | None = None,
        options: FetchOptions | None = None,
    ) -> RenderOutcome:
        """Run the full pipeline for one URL."""
        renderer = self.resolve_renderer(url, renderer_name)
        timing = StageTiming(fetch_start=time.monotonic())

        page_data = await self.fetcher.fetch(url, options)
        timing.fetch_end = time.monotonic()

        logger.info("Using renderer %s for %s", renderer.name, url)
        processed = await renderer.process(page_data, url)
        timing.process_end = time.monotonic()

        response = await renderer.format(processed, url)
        timing.format_end = time.monotonic()

        logger.debug(
            "Rendered %s in %.2fs (fetch %.2fs, process %.2fs)",
            url,
            timing.total_duration,
            timing.fetch_duration,
            timing.process_duration,
        )
        return RenderOutcome(
            url=url,
            renderer=renderer,
            page_data=page_data,
            processed=processed,
            response=response,
            timing=timing,
        )

    def compose_fragment(self, outcome: RenderOutcome) -> str:
        """Scoped source styles, metadata panel, content and the URL swap."""
        parts = []
        css_info = outcome.page_data.css_info
        if css_info and css_info.extracted_css:
            scoped = scope_css(css_info.extracted_css, self.config.server.container_selector)
            parts.append(f'<style id="source-styles">\n{scoped}\n</style>')
        if outcome.response.metadata_panel:
            parts.append(outcome.response.metadata_panel)
        parts.append(outcome.response.content)
        parts.append(url_input_swap(outcome.url))
        return "\n".join(parts)

    async def render_fragment(
        self,
        url: str,
        renderer_name: str | None = None,
        options: FetchOptions | None = None,
    ) -> str:
        """Render a URL to an HTML fragment; failures become an error fragment.

        Raises:
            RendererNotFound: If ``renderer_name`` is not registered; this is
                a caller error, not a page failure.
        """
        try:
            outcome = await self.render(url, renderer_name, options)
        except RendererNotFound:
            raise
        except DownmarkError as e:
            logger.warning("Error rendering %s: %s", url, e.message)
            return error_fragment(url, e)
        except Exception as e:
            logger.error("Unexpected error rendering %s", url, exc_info=True)
            return error_fragment(url, e)
        return self.compose_fragment(outcome)

    async def original_fragment(self, url: str) -> str:
        """The page as fetched, with only the URL transforms applied."""
        page_data = await self.fetcher.fetch(url)
        html = transform_images_to_absolute(page_data.html, url)
        html = transform_links_to_htmx(html, url)
        return f"{html}\n{url_input_swap(url)}"

    async def _convert(self, html: str, converter: ConverterKind) -> str:
        if converter == ConverterKind.BUILTIN:
            return html_to_markdown(html)
        if self.conversion.available is None:
            await self.conversion.health_check()
        return await self.conversion.convert(html)

    async def to_markdown(
        self,
        url: str,
        converter: ConverterKind = ConverterKind.SERVICE,
        readability: bool = False,
        frontmatter: bool = False,
    ) -> MarkdownDocument:
        """Export a page as Markdown.

        With ``readability`` the article is extracted generically instead of
        going through the URL's renderer, and the extracted byline, site
        name, excerpt and language are folded into the metadata.
        """
        options = FetchOptions(collect_css_classes=frontmatter)
        page_data = await self.fetcher.fetch(url, options)
        metadata = dict(page_data.metadata)

        if readability:
            renderer_used = READABILITY_RENDERER
            extracted = extract_content(page_data.html, url, self.config.extractor)
            if extracted:
                html = extracted.html
                if extracted.title:
                    metadata["title"] = extracted.title
                if extracted.byline:
                    metadata["author"] = extracted.byline
                if extracted.site_name:
                    metadata["site_name"] = extracted.site_name
                if extracted.excerpt:
                    metadata["excerpt"] = extracted.excerpt
                if extracted.lang:
                    metadata["lang"] = extracted.lang
            else:
                logger.debug("No readable article in %s, falling back to boilerplate removal", url)
                html = remove_boilerplate(page_data.html, self.config.extractor)
        else:
            renderer = self.registry.select(url)
            logger.info("Using renderer %s for %s", renderer.name, url)
            processed = await renderer.process(page_data, url)
            html = processed.html
            metadata = processed.metadata
            renderer_used = processed.renderer_name

        markdown = await self._convert(html, converter)
        if frontmatter:
            markdown = with_frontmatter(
                markdown, generate_frontmatter(metadata, page_data.css_classes, url)
            )

        return MarkdownDocument(
            url=url,
            markdown=markdown,
            metadata=metadata,
            renderer_used=renderer_used,
            converter_used=converter,
        )

    async def links(self, url: str) -> list[LinkInfo]:
        page_data = await self.fetcher.fetch(url)
        return extract_all_links(page_data.html, url)

    async def css(self, url: str) -> CssInfo:
        page_data = await self.fetcher.fetch(url, FetchOptions(extract_css=True))
        return page_data.css_info or CssInfo()

    async def images(self, url: str) -> ImageInfo:
        page_data = await self.fetcher.fetch(url, FetchOptions(extract_images=True))
        return page_data.image_info or ImageInfo()

    async def visibility(self, url: str) -> VisibilityInfo:
        page_data = await self.fetcher.fetch(url, FetchOptions(extract_visibility=True))
        return page_data.visibility_info or VisibilityInfo()
