"""Renderer contract and the shared default behavior."""

import html as html_lib
from abc import ABC

from pydantic import BaseModel, Field

from downmark.config import ExtractorConfig
from downmark.extractor.links import transform_images_to_absolute, transform_links_to_htmx
from downmark.extractor.main_content import remove_boilerplate
from downmark.models import PageData

PANEL_OPEN = '<div id="metadata-panel" class="metadata-panel" hx-swap-oob="true">'


class ProcessedContent(BaseModel):
    """Renderer output before display formatting."""

    html: str
    metadata: dict[str, str] = Field(default_factory=dict)
    renderer_name: str
    processing_notes: list[str] = Field(default_factory=list)


class DisplayMetadata(BaseModel):
    """Metadata normalized for display, with every fallback applied."""

    title: str = ""
    description: str = ""
    author: str = ""
    site_name: str = ""
    favicon: str | None = None
    canonical: str = ""
    excerpt: str = ""


class RendererResponse(BaseModel):
    """Final rendered fragment plus display metadata."""

    content: str
    metadata: DisplayMetadata
    metadata_panel: str = ""


def escape(value: str) -> str:
    """HTML-escape text, quotes included."""
    return html_lib.escape(value, quote=True).replace("&#x27;", "&#039;")


def _first(metadata: dict[str, str], *keys: str) -> str:
    for key in keys:
        value = metadata.get(key)
        if value:
            return value
    return ""


class BaseRenderer(ABC):
    """Base class for renderers.

    Subclasses set ``name``, ``description``, ``patterns`` and
    ``priority`` and usually override ``process``. ``format`` is shared.
    """

    name: str = ""
    description: str = ""
    patterns: list[str] = []
    priority: int = 0

    def __init__(self, extractor_config: ExtractorConfig | None = None):
        self.extractor_config = extractor_config or ExtractorConfig()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} priority={self.priority}>"

    def _standard_html(self, page_data: PageData, source_url: str) -> str:
        html = remove_boilerplate(page_data.html, self.extractor_config)
        html = transform_images_to_absolute(html, source_url)
        return transform_links_to_htmx(html, source_url)

    async def process(self, page_data: PageData, source_url: str) -> ProcessedContent:
        """Strip boilerplate and normalize image and link URLs."""
        return ProcessedContent(
            html=self._standard_html(page_data, source_url),
            metadata=dict(page_data.metadata),
            renderer_name=self.name,
        )

    def display_metadata(self, processed: ProcessedContent, source_url: str) -> DisplayMetadata:
        meta = processed.metadata
        return DisplayMetadata(
            title=_first(meta, "title", "og:title"),
            description=_first(meta, "description", "og:description"),
            author=_first(meta, "author", "article:author"),
            site_name=_first(meta, "siteName", "og:site_name"),
            favicon=meta.get("og:image") or None,
            canonical=meta.get("canonical") or source_url,
            excerpt=meta.get("excerpt", ""),
        )

    async def format(self, processed: ProcessedContent, source_url: str) -> RendererResponse:
        """Build display metadata, the title heading and the metadata panel."""
        metadata = self.display_metadata(processed, source_url)
        content = processed.html
        if metadata.title and "<h1" not in content:
            content = f'<h1 class="article-title">{escape(metadata.title)}</h1>' + content

        return RendererResponse(
            content=content,
            metadata=metadata,
            metadata_panel=self.generate_metadata_panel(metadata, processed.renderer_name),
        )

    def generate_metadata_panel(self, metadata: DisplayMetadata, renderer_name: str | None) -> str:
        """Render the out-of-band metadata panel; empty when there is nothing to show."""
        # The title is not repeated here; it already heads the content
        items = []
        if metadata.description:
            items.append(self._panel_item("Description", metadata.description))
        if metadata.author:
            items.append(self._panel_item("Author", metadata.author))
        if metadata.site_name:
            items.append(self._panel_item("Site", metadata.site_name))
        if renderer_name:
            items.append(self._panel_item("Renderer", renderer_name))

        if not items:
            return ""
        body = "\n".join(items)
        return f"{PANEL_OPEN}\n{body}\n</div>"

    @staticmethod
    def _panel_item(label: str, value: str, extra_class: str = "") -> str:
        css_class = f"metadata-item {extra_class}".strip()
        return (
            f'<div class="{css_class}"><span class="label">{label}:</span>'
            f'<span class="value">{escape(value)}</span></div>'
        )
