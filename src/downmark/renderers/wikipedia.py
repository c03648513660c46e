"""Wikipedia article renderer."""

import logging

from bs4 import BeautifulSoup

from downmark.extractor.links import transform_images_to_absolute, transform_links_to_htmx
from downmark.models import PageData
from downmark.renderers.base import (
    PANEL_OPEN,
    BaseRenderer,
    DisplayMetadata,
    ProcessedContent,
    escape,
)

logger = logging.getLogger(__name__)

CONTENT_SELECTOR = "#mw-content-text .mw-parser-output"

CLUTTER_SELECTORS = [
    ".mw-editsection",
    ".mw-jump-link",
    ".navbox",
    ".vertical-navbox",
    ".sistersitebox",
    "#toc",
    ".mw-references-wrap",
    "#References",
    "#External_links",
    "#See_also",
    ".hatnote",
    ".ambox",
    "style",
    "script",
    "noscript",
]

EXCERPT_MIN_LENGTH = 50
EXCERPT_MAX_LENGTH = 300


class WikipediaRenderer(BaseRenderer):
    """Article body only: no edit links, navboxes, reference markers or TOC."""

    name = "wikipedia"
    description = "Wikipedia article renderer with enhanced content extraction"
    patterns = ["*.wikipedia.org", "wikipedia.org"]
    priority = 10

    async def process(self, page_data: PageData, source_url: str) -> ProcessedContent:
        soup = BeautifulSoup(page_data.html, "lxml")
        content = soup.select_one(CONTENT_SELECTOR)
        if content is None:
            logger.debug("No Wikipedia article body in %s, using default processing", source_url)
            return await super().process(page_data, source_url)

        for selector in CLUTTER_SELECTORS:
            for el in content.select(selector):
                el.decompose()

        for el in content.select(".citation-needed"):
            el.replace_with(el.get_text())

        # Reference markers carry ids with quotes that break selector-based swaps
        for el in content.select("sup.reference"):
            el.decompose()
        for el in content.select("sup[id]"):
            sup_id = str(el.get("id", ""))
            if "'" in sup_id or '"' in sup_id or "FOOTNOTE" in sup_id:
                el.decompose()

        metadata = dict(page_data.metadata)
        title_html = ""
        heading = soup.select_one("#firstHeading")
        if heading is not None:
            title = heading.get_text(strip=True) or metadata.get("title", "")
            metadata["title"] = title
            title_html = f'<h1 class="article-title">{escape(title)}</h1>'

        for paragraph in content.find_all("p"):
            text = paragraph.get_text(strip=True)
            if len(text) > EXCERPT_MIN_LENGTH:
                metadata["excerpt"] = text[:EXCERPT_MAX_LENGTH]
                break

        metadata["siteName"] = "Wikipedia"

        html = title_html + content.decode_contents()
        html = transform_images_to_absolute(html, source_url)
        html = transform_links_to_htmx(html, source_url)

        return ProcessedContent(
            html=html,
            metadata=metadata,
            renderer_name=self.name,
            processing_notes=[
                "Extracted main article content",
                "Removed edit links and citations",
                "Preserved infobox and tables",
            ],
        )

    def generate_metadata_panel(self, metadata: DisplayMetadata, renderer_name: str | None) -> str:
        panel = super().generate_metadata_panel(metadata, renderer_name)
        if metadata.excerpt and panel:
            excerpt = self._panel_item("Excerpt", metadata.excerpt, "metadata-excerpt")
            panel = panel.replace(PANEL_OPEN, f"{PANEL_OPEN}\n{excerpt}", 1)
        return panel
