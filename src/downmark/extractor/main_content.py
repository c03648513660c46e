"""Main content extraction from HTML pages."""

import logging

import trafilatura
from bs4 import BeautifulSoup
from pydantic import BaseModel
from readability import Document  # type: ignore[import-untyped]

from downmark.config import ExtractorConfig

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 200


class ExtractedContent(BaseModel):
    """Readable article content pulled out of a page."""

    html: str
    title: str | None = None
    text: str = ""
    excerpt: str | None = None
    byline: str | None = None
    site_name: str | None = None
    lang: str | None = None


def remove_boilerplate(html: str, config: ExtractorConfig | None = None) -> str:
    """Strip page chrome and return the most likely main content markup.

    Removes navigation, headers, footers, sidebars, ads, comments and
    scripts, then returns the first content container whose text is long
    enough. Falls back to the body's inner markup.
    """
    config = config or ExtractorConfig()
    if not html or not html.strip():
        return html

    soup = BeautifulSoup(html, "lxml")
    for selector in config.boilerplate_selectors:
        for elem in soup.select(selector):
            elem.decompose()

    for selector in config.content_selectors:
        for candidate in soup.select(selector):
            if len(candidate.get_text(strip=True)) > config.min_content_length:
                return str(candidate)

    if soup.body is not None:
        return soup.body.decode_contents()
    return str(soup)


def extract_content(
    html: str, url: str, config: ExtractorConfig | None = None
) -> ExtractedContent | None:
    """Extract the readable article from a page.

    Returns None when the page has no article-like content.
    """
    config = config or ExtractorConfig()
    if not html or not html.strip():
        return None

    try:
        doc = Document(html, url=url)
        content_html = doc.summary(html_partial=True)
        title = doc.short_title() or doc.title()
    except Exception:
        logger.debug("Readability extraction failed for %s", url, exc_info=True)
        return None

    if not content_html:
        return None

    text = BeautifulSoup(content_html, "lxml").get_text(separator=" ", strip=True)
    if len(text) < config.readability_char_threshold:
        logger.debug("Readable text too short for %s (%d chars)", url, len(text))
        return None

    byline = site_name = description = None
    try:
        metadata = trafilatura.extract_metadata(html, default_url=url)
    except Exception:
        logger.debug("Trafilatura metadata extraction failed", exc_info=True)
        metadata = None
    if metadata:
        byline = metadata.author
        site_name = metadata.sitename
        description = metadata.description

    lang = None
    html_tag = BeautifulSoup(html, "lxml").find("html")
    if html_tag and html_tag.get("lang"):
        lang = str(html_tag["lang"])

    return ExtractedContent(
        html=content_html,
        title=title or None,
        text=text,
        excerpt=description or text[:EXCERPT_LENGTH],
        byline=byline,
        site_name=site_name,
        lang=lang,
    )
