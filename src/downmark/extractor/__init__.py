"""Content transforms applied to fetched HTML."""

from downmark.extractor.css import assemble_css, consolidate_styles, scope_css
from downmark.extractor.links import (
    LinkInfo,
    extract_all_links,
    transform_images_to_absolute,
    transform_links_to_htmx,
)
from downmark.extractor.main_content import ExtractedContent, extract_content, remove_boilerplate
from downmark.extractor.metadata import collect_css_classes, extract_metadata

__all__ = [
    "ExtractedContent",
    "LinkInfo",
    "assemble_css",
    "collect_css_classes",
    "consolidate_styles",
    "extract_all_links",
    "extract_content",
    "extract_metadata",
    "remove_boilerplate",
    "scope_css",
    "transform_images_to_absolute",
    "transform_links_to_htmx",
]
