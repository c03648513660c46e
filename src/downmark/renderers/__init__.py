"""Per-site renderers and their registry."""

from downmark.renderers.ai import AIRenderer
from downmark.renderers.arxiv import ArxivRenderer
from downmark.renderers.base import (
    BaseRenderer,
    DisplayMetadata,
    ProcessedContent,
    RendererResponse,
)
from downmark.renderers.default import DefaultRenderer
from downmark.renderers.registry import RendererRegistry, build_registry
from downmark.renderers.wikipedia import WikipediaRenderer

__all__ = [
    "AIRenderer",
    "ArxivRenderer",
    "BaseRenderer",
    "DefaultRenderer",
    "DisplayMetadata",
    "ProcessedContent",
    "RendererRegistry",
    "RendererResponse",
    "WikipediaRenderer",
    "build_registry",
]
