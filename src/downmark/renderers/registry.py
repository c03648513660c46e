"""Renderer registry with URL-pattern dispatch."""

import logging

from downmark.config import AppConfig
from downmark.exceptions import RendererNotFound
from downmark.patterns.matcher import matches_pattern
from downmark.renderers.ai import AIRenderer
from downmark.renderers.arxiv import ArxivRenderer
from downmark.renderers.base import BaseRenderer
from downmark.renderers.default import DefaultRenderer
from downmark.renderers.wikipedia import WikipediaRenderer

logger = logging.getLogger(__name__)

REQUIRED_ATTRIBUTES = ("name", "description", "patterns", "priority", "process", "format")


class RendererRegistry:
    """Ordered renderer set with a fallback that matches every URL.

    Renderers are kept sorted by descending priority; equal priorities
    keep registration order. The fallback is never part of that list and
    is always consulted last.
    """

    def __init__(self, default: BaseRenderer | None = None):
        self.default = default or DefaultRenderer()
        self._renderers: list[BaseRenderer] = []
        self._frozen = False

    @staticmethod
    def _is_renderer(obj: object) -> bool:
        if not all(hasattr(obj, attr) for attr in REQUIRED_ATTRIBUTES):
            return False
        return (
            isinstance(getattr(obj, "name"), str)
            and bool(getattr(obj, "name"))
            and isinstance(getattr(obj, "patterns"), list)
            and isinstance(getattr(obj, "priority"), int)
            and callable(getattr(obj, "process"))
            and callable(getattr(obj, "format"))
        )

    def register(self, renderer: BaseRenderer) -> None:
        """Add a renderer.

        Raises:
            ValueError: If the object is not a renderer, its name is taken,
                or the registry is frozen.
        """
        if self._frozen:
            raise ValueError("Renderer registry is frozen")
        if not self._is_renderer(renderer):
            raise ValueError(f"Invalid renderer: {renderer!r}")
        if renderer.name == self.default.name or any(
            r.name == renderer.name for r in self._renderers
        ):
            raise ValueError(f"Renderer '{renderer.name}' is already registered")

        self._renderers.append(renderer)
        # sort() is stable, so equal priorities stay in registration order
        self._renderers.sort(key=lambda r: r.priority, reverse=True)
        logger.debug(
            "Registered renderer %s (priority %d, patterns %s)",
            renderer.name,
            renderer.priority,
            renderer.patterns,
        )

    def freeze(self) -> None:
        self._frozen = True

    def select(self, url: str) -> BaseRenderer:
        """Return the first renderer with a matching pattern, or the fallback."""
        for renderer in self._renderers:
            for pattern in renderer.patterns:
                if matches_pattern(url, pattern):
                    logger.debug("Selected renderer %s for %s (pattern %s)", renderer.name, url, pattern)
                    return renderer
        return self.default

    def get(self, name: str) -> BaseRenderer:
        """Look a renderer up by name.

        Raises:
            RendererNotFound: If no renderer has that name.
        """
        if name == self.default.name:
            return self.default
        for renderer in self._renderers:
            if renderer.name == name:
                return renderer
        raise RendererNotFound(name)

    def all_renderers(self) -> list[BaseRenderer]:
        """Every renderer in dispatch order, fallback last."""
        return [*self._renderers, self.default]


def build_registry(config: AppConfig | None = None) -> RendererRegistry:
    """Create the frozen registry with every built-in renderer."""
    config = config or AppConfig()
    registry = RendererRegistry(DefaultRenderer(config.extractor))
    registry.register(WikipediaRenderer(config.extractor))
    registry.register(ArxivRenderer(config.extractor))
    registry.register(AIRenderer(config.ai, config.extractor))
    registry.freeze()
    logger.info(
        "Renderer registry ready: %s",
        ", ".join(r.name for r in registry.all_renderers()),
    )
    return registry
