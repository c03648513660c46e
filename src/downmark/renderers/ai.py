"""LLM-refined renderer, selected only by explicit name."""

import asyncio
import logging
import time
from typing import Any

import httpx
import markdown as markdown_lib

from downmark.config import AIConfig, ExtractorConfig
from downmark.converter.markdown import html_to_markdown
from downmark.extractor.links import transform_images_to_absolute, transform_links_to_htmx
from downmark.extractor.main_content import remove_boilerplate
from downmark.models import PageData
from downmark.renderers.base import BaseRenderer, ProcessedContent

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a content refinement assistant. Output only the refined markdown, nothing else."
)

PROMPT_TEMPLATE = """You are a content refinement assistant. You receive markdown content that has been extracted from a webpage, and your job is to clean it up and make it more readable.

Source URL: {source_url}
Title: {title}
Description: {description}

Your tasks:
1. Remove any remaining boilerplate, navigation elements, footers, or promotional content
2. Fix any formatting issues or broken markdown syntax
3. Improve heading hierarchy if needed (ensure proper H1, H2, H3 structure)
4. Remove duplicate content
5. Fix broken links or references if possible
6. Preserve all important content, images, code blocks, and links
7. Keep the markdown clean and well-structured
8. DO NOT add any commentary, notes, or explanations - just output the refined markdown

Here's the markdown to refine:

{markdown}

Output only the refined markdown, nothing else."""

MARKDOWN_EXTENSIONS = ["extra", "sane_lists"]


class AIRenderer(BaseRenderer):
    """Boilerplate removal, then a text-completion pass over the Markdown.

    Any failure (disabled, missing key, HTTP error, timeout, malformed
    reply) falls back to the unrefined Markdown. ``process`` never raises.
    """

    name = "ai"
    description = "AI-powered renderer that uses LLM to refine and improve extracted content"
    patterns: list[str] = []
    priority = 100

    def __init__(
        self,
        config: AIConfig | None = None,
        extractor_config: ExtractorConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(extractor_config)
        self.config = config or AIConfig()
        self._transport = transport
        if self.config.enabled and not self.config.api_key:
            logger.warning(
                "AI renderer enabled but no API key found. "
                "Set ANTHROPIC_API_KEY or OPENAI_API_KEY."
            )

    @property
    def enabled(self) -> bool:
        return self.config.active

    @property
    def is_anthropic(self) -> bool:
        return "anthropic" in self.config.endpoint

    def _to_html(self, markdown_text: str, source_url: str) -> str:
        html = markdown_lib.markdown(markdown_text, extensions=MARKDOWN_EXTENSIONS)
        return transform_links_to_htmx(html, source_url)

    async def process(self, page_data: PageData, source_url: str) -> ProcessedContent:
        html = remove_boilerplate(page_data.html, self.extractor_config)
        html = transform_images_to_absolute(html, source_url)
        markdown_text = html_to_markdown(html)
        metadata = dict(page_data.metadata)

        if not self.enabled:
            return ProcessedContent(
                html=self._to_html(markdown_text, source_url),
                metadata=metadata,
                renderer_name=self.name,
                processing_notes=["AI rendering disabled - using unrefined Markdown"],
            )

        logger.info(
            "Starting AI refinement for %s (%d chars)", source_url, len(markdown_text)
        )
        start = time.monotonic()
        try:
            refined = await asyncio.wait_for(
                self.refine(markdown_text, metadata, source_url),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            note = f"AI refinement timed out after {self.config.timeout_seconds:g}s"
            logger.warning("%s for %s", note, source_url)
            return self._fallback(markdown_text, metadata, source_url, note)
        except Exception as e:
            logger.warning("AI refinement failed for %s", source_url, exc_info=True)
            return self._fallback(
                markdown_text, metadata, source_url, f"AI refinement failed: {e}"
            )

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info("AI refinement completed in %dms", duration_ms)
        return ProcessedContent(
            html=self._to_html(refined, source_url),
            metadata=metadata,
            renderer_name=self.name,
            processing_notes=[f"Content refined using AI ({duration_ms}ms)"],
        )

    def _fallback(
        self, markdown_text: str, metadata: dict[str, str], source_url: str, note: str
    ) -> ProcessedContent:
        return ProcessedContent(
            html=self._to_html(markdown_text, source_url),
            metadata=metadata,
            renderer_name=self.name,
            processing_notes=[f"{note} - using unrefined Markdown"],
        )

    def build_prompt(self, markdown_text: str, metadata: dict[str, str], source_url: str) -> str:
        return PROMPT_TEMPLATE.format(
            source_url=source_url,
            title=metadata.get("title") or "Unknown",
            description=metadata.get("description", ""),
            markdown=markdown_text,
        )

    async def refine(self, markdown_text: str, metadata: dict[str, str], source_url: str) -> str:
        """Send the Markdown to the completion endpoint and return its reply."""
        prompt = self.build_prompt(markdown_text, metadata, source_url)
        if self.is_anthropic:
            headers = {
                "x-api-key": self.config.api_key or "",
                "anthropic-version": "2023-06-01",
            }
            body: dict[str, Any] = {
                "model": self.config.model,
                "max_tokens": self.config.max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            }
        else:
            headers = {"Authorization": f"Bearer {self.config.api_key}"}
            body = {
                "model": self.config.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "max_tokens": self.config.max_tokens,
            }

        async with httpx.AsyncClient(
            timeout=self.config.timeout_seconds, transport=self._transport
        ) as client:
            response = await client.post(self.config.endpoint, headers=headers, json=body)
            response.raise_for_status()
            data = response.json()

        if self.is_anthropic:
            return data["content"][0]["text"].strip()
        return data["choices"][0]["message"]["content"].strip()
