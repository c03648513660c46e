"""Lightweight HTTP fetcher for static pages."""

import logging
import random

import httpx

from downmark.config import FetcherConfig
from downmark.exceptions import FetchError, FetchReason
from downmark.extractor.metadata import extract_metadata
from downmark.fetcher.base import BaseFetcher
from downmark.models import FetchMethod, FetchResult

logger = logging.getLogger(__name__)


class HttpFetcher(BaseFetcher):
    """Plain HTTP fetcher without JavaScript rendering."""

    def __init__(self, config: FetcherConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self.config.headers,
                follow_redirects=True,
                timeout=self.config.timeout_ms / 1000,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _pick_user_agent(self) -> str:
        return random.choice(self.config.user_agents)

    def _is_html(self, content_type: str) -> bool:
        content_type = content_type.lower()
        return any(kind in content_type for kind in self.config.html_content_types)

    async def fetch(self, url: str) -> FetchResult:
        """Fetch a page via HTTP, raising FetchError on any failure."""
        client = self._get_client()
        try:
            response = await client.get(url, headers={"User-Agent": self._pick_user_agent()})
        except httpx.TimeoutException as e:
            raise FetchError(
                f"Timed out fetching {url}", FetchReason.TIMEOUT, url=url
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(
                f"Network error fetching {url}: {e}", FetchReason.NETWORK, url=url
            ) from e

        if not response.is_success:
            raise FetchError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                FetchReason.NETWORK,
                url=url,
                context={"status_code": response.status_code},
            )

        content_type = response.headers.get("content-type", "")
        if not self._is_html(content_type):
            raise FetchError(
                f"Expected HTML but got {content_type or 'no content type'}",
                FetchReason.NON_HTML,
                url=url,
                context={"content_type": content_type},
            )

        html = response.text
        return FetchResult(
            html=html,
            method=FetchMethod.LIGHTWEIGHT,
            source_url=str(response.url),
            metadata=extract_metadata(html),
        )
