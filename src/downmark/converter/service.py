"""Client for the external HTML to Markdown conversion service."""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from downmark.config import ConversionConfig
from downmark.exceptions import ConversionFailed, ConversionServiceUnavailable

logger = logging.getLogger(__name__)


class ConversionRequest(BaseModel):
    """One document to convert; serialized with the service's field names."""

    html: str
    from_format: str = Field(default="html", serialization_alias="from")
    to: str = "markdown"
    extra_args: list[str] = Field(default_factory=list, serialization_alias="extraArgs")

    def payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ConversionResult(BaseModel):
    """Service reply for one document."""

    success: bool
    markdown: str | None = None
    error: str | None = None
    length: int | None = None


class ConversionClient:
    """Async client for the conversion service.

    The client remembers the outcome of the last health check: once the
    service has been found unhealthy, ``convert`` fails fast with
    ``ConversionServiceUnavailable`` until a later check succeeds.

    Usage:
        async with ConversionClient(config) as client:
            if await client.health_check():
                markdown = await client.convert(html)
    """

    def __init__(
        self,
        config: ConversionConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or ConversionConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.available: bool | None = None

    @property
    def base_url(self) -> str:
        return self.config.service_url.rstrip("/")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def health_check(self) -> bool:
        """Probe the service and cache the result."""
        logger.debug("Checking conversion service health at %s/health", self.base_url)
        try:
            response = await self._get_client().get(
                "/health", timeout=self.config.health_timeout_seconds
            )
            healthy = response.json().get("status") == "healthy"
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning("Conversion service health check failed: %s", e)
            healthy = False

        self.available = healthy
        logger.info(
            "Conversion service at %s is %s",
            self.base_url,
            "available" if healthy else "unavailable",
        )
        return healthy

    def _ensure_available(self) -> None:
        if self.available is False:
            raise ConversionServiceUnavailable(
                "Conversion service is unavailable", context={"service_url": self.base_url}
            )

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._get_client().post(path, json=payload)
        except httpx.HTTPError as e:
            raise ConversionFailed(
                f"Conversion request failed: {e}", context={"service_url": self.base_url}
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise ConversionFailed(
                f"Conversion service returned invalid JSON (HTTP {response.status_code})",
                context={"status_code": response.status_code},
            ) from e

        if not response.is_success:
            error = data.get("error") if isinstance(data, dict) else None
            raise ConversionFailed(
                error or f"HTTP {response.status_code}",
                context={"status_code": response.status_code},
            )
        return data

    def _parse_result(self, data: Any) -> ConversionResult:
        try:
            return ConversionResult.model_validate(data)
        except ValidationError as e:
            raise ConversionFailed(
                "Conversion service returned a malformed payload",
                context={"service_url": self.base_url, "errors": e.errors()},
            ) from e

    async def convert(
        self,
        html: str,
        from_format: str = "html",
        to: str | None = None,
        extra_args: list[str] | None = None,
    ) -> str:
        """Convert one HTML document and return the Markdown text.

        Raises:
            ConversionServiceUnavailable: If the last health check failed.
            ConversionFailed: If the service reports an error.
        """
        self._ensure_available()
        request = ConversionRequest(
            html=html,
            from_format=from_format,
            to=to or self.config.to_format,
            extra_args=extra_args or [],
        )
        data = await self._post("/convert", request.payload())
        result = self._parse_result(data)
        if not result.success or result.markdown is None:
            raise ConversionFailed(result.error or "Conversion failed")
        return result.markdown

    async def convert_batch(self, requests: list[ConversionRequest]) -> list[ConversionResult]:
        """Convert several documents in one round trip."""
        self._ensure_available()
        data = await self._post(
            "/convert/batch", {"conversions": [r.payload() for r in requests]}
        )
        results = data.get("results", []) if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise ConversionFailed(
                "Conversion service returned a malformed batch payload",
                context={"service_url": self.base_url},
            )
        return [self._parse_result(item) for item in results]
