"""Exception hierarchy for the retrieval and rendering pipeline."""

from enum import Enum
from typing import Any


class DownmarkError(Exception):
    """Base exception carrying a message and a debugging context."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(message)


class InvalidUrl(DownmarkError):
    """Raised before any network activity when a URL is not absolute http(s)."""

    def __init__(self, url: str, reason: str = "URL must be absolute http(s)") -> None:
        super().__init__(f"Invalid URL '{url}': {reason}", context={"url": url})
        self.url = url


class FetchReason(str, Enum):
    """Why a fetch failed."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    NON_HTML = "nonHtml"
    NAVIGATION_FAILED = "navigationFailed"


class FetchError(DownmarkError):
    """Raised when a page cannot be retrieved."""

    def __init__(
        self,
        message: str,
        reason: FetchReason,
        url: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        if context is None:
            context = {}
        context["reason"] = reason.value
        if url is not None:
            context["url"] = url
        super().__init__(message, context=context)
        self.reason = reason
        self.url = url


class RendererNotFound(DownmarkError):
    """Raised when a renderer is requested by a name nobody registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Renderer '{name}' not found", context={"renderer": name})
        self.name = name


class ConversionServiceUnavailable(DownmarkError):
    """Raised when Markdown conversion is requested but the service is down."""


class ConversionFailed(DownmarkError):
    """Raised when the conversion service rejects or fails a request."""


class ConfigError(DownmarkError):
    """Raised when a configuration value cannot be used."""

    def __init__(self, setting: str, value: str, reason: str) -> None:
        super().__init__(
            f"Invalid value {value!r} for {setting}: {reason}",
            context={"setting": setting, "value": value},
        )
        self.setting = setting
