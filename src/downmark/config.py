"""Configuration management with Pydantic models."""

import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from downmark.exceptions import ConfigError

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:133.0) Gecko/20100101 Firefox/133.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
]


class WaitStrategy(str, Enum):
    """Navigation readiness event the browser waits for."""

    LOAD = "load"
    DOMCONTENTLOADED = "domcontentloaded"
    NETWORKIDLE = "networkidle"
    COMMIT = "commit"


class ConverterKind(str, Enum):
    """HTML to Markdown backend."""

    SERVICE = "service"
    BUILTIN = "builtin"


class FetcherConfig(BaseModel):
    """Configuration for the lightweight fetch and the escalation heuristics."""

    timeout_ms: int = Field(default=20000, ge=1000, le=120000)
    user_agents: list[str] = Field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    headers: dict[str, str] = Field(
        default_factory=lambda: {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
    )
    # Hostnames (and their subdomains) that always go through the browser
    js_required_domains: list[str] = Field(
        default_factory=lambda: [
            "twitter.com",
            "x.com",
            "instagram.com",
            "facebook.com",
            "linkedin.com",
            "reddit.com",
            "medium.com",
            "substack.com",
            "github.com",
        ]
    )
    # Case-insensitive markers of a JS-gated page in lightweight markup
    js_required_indicators: list[str] = Field(
        default_factory=lambda: [
            "enable javascript",
            "javascript is required",
            "javascript disabled",
            "please enable javascript",
            "this page requires javascript",
        ]
    )
    # Words that make a <noscript> block instructional rather than decorative
    noscript_keywords: list[str] = Field(
        default_factory=lambda: ["javascript", "enable", "browser"]
    )
    html_content_types: list[str] = Field(
        default_factory=lambda: ["text/html", "application/xhtml+xml"]
    )


class BrowserConfig(BaseModel):
    """Configuration for the shared automated browser."""

    headless: bool = True
    wait_strategy: WaitStrategy = WaitStrategy.DOMCONTENTLOADED
    navigation_timeout_ms: int = Field(default=60000, ge=1000, le=300000)
    challenge_timeout_ms: int = Field(default=15000, ge=0, le=120000)
    evaluate_timeout_ms: int = Field(default=30000, ge=1000, le=300000)
    referer: str = "https://www.google.com/"
    challenge_titles: list[str] = Field(
        default_factory=lambda: ["Just a moment", "Checking"]
    )
    blocked_resource_types: list[str] = Field(
        default_factory=lambda: ["image", "font", "media", "manifest", "other"]
    )
    viewports: list[tuple[int, int]] = Field(
        default_factory=lambda: [(1920, 1080), (1536, 864), (1440, 900)]
    )
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-blink-features=AutomationControlled",
            "--disable-infobars",
            "--disable-dev-shm-usage",
            "--lang=en-US,en",
        ]
    )
    extra_headers: dict[str, str] = Field(
        default_factory=lambda: {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Upgrade-Insecure-Requests": "1",
        }
    )


class ExtractorConfig(BaseModel):
    """Configuration for content extraction."""

    boilerplate_selectors: list[str] = Field(
        default_factory=lambda: [
            "nav",
            "header",
            "footer",
            "aside",
            ".sidebar",
            ".ads",
            ".comments",
            ".related-posts",
            ".advertisement",
            "script",
            "style",
            "noscript",
        ]
    )
    content_selectors: list[str] = Field(
        default_factory=lambda: [
            "article",
            "main",
            '[role="main"]',
            ".content",
            "#content",
        ]
    )
    min_content_length: int = Field(default=200, ge=0)
    readability_char_threshold: int = Field(default=100, ge=0)


class ConversionConfig(BaseModel):
    """Configuration for the external HTML to Markdown service."""

    service_url: str = "http://localhost:3001"
    timeout_seconds: float = Field(default=30.0, gt=0)
    health_timeout_seconds: float = Field(default=2.0, gt=0)
    to_format: str = "markdown"


class AIConfig(BaseModel):
    """Configuration for the AI-assisted renderer."""

    enabled: bool = False
    api_key: str | None = None
    endpoint: str = "https://api.anthropic.com/v1/messages"
    model: str = "claude-3-5-haiku-20241022"
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_tokens: int = Field(default=4096, ge=1)

    @property
    def active(self) -> bool:
        return self.enabled and bool(self.api_key)


class ServerConfig(BaseModel):
    """Configuration for the HTTP surface."""

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    graceful_timeout_seconds: int = Field(default=10, ge=0, le=300)
    container_selector: str = "#content"


def _env_int(env: Mapping[str, str], name: str) -> int:
    try:
        return int(env[name])
    except ValueError as e:
        raise ConfigError(name, env[name], "expected an integer") from e


class AppConfig(BaseModel):
    """Main application configuration."""

    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)
    conversion: ConversionConfig = Field(default_factory=ConversionConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    verbose: bool = False

    @classmethod
    def from_toml(cls, path: Path) -> "AppConfig":
        """Load config from a TOML file."""
        import tomllib

        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls.model_validate(data)

    @classmethod
    def from_env(cls, base: "AppConfig | None" = None) -> "AppConfig":
        """Overlay the deployment environment variables on a base config."""
        config = base.model_copy(deep=True) if base else cls()
        env = os.environ

        if "BROWSER_WAIT_STRATEGY" in env:
            # Puppeteer-style names map onto Playwright's single networkidle
            strategy = env["BROWSER_WAIT_STRATEGY"].lower()
            if strategy.startswith("networkidle"):
                strategy = "networkidle"
            try:
                config.browser.wait_strategy = WaitStrategy(strategy)
            except ValueError as e:
                choices = ", ".join(s.value for s in WaitStrategy)
                raise ConfigError(
                    "BROWSER_WAIT_STRATEGY", env["BROWSER_WAIT_STRATEGY"], f"expected one of {choices}"
                ) from e
        if "BROWSER_TIMEOUT" in env:
            config.browser.navigation_timeout_ms = _env_int(env, "BROWSER_TIMEOUT")
        if "BROWSER_WAIT_TIMEOUT" in env:
            config.browser.challenge_timeout_ms = _env_int(env, "BROWSER_WAIT_TIMEOUT")
        if "BROWSER_REFERER" in env:
            config.browser.referer = env["BROWSER_REFERER"]
        if "BROWSER_HEADLESS" in env:
            config.browser.headless = env["BROWSER_HEADLESS"].strip().lower() in {
                "1", "true", "yes", "on",
            }

        if "PANDOC_SERVICE_URL" in env:
            config.conversion.service_url = env["PANDOC_SERVICE_URL"]

        api_key = env.get("ANTHROPIC_API_KEY") or env.get("OPENAI_API_KEY")
        if api_key:
            config.ai.api_key = api_key
        if "AI_RENDERER_ENABLED" in env:
            config.ai.enabled = env["AI_RENDERER_ENABLED"] == "true"
        if "AI_RENDERER_ENDPOINT" in env:
            config.ai.endpoint = env["AI_RENDERER_ENDPOINT"]
        if "AI_RENDERER_MODEL" in env:
            config.ai.model = env["AI_RENDERER_MODEL"]
        if "AI_RENDERER_TIMEOUT" in env:
            config.ai.timeout_seconds = _env_int(env, "AI_RENDERER_TIMEOUT") / 1000

        if "HOST" in env:
            config.server.host = env["HOST"]
        if "PORT" in env:
            config.server.port = _env_int(env, "PORT")

        return config
