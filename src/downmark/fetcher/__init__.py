"""Page fetching with optional JavaScript rendering."""

from downmark.fetcher.adaptive import AdaptiveFetcher
from downmark.fetcher.base import BaseFetcher
from downmark.fetcher.browser import BrowserSession
from downmark.fetcher.http_fetcher import HttpFetcher

__all__ = [
    "AdaptiveFetcher",
    "BaseFetcher",
    "BrowserSession",
    "HttpFetcher",
]
