"""Base class for page fetchers."""

from abc import ABC, abstractmethod

from downmark.models import FetchResult


class BaseFetcher(ABC):
    """Abstract base class for page fetchers."""

    @abstractmethod
    async def fetch(self, url: str) -> FetchResult:
        """Fetch a page and return its HTML content."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Release any held connections."""
