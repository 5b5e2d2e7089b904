"""Mock browsing collaborator with an in-memory page cache.

Nothing here touches the network: a browse returns placeholder text that is
cached per URL so that repeated visits in a run see the same page.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 256

MOCK_PAGE_TEMPLATE = (
    "Content of {url}. This is a mock response from the browser automation service. "
    "The agent should now analyze this text."
)


@dataclass
class CacheStats:
    """Cache statistics."""

    hit_count: int = 0
    miss_count: int = 0
    entry_count: int = 0


class PageCache:
    """URL-keyed page cache with LRU eviction."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        """Initialize the cache.

        Args:
            max_entries: Maximum number of pages before LRU eviction
        """
        self.max_entries = max_entries
        self._pages: OrderedDict[str, str] = OrderedDict()
        self._lock = threading.Lock()
        self._stats = CacheStats()

    def get(self, url: str) -> str | None:
        """Return the cached page text, or None if the URL was never stored."""
        with self._lock:
            content = self._pages.get(url)
            if content is None:
                self._stats.miss_count += 1
                return None

            self._pages.move_to_end(url)
            self._stats.hit_count += 1
            return content

    def store(self, url: str, content: str) -> None:
        """Store page text for a URL."""
        with self._lock:
            self._pages[url] = content
            self._pages.move_to_end(url)
            while len(self._pages) > self.max_entries:
                evicted, _ = self._pages.popitem(last=False)
                logger.debug(f"Evicted cached page: {evicted}")

    def clear(self) -> None:
        """Clear all cached pages."""
        with self._lock:
            self._pages.clear()
            self._stats = CacheStats()

    def stats(self) -> CacheStats:
        """Get cache statistics."""
        with self._lock:
            return CacheStats(
                hit_count=self._stats.hit_count,
                miss_count=self._stats.miss_count,
                entry_count=len(self._pages),
            )


class MockBrowser:
    """Stand-in for a browser automation backend."""

    def __init__(self, cache: PageCache | None = None):
        self.cache = cache if cache is not None else PageCache()

    def browse(self, url: str) -> str:
        """Pretend to open a URL and return its simplified text content.

        Args:
            url: The URL to visit

        Returns:
            Cached text if the URL was visited before, otherwise placeholder text

        Raises:
            ValueError: If the URL is blank
        """
        url = (url or "").strip()
        if not url:
            raise ValueError("URL must not be empty")

        cached = self.cache.get(url)
        if cached is not None:
            return cached

        logger.info(f"Browsing to {url} (mocked)")
        content = MOCK_PAGE_TEMPLATE.format(url=url)
        self.cache.store(url, content)
        return content

    def click(self, selector: str) -> None:
        """Click an element (mocked)."""
        logger.info(f"Clicking on element {selector!r} (mocked)")

    def type_text(self, selector: str, text: str) -> None:
        """Type text into an input element (mocked)."""
        logger.info(f"Typing {text!r} into element {selector!r} (mocked)")


# Global page cache instance
_page_cache: PageCache | None = None


def get_page_cache() -> PageCache:
    """Get or create the global page cache shared by all runs."""
    global _page_cache
    if _page_cache is None:
        _page_cache = PageCache()
    return _page_cache
