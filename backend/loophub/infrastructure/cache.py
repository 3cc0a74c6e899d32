"""Shared Response Cache: the process-wide TTLCache used by read-heavy routes.

Invariants:
    - Writes that change a cached listing invalidate it (forums:*, forum:<slug>:*, thread:<id>*)
    - Search results are only dropped by their 30s TTL
"""

from loophub.core.cache import TTLCache

cache = TTLCache()


def invalidate_forum(slug: str | None = None) -> None:
    """Drop cached forum listings, stats and (when given) one forum's thread pages."""
    cache.invalidate_prefix("forums:")
    if slug:
        cache.invalidate_prefix(f"forum:{slug}:")


def invalidate_thread_listings() -> None:
    """Drop every forum's thread pages; used when the forum slug is not at hand."""
    cache.invalidate_prefix("forums:")
    cache.invalidate_prefix("forum:")


def invalidate_thread(thread_id) -> None:
    """Drop a thread's detail and comment pages, plus the listings showing it."""
    cache.invalidate_prefix(f"thread:{thread_id}")
    invalidate_thread_listings()
