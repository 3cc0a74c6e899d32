"""TTL Cache: expiry on read, prefix invalidation and key shapes."""

from loophub.core.cache import PURGE_THRESHOLD, CacheKeys, TTLCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_get_returns_fresh_value():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("a", {"x": 1}, ttl=10)
    clock.now = 9.9
    assert cache.get("a") == {"x": 1}


def test_expired_entry_is_dropped_on_read():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("a", 1, ttl=10)
    clock.now = 10.1
    assert cache.get("a") is None
    assert cache.size() == 0


def test_missing_key_is_none():
    assert TTLCache().get("nope") is None


def test_invalidate_prefix_counts_dropped():
    cache = TTLCache()
    cache.set("forum:general:threads:1:new", [])
    cache.set("forum:general:threads:2:new", [])
    cache.set("forum:other:threads:1:new", [])
    assert cache.invalidate_prefix("forum:general:") == 2
    assert cache.get("forum:other:threads:1:new") == []


def test_delete_and_clear():
    cache = TTLCache()
    cache.set("a", 1)
    cache.set("b", 2)
    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") is None
    cache.clear()
    assert cache.size() == 0


def test_key_shapes():
    assert CacheKeys.forums() == "forums:all"
    assert CacheKeys.forum_stats() == "forums:stats"
    assert CacheKeys.forum_threads("py", 2, "top") == "forum:py:threads:2:top"
    assert CacheKeys.thread("t1") == "thread:t1"
    assert CacheKeys.thread_comments("t1", 3) == "thread:t1:comments:3"
    assert CacheKeys.search("async", "all", 1) == "search:async:all:1"


def test_thread_prefix_covers_its_comment_pages():
    cache = TTLCache()
    cache.set(CacheKeys.thread("t1"), {})
    cache.set(CacheKeys.thread_comments("t1", 1), {})
    assert cache.invalidate_prefix(CacheKeys.thread("t1")) == 2


def test_expired_entries_purged_once_store_is_large():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    for i in range(PURGE_THRESHOLD):
        cache.set(CacheKeys.search(f"q{i}", "all", 1), [], ttl=30)
    clock.now = 31
    cache.set("fresh", 1, ttl=30)
    assert cache.size() == 1
    assert cache.get("fresh") == 1


def test_live_entries_survive_purge():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    for i in range(PURGE_THRESHOLD):
        cache.set(f"k{i}", i, ttl=100)
    clock.now = 50
    cache.set("one-more", 1)
    assert cache.size() == PURGE_THRESHOLD + 1
