# tests/modules/documents/test_template_cache.py
from agencyos.modules.documents.cache import TemplateCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = TemplateCache(max_size=5, ttl_seconds=300, clock=clock)
    cache.put("t1", "contract")

    clock.now += 299
    assert cache.get("t1") == "contract"

    clock.now += 2
    assert cache.get("t1") is None
    assert len(cache) == 0


def test_full_cache_evicts_oldest_entry():
    clock = FakeClock()
    cache = TemplateCache(max_size=2, ttl_seconds=300, clock=clock)
    cache.put("a", 1)
    clock.now += 1
    cache.put("b", 2)
    clock.now += 1
    cache.put("c", 3)

    assert "a" not in cache
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_replacing_a_key_does_not_evict():
    cache = TemplateCache(max_size=1, ttl_seconds=300, clock=FakeClock())
    cache.put("a", 1)
    cache.put("a", 2)
    assert cache.get("a") == 2


def test_invalidate_and_stats():
    clock = FakeClock()
    cache = TemplateCache(max_size=3, ttl_seconds=60, clock=clock)
    cache.put("a", 1)
    clock.now += 12.34

    stats = cache.stats()
    assert stats["size"] == 1
    assert stats["templates"] == [{"id": "a", "age_seconds": 12.3}]

    assert cache.invalidate("a") is True
    assert cache.invalidate("a") is False
