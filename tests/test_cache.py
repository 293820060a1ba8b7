from agent_registry.services.cache import ExpiringCache

from conftest import FakeClock


def test_get_returns_value_until_ttl_elapses():
    clock = FakeClock()
    cache = ExpiringCache(ttl_minutes=1, clock=clock)
    cache.set("a", {"v": 1})
    clock.now += 59
    assert cache.get("a") == {"v": 1}
    assert cache.has("a")
    clock.now += 2
    assert cache.get("a") is None
    assert cache.size() == 0


def test_missing_key_is_a_miss():
    cache = ExpiringCache()
    assert cache.get("nope") is None
    assert not cache.has("nope")


def test_set_refreshes_expiry():
    clock = FakeClock()
    cache = ExpiringCache(ttl_minutes=1, clock=clock)
    cache.set("a", 1)
    clock.now += 50
    cache.set("a", 2)
    clock.now += 50
    assert cache.get("a") == 2


def test_values_skips_and_evicts_expired_entries():
    clock = FakeClock()
    cache = ExpiringCache(ttl_minutes=1, clock=clock)
    cache.set("old", "x")
    clock.now += 30
    cache.set("new", "y")
    clock.now += 45
    assert cache.values() == ["y"]
    assert cache.size() == 1


def test_clear_empties_cache():
    cache = ExpiringCache()
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.size() == 2
    cache.clear()
    assert cache.size() == 0
