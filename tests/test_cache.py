from datetime import timedelta

from chatadapter.cache import (
    CacheManager,
    bing_cache_manager,
    cursor_cache_manager,
    qodo_cache_manager,
    tool_tasks_cache_manager,
    windsurf_cache_manager,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_set_and_get():
    cache = CacheManager()
    cache.set_value("k", ["v"])
    assert cache.get_value("k") == ["v"]


def test_missing_value():
    assert CacheManager().get_value("nope") is None
    assert CacheManager(missing="").get_value("nope") == ""


def test_set_value_expires_after_two_minutes():
    clock = FakeClock()
    cache = CacheManager(clock=clock)
    cache.set_value("k", "v")
    clock.now = 119
    assert cache.get_value("k") == "v"
    clock.now = 120
    assert cache.get_value("k") is None


def test_zero_expiration_uses_default():
    clock = FakeClock()
    cache = CacheManager(default_expiration=300, clock=clock)
    cache.set_with_expiration("k", "v", 0)
    clock.now = 299
    assert cache.get_value("k") == "v"
    clock.now = 300
    assert cache.get_value("k") is None


def test_negative_expiration_never_expires_and_timedelta():
    clock = FakeClock()
    cache = CacheManager(clock=clock)
    cache.set_with_expiration("forever", "v", -1)
    cache.set_with_expiration("short", "v", timedelta(seconds=5))
    clock.now = 10
    assert cache.get_value("forever") == "v"
    assert cache.get_value("short") is None


def test_overwrite_refreshes():
    clock = FakeClock()
    cache = CacheManager(clock=clock)
    cache.set_with_expiration("k", "a", 10)
    clock.now = 8
    cache.set_with_expiration("k", "b", 10)
    clock.now = 15
    assert cache.get_value("k") == "b"


def test_global_managers_are_stable_and_distinct():
    assert tool_tasks_cache_manager() is tool_tasks_cache_manager()
    managers = {
        id(tool_tasks_cache_manager()),
        id(windsurf_cache_manager()),
        id(bing_cache_manager()),
        id(cursor_cache_manager()),
        id(qodo_cache_manager()),
    }
    assert len(managers) == 5
    assert windsurf_cache_manager().get_value("absent") == ""