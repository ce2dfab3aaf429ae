import pytest

from mythcombat.config import Settings
from mythcombat.core.cache import TTLCache


class Clock:
    def __init__(self):
        self.t = 0.0

    def __call__(self):
        return self.t


def test_entries_expire_after_ttl():
    clock = Clock()
    cache = TTLCache(ttl=10, clock=clock)
    cache.set("k", 1)
    clock.t = 9.9
    assert cache.get("k") == 1
    clock.t = 10.0
    assert cache.get("k") is None
    assert "k" not in cache


def test_oldest_write_is_evicted_when_full():
    cache = TTLCache(ttl=60, max_entries=2, clock=Clock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 3)
    cache.set("c", 4)
    assert cache.get("b") is None
    assert cache.get("a") == 3 and cache.get("c") == 4
    assert len(cache) == 2


def test_evict_and_purge():
    clock = Clock()
    cache = TTLCache(ttl=5, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.evict("a") is True
    assert cache.evict("a") is False
    clock.t = 6
    assert cache.purge_expired() == 1
    assert len(cache) == 0


def test_cache_rejects_bad_bounds():
    with pytest.raises(ValueError):
        TTLCache(ttl=0)
    with pytest.raises(ValueError):
        TTLCache(ttl=1, max_entries=0)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("MYTHCOMBAT_DEFAULT_BOARD_SEED", "99")
    monkeypatch.setenv("MYTHCOMBAT_REWARD_CACHE_TTL", "1.5")
    monkeypatch.setenv("MYTHCOMBAT_LOG_LEVEL", "debug")
    s = Settings.from_env()
    assert s.default_board_seed == 99
    assert s.reward_cache_ttl == 1.5
    assert s.log_level == "DEBUG"
    assert s.profile_cache_size == 256


def test_settings_reject_non_numeric(monkeypatch):
    monkeypatch.setenv("MYTHCOMBAT_PROFILE_CACHE_SIZE", "many")
    with pytest.raises(ValueError):
        Settings.from_env()
