"""ResolutionCache over hand-written Redis clients."""
import asyncio
import time

from redis.exceptions import ConnectionError as RedisConnectionError

from app.config import settings
from app.services.resolution import SeoResolutionEngine
from app.services.resolution_cache import ResolutionCache, cache_key
from app.services.seo_metadata import fallback_content


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    async def aclose(self):
        self.closed = True


class BrokenRedis(FakeRedis):
    async def get(self, key):
        raise RedisConnectionError("connection refused")

    async def setex(self, key, ttl, value):
        raise RedisConnectionError("connection refused")


class StalledRedis(FakeRedis):
    """Accepts commands and never answers."""

    async def get(self, key):
        await asyncio.sleep(30)

    async def setex(self, key, ttl, value):
        await asyncio.sleep(30)


def test_cache_key_hashes_path():
    key = cache_key("shop.example.com", "/about")
    assert key.startswith("seo:resolve:shop.example.com:")
    assert len(key.rsplit(":", 1)[1]) == 16
    assert key != cache_key("shop.example.com", "/contact")


async def test_set_then_get():
    client = FakeRedis()
    cache = ResolutionCache(client, ttl=45)
    content = fallback_content("shop.example.com", "/about")

    await cache.set("shop.example.com", "/about", content)
    assert client.ttls[cache_key("shop.example.com", "/about")] == 45

    cached = await cache.get("shop.example.com", "/about")
    assert cached == content
    assert await cache.get("shop.example.com", "/other") is None


async def test_unreadable_entry_is_a_miss():
    client = FakeRedis()
    client.data[cache_key("shop.example.com", "/")] = "{not json"
    cache = ResolutionCache(client)
    assert await cache.get("shop.example.com", "/") is None


async def test_redis_errors_are_swallowed():
    cache = ResolutionCache(BrokenRedis())
    assert await cache.get("shop.example.com", "/") is None
    await cache.set("shop.example.com", "/", fallback_content("shop.example.com", "/"))


async def test_stalled_redis_is_bounded():
    cache = ResolutionCache(StalledRedis(), timeout=0.05)
    start = time.perf_counter()
    assert await cache.get("shop.example.com", "/") is None
    await cache.set("shop.example.com", "/", fallback_content("shop.example.com", "/"))
    assert time.perf_counter() - start < 1


async def test_engine_resolves_through_stalled_cache(shop):
    engine = SeoResolutionEngine(shop, cache=ResolutionCache(StalledRedis(), timeout=0.05), deadline=0.5)
    start = time.perf_counter()
    r = await engine.resolve("shop.example.com", "/about")
    assert r.found
    assert r.content.source_trace == "website_page|website:W|slug:about"
    assert time.perf_counter() - start < 1


async def test_engine_serves_second_request_from_redis(shop):
    client = FakeRedis()
    engine = SeoResolutionEngine(shop, cache=ResolutionCache(client))
    await engine.resolve("shop.example.com", "/about")
    assert list(client.data) == [cache_key("shop.example.com", "/about")]

    shop.calls.clear()
    again = await engine.resolve("shop.example.com", "/about")
    assert again.decisions == ["cache:hit"]
    assert again.content.source_trace == "website_page|website:W|slug:about"
    assert shop.calls == []


def test_from_settings_disabled(monkeypatch):
    monkeypatch.setattr(settings, "RESOLUTION_CACHE_ENABLED", False)
    assert ResolutionCache.from_settings() is None


async def test_from_settings_sets_socket_timeouts(monkeypatch):
    monkeypatch.setattr(settings, "RESOLUTION_CACHE_ENABLED", True)
    monkeypatch.setattr(settings, "RESOLUTION_CACHE_TIMEOUT", 0.2)
    cache = ResolutionCache.from_settings()
    try:
        kwargs = cache._redis.connection_pool.connection_kwargs
        assert kwargs["socket_timeout"] == 0.2
        assert kwargs["socket_connect_timeout"] == 0.2
        assert cache.timeout == 0.2
    finally:
        await cache.close()


async def test_close_closes_client():
    client = FakeRedis()
    await ResolutionCache(client).close()
    assert client.closed
