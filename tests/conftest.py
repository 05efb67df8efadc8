"""Shared fixtures: an in-memory async Redis double, a small catalog and wired services."""

from decimal import Decimal
from fnmatch import fnmatchcase

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import WatchError

from cart_mcp.adapters.utils import ShoppingServices
from cart_mcp.backend_client import CommerceBackendClient
from cart_mcp.config import APIConfig, CatalogConfig, RedisConfig, SessionConfig
from cart_mcp.models.product import Product
from cart_mcp.redis_service import RedisCacheManager
from cart_mcp.registry import build_tool_registry
from cart_mcp.services.cart_service import SessionCartService
from cart_mcp.services.catalog_service import CatalogService, LocalProductSource

BACKEND_URL = "https://shop.test/wp-json/cart/v1"


class FakePipeline:
    """Transactional pipeline: immediate reads after WATCH, buffered writes after MULTI."""

    def __init__(self, store: "FakeRedis"):
        self.store = store
        self.watched: dict[str, int] = {}
        self.commands: list[tuple[str, tuple, dict]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.reset()

    async def watch(self, *keys):
        self.store.check_available()
        for key in keys:
            self.watched[key] = self.store.versions.get(key, 0)

    async def get(self, key):
        return await self.store.get(key)

    def multi(self):
        self.commands.clear()

    def set(self, key, value, ex=None):
        self.commands.append(("set", (key, value), {"ex": ex}))
        return self

    def incr(self, key):
        self.commands.append(("incr", (key,), {}))
        return self

    def expire(self, key, seconds):
        self.commands.append(("expire", (key, seconds), {}))
        return self

    def delete(self, *keys):
        self.commands.append(("delete", keys, {}))
        return self

    async def execute(self):
        self.store.check_available()
        if self.store.pending_conflicts:
            # Another writer touches every watched key between our read and EXEC
            self.store.pending_conflicts -= 1
            for key in self.watched:
                self.store.bump(key)
        for key, version in self.watched.items():
            if self.store.versions.get(key, 0) != version:
                raise WatchError("Watched variable changed.")
        results = []
        for name, args, kwargs in self.commands:
            results.append(await getattr(self.store, name)(*args, **kwargs))
        self.store.executed_transactions += 1
        return results

    async def reset(self):
        self.watched.clear()
        self.commands.clear()


class FakeRedis:
    """Just enough of redis.asyncio.Redis (decode_responses=True) for the cache layer."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.versions: dict[str, int] = {}
        self.available = True
        self.closed = False
        self.pending_conflicts = 0
        self.executed_transactions = 0

    def check_available(self):
        if not self.available:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    def bump(self, key):
        self.versions[key] = self.versions.get(key, 0) + 1

    async def ping(self):
        self.check_available()
        return True

    async def get(self, key):
        self.check_available()
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.check_available()
        self.data[key] = str(value)
        if ex:
            self.ttls[key] = int(ex)
        else:
            self.ttls.pop(key, None)
        self.bump(key)
        return True

    async def delete(self, *keys):
        self.check_available()
        deleted = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                self.ttls.pop(key, None)
                self.bump(key)
                deleted += 1
        return deleted

    async def scan_iter(self, match=None, count=None):
        self.check_available()
        for key in list(self.data):
            if match is None or fnmatchcase(key, match):
                yield key

    async def incr(self, key):
        self.check_available()
        value = int(self.data.get(key, "0")) + 1
        self.data[key] = str(value)
        self.bump(key)
        return value

    async def expire(self, key, seconds):
        self.check_available()
        if key not in self.data:
            return False
        self.ttls[key] = int(seconds)
        return True

    async def ttl(self, key):
        if key not in self.data:
            return -2
        return self.ttls.get(key, -1)

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return RedisCacheManager(RedisConfig(max_retries=5), client=fake_redis)


@pytest.fixture
def cart_service(cache):
    return SessionCartService(cache, SessionConfig())


@pytest.fixture
def products():
    return [
        Product(1, "Laptop", Decimal("999.00"), "14 inch ultrabook with 16GB RAM", "Electronics"),
        Product(2, "Wireless Mouse", Decimal("25.50"), "Bluetooth mouse, silent clicks", "Electronics"),
        Product(3, "Coffee Mug", Decimal("12.00"), "Ceramic mug, 350ml", "Kitchen"),
        Product(4, "Laptop Stand", Decimal("45.00"), "Aluminium stand for laptops", "Accessories"),
        Product(5, "French Press", Decimal("30.00"), None, "Kitchen"),
    ]


@pytest.fixture
def catalog(products):
    return CatalogService(LocalProductSource(products), CatalogConfig())


@pytest.fixture
def services(catalog, cart_service):
    return ShoppingServices(catalog=catalog, cart=cart_service)


@pytest.fixture
def registry(services):
    return build_tool_registry(services)


@pytest.fixture
def make_backend():
    """Build a CommerceBackendClient whose HTTP calls go to the given handler."""

    def _make(handler, **config_overrides) -> CommerceBackendClient:
        api_config = APIConfig(backend_endpoint=BACKEND_URL, **config_overrides)
        return CommerceBackendClient(api_config, transport=httpx.MockTransport(handler))

    return _make
