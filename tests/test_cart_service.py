"""Tests for SessionCartService: cart and wishlist lifecycle on top of the Redis cache."""

import asyncio
import json
from decimal import Decimal

import pytest

from cart_mcp.models.cart import CartItem, CartRecord, WishlistRecord
from cart_mcp.models.product import Product
from cart_mcp.protocol.errors import CacheUnavailable, ConcurrentUpdate, NotFound, ValidationError


class TestCartLifecycle:
    """EMPTY -> POPULATED -> cleared."""

    @pytest.mark.asyncio
    async def test_missing_cart_is_empty(self, cart_service):
        cart = await cart_service.view_cart("s1")
        assert cart.session_key == "s1"
        assert cart.is_empty()
        assert cart.total_value == Decimal("0")

    @pytest.mark.asyncio
    async def test_repeated_add_merges_quantity(self, cart_service, products):
        laptop = products[0]
        await cart_service.add_to_cart("s1", laptop, 1)
        cart, line = await cart_service.add_to_cart("s1", laptop, 2)

        assert len(cart.items) == 1
        assert line.quantity == 3
        assert cart.total_items == 3
        assert cart.total_value == Decimal("2997.00")

        stored = await cart_service.view_cart("s1")
        assert stored.find_item("1").quantity == 3

    @pytest.mark.asyncio
    async def test_merge_keeps_latest_price(self, cart_service, products):
        await cart_service.add_to_cart("s1", products[0], 1)
        cheaper = Product(1, "Laptop", Decimal("899.00"), None, "Electronics")
        cart, line = await cart_service.add_to_cart("s1", cheaper, 1)
        assert line.price == Decimal("899.00")
        assert cart.total_value == Decimal("1798.00")

    @pytest.mark.asyncio
    async def test_add_writes_record_audit_and_counter_with_ttl(self, cart_service, products, fake_redis):
        await cart_service.add_to_cart("s1", products[0], 1)
        await cart_service.add_to_cart("s1", products[1], 4)

        assert await fake_redis.ttl("cart:s1") == 86400
        assert fake_redis.data["cart:s1:count"] == "2"
        assert await fake_redis.ttl("cart:s1:count") == 86400

        audit_keys = [key for key in fake_redis.data if key.startswith("cart:s1:item:")]
        assert len(audit_keys) == 2
        assert all(await fake_redis.ttl(key) == 86400 for key in audit_keys)
        audit = [json.loads(fake_redis.data[key]) for key in audit_keys]
        assert sorted(entry["product_id"] for entry in audit) == [1, 2]

    @pytest.mark.asyncio
    async def test_missing_session_key_uses_shared_default(self, cart_service, products, fake_redis):
        cart, _ = await cart_service.add_to_cart(None, products[2], 1)
        assert cart.session_key == "default"
        assert "cart:default" in fake_redis.data
        assert (await cart_service.view_cart("  ")).total_items == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -1, True])
    async def test_invalid_quantity(self, cart_service, products, quantity):
        with pytest.raises(ValidationError):
            await cart_service.add_to_cart("s1", products[0], quantity)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("session_key", ["bad key", "a:b", "cart*", "x" * 129])
    async def test_invalid_session_key(self, cart_service, session_key):
        with pytest.raises(ValidationError):
            await cart_service.view_cart(session_key)

    @pytest.mark.asyncio
    async def test_remove_item(self, cart_service, products):
        await cart_service.add_to_cart("s1", products[0], 1)
        await cart_service.add_to_cart("s1", products[1], 1)

        cart, removed = await cart_service.remove_item("s1", "1")

        assert removed.name == "Laptop"
        assert [item.key for item in cart.items] == ["2"]
        assert [item.key for item in (await cart_service.view_cart("s1")).items] == ["2"]

    @pytest.mark.asyncio
    async def test_remove_missing_item(self, cart_service, products, fake_redis):
        await cart_service.add_to_cart("s1", products[0], 1)
        before = fake_redis.data["cart:s1"]

        with pytest.raises(NotFound):
            await cart_service.remove_item("s1", "42")
        assert fake_redis.data["cart:s1"] == before

    @pytest.mark.asyncio
    async def test_clear_is_idempotent(self, cart_service, products, fake_redis):
        await cart_service.add_to_cart("s1", products[0], 1)
        await cart_service.add_to_cart("s1", products[1], 1)

        first = await cart_service.clear_cart("s1")
        second = await cart_service.clear_cart("s1")

        assert first == {"cart_records": 1, "auxiliary_keys": 3}
        assert second == {"cart_records": 0, "auxiliary_keys": 0}
        assert not any(key.startswith("cart:s1") for key in fake_redis.data)

    @pytest.mark.asyncio
    async def test_clear_leaves_other_sessions_alone(self, cart_service, products):
        await cart_service.add_to_cart("s1", products[0], 1)
        await cart_service.add_to_cart("s10", products[1], 1)

        await cart_service.clear_cart("s1")

        assert (await cart_service.view_cart("s10")).total_items == 1

    @pytest.mark.asyncio
    async def test_unreadable_record_counts_as_empty(self, cart_service, products, fake_redis):
        fake_redis.data["cart:s1"] = "{not json"
        assert (await cart_service.view_cart("s1")).is_empty()

        cart, _ = await cart_service.add_to_cart("s1", products[0], 1)
        assert cart.total_items == 1

    def test_record_round_trip(self, products):
        cart = CartRecord(session_key="s1")
        cart.add_item(CartItem.from_product(products[0], 2))
        cart.add_item(CartItem.from_product(products[1], 1))
        cart.touch(60)

        assert CartRecord.from_dict(json.loads(json.dumps(cart.to_dict()))) == cart


class TestOptimisticTransactions:
    """Concurrent writers retry instead of overwriting each other."""

    @pytest.mark.asyncio
    async def test_conflict_is_retried(self, cart_service, products, fake_redis):
        fake_redis.pending_conflicts = 2

        cart, _ = await cart_service.add_to_cart("s1", products[0], 1)

        assert cart.total_items == 1
        assert fake_redis.executed_transactions == 1
        assert (await cart_service.view_cart("s1")).total_items == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_concurrent_update(self, cart_service, products, fake_redis):
        fake_redis.pending_conflicts = 5

        with pytest.raises(ConcurrentUpdate):
            await cart_service.add_to_cart("s1", products[0], 1)
        assert "cart:s1" not in fake_redis.data

    @pytest.mark.asyncio
    async def test_clear_retries_when_cart_changes_during_scan(self, cart_service, products, fake_redis):
        await cart_service.add_to_cart("s1", products[0], 1)
        fake_redis.pending_conflicts = 1

        counts = await cart_service.clear_cart("s1")

        assert counts == {"cart_records": 1, "auxiliary_keys": 2}
        assert not any(key.startswith("cart:s1") for key in fake_redis.data)

    @pytest.mark.asyncio
    async def test_clear_is_all_or_nothing(self, cart_service, products, fake_redis):
        await cart_service.add_to_cart("s1", products[0], 1)
        before = dict(fake_redis.data)
        fake_redis.pending_conflicts = 5

        with pytest.raises(ConcurrentUpdate):
            await cart_service.clear_cart("s1")
        assert fake_redis.data == before

    @pytest.mark.asyncio
    async def test_parallel_adds_are_not_lost(self, cart_service, products):
        await asyncio.gather(*(cart_service.add_to_cart("s1", products[0], 1) for _ in range(10)))
        assert (await cart_service.view_cart("s1")).find_item("1").quantity == 10


class TestCacheUnavailable:
    """Redis connection failures surface as CacheUnavailable."""

    @pytest.mark.asyncio
    async def test_read(self, cart_service, fake_redis):
        fake_redis.available = False
        with pytest.raises(CacheUnavailable):
            await cart_service.view_cart("s1")

    @pytest.mark.asyncio
    async def test_write(self, cart_service, products, fake_redis):
        fake_redis.available = False
        with pytest.raises(CacheUnavailable):
            await cart_service.add_to_cart("s1", products[0], 1)

    @pytest.mark.asyncio
    async def test_clear(self, cart_service, fake_redis):
        fake_redis.available = False
        with pytest.raises(CacheUnavailable):
            await cart_service.clear_cart("s1")

    @pytest.mark.asyncio
    async def test_close_releases_client(self, cache, fake_redis):
        await cache.close()
        assert fake_redis.closed
        assert cache.client is None


class TestWishlist:
    """Wishlist keyed by email, deduplicated by product name."""

    @pytest.mark.asyncio
    async def test_add_and_view(self, cart_service, products, fake_redis):
        wishlist, added = await cart_service.add_to_wishlist("Alice@Example.com", products[0])

        assert added
        assert wishlist.identity_key == "alice@example.com"
        assert await fake_redis.ttl("wishlist:alice@example.com") == 2592000
        assert [p.id for p in (await cart_service.view_wishlist("alice@example.com")).items] == [1]

    @pytest.mark.asyncio
    async def test_duplicate_name_is_not_added(self, cart_service, products):
        await cart_service.add_to_wishlist("alice@example.com", products[0])
        same_name = Product(99, "LAPTOP", Decimal("1.00"))

        wishlist, added = await cart_service.add_to_wishlist("alice@example.com", same_name)

        assert not added
        assert [p.id for p in wishlist.items] == [1]

    @pytest.mark.asyncio
    async def test_missing_wishlist_is_empty(self, cart_service):
        assert (await cart_service.view_wishlist("bob@example.com")).items == []

    @pytest.mark.asyncio
    async def test_email_required(self, cart_service, products):
        with pytest.raises(ValidationError):
            await cart_service.add_to_wishlist("  ", products[0])

    def test_record_round_trip(self, products):
        wishlist = WishlistRecord(identity_key="alice@example.com")
        wishlist.add(products[0])
        wishlist.add(products[4])
        wishlist.touch(60)

        assert WishlistRecord.from_dict(json.loads(json.dumps(wishlist.to_dict()))) == wishlist
