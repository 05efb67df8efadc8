"""Session cart service for cart and wishlist records held in Redis

Key layout:
    cart:{session}                  serialized CartRecord, cart TTL
    cart:{session}:item:{ts_ns}     audit record per add, cart TTL
    cart:{session}:count            number of adds, cart TTL
    wishlist:{identity}             serialized WishlistRecord, wishlist TTL

Every mutation is an optimistic WATCH/MULTI transaction on the record key, so
concurrent writers on one session retry instead of overwriting each other.
"""

from typing import Any, Dict, Optional, Tuple
import json
import re
import time

from ..config import SessionConfig, config
from ..models.cart import CartItem, CartRecord, WishlistRecord, utcnow
from ..models.product import Product
from ..protocol.errors import NotFound, ValidationError
from ..redis_service import RedisCacheManager, get_redis_client
from ..utils.logger import get_logger

logger = get_logger(__name__)

# No ':' or glob metacharacters, so one session's prefix scan never reaches another's keys
KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.@+-]{1,128}$")


class SessionCartService:
    """Owns every cart and wishlist record in the cache"""

    def __init__(self, cache: RedisCacheManager, session_config: Optional[SessionConfig] = None):
        """
        Initialize session cart service

        Args:
            cache: Shared Redis handle, owned by the server process
            session_config: TTLs and default session key
        """
        self.cache = cache
        self.config = session_config or config.session
        logger.info("SessionCartService initialized")

    # ================================
    # KEYS
    # ================================

    def resolve_session_key(self, session_key: Optional[str]) -> str:
        """Fall back to the shared session key when the caller has no identity"""
        if session_key is None or not str(session_key).strip():
            session_key = self.config.default_session_key
        return self._check_key(str(session_key).strip(), "session_key")

    @staticmethod
    def _check_key(value: str, field: str) -> str:
        if not KEY_PATTERN.match(value):
            raise ValidationError(
                f"{field} must be 1-128 characters of letters, digits or _.@+-",
                [{"field": field, "message": "invalid characters or length"}]
            )
        return value

    @staticmethod
    def check_quantity(quantity: int) -> int:
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError("quantity must be an integer >= 1",
                                  [{"field": "quantity", "message": "must be >= 1"}])
        return quantity

    @staticmethod
    def cart_key(session_key: str) -> str:
        return f"cart:{session_key}"

    @staticmethod
    def cart_aux_prefix(session_key: str) -> str:
        return f"cart:{session_key}:"

    @staticmethod
    def wishlist_key(identity_key: str) -> str:
        return f"wishlist:{identity_key}"

    # ================================
    # SERIALIZATION
    # ================================

    @staticmethod
    def _load_cart(session_key: str, raw: Optional[str]) -> CartRecord:
        """Decode a cart record; a miss (or an unreadable record) is an empty cart"""
        if not raw:
            return CartRecord(session_key=session_key)
        try:
            return CartRecord.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"[Cart] Discarding unreadable cart record for {session_key}: {e}")
            return CartRecord(session_key=session_key)

    @staticmethod
    def _load_wishlist(identity_key: str, raw: Optional[str]) -> WishlistRecord:
        if not raw:
            return WishlistRecord(identity_key=identity_key)
        try:
            return WishlistRecord.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"[Wishlist] Discarding unreadable wishlist for {identity_key}: {e}")
            return WishlistRecord(identity_key=identity_key)

    # ================================
    # CART
    # ================================

    async def add_to_cart(self, session_key: Optional[str], product: Product,
                          quantity: int = 1) -> Tuple[CartRecord, CartItem]:
        """
        Add product to the session cart, summing quantity into an existing line

        Returns:
            Tuple of (updated cart, the merged line)
        """
        session_key = self.resolve_session_key(session_key)
        self.check_quantity(quantity)

        key = self.cart_key(session_key)
        ttl = self.config.cart_ttl_seconds
        prefix = self.cart_aux_prefix(session_key)
        audit_key = f"{prefix}item:{time.time_ns()}"
        count_key = f"{prefix}count"

        def build(current: Optional[str], pipe: Any) -> Tuple[CartRecord, CartItem]:
            cart = self._load_cart(session_key, current)
            line = cart.add_item(CartItem.from_product(product, quantity))
            cart.touch(ttl)
            pipe.set(key, json.dumps(cart.to_dict()), ex=ttl)
            pipe.set(audit_key, json.dumps({
                'session_key': session_key,
                'product_id': product.id,
                'name': product.name,
                'quantity': quantity,
                'added_at': utcnow().isoformat()
            }), ex=ttl)
            pipe.incr(count_key)
            pipe.expire(count_key, ttl)
            return cart, line

        cart, line = await self.cache.transaction(key, build)
        logger.info(f"[Cart] {session_key}: added {quantity}x {product.name} (line qty {line.quantity}, "
                    f"{cart.total_items} items, total {cart.total_value})")
        return cart, line

    async def view_cart(self, session_key: Optional[str]) -> CartRecord:
        """Current cart; an empty record when none exists"""
        session_key = self.resolve_session_key(session_key)
        raw = await self.cache.get(self.cart_key(session_key))
        return self._load_cart(session_key, raw)

    async def remove_item(self, session_key: Optional[str], item_key: str) -> Tuple[CartRecord, CartItem]:
        """
        Remove a single line from the cart

        Raises:
            NotFound: item_key is not in the current cart
        """
        session_key = self.resolve_session_key(session_key)
        item_key = str(item_key).strip()
        key = self.cart_key(session_key)
        ttl = self.config.cart_ttl_seconds

        def build(current: Optional[str], pipe: Any) -> Tuple[CartRecord, CartItem]:
            cart = self._load_cart(session_key, current)
            removed = cart.remove_item(item_key)
            if removed is None:
                raise NotFound(f"cart item '{item_key}'")
            cart.touch(ttl)
            pipe.set(key, json.dumps(cart.to_dict()), ex=ttl)
            return cart, removed

        cart, removed = await self.cache.transaction(key, build)
        logger.info(f"[Cart] {session_key}: removed {removed.name} ({len(cart.items)} lines left)")
        return cart, removed

    async def clear_cart(self, session_key: Optional[str]) -> Dict[str, int]:
        """
        Delete the cart record and its audit/counter keys

        Returns:
            Counts of deleted keys; zeros when there was nothing to clear
        """
        session_key = self.resolve_session_key(session_key)
        cart_records, auxiliary_keys = await self.cache.delete_with_prefix(
            self.cart_key(session_key), self.cart_aux_prefix(session_key)
        )
        logger.info(f"[Cart] {session_key}: cleared ({cart_records} record, {auxiliary_keys} auxiliary keys)")
        return {"cart_records": cart_records, "auxiliary_keys": auxiliary_keys}

    # ================================
    # WISHLIST
    # ================================

    def resolve_identity_key(self, identity_key: str) -> str:
        if not identity_key or not str(identity_key).strip():
            raise ValidationError("email is required", [{"field": "email", "message": "field required"}])
        return self._check_key(str(identity_key).strip().lower(), "email")

    async def add_to_wishlist(self, identity_key: str, product: Product) -> Tuple[WishlistRecord, bool]:
        """
        Add product to the wishlist unless a product with the same name is there

        Returns:
            Tuple of (wishlist, added); added is False when already present
        """
        identity_key = self.resolve_identity_key(identity_key)
        key = self.wishlist_key(identity_key)
        ttl = self.config.wishlist_ttl_seconds

        def build(current: Optional[str], pipe: Any) -> Tuple[WishlistRecord, bool]:
            wishlist = self._load_wishlist(identity_key, current)
            added = wishlist.add(product)
            if added:
                wishlist.touch(ttl)
                pipe.set(key, json.dumps(wishlist.to_dict()), ex=ttl)
            return wishlist, added

        wishlist, added = await self.cache.transaction(key, build)
        logger.info(f"[Wishlist] {identity_key}: {'added' if added else 'already had'} {product.name}")
        return wishlist, added

    async def view_wishlist(self, identity_key: str) -> WishlistRecord:
        """Current wishlist; an empty record when none exists"""
        identity_key = self.resolve_identity_key(identity_key)
        raw = await self.cache.get(self.wishlist_key(identity_key))
        return self._load_wishlist(identity_key, raw)


_cart_service: Optional[SessionCartService] = None


def get_cart_service() -> SessionCartService:
    """Get singleton SessionCartService bound to the process-wide Redis handle"""
    global _cart_service
    if _cart_service is None:
        _cart_service = SessionCartService(get_redis_client())
    return _cart_service
