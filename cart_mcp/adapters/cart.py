"""Cart Operations for MCP Adapters

The session cart lives in Redis. When backend cart sync is enabled each
mutation is checked locally (arguments, cache reachability) and then sent to
the commerce backend; the session cart is only updated after the backend
accepted it. A failed backend call is reported as an error and leaves the
session cart untouched, and a cache failure after the backend accepted a
change is reported as such.
"""

from typing import Awaitable, Optional, TypeVar

from .utils import ShoppingServices, resolve_product
from ..formatters import format_backend_payload, format_cart, format_clear_result
from ..protocol.errors import CacheUnavailable, ConcurrentUpdate, NotFound, ToolError, ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def _apply_after_store(update: Awaitable[T]) -> T:
    """Await a session cart update that follows an accepted backend change"""
    try:
        return await update
    except (CacheUnavailable, ConcurrentUpdate) as e:
        logger.error(f"[Cart] Store cart changed but session cart update failed: {e.message}")
        raise ToolError(
            e.code,
            f"{e.message} (the store cart was already updated and no longer matches the session cart)",
            {**e.data, "store_cart_updated": True}
        ) from e


async def add_to_cart(services: ShoppingServices, product_id: Optional[int] = None,
                      name: Optional[str] = None, quantity: int = 1,
                      session_key: Optional[str] = None) -> str:
    """MCP adapter for add_to_cart"""
    session_key = services.cart.resolve_session_key(session_key)
    services.cart.check_quantity(quantity)
    product = await resolve_product(services, product_id, name)
    logger.info(f"[Cart] Add to cart - product {product.id} ({product.name}) x{quantity}")

    if services.cart_sync:
        await services.cart.view_cart(session_key)
        await services.backend.add_cart_item(product.id, quantity)
        logger.info(f"[Cart] Backend accepted add of product {product.id}")
        cart, line = await _apply_after_store(services.cart.add_to_cart(session_key, product, quantity))
    else:
        cart, line = await services.cart.add_to_cart(session_key, product, quantity)

    message = f"Added {quantity}x {product.name} to cart (now {line.quantity} in cart)."
    return format_cart(cart, message)


async def view_cart(services: ShoppingServices, session_key: Optional[str] = None) -> str:
    """MCP adapter for view_cart"""
    cart = await services.cart.view_cart(session_key)
    return format_cart(cart)


async def remove_from_cart(services: ShoppingServices, item_key: str,
                           session_key: Optional[str] = None) -> str:
    """MCP adapter for remove_from_cart"""
    session_key = services.cart.resolve_session_key(session_key)

    if services.cart_sync:
        # Check locally first so an unknown key never reaches the backend
        cart = await services.cart.view_cart(session_key)
        if cart.find_item(item_key) is None:
            raise NotFound(f"cart item '{item_key}'")
        await services.backend.remove_cart_item(item_key)
        cart, removed = await _apply_after_store(services.cart.remove_item(session_key, item_key))
    else:
        cart, removed = await services.cart.remove_item(session_key, item_key)

    return format_cart(cart, f"Removed {removed.name} from cart.")


async def clear_cart(services: ShoppingServices, session_key: Optional[str] = None) -> str:
    """MCP adapter for clear_cart"""
    session_key = services.cart.resolve_session_key(session_key)

    if services.cart_sync:
        await services.cart.view_cart(session_key)
        await services.backend.clear_cart()
        counts = await _apply_after_store(services.cart.clear_cart(session_key))
    else:
        counts = await services.cart.clear_cart(session_key)

    return format_clear_result(session_key, counts)


async def view_store_cart(services: ShoppingServices) -> str:
    """MCP adapter for view_store_cart: the cart as the commerce backend sees it"""
    if services.backend is None:
        raise ValidationError("no commerce backend is configured (BACKEND_ENDPOINT)")
    payload = await services.backend.get_cart()
    return format_backend_payload("Store cart:", payload)
