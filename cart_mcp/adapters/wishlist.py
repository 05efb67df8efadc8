"""Wishlist operations for MCP adapters"""

from typing import Optional

from .utils import ShoppingServices, resolve_product
from ..formatters import format_wishlist


async def add_to_wishlist(services: ShoppingServices, email: str, product_id: Optional[int] = None,
                          name: Optional[str] = None) -> str:
    """MCP adapter for add_to_wishlist"""
    product = await resolve_product(services, product_id, name)
    wishlist, added = await services.cart.add_to_wishlist(email, product)
    if added:
        message = f"Added {product.name} to wishlist."
    else:
        message = f"{product.name} is already present in the wishlist; nothing changed."
    return format_wishlist(wishlist, message)


async def view_wishlist(services: ShoppingServices, email: str) -> str:
    """MCP adapter for view_wishlist"""
    wishlist = await services.cart.view_wishlist(email)
    return format_wishlist(wishlist)
