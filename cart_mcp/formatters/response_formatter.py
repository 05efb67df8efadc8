"""
Response Formatter System

Renders products, carts and wishlists as plain text for tool responses.
Output depends only on the data passed in, so the same record always renders
the same way.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
import json

from ..models.cart import CartRecord, WishlistRecord
from ..models.product import Product

CURRENCY_SYMBOL = "$"
DESCRIPTION_PREVIEW = 100


def format_price(value: Decimal) -> str:
    return f"{CURRENCY_SYMBOL}{value:.2f}"


def format_product_line(product: Product) -> str:
    """One-line summary: '#7 Laptop - $999.00 (Electronics)'"""
    line = f"#{product.id} {product.name} - {format_price(product.price)}"
    if product.category:
        line += f" ({product.category})"
    return line


def format_product_detail(product: Product) -> str:
    """Multi-line product card"""
    lines = [
        f"**{product.name}**",
        f"ID: {product.id}",
        f"Price: {format_price(product.price)}",
    ]
    if product.category:
        lines.append(f"Category: {product.category}")
    if product.description:
        lines.append(f"Description: {product.description}")
    return "\n".join(lines)


def format_product_list(heading: str, products: List[Product], empty_message: str) -> str:
    """Numbered product list under a heading"""
    if not products:
        return f"{heading}\n{empty_message}"

    lines = [heading, ""]
    for i, product in enumerate(products, 1):
        lines.append(f"{i}. {format_product_line(product)}")
        if product.description:
            desc = product.description
            if len(desc) > DESCRIPTION_PREVIEW:
                desc = desc[:DESCRIPTION_PREVIEW].rstrip() + "..."
            lines.append(f"   {desc}")
    return "\n".join(lines)


def format_cart(cart: CartRecord, message: Optional[str] = None) -> str:
    """Cart contents with line keys, quantities and totals"""
    lines = [message, ""] if message else []

    if cart.is_empty():
        lines.append(f"Cart '{cart.session_key}' is empty.")
        return "\n".join(lines)

    lines.append(f"**Cart Contents** ({cart.session_key}):")
    lines.append("")
    for i, item in enumerate(cart.items, 1):
        lines.append(f"{i}. **{item.name}** (item key: {item.key})")
        lines.append(f"   Quantity: {item.quantity}")
        lines.append(f"   Price: {format_price(item.price)} each")
        lines.append(f"   Subtotal: {format_price(item.subtotal)}")
    lines.append("")
    lines.append(f"Items: {cart.total_items}")
    lines.append(f"**Total: {format_price(cart.total_value)}**")
    if cart.expires_at:
        lines.append(f"Expires at: {cart.expires_at.isoformat(timespec='seconds')}")
    return "\n".join(lines)


def format_wishlist(wishlist: WishlistRecord, message: Optional[str] = None) -> str:
    lines = [message, ""] if message else []

    if not wishlist.items:
        lines.append(f"Wishlist for {wishlist.identity_key} is empty.")
        return "\n".join(lines)

    lines.append(f"**Wishlist** for {wishlist.identity_key} ({len(wishlist.items)} items):")
    lines.append("")
    for i, product in enumerate(wishlist.items, 1):
        lines.append(f"{i}. {format_product_line(product)}")
    return "\n".join(lines)


def format_backend_payload(heading: str, payload: Any) -> str:
    """Render a raw backend reply; key order is normalized so output is stable"""
    if payload is None:
        return f"{heading}\n(no content)"
    if isinstance(payload, (dict, list)):
        return f"{heading}\n{json.dumps(payload, indent=2, sort_keys=True, default=str)}"
    return f"{heading}\n{payload}"


def format_clear_result(session_key: str, counts: Dict[str, int]) -> str:
    deleted = counts.get("cart_records", 0) + counts.get("auxiliary_keys", 0)
    if deleted == 0:
        return f"Cart '{session_key}' was already empty. Deleted 0 keys."
    return (
        f"Cleared cart '{session_key}'. Deleted {counts.get('cart_records', 0)} cart record(s) "
        f"and {counts.get('auxiliary_keys', 0)} tracking key(s)."
    )
