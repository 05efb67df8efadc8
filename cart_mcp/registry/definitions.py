"""
Tool definitions for the cart server

All tools are registered here in one place; each handler is bound to the
service set it runs against, so tests can build a registry over fakes.
"""

from functools import partial
from typing import Optional

from .tools import ParamSpec, ToolDefinition, ToolRegistry
from ..adapters import cart, search, wishlist
from ..adapters.utils import ShoppingServices, get_services
from ..config import config

SESSION_KEY = ParamSpec("string", "Optional session key; omit to use the shared default cart")
PRODUCT_ID = ParamSpec("integer", "Product ID", minimum=1)
PRODUCT_NAME = ParamSpec("string", "Exact product name, used when product_id is not given", min_length=1)
EMAIL = ParamSpec("string", "Email address identifying the wishlist", required=True, min_length=3)


def _paging():
    return {
        "page": ParamSpec("integer", "Page number (default: 1)", default=1, minimum=1),
        "per_page": ParamSpec("integer", "Results per page (default: 10)", default=config.catalog.default_per_page,
                              minimum=1, maximum=config.catalog.max_per_page),
    }


def build_tool_registry(services: ShoppingServices) -> ToolRegistry:
    """Create a registry with every tool bound to the given services"""
    registry = ToolRegistry()

    # ========== Catalog ==========
    registry.register(ToolDefinition(
        name="search_products",
        description="Search products by name or keywords (e.g. 'laptop', 'red shoes')",
        handler=partial(search.search_products, services),
        parameters={
            "query": ParamSpec("string", "Search query", required=True, min_length=1),
            **_paging()
        },
        category="catalog"
    ))

    registry.register(ToolDefinition(
        name="get_product",
        description="Get full details of a product by its ID",
        handler=partial(search.get_product, services),
        parameters={
            "product_id": ParamSpec("integer", "Product ID", required=True, minimum=1)
        },
        category="catalog"
    ))

    registry.register(ToolDefinition(
        name="find_product_by_name",
        description="Find a product by its exact name (case-insensitive)",
        handler=partial(search.find_product_by_name, services),
        parameters={
            "name": ParamSpec("string", "Exact product name", required=True, min_length=1)
        },
        category="catalog"
    ))

    registry.register(ToolDefinition(
        name="list_products_by_category",
        description="List all products in a category",
        handler=partial(search.list_products_by_category, services),
        parameters={
            "category": ParamSpec("string", "Category name", required=True, min_length=1)
        },
        category="catalog"
    ))

    registry.register(ToolDefinition(
        name="list_products",
        description="Browse the catalog page by page",
        handler=partial(search.list_products, services),
        parameters=_paging(),
        category="catalog"
    ))

    # ========== Cart ==========
    registry.register(ToolDefinition(
        name="add_to_cart",
        description="Add a product to the cart by product_id or exact name; repeated adds sum the quantity",
        handler=partial(cart.add_to_cart, services),
        parameters={
            "product_id": PRODUCT_ID,
            "name": PRODUCT_NAME,
            "quantity": ParamSpec("integer", "Quantity to add (default: 1)", default=1, minimum=1),
            "session_key": SESSION_KEY
        },
        category="cart"
    ))

    registry.register(ToolDefinition(
        name="view_cart",
        description="Show the cart contents and total",
        handler=partial(cart.view_cart, services),
        parameters={"session_key": SESSION_KEY},
        category="cart"
    ))

    registry.register(ToolDefinition(
        name="remove_from_cart",
        description="Remove a line from the cart by its item key (shown by view_cart)",
        handler=partial(cart.remove_from_cart, services),
        parameters={
            "item_key": ParamSpec("string", "Item key from view_cart", required=True, min_length=1),
            "session_key": SESSION_KEY
        },
        category="cart"
    ))

    registry.register(ToolDefinition(
        name="clear_cart",
        description="Remove everything from the cart",
        handler=partial(cart.clear_cart, services),
        parameters={"session_key": SESSION_KEY},
        category="cart"
    ))

    registry.register(ToolDefinition(
        name="view_store_cart",
        description="Show the cart held by the store backend",
        handler=partial(cart.view_store_cart, services),
        category="cart"
    ))

    # ========== Wishlist ==========
    registry.register(ToolDefinition(
        name="add_to_wishlist",
        description="Save a product to a wishlist identified by email",
        handler=partial(wishlist.add_to_wishlist, services),
        parameters={
            "email": EMAIL,
            "product_id": PRODUCT_ID,
            "name": PRODUCT_NAME
        },
        category="wishlist"
    ))

    registry.register(ToolDefinition(
        name="view_wishlist",
        description="Show the wishlist for an email",
        handler=partial(wishlist.view_wishlist, services),
        parameters={"email": EMAIL},
        category="wishlist"
    ))

    return registry


# Singleton instance
_tool_registry: Optional[ToolRegistry] = None


def get_tool_registry() -> ToolRegistry:
    """Get singleton ToolRegistry bound to the configured services"""
    global _tool_registry
    if _tool_registry is None:
        _tool_registry = build_tool_registry(get_services())
    return _tool_registry
