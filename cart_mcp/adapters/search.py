"""Catalog lookup operations for MCP adapters"""

from .utils import ShoppingServices
from ..formatters import format_product_detail, format_product_list
from ..utils.logger import get_logger

logger = get_logger(__name__)


async def search_products(services: ShoppingServices, query: str, page: int = 1,
                          per_page: int = 10) -> str:
    """MCP adapter for search_products"""
    products = await services.catalog.search(query, page, per_page)
    if not products:
        logger.info(f"[Search] No results for '{query}'")
    return format_product_list(
        f"Found {len(products)} products for '{query}' (page {page})",
        products,
        "No products matched. Try different or fewer keywords."
    )


async def get_product(services: ShoppingServices, product_id: int) -> str:
    """MCP adapter for get_product"""
    product = await services.catalog.get_by_id(product_id)
    return format_product_detail(product)


async def find_product_by_name(services: ShoppingServices, name: str) -> str:
    """MCP adapter for find_product_by_name"""
    product = await services.catalog.get_by_exact_name(name)
    return format_product_detail(product)


async def list_products_by_category(services: ShoppingServices, category: str) -> str:
    """MCP adapter for list_products_by_category"""
    products = await services.catalog.list_by_category(category)
    return format_product_list(
        f"Found {len(products)} products in category '{category}'",
        products,
        "No products in this category."
    )


async def list_products(services: ShoppingServices, page: int = 1, per_page: int = 10) -> str:
    """MCP adapter for list_products"""
    products = await services.catalog.list_products(page, per_page)
    return format_product_list(
        f"Products (page {page}, {len(products)} shown)",
        products,
        "No products on this page."
    )
