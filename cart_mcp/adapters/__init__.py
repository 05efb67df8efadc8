"""MCP Adapters - one async handler per tool"""

from .utils import ShoppingServices, get_services, resolve_product

__all__ = [
    'ShoppingServices',
    'get_services',
    'resolve_product'
]
