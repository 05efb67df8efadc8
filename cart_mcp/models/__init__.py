"""Data models for the Cart MCP Server"""

from .product import Product
from .cart import (
    CartItem,
    CartRecord,
    WishlistRecord
)

__all__ = [
    'Product',
    'CartItem',
    'CartRecord',
    'WishlistRecord'
]
