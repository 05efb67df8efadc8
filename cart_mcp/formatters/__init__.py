"""Formatters for rendering tool output as text"""

from .response_formatter import (
    format_price,
    format_product_line,
    format_product_detail,
    format_product_list,
    format_cart,
    format_wishlist,
    format_backend_payload,
    format_clear_result
)

__all__ = [
    'format_price',
    'format_product_line',
    'format_product_detail',
    'format_product_list',
    'format_cart',
    'format_wishlist',
    'format_backend_payload',
    'format_clear_result'
]
