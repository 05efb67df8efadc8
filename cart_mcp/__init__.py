"""Cart MCP Server - catalog, session cart and wishlist tools over MCP"""

__version__ = "0.1.0"
