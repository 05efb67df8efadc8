#!/usr/bin/env python3
"""
Cart MCP Server

Exposes catalog lookup, session cart and wishlist tools over MCP stdio.
Tool schemas and handlers come from the ToolRegistry; this module only wires
the registry into the MCP server and owns the Redis connection lifetime.

Typical flow for an agent:
1. search_products / list_products_by_category → find products
2. add_to_cart (product_id or exact name) → build the cart
3. view_cart → show contents and total
4. remove_from_cart / clear_cart → adjust
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List
import asyncio

from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from . import __version__
from .config import config
from .redis_service import close_redis_client
from .registry import get_tool_registry
from .utils.logger import get_logger, setup_mcp_logging

logger = get_logger(__name__)

SERVER_NAME = "cart-mcp"


@asynccontextmanager
async def server_lifespan(server: Server) -> AsyncIterator[Dict[str, Any]]:
    """Build the tool registry on startup, close the Redis handle on shutdown"""
    registry = get_tool_registry()
    logger.info(f"Registered {len(registry.list_tools())} tools")
    try:
        yield {"registry": registry}
    finally:
        await close_redis_client()
        logger.info("Redis connection closed")


server = Server(SERVER_NAME, version=__version__, lifespan=server_lifespan)


@server.list_tools()
async def list_tools() -> List[Tool]:
    return get_tool_registry().get_mcp_tools()


# Arguments are validated by the registry so failures come back in the tool envelope
@server.call_tool(validate_input=False)
async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    response = await get_tool_registry().invoke(name, arguments)
    return [TextContent(type="text", text=block["text"]) for block in response.content]


async def serve():
    """Run the server on stdio until the client disconnects"""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main():
    """Main entry point with logging setup and configuration checks"""
    try:
        setup_mcp_logging(debug=config.logging.level == "DEBUG", log_file=config.logging.file)

        if not config.validate():
            raise ValueError("Invalid configuration. Please check your .env file.")

        logger.info("=" * 60)
        logger.info(f"Cart MCP Server v{__version__}")
        logger.info("=" * 60)
        logger.info(f"Catalog mode: {config.catalog.mode}")
        logger.info(f"Backend: {config.api.backend_endpoint or '(not configured)'}")
        logger.info(f"Backend cart sync: {config.api.cart_sync}")
        logger.info("Transport: stdio")

        asyncio.run(serve())

    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error("MCP Server startup FAILED!")
        logger.error(f"Error details: {e}")
        raise


if __name__ == "__main__":
    main()
