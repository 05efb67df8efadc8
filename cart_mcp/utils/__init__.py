"""Utility modules for MCP Server"""

from .logger import get_logger, setup_mcp_logging, get_mcp_operations_logger

__all__ = [
    "get_logger",
    "setup_mcp_logging",
    "get_mcp_operations_logger"
]
