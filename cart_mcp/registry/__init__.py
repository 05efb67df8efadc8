"""
Registry Package - Single Source of Truth

Tool schemas, handlers and the dispatcher that runs them.
"""

from .tools import ParamSpec, ToolDefinition, ToolRegistry, ToolResponse
from .definitions import build_tool_registry, get_tool_registry

__all__ = [
    'ParamSpec',
    'ToolDefinition',
    'ToolRegistry',
    'ToolResponse',
    'build_tool_registry',
    'get_tool_registry'
]
