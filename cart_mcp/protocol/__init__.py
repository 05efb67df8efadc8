"""
Protocol Package - Tool error handling

This package contains:
- The error taxonomy surfaced through tool responses
- Conversion of arbitrary exceptions into tool errors
"""

from .errors import (
    ToolError,
    ValidationError,
    NotFound,
    BackendError,
    CacheUnavailable,
    ConcurrentUpdate,
    UnknownTool,
    InternalError,
    ErrorHandler,
    ErrorCode
)

__all__ = [
    'ToolError',
    'ValidationError',
    'NotFound',
    'BackendError',
    'CacheUnavailable',
    'ConcurrentUpdate',
    'UnknownTool',
    'InternalError',
    'ErrorHandler',
    'ErrorCode'
]
