"""
Tool Error Handling

Error taxonomy shared by the backend client, the cache layer and the tool
dispatcher. Every error carries a JSON-RPC style code so it can be rendered
into the uniform tool response.
"""

from typing import Optional, Any, Dict, List
from enum import IntEnum


class ErrorCode(IntEnum):
    """JSON-RPC 2.0 and server-defined error codes"""

    # JSON-RPC 2.0 Standard Errors
    METHOD_NOT_FOUND = -32601      # The tool does not exist
    INVALID_PARAMS = -32602        # Invalid tool argument(s)
    INTERNAL_ERROR = -32603        # Unexpected failure inside a handler

    # Implementation-defined errors (-32000 to -32099)
    RESOURCE_NOT_FOUND = -32002    # Product or cart item doesn't exist
    BACKEND_ERROR = -32010         # Commerce backend returned non-2xx or was unreachable
    CACHE_UNAVAILABLE = -32011     # Redis could not be reached
    CONCURRENT_UPDATE = -32012     # Optimistic cache transaction kept conflicting


class ToolError(Exception):
    """Base class for all errors surfaced through a tool response"""

    def __init__(
        self,
        code: int,
        message: str,
        data: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize tool error

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            data: Optional additional error data
        """
        self.code = code
        self.message = message
        self.data = data or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to JSON-RPC error format"""
        error_dict = {
            "code": int(self.code),
            "message": self.message
        }
        if self.data:
            error_dict["data"] = self.data
        return error_dict


class ValidationError(ToolError):
    """Malformed or missing tool arguments"""

    def __init__(self, message: str = "Invalid arguments", errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(
            ErrorCode.INVALID_PARAMS,
            f"Invalid arguments: {message}",
            {"errors": errors} if errors else None
        )
        self.errors = errors or []


class NotFound(ToolError):
    """Referenced product, cart item or wishlist item doesn't exist"""

    def __init__(self, resource: str, data: Optional[Dict] = None):
        super().__init__(
            ErrorCode.RESOURCE_NOT_FOUND,
            f"Not found: {resource}",
            data or {"resource": resource}
        )


class BackendError(ToolError):
    """Commerce backend answered with a non-2xx status or could not be reached"""

    def __init__(self, status_code: Optional[int], message: str):
        prefix = f"Backend error ({status_code})" if status_code else "Backend error"
        super().__init__(
            ErrorCode.BACKEND_ERROR,
            f"{prefix}: {message}",
            {"status_code": status_code}
        )
        self.status_code = status_code
        self.reason = message


class CacheUnavailable(ToolError):
    """The key-value store cannot be reached"""

    def __init__(self, message: str = "cache unavailable"):
        super().__init__(
            ErrorCode.CACHE_UNAVAILABLE,
            f"Cache unavailable: {message}"
        )


class ConcurrentUpdate(ToolError):
    """A cache record kept changing underneath an optimistic transaction"""

    def __init__(self, key: str, attempts: int):
        super().__init__(
            ErrorCode.CONCURRENT_UPDATE,
            f"Concurrent update: '{key}' changed during {attempts} attempts, please retry",
            {"key": key, "attempts": attempts}
        )


class UnknownTool(ToolError):
    """Dispatch to a tool name that was never registered"""

    def __init__(self, name: str):
        super().__init__(
            ErrorCode.METHOD_NOT_FOUND,
            f"Unknown tool: {name}",
            {"tool": name}
        )


class InternalError(ToolError):
    """Unexpected exception raised inside a tool handler"""

    def __init__(self, message: str = "Internal error", data: Optional[Dict] = None):
        super().__init__(
            ErrorCode.INTERNAL_ERROR,
            f"Internal error: {message}",
            data
        )


class ErrorHandler:
    """Utility class for handling and formatting errors"""

    @staticmethod
    def handle_exception(e: Exception) -> ToolError:
        """
        Convert any exception to a ToolError

        Args:
            e: Exception to handle

        Returns:
            The exception itself if it already is a ToolError, otherwise an
            InternalError wrapping it
        """
        if isinstance(e, ToolError):
            return e

        return InternalError(
            str(e) or type(e).__name__,
            {"exception_type": type(e).__name__}
        )
