"""
Tool Registry - Single Source of Truth for All Tools

Every tool is declared once as a ToolDefinition: name, description, parameter
schema and async handler. The registry validates arguments against that
schema, calls the handler and wraps whatever happens into the uniform
response envelope, so no error ever escapes to the MCP transport.
"""

from typing import Annotated, Any, Awaitable, Callable, Dict, List, Optional
from dataclasses import dataclass, field
import json
import time

from mcp.types import Tool
from pydantic import BaseModel, ConfigDict, Field, create_model
from pydantic import ValidationError as PydanticValidationError

from ..protocol.errors import ErrorHandler, InternalError, UnknownTool, ValidationError
from ..utils.logger import get_logger, get_mcp_operations_logger

logger = get_logger(__name__)
mcp_ops_logger = get_mcp_operations_logger()

_PYTHON_TYPES = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
}


@dataclass(frozen=True)
class ParamSpec:
    """Schema of a single tool argument"""
    type: str
    description: str = ""
    required: bool = False
    default: Any = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    min_length: Optional[int] = None

    def __post_init__(self):
        if self.type not in _PYTHON_TYPES:
            raise ValueError(f"Unsupported parameter type: {self.type}")

    def annotation(self) -> Any:
        constraints: Dict[str, Any] = {}
        if self.minimum is not None:
            constraints["ge"] = self.minimum
        if self.maximum is not None:
            constraints["le"] = self.maximum
        if self.min_length is not None:
            constraints["min_length"] = self.min_length
        return Annotated[_PYTHON_TYPES[self.type], Field(strict=True, **constraints)]

    def to_json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        if self.default is not None:
            schema["default"] = self.default
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.min_length is not None:
            schema["minLength"] = self.min_length
        return schema


@dataclass
class ToolResponse:
    """Uniform tool reply: a list of text content blocks plus a success flag"""
    content: List[Dict[str, str]]
    success: bool = True

    @classmethod
    def text(cls, text: str) -> 'ToolResponse':
        return cls(content=[{"type": "text", "text": text}], success=True)

    @classmethod
    def error(cls, message: str) -> 'ToolResponse':
        return cls(content=[{"type": "text", "text": f"Error: {message}"}], success=False)

    @property
    def first_text(self) -> str:
        return self.content[0]["text"] if self.content else ""

    def to_dict(self) -> Dict[str, Any]:
        return {"content": list(self.content), "success": self.success}


@dataclass
class ToolDefinition:
    """Complete definition of a tool including metadata and implementation"""
    name: str
    description: str
    handler: Callable[..., Awaitable[Any]]
    parameters: Dict[str, ParamSpec] = field(default_factory=dict)
    category: str = "general"
    _arguments_model: Optional[type] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        fields: Dict[str, Any] = {}
        for param_name, spec in self.parameters.items():
            if spec.required:
                fields[param_name] = (spec.annotation(), ...)
            else:
                fields[param_name] = (Optional[spec.annotation()], spec.default)
        model_name = "".join(part.title() for part in self.name.split("_")) + "Arguments"
        self._arguments_model = create_model(
            model_name,
            __config__=ConfigDict(extra="ignore"),
            **fields
        )

    @property
    def required_params(self) -> List[str]:
        return [name for name, spec in self.parameters.items() if spec.required]

    def validate(self, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Validate raw arguments into typed, defaulted keyword arguments

        Unknown keys are dropped; None counts as "not provided".

        Raises:
            ValidationError: listing every offending field
        """
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ValidationError("arguments must be an object",
                                  [{"field": "(root)", "message": "must be an object"}])

        provided = {k: v for k, v in arguments.items() if v is not None}
        try:
            model: BaseModel = self._arguments_model(**provided)
        except PydanticValidationError as e:
            errors = [
                {"field": ".".join(str(part) for part in err["loc"]) or "(root)", "message": err["msg"]}
                for err in e.errors()
            ]
            raise ValidationError("; ".join(f"{err['field']}: {err['message']}" for err in errors), errors) from e
        return model.model_dump()


class ToolRegistry:
    """Central registry and dispatcher for all MCP tools"""

    def __init__(self):
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, tool_def: ToolDefinition):
        """Register a tool definition; names are unique"""
        if tool_def.name in self._tools:
            raise ValueError(f"Tool already registered: {tool_def.name}")
        self._tools[tool_def.name] = tool_def

    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        """Get a tool definition by name"""
        return self._tools.get(name)

    def list_tools(self) -> List[ToolDefinition]:
        """List all registered tools"""
        return list(self._tools.values())

    def get_mcp_tools(self) -> List[Tool]:
        """Generate MCP Tool objects from registry"""
        tools = []
        for tool_def in self._tools.values():
            # Build JSON Schema for the tool
            schema: Dict[str, Any] = {
                "type": "object",
                "properties": {
                    name: spec.to_json_schema() for name, spec in tool_def.parameters.items()
                }
            }

            # Add required fields if any
            if tool_def.required_params:
                schema["required"] = tool_def.required_params

            tools.append(Tool(
                name=tool_def.name,
                description=tool_def.description,
                inputSchema=schema
            ))

        return tools

    async def invoke(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResponse:
        """
        Dispatch tool execution to its handler.

        Always returns a ToolResponse; validation failures, unknown tools and
        handler errors are rendered as error text inside the same envelope.
        """
        start_time = time.time()
        try:
            tool_def = self.get_tool(name)
            if not tool_def:
                raise UnknownTool(name)

            mcp_ops_logger.log_tool_request(name, arguments or {})
            validated = tool_def.validate(arguments)
            logger.info(f"[{name}] Executing")

            result = await tool_def.handler(**validated)

            if isinstance(result, str):
                text = result
            else:
                text = json.dumps(result, indent=2, default=str)

            execution_time_ms = (time.time() - start_time) * 1000
            mcp_ops_logger.log_tool_response(name, text, execution_time_ms)
            logger.info(f"[{name}] Execution successful in {execution_time_ms:.2f}ms")
            return ToolResponse.text(text)

        except Exception as e:
            execution_time_ms = (time.time() - start_time) * 1000
            error = ErrorHandler.handle_exception(e)
            if isinstance(error, InternalError):
                logger.error(f"[{name}] Unexpected error (after {execution_time_ms:.2f}ms): {e}", exc_info=True)
            else:
                logger.warning(f"[{name}] {error.message} (after {execution_time_ms:.2f}ms)")
            mcp_ops_logger.log_tool_error(name, error, execution_time_ms)
            return ToolResponse.error(error.message)

    def get_tools_by_category(self, category: str) -> List[ToolDefinition]:
        """Get all tools in a specific category"""
        return [
            tool for tool in self._tools.values()
            if tool.category == category
        ]
