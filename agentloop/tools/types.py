"""
Tool capability types.

This module provides:
- ToolProperty / ToolParameters: the argument schema of a tool
- Tool: a named {schema, executor} unit the model may call
- ToolBuilder: fluent construction of a Tool
- format_tool_result: serializes non-text executor results to JSON
"""

import inspect
import json
from typing import Any, Awaitable, Callable, Optional

from langchain_core.tools import BaseTool
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agentloop.errors import (
    ArgumentParsingError,
    BuildError,
    ExecutionFailed,
    ToolExecutionError,
)

ToolExecutor = Callable[[dict[str, Any]], Awaitable[Any]]


class ToolProperty(BaseModel):
    """One named argument. Extra JSON-schema keys (items, enum, ...) are kept."""

    model_config = ConfigDict(extra="allow")

    type: str = Field("string", description="JSON schema type of the argument.")
    description: str = Field("", description="What the argument means.")


class ToolParameters(BaseModel):
    properties: dict[str, ToolProperty] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)

    def to_json_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                name: prop.model_dump(exclude_none=True)
                for name, prop in self.properties.items()
            },
            "required": list(self.required),
        }

    @classmethod
    def from_json_schema(cls, schema: Optional[dict[str, Any]]) -> "ToolParameters":
        """Read an object JSON schema (MCP inputSchema, pydantic schema, ...)."""
        schema = schema or {}
        properties: dict[str, ToolProperty] = {}
        for name, prop in (schema.get("properties") or {}).items():
            if not isinstance(prop, dict):
                continue
            extra = {
                k: v
                for k, v in prop.items()
                if k not in ("type", "description", "title")
            }
            properties[name] = ToolProperty(
                type=_json_type(prop),
                description=prop.get("description", ""),
                **extra,
            )
        required = [r for r in schema.get("required") or [] if isinstance(r, str)]
        return cls(properties=properties, required=required)


def _json_type(prop: dict[str, Any]) -> str:
    if isinstance(prop.get("type"), str):
        return prop["type"]
    # Optional[...] fields come out of pydantic as anyOf [..., {"type": "null"}]
    for option in prop.get("anyOf") or []:
        if isinstance(option, dict) and option.get("type") not in (None, "null"):
            return option["type"]
    return "string"


def format_tool_result(data: Any) -> str:
    """Format a tool result as text; non-string results become JSON."""
    if isinstance(data, str):
        return data
    if isinstance(data, BaseModel):
        return data.model_dump_json()
    return json.dumps(data, ensure_ascii=False, default=str)


class Tool(BaseModel):
    """
    A tool capability: name, description, argument schema and executor.

    The executor is an async callable taking the argument dict and returning
    text (other values are serialized to JSON). Tools are immutable once
    registered.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str = Field(..., description="Unique registry key.")
    description: str = Field("", description="Shown to the model.")
    parameters: ToolParameters = Field(default_factory=ToolParameters)
    executor: Any = Field(..., exclude=True, repr=False)

    def to_schema(self) -> dict[str, Any]:
        """OpenAI-style function schema handed to the provider."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters.to_json_schema(),
            },
        }

    def _check_arguments(self, arguments: Any) -> dict[str, Any]:
        if not isinstance(arguments, dict):
            raise ArgumentParsingError(
                f"Arguments for '{self.name}' must be an object, got {type(arguments).__name__}",
                tool=self.name,
            )
        missing = [r for r in self.parameters.required if r not in arguments]
        if missing:
            raise ArgumentParsingError(
                f"Missing required argument(s) for '{self.name}': {', '.join(missing)}",
                tool=self.name,
            )
        return arguments

    async def execute(self, arguments: Any) -> str:
        """
        Run the executor.

        Raises:
            ArgumentParsingError: arguments do not fit the schema
            ExecutionFailed: the executor raised or its result could not be formatted
        """
        args = self._check_arguments(arguments)
        try:
            result = self.executor(args)
            if inspect.isawaitable(result):
                result = await result
            return format_tool_result(result)
        except ToolExecutionError:
            raise
        except ValidationError as e:
            raise ArgumentParsingError(str(e), tool=self.name) from e
        except Exception as e:
            raise ExecutionFailed(str(e) or type(e).__name__, tool=self.name) from e

    @classmethod
    def from_langchain(cls, tool: BaseTool) -> "Tool":
        """
        Adapt a LangChain tool (``@tool`` function, StructuredTool, ...).

        Args:
            tool: The LangChain tool instance

        Returns:
            A Tool whose executor calls ``tool.ainvoke``
        """
        schema = tool.get_input_schema().model_json_schema()

        async def executor(args: dict[str, Any]) -> Any:
            return await tool.ainvoke(args)

        return cls(
            name=tool.name,
            description=tool.description,
            parameters=ToolParameters.from_json_schema(schema),
            executor=executor,
        )


# ======================================================================
## Tool Builder
# ======================================================================


class ToolBuilder:
    """
    Fluent construction of a Tool.

    Usage:
        weather = (
            ToolBuilder()
            .function_name("get_weather")
            .function_description("Current weather for a city")
            .add_required_property("location", "string", "City name")
            .executor(fetch_weather)
            .build()
        )
    """

    def __init__(self) -> None:
        self._name: Optional[str] = None
        self._description: str = ""
        self._properties: dict[str, ToolProperty] = {}
        self._required: list[str] = []
        self._executor: Optional[ToolExecutor] = None

    def function_name(self, name: str) -> "ToolBuilder":
        self._name = name
        return self

    def function_description(self, description: str) -> "ToolBuilder":
        self._description = description
        return self

    def add_property(
        self, name: str, property_type: str, description: str = "", **extra: Any
    ) -> "ToolBuilder":
        self._properties[name] = ToolProperty(
            type=property_type, description=description, **extra
        )
        return self

    def add_required_property(
        self, name: str, property_type: Optional[str] = None, description: str = ""
    ) -> "ToolBuilder":
        if property_type is not None:
            self.add_property(name, property_type, description)
        if name not in self._required:
            self._required.append(name)
        return self

    def executor(self, executor: ToolExecutor) -> "ToolBuilder":
        self._executor = executor
        return self

    def build(self) -> Tool:
        if not self._name:
            raise BuildError("Tool name is not set.")
        if self._executor is None:
            raise BuildError(f"Tool '{self._name}' has no executor.")
        unknown = [r for r in self._required if r not in self._properties]
        if unknown:
            raise BuildError(
                f"Tool '{self._name}' requires undeclared properties: {', '.join(unknown)}"
            )
        return Tool(
            name=self._name,
            description=self._description,
            parameters=ToolParameters(
                properties=dict(self._properties), required=list(self._required)
            ),
            executor=self._executor,
        )
