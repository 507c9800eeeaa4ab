"""
Type definitions for the Agent.

Includes:
- AgentConfig: construction-time configuration
- Flow: the control-flow policy (default or custom)
"""

import json
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel, Field, SecretStr

from agentloop.errors import BuildError
from agentloop.model.types import InvocationOptions, Message

if TYPE_CHECKING:
    from agentloop.agent.agent import Agent


DEFAULT_SYSTEM_PROMPT = "You are a helpful agent."
DEFAULT_MAX_ITERATIONS = 10


# ============================================================================
# Agent Configuration
# ============================================================================


class AgentConfig(BaseModel):
    """Configuration options for the Agent.

    Everything except ``name``, ``system_prompt``, ``clear_history_on_invoke``
    and ``require_remote_tools`` ends up in the InvocationOptions snapshot.
    Set ``system_prompt`` to None to start the history without a System
    message.
    """

    name: Optional[str] = None  # defaults to "Agent-<model>"
    model: str = ""
    system_prompt: Optional[str] = DEFAULT_SYSTEM_PROMPT

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    num_ctx: Optional[int] = None
    seed: Optional[int] = None
    stop: Optional[str] = None
    num_predict: Optional[int] = None
    stream: bool = False

    # JSON schema dict, raw JSON string or pydantic model class
    response_format: Any = None
    max_iterations: int = DEFAULT_MAX_ITERATIONS

    base_url: Optional[str] = None
    api_key: Optional[SecretStr] = None

    strip_thinking: bool = True
    clear_history_on_invoke: bool = False
    require_remote_tools: bool = Field(
        False, description="Fail the build when a remote server cannot be discovered."
    )

    @property
    def agent_name(self) -> str:
        return self.name or f"Agent-{self.model}"

    def invocation_options(self) -> InvocationOptions:
        """
        Freeze this configuration into the per-agent options snapshot.

        Raises:
            BuildError: empty model id or malformed response_format
        """
        if not self.model.strip():
            raise BuildError("Agent model is not set.")

        schema, schema_name = resolve_response_format(self.response_format)
        return InvocationOptions(
            model=self.model,
            temperature=self.temperature,
            top_p=self.top_p,
            num_ctx=self.num_ctx,
            seed=self.seed,
            stop=self.stop,
            num_predict=self.num_predict,
            stream=self.stream,
            response_format=schema,
            response_format_name=schema_name,
            max_iterations=self.max_iterations,
            base_url=self.base_url,
            api_key=self.api_key,
            strip_thinking=self.strip_thinking,
        )


def resolve_response_format(value: Any) -> tuple[Optional[dict[str, Any]], str]:
    """
    Normalize a response_format value into (JSON schema, schema name).

    Raises:
        BuildError: the value is not a schema source, or not a valid JSON Schema
    """
    if value is None:
        return None, "response"

    if isinstance(value, type) and issubclass(value, BaseModel):
        schema = value.model_json_schema()
        name = value.__name__
    elif isinstance(value, dict):
        schema = value
        name = str(value.get("title") or "response")
    elif isinstance(value, str):
        try:
            schema = json.loads(value)
        except json.JSONDecodeError as e:
            raise BuildError(f"response_format is not valid JSON: {e}") from e
        if not isinstance(schema, dict):
            raise BuildError("response_format must be a JSON object.")
        name = str(schema.get("title") or "response")
    else:
        raise BuildError(
            f"Unsupported response_format type: {type(value).__name__}"
        )

    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as e:
        raise BuildError(f"response_format is not a valid JSON Schema: {e.message}") from e

    # Provider APIs restrict schema names to [a-zA-Z0-9_-]
    name = re.sub(r"[^a-zA-Z0-9_-]+", "_", name) or "response"
    return schema, name


# ============================================================================
# Flow
# ============================================================================


FlowFn = Callable[["Agent", str], Awaitable[Message]]


@dataclass(frozen=True)
class Flow:
    """
    Control-flow policy selected at construction.

    Usage:
        Flow.default()
        Flow.custom(my_flow)  # async def my_flow(agent, prompt) -> Message
    """

    kind: Literal["default", "custom"] = "default"
    fn: Optional[FlowFn] = None

    @classmethod
    def default(cls) -> "Flow":
        return cls()

    @classmethod
    def custom(cls, fn: FlowFn) -> "Flow":
        if not callable(fn):
            raise BuildError("Custom flow must be callable.")
        return cls(kind="custom", fn=fn)

    @property
    def is_custom(self) -> bool:
        return self.kind == "custom"
