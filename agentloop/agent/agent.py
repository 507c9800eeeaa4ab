"""
Core Agent implementation.

The agent owns one History, one ToolRegistry and one NotificationBus. A
prompt is turned into a reply by the configured Flow (the default tool
loop unless a custom flow is given). Every invoke call ends with exactly
one FinalMessage notification on success, or an Error notification when
it raises.

One invoke at a time per agent: history is mutated in place, so callers
sharing an agent across tasks must serialize their calls.
"""

from contextlib import AsyncExitStack
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence, TypeVar, Union

from langchain_core.tools import BaseTool

from agentloop.agent.flows import default_flow
from agentloop.agent.history import History
from agentloop.agent.structured import map_structured_output, parse_structured_output
from agentloop.agent.types import AgentConfig, Flow, FlowFn
from agentloop.errors import TemplateError
from agentloop.model.llm import LangChainProvider, ProviderClient
from agentloop.model.types import InvocationOptions, Message
from agentloop.notifications.bus import (
    DEFAULT_SUBSCRIBER_QUEUE_SIZE,
    NotificationBus,
    NotificationReceiver,
)
from agentloop.notifications.types import Error, FinalMessage
from agentloop.templates.template import Template
from agentloop.tools.registry import ToolRegistry
from agentloop.tools.remote import McpServer, RemoteToolTransport, discover_remote_tools
from agentloop.tools.tool_executor import ToolExecutor
from agentloop.tools.types import Tool
from agentloop.utils.logger import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class Agent:
    """
    Usage:
        config = AgentConfig(model="gpt-4o-mini", system_prompt="You are terse.")
        async with await Agent.create(config, tools=[weather_tool]) as agent:
            reply = await agent.invoke("What is the weather in Ljubljana?")
            print(reply.content)
    """

    def __init__(
        self,
        config: AgentConfig,
        options: InvocationOptions,
        provider: ProviderClient,
        registry: ToolRegistry,
        flow: Flow,
        template: Optional[Template] = None,
        exit_stack: Optional[AsyncExitStack] = None,
    ):
        self.name = config.agent_name
        self.config = config
        self.options = options
        self.provider = provider
        self.registry = registry
        self.flow = flow
        self.template = template

        self.history = History(config.system_prompt)
        self.bus = NotificationBus(self.name)
        self.tool_executor = ToolExecutor(registry, self.bus)
        # Free-form data custom flows keep between invoke calls
        self.state: dict[str, Any] = {}

        self._exit_stack = exit_stack or AsyncExitStack()

    @classmethod
    async def create(
        cls,
        config: AgentConfig,
        tools: Iterable[Union[Tool, BaseTool]] = (),
        mcp_servers: Sequence[McpServer] = (),
        provider: Optional[ProviderClient] = None,
        flow: Optional[Union[Flow, FlowFn]] = None,
        template: Optional[Template] = None,
        remote_transport: Optional[RemoteToolTransport] = None,
    ) -> "Agent":
        """
        Build an agent, discovering remote tools before it is returned.

        Args:
            config: Agent configuration
            tools: Local tools (Tool or LangChain BaseTool)
            mcp_servers: Remote tool servers to discover
            provider: Defaults to LangChainProvider()
            flow: Flow, or an async ``fn(agent, prompt)`` used as custom flow
            template: Prompt template for the invoke_with_template calls
            remote_transport: Defaults to the MCP client transport

        Raises:
            BuildError: invalid configuration, duplicate tool names, or a
                failing remote server with ``require_remote_tools`` set
        """
        options = config.invocation_options()
        if flow is None:
            flow = Flow.default()
        elif not isinstance(flow, Flow):
            flow = Flow.custom(flow)

        registry = ToolRegistry()
        stack = AsyncExitStack()
        try:
            registry.register_many(tools)
            if mcp_servers:
                remote_tools = await discover_remote_tools(
                    mcp_servers,
                    stack,
                    transport=remote_transport,
                    strict=config.require_remote_tools,
                )
                registry.register_many(remote_tools)
        except Exception:
            await stack.aclose()
            raise
        registry.freeze()

        agent = cls(
            config=config,
            options=options,
            provider=provider if provider is not None else LangChainProvider(),
            registry=registry,
            flow=flow,
            template=template,
            exit_stack=stack,
        )
        log.info(
            f"Agent '{agent.name}' created with model={options.model}, "
            f"tools={len(registry)}, flow={flow.kind}, "
            f"max_iterations={options.max_iterations}"
        )
        return agent

    # ======================================================================
    ## Invocation
    # ======================================================================

    async def _execute_invocation(self, prompt: str) -> Message:
        if self.config.clear_history_on_invoke:
            self.history.clear()

        run = self.flow.fn if self.flow.is_custom else default_flow
        try:
            message = await run(self, prompt)
        except Exception as e:
            self._publish_error(e)
            raise

        self.bus.publish(FinalMessage(message=message))
        return message

    def _publish_error(self, error: Exception) -> None:
        code = getattr(error, "code", None) or "FLOW_ERROR"
        message = getattr(error, "message", None) or str(error)
        log.error(f"[{self.name}] invoke failed ({code}): {message}")
        self.bus.publish(Error(message=message, code=code))

    def _to_structured(self, message: Message, output_type: Optional[type[T]]) -> Any:
        try:
            value = parse_structured_output(message, self.options.response_format)
            return map_structured_output(value, output_type)
        except Exception as e:
            self._publish_error(e)
            raise

    async def _compile_template(self, data: Optional[Mapping[str, str]]) -> str:
        if self.template is None:
            error = TemplateError(f"Agent '{self.name}' has no template configured.")
            self._publish_error(error)
            raise error
        return await self.template.compile(data)

    async def invoke(self, prompt: str) -> Message:
        """Run the flow for ``prompt`` and return the terminal assistant message."""
        return await self._execute_invocation(prompt)

    async def invoke_structured_output(
        self, prompt: str, output_type: Optional[type[T]] = None
    ) -> Any:
        """
        Invoke, then validate the reply against ``response_format``.

        Args:
            prompt: User prompt
            output_type: Type to populate (pydantic model, dataclass,
                TypedDict, ...). None returns the parsed JSON value.

        Raises:
            StructuredOutputError: reply is not JSON or violates the schema
            DeserializationError: valid JSON that cannot populate output_type
        """
        message = await self._execute_invocation(prompt)
        return self._to_structured(message, output_type)

    async def invoke_with_template(
        self, data: Optional[Mapping[str, str]] = None
    ) -> Message:
        prompt = await self._compile_template(data)
        return await self._execute_invocation(prompt)

    async def invoke_with_template_structured_output(
        self,
        data: Optional[Mapping[str, str]] = None,
        output_type: Optional[type[T]] = None,
    ) -> Any:
        prompt = await self._compile_template(data)
        message = await self._execute_invocation(prompt)
        return self._to_structured(message, output_type)

    # ======================================================================
    ## History & Notifications
    # ======================================================================

    def clear_history(self) -> None:
        """Reset history to the system prompt only."""
        self.history.clear()

    def get_history(self) -> tuple[Message, ...]:
        return self.history.view()

    async def save_history(self, path: Union[str, Path]) -> Path:
        return await self.history.save(path)

    async def load_history(self, path: Union[str, Path]) -> None:
        """Replace the history with one written by save_history."""
        self.history = await History.load(path)
        log.debug(f"Agent '{self.name}' restored {len(self.history)} message(s) from {path}")

    def subscribe_notifications(
        self, maxsize: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE
    ) -> NotificationReceiver:
        return self.bus.subscribe(maxsize)

    def forward_notifications(self, other: "Agent"):
        """Re-publish ``other``'s notifications on this agent's bus."""
        return self.bus.forward(other.subscribe_notifications())

    # ======================================================================
    ## Lifecycle
    # ======================================================================

    async def aclose(self) -> None:
        """Close remote tool connections and every notification subscription."""
        try:
            await self._exit_stack.aclose()
        finally:
            self.bus.close()
        log.debug(f"Agent '{self.name}' closed")

    async def __aenter__(self) -> "Agent":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return (
            f"Agent(name={self.name!r}, model={self.options.model!r}, "
            f"tools={self.registry.names()}, history={len(self.history)})"
        )
