"""
Remote tool discovery over the Model Context Protocol.

Each configured server is contacted once while the agent is built. Its
tools are wrapped as Tool capabilities whose executor forwards the call to
the server over the open session. A server that cannot be reached or
listed is logged and skipped so the other servers still contribute their
tools (unless strict discovery is requested).

The sessions stay open inside the caller's AsyncExitStack and must be
closed from the same task that opened them (``Agent.aclose``).
"""

import shlex
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence

from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client

from agentloop.errors import BuildError, ExecutionFailed, RemoteDiscoveryError
from agentloop.tools.types import Tool, ToolParameters
from agentloop.utils.logger import get_logger

log = get_logger(__name__)


class McpTransport(str, Enum):
    STDIO = "stdio"
    SSE = "sse"
    STREAMABLE_HTTP = "streamable_http"


@dataclass(frozen=True)
class McpServer:
    """Where to find an MCP server and how to talk to it."""

    transport: McpTransport
    target: str  # command for stdio, URL otherwise
    args: tuple[str, ...] = ()
    env: Optional[dict[str, str]] = field(default=None, hash=False)

    @classmethod
    def stdio(
        cls,
        command: str,
        args: Sequence[str] = (),
        env: Optional[dict[str, str]] = None,
    ) -> "McpServer":
        if not args:
            # "uvx some-server --flag" in one string
            parts = shlex.split(command)
            if not parts:
                raise BuildError("MCP stdio command is empty.")
            command, *args = parts
        return cls(McpTransport.STDIO, command, tuple(args), env)

    @classmethod
    def sse(cls, url: str) -> "McpServer":
        return cls(McpTransport.SSE, url)

    @classmethod
    def streamable_http(cls, url: str) -> "McpServer":
        return cls(McpTransport.STREAMABLE_HTTP, url)

    @property
    def label(self) -> str:
        return " ".join((self.target, *self.args))


@dataclass
class RemoteToolSpec:
    """A tool as announced by a remote server."""

    name: str
    description: str
    input_schema: dict[str, Any]
    invoke: Callable[[dict[str, Any]], Awaitable[str]]


class RemoteToolTransport(Protocol):
    """Connects to a server descriptor and lists its tools.

    Connection resources must be registered on ``stack``.
    """

    async def connect(
        self, server: McpServer, stack: AsyncExitStack
    ) -> list[RemoteToolSpec]:
        ...


# ======================================================================
## MCP Transport
# ======================================================================


async def _call_mcp_tool(
    session: ClientSession, name: str, arguments: dict[str, Any]
) -> str:
    try:
        result = await session.call_tool(name, arguments=arguments)
    except Exception as e:
        raise ExecutionFailed(
            f"MCP tool '{name}' execution failed: {e}", tool=name
        ) from e

    text = "\n".join(
        block.text for block in result.content if getattr(block, "type", None) == "text"
    )
    if result.isError:
        raise ExecutionFailed(text or f"MCP tool '{name}' reported an error", tool=name)
    return text


class McpToolTransport:
    """RemoteToolTransport built on the official ``mcp`` client SDK."""

    async def connect(
        self, server: McpServer, stack: AsyncExitStack
    ) -> list[RemoteToolSpec]:
        if server.transport == McpTransport.STDIO:
            params = StdioServerParameters(
                command=server.target, args=list(server.args), env=server.env
            )
            read, write = await stack.enter_async_context(stdio_client(params))
        elif server.transport == McpTransport.SSE:
            read, write = await stack.enter_async_context(sse_client(server.target))
        else:
            read, write, _ = await stack.enter_async_context(
                streamablehttp_client(server.target)
            )

        session = await stack.enter_async_context(ClientSession(read, write))
        await session.initialize()
        listed = await session.list_tools()

        return [
            RemoteToolSpec(
                name=tool.name,
                description=tool.description or "",
                input_schema=tool.inputSchema or {},
                invoke=partial(_call_mcp_tool, session, tool.name),
            )
            for tool in listed.tools
        ]


# ======================================================================
## Discovery
# ======================================================================


def remote_tool_from_spec(spec: RemoteToolSpec) -> Tool:
    return Tool(
        name=spec.name,
        description=spec.description,
        parameters=ToolParameters.from_json_schema(spec.input_schema),
        executor=spec.invoke,
    )


async def discover_remote_tools(
    servers: Sequence[McpServer],
    stack: AsyncExitStack,
    transport: Optional[RemoteToolTransport] = None,
    strict: bool = False,
) -> list[Tool]:
    """
    Discover the tools of every server, isolating failures per server.

    Args:
        servers: Server descriptors, contacted in order
        stack: Owns the open connections of the servers that succeeded
        transport: Defaults to McpToolTransport
        strict: Raise RemoteDiscoveryError on the first failing server

    Returns:
        Tools of all servers that could be discovered
    """
    transport = transport or McpToolTransport()
    tools: list[Tool] = []

    for server in servers:
        server_stack = AsyncExitStack()
        try:
            specs = await transport.connect(server, server_stack)
            server_tools = [remote_tool_from_spec(spec) for spec in specs]
        except Exception as e:
            await _close_quietly(server_stack, server)
            log.error(f"Tool discovery failed for server '{server.label}': {e}")
            if strict:
                raise RemoteDiscoveryError(
                    f"Tool discovery failed for server '{server.label}': {e}",
                    server=server.label,
                ) from e
            continue

        stack.push_async_callback(server_stack.aclose)
        tools.extend(server_tools)
        log.info(f"Discovered {len(server_tools)} tool(s) from server '{server.label}'")

    return tools


async def _close_quietly(stack: AsyncExitStack, server: McpServer) -> None:
    try:
        await stack.aclose()
    except Exception as e:
        log.warning(f"Closing failed connection to '{server.label}' raised: {e}")
