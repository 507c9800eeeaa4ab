"""
Tool registry: name -> Tool capability.

Tools are registered while an agent is being built and the registry is
frozen afterwards. A frozen registry is only read during dispatch, so
concurrent executors can resolve names without synchronization.

Tools whose executor drives a stateful nested agent must serialize access
to it (see agentloop.tools.nested.agent_as_tool).
"""

from typing import Any, Iterable, Iterator, Optional

from langchain_core.tools import BaseTool

from agentloop.errors import BuildError, DuplicateToolError
from agentloop.tools.types import Tool
from agentloop.utils.logger import get_logger

log = get_logger(__name__)


class ToolRegistry:
    def __init__(self, tools: Optional[Iterable[Tool | BaseTool]] = None) -> None:
        self._tools: dict[str, Tool] = {}
        self._frozen = False
        if tools:
            self.register_many(tools)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True

    def register(self, tool: Tool | BaseTool) -> Tool:
        """
        Register a tool capability.

        Args:
            tool: A Tool, or a LangChain tool that is adapted on the fly

        Raises:
            DuplicateToolError: a tool with the same name is already registered
            BuildError: the registry is frozen
        """
        if self._frozen:
            raise BuildError(
                f"Cannot register '{getattr(tool, 'name', tool)}': registry is frozen."
            )
        if isinstance(tool, BaseTool):
            tool = Tool.from_langchain(tool)
        if tool.name in self._tools:
            raise DuplicateToolError(
                f"A tool named '{tool.name}' is already registered.", tool=tool.name
            )
        self._tools[tool.name] = tool
        log.debug(f"Registered tool: {tool.name}")
        return tool

    def register_many(self, tools: Iterable[Tool | BaseTool]) -> None:
        for tool in tools:
            self.register(tool)

    def resolve(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        """Function schemas for every registered tool, in registration order."""
        return [tool.to_schema() for tool in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())
