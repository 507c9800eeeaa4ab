import asyncio
import json
import time
from dataclasses import dataclass
from typing import Sequence

from agentloop.errors import ToolExecutionError, ToolNotFoundError
from agentloop.model.types import Message, ToolCallRequest
from agentloop.notifications.bus import NotificationBus
from agentloop.notifications.types import ToolCallRequested
from agentloop.tools.registry import ToolRegistry
from agentloop.utils.logger import get_logger

log = get_logger(__name__)


# ======================================================================
## Tool Call Outcome
# ======================================================================


@dataclass
class ToolCallOutcome:
    """Result of one dispatched request, already shaped as a Tool message."""

    request: ToolCallRequest
    message: Message
    success: bool
    duration: int = 0  # milliseconds


def tool_not_found_payload(name: str, available: Sequence[str]) -> str:
    """Structured payload telling the model the tool does not exist."""
    return json.dumps(
        {
            "error": ToolNotFoundError.code,
            "tool": name,
            "message": f"Tool '{name}' not found.",
            "available_tools": list(available),
        },
        ensure_ascii=False,
    )


# ======================================================================
## Tool Executor Implementation
# ======================================================================


# Resolves the tool calls of one assistant message and runs them concurrently.
# Failures never escape: they come back as Tool messages so the model can recover.
class ToolExecutor:
    def __init__(self, registry: ToolRegistry, bus: NotificationBus) -> None:
        self.registry = registry
        self.bus = bus

    async def execute_tools(
        self,
        requests: Sequence[ToolCallRequest],
    ) -> list[ToolCallOutcome]:
        """Run every request of one turn concurrently.

        Args:
            requests (Sequence[ToolCallRequest]): Tool calls in provider order

        Returns:
            list[ToolCallOutcome]: One outcome per request, in request order
            regardless of completion order.
        """
        if not requests:
            return []

        for request in requests:
            self.bus.publish(ToolCallRequested(request=request))

        async def execute_single_tool(request: ToolCallRequest) -> ToolCallOutcome:
            tool = self.registry.resolve(request.name)
            if tool is None:
                log.warning(f"Model requested unknown tool: {request.name}")
                return ToolCallOutcome(
                    request=request,
                    message=Message.tool(
                        tool_not_found_payload(request.name, self.registry.names()),
                        request.id,
                    ),
                    success=False,
                )

            log.info(f"Executing tool: {request.name} (call_id={request.id})")
            start_time = time.time()
            try:
                output = await tool.execute(request.arguments)
                success = True
            except ToolExecutionError as e:
                # !!! Mark as failed but do not interrupt sibling calls
                log.error(f"Tool {request.name} failed: {e.message}")
                output = f"Error: {e.message}"
                success = False
            except Exception as e:
                log.error(f"Tool {request.name} raised unexpectedly: {e}")
                output = f"Error: {str(e) or type(e).__name__}"
                success = False

            duration = int((time.time() - start_time) * 1000)
            if success:
                log.info(
                    f"Tool {request.name} completed in {duration}ms "
                    f"(result_len={len(output)})"
                )
            return ToolCallOutcome(
                request=request,
                message=Message.tool(output, request.id),
                success=success,
                duration=duration,
            )

        # gather() keeps the input order in its result list
        return list(await asyncio.gather(*(execute_single_tool(r) for r in requests)))
