"""Conversation driver: the bounded model/tool exchange loop."""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from support_agent.clients.anthropic import AnthropicMessage, AnthropicTool, CacheControl, ModelClient
from support_agent.errors import MaxIterationsExceeded, ModelCallError
from support_agent.models.agent import AgentRunResult, ToolCallRecord
from support_agent.models.llm import (
    LLMMessage,
    LLMUsage,
    ToolResultBlock,
    ToolUseBlock,
    extract_text,
    tool_use_blocks,
)
from support_agent.tools.registry import ToolsRegistry
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 10


@dataclass(frozen=True)
class DriverConfig:
    """Configuration for the conversation driver."""

    model: str | None = None  # None uses the client default
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    max_tokens: int | None = None
    parallel_tools: bool = False


@dataclass
class RunTrace:
    """Progress of a single run, readable even after the run is cancelled."""

    messages: list[LLMMessage] = field(default_factory=list)
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    iteration_count: int = 0
    usage: LLMUsage = field(default_factory=LLMUsage)
    last_text: str = ""


def _serialize_output(output: Any) -> str:
    if isinstance(output, str):
        return output
    try:
        return json.dumps(output, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(output)


class ConversationDriver:
    """Coordinates model calls and tool execution up to an iteration cap.

    States per run: awaiting a model response, executing the requested tools,
    then looping. A run ends when the model answers without requesting tools
    (success), when the model call fails, or when the cap is exhausted.
    """

    def __init__(self, client: ModelClient, config: DriverConfig | None = None):
        self.client = client
        self.config = config or DriverConfig()

    def validate_message(self, message: str) -> None:
        """Reject a message over the client's per-message token limit.

        Raises:
            ValueError: If message exceeds token limit
        """
        self.client.validate_message_tokens(message)

    def _build_tools(self, registry: ToolsRegistry) -> list[AnthropicTool]:
        schemas = registry.get_tool_schemas()
        tools = []
        for i, schema in enumerate(schemas):
            # Cache control on the last tool caches all tool definitions
            cache_control = CacheControl(type="ephemeral", ttl="5m") if i == len(schemas) - 1 else None
            tools.append(AnthropicTool(**schema, cache_control=cache_control))
        return tools

    async def _invoke_tool(
        self, registry: ToolsRegistry, block: ToolUseBlock
    ) -> tuple[ToolCallRecord, ToolResultBlock]:
        started_at = datetime.now(UTC)
        logger.debug(f"Executing tool: {block.name} with input: {block.input}")
        result = await registry.execute(block.name, block.input)

        record = ToolCallRecord(
            tool_use_id=block.id,
            name=block.name,
            input=block.input,
            output=result.output,
            error=result.error,
            timestamp=started_at,
        )
        if result.is_error:
            content = f"Error: {result.error}"
        else:
            content = _serialize_output(result.output)
        return record, ToolResultBlock(tool_use_id=block.id, content=content, is_error=result.is_error)

    async def _execute_tools(
        self, registry: ToolsRegistry, requests: list[ToolUseBlock]
    ) -> list[tuple[ToolCallRecord, ToolResultBlock]]:
        if self.config.parallel_tools and len(requests) > 1:
            # gather keeps results in request order
            return list(await asyncio.gather(*(self._invoke_tool(registry, block) for block in requests)))

        results = []
        for block in requests:
            results.append(await self._invoke_tool(registry, block))
        return results

    def _result(
        self,
        trace: RunTrace,
        *,
        success: bool,
        final_text: str = "",
        error: str | None = None,
        error_kind: str | None = None,
        stop_reason: str | None = None,
    ) -> AgentRunResult:
        return AgentRunResult(
            success=success,
            final_text=final_text,
            tool_calls=list(trace.tool_calls),
            iteration_count=trace.iteration_count,
            error=error,
            error_kind=error_kind,
            stop_reason=stop_reason,
            messages=list(trace.messages),
            usage=trace.usage,
        )

    async def run(
        self,
        system_prompt: str,
        registry: ToolsRegistry,
        messages: list[LLMMessage],
        *,
        max_iterations: int | None = None,
        model: str | None = None,
        trace: RunTrace | None = None,
    ) -> AgentRunResult:
        """Run the tool-use loop until a final answer, a model failure or the cap.

        Args:
            system_prompt: Fixed system prompt for the run
            registry: Tools the model may call
            messages: Initial message sequence, not mutated
            max_iterations: Iteration cap (defaults to the configured cap)
            model: Model identifier (defaults to the configured model)
            trace: Optional progress holder shared with the caller

        Returns:
            Run result with the tool call records in request order
        """
        cap = max_iterations if max_iterations is not None else self.config.max_iterations
        if cap < 1:
            raise ValueError(f"max_iterations must be at least 1, got {cap}")

        trace = trace if trace is not None else RunTrace()
        trace.messages = list(messages)
        tools = self._build_tools(registry)
        request_kwargs: dict[str, Any] = {"model": model or self.config.model}
        if self.config.max_tokens:
            request_kwargs["max_tokens"] = self.config.max_tokens

        logger.info(f"Starting agent run with {len(messages)} initial messages, {len(tools)} tools, cap: {cap}")

        while trace.iteration_count < cap:
            trace.iteration_count += 1
            logger.debug(f"Agent iteration {trace.iteration_count}/{cap}")

            try:
                response = await self.client.create_message(
                    messages=[AnthropicMessage(role=msg.role, content=msg.content) for msg in trace.messages],
                    system_prompt=system_prompt,
                    tools=tools,
                    **request_kwargs,
                )
            except Exception as e:
                error = e if isinstance(e, ModelCallError) else ModelCallError(str(e))
                logger.error(f"Model call failed on iteration {trace.iteration_count}: {error}")
                return self._result(trace, success=False, error=str(error), error_kind=error.kind)

            trace.usage.add(response.usage)
            text = extract_text(response.content)
            if text:
                trace.last_text = text

            requests = tool_use_blocks(response.content)
            if not requests:
                trace.messages.append(LLMMessage(role="assistant", content=response.content))
                logger.info(f"Agent run completed in {trace.iteration_count} iterations")
                return self._result(trace, success=True, final_text=text, stop_reason=response.stop_reason)

            logger.info(f"Model requested {len(requests)} tool(s): {[block.name for block in requests]}")
            trace.messages.append(LLMMessage(role="assistant", content=response.content))

            executed = await self._execute_tools(registry, requests)

            # Flush the whole turn at once, after every call has finished
            trace.tool_calls.extend(record for record, _ in executed)
            trace.messages.append(LLMMessage(role="user", content=[block for _, block in executed]))

        error = MaxIterationsExceeded(cap)
        logger.warning(str(error))
        return self._result(
            trace,
            success=False,
            final_text=trace.last_text,
            error=str(error),
            error_kind=error.kind,
            stop_reason="max_iterations",
        )

    async def run_with_timeout(
        self,
        timeout: float,
        system_prompt: str,
        registry: ToolsRegistry,
        messages: list[LLMMessage],
        **kwargs,
    ) -> AgentRunResult:
        """Run with a caller-level deadline.

        On timeout the run is cancelled and the tool calls recorded so far are
        returned with ``error_kind="Timeout"``.
        """
        trace = RunTrace()
        try:
            async with asyncio.timeout(timeout):
                return await self.run(system_prompt, registry, messages, trace=trace, **kwargs)
        except TimeoutError:
            logger.warning(f"Agent run timed out after {timeout}s with {len(trace.tool_calls)} tool call(s)")
            return self._result(
                trace,
                success=False,
                final_text=trace.last_text,
                error=f"Agent run timed out after {timeout}s",
                error_kind="Timeout",
            )
