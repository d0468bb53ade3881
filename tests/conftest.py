"""Shared fixtures: a scripted model client and support agent wiring."""

import asyncio
import itertools
from typing import Any

import pytest

from support_agent.clients.anthropic import AnthropicMessage, AnthropicResponse, AnthropicTool
from support_agent.models.llm import LLMUsage, TextBlock, ToolUseBlock
from support_agent.services.backend import InMemorySupportBackend
from support_agent.services.driver import ConversationDriver, DriverConfig
from support_agent.services.guard_rails import GuardRailEngine
from support_agent.services.support_agent import SupportAgent, SupportAgentConfig
from support_agent.tools.context import SupportToolContext

_tool_use_ids = itertools.count(1)


def _usage() -> LLMUsage:
    return LLMUsage(input_tokens=10, output_tokens=5, total_tokens=15)


def text_response(text: str) -> AnthropicResponse:
    """A model turn that answers without requesting tools."""
    return AnthropicResponse(content=[TextBlock(text=text)], stop_reason="end_turn", usage=_usage(), model="test-model")


def tool_response(*calls: tuple[str, dict[str, Any]], text: str | None = None) -> AnthropicResponse:
    """A model turn requesting the given (name, input) tool calls in order."""
    content: list = [TextBlock(text=text)] if text else []
    for name, tool_input in calls:
        content.append(ToolUseBlock(id=f"toolu_{next(_tool_use_ids):04d}", name=name, input=tool_input))
    return AnthropicResponse(content=content, stop_reason="tool_use", usage=_usage(), model="test-model")


class ScriptedModelClient:
    """Model client replaying a fixed list of responses.

    ``repeat`` is returned once the script is exhausted; ``error`` is raised
    on every call; ``delay`` is awaited before answering. Messages longer
    than ``max_message_tokens`` (four characters per token) are rejected.
    """

    def __init__(
        self,
        responses: list[AnthropicResponse] | None = None,
        *,
        repeat: AnthropicResponse | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
        max_message_tokens: int | None = None,
    ):
        self.responses = list(responses or [])
        self.repeat = repeat
        self.error = error
        self.delay = delay
        self.max_message_tokens = max_message_tokens
        self.calls: list[dict[str, Any]] = []

    async def create_message(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        tools: list[AnthropicTool] | None = None,
        **kwargs,
    ) -> AnthropicResponse:
        self.calls.append({"messages": list(messages), "system_prompt": system_prompt, "tools": tools, **kwargs})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        if self.repeat is not None:
            return self.repeat
        raise AssertionError("ScriptedModelClient ran out of responses")

    def validate_message_tokens(self, message: str) -> None:
        token_count = len(message) // 4
        if self.max_message_tokens is not None and token_count > self.max_message_tokens:
            raise ValueError(f"Message exceeds token limit: {token_count} tokens > {self.max_message_tokens} limit")


@pytest.fixture
def backend():
    return InMemorySupportBackend()


@pytest.fixture
def guard_rails():
    return GuardRailEngine()


@pytest.fixture
def tool_context(backend, guard_rails):
    return SupportToolContext(
        backend=backend, guard_rails=guard_rails, conversation_id="conv_1", customer_id="CUST_001"
    )


@pytest.fixture
def make_agent(backend, guard_rails):
    """Build a support agent around a scripted client."""

    def _make(client: ScriptedModelClient, **config_overrides) -> SupportAgent:
        return SupportAgent(
            driver=ConversationDriver(client, DriverConfig(model="test-model")),
            backend=backend,
            guard_rails=guard_rails,
            config=SupportAgentConfig(**config_overrides),
        )

    return _make
