"""Anthropic API client with rate limiting and error handling."""

import asyncio
import os
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, Protocol, TypeVar

import tiktoken
from anthropic import APIError, AsyncAnthropic
from anthropic.types import ContentBlock as AnthropicContentBlock
from anthropic.types import Message
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from pydantic import BaseModel

from support_agent.errors import ModelCallError
from support_agent.models.llm import ContentBlock, LLMUsage, TextBlock, ToolUseBlock
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CacheControl(BaseModel):
    """Cache control configuration for prompt caching."""

    type: Literal["ephemeral"] = "ephemeral"
    ttl: Literal["5m", "1h"] = "5m"


class AnthropicMessage(BaseModel):
    """Message format for Anthropic API."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]


class AnthropicTool(BaseModel):
    """Tool definition for Anthropic API."""

    name: str
    description: str
    input_schema: dict[str, Any]
    cache_control: CacheControl | None = None


@dataclass
class AnthropicResponse:
    """Structured response from Anthropic API."""

    content: list[ContentBlock]
    stop_reason: str | None
    usage: LLMUsage
    model: str


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    temperature: float = 0.1
    max_retries: int = 3
    retry_delay: float = 1.0
    requests_per_minute: int = 50
    tokens_per_minute: int = 40_000

    # Token limits for validation and truncation
    max_message_tokens: int = 2000  # Maximum tokens per individual message
    max_conversation_tokens: int = 200000
    token_headroom: int = 4096  # Reserve tokens for response


class ModelClient(Protocol):
    """The single wire boundary to the language model provider."""

    async def create_message(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        tools: list[AnthropicTool] | None = None,
        **kwargs,
    ) -> AnthropicResponse: ...

    def validate_message_tokens(self, message: str) -> None: ...


class AnthropicRateLimiter:
    """Moving-window rate limiter for requests and tokens."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "anthropic") -> None:
        """Wait until the request fits within the rate limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_window(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=estimated_tokens):
            await self._wait_for_window(self.token_limit, token_identifier, "Token")

    async def _wait_for_window(self, limit, identifier: str, label: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        if window_stats:
            wait_time = max(0.0, window_stats.reset_time - time.time())
            if wait_time > 0:
                logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)


class AnthropicClient:
    """Low-level Anthropic API client with rate limiting and error handling."""

    tokenizer: tiktoken.Encoding | None = None
    api_key: str
    client: AsyncAnthropic
    config: AnthropicConfig
    rate_limiter: AnthropicRateLimiter

    def __init__(self, api_key: str | None = None, config: AnthropicConfig | None = None):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration
        """
        anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.api_key = anthropic_api_key
        self.config = config or AnthropicConfig()
        self.client = AsyncAnthropic(api_key=self.api_key)
        self.rate_limiter = AnthropicRateLimiter(self.config.requests_per_minute, self.config.tokens_per_minute)

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    async def create_message(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        tools: list[AnthropicTool] | None = None,
        **kwargs,
    ) -> AnthropicResponse:
        """Create a message with Claude API.

        Args:
            messages: Conversation history
            system_prompt: System prompt for Claude
            tools: Available tools for Claude
            **kwargs: Additional parameters for Claude API (model, max_tokens, temperature)

        Returns:
            Structured Anthropic response

        Raises:
            ModelCallError: If the request fails after retries
        """
        truncated_messages = self.truncate_conversation(messages, system_prompt, tools)

        estimated_tokens = self._estimate_tokens(truncated_messages, system_prompt)
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        request_params: dict[str, Any] = {
            "model": kwargs.get("model") or self.config.model,
            "max_tokens": kwargs.get("max_tokens") or self.config.max_tokens,
            "temperature": kwargs.get("temperature", self.config.temperature),
            "system": system_prompt,
            "messages": [msg.model_dump(exclude_none=True) for msg in truncated_messages],
        }
        if tools:
            request_params["tools"] = [tool.model_dump(exclude_none=True) for tool in tools]

        logger.debug(
            f"Making Anthropic API call with model: {request_params['model']}, "
            f"{len(truncated_messages)} messages, {len(tools) if tools else 0} tools"
        )
        try:
            response: Message = await self._request_with_retries(
                lambda: self.client.messages.create(**request_params)
            )
        except Exception as e:
            raise ModelCallError(f"Anthropic request failed: {e}") from e

        usage = LLMUsage()
        if response.usage:
            usage = LLMUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
                cache_creation_input_tokens=response.usage.cache_creation_input_tokens or 0,
                cache_read_input_tokens=response.usage.cache_read_input_tokens or 0,
            )

        logger.debug(
            f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}"
        )

        return AnthropicResponse(
            content=self._convert_content_blocks(response.content),
            stop_reason=response.stop_reason,
            usage=usage,
            model=response.model,
        )

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute Anthropic API request with retry logic."""
        for attempt in range(self.config.max_retries):
            try:
                return await call()

            except APIError as e:
                status_code = getattr(e, "status_code", None)
                last_attempt = attempt >= self.config.max_retries - 1

                if status_code == 429 and not last_attempt:
                    retry_after = 60
                    response = getattr(e, "response", None)
                    if response is not None and hasattr(response, "headers"):
                        retry_after = int(response.headers.get("retry-after", 60))

                    if retry_after < 120:
                        await asyncio.sleep(retry_after)
                        continue

                elif status_code is not None and status_code >= 500 and not last_attempt:
                    # Server error, retry with exponential backoff
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue

                raise

            except Exception:
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue
                raise

        raise ModelCallError(f"Failed to complete request after {self.config.max_retries} attempts")

    def _convert_content_blocks(self, anthropic_content: list[AnthropicContentBlock]) -> list[ContentBlock]:
        """Convert Anthropic content blocks to our ContentBlock types."""
        converted_blocks: list[ContentBlock] = []
        for block in anthropic_content:
            block_dict = block.model_dump() if hasattr(block, "model_dump") else dict(block)

            if block_dict.get("type") == "text":
                converted_blocks.append(TextBlock.model_validate(block_dict))
            elif block_dict.get("type") == "tool_use":
                converted_blocks.append(ToolUseBlock.model_validate(block_dict))
            else:
                logger.warning(f"Skipping unsupported content block type: {block_dict.get('type')}")

        return converted_blocks

    def _message_text(self, message: AnthropicMessage) -> str:
        if isinstance(message.content, str):
            return message.content

        parts = []
        for block in message.content:
            if isinstance(block, TextBlock):
                parts.append(block.text)
            elif isinstance(block, ToolUseBlock):
                parts.append(str(block.input))
            else:
                parts.append(block.content)
        return "".join(parts)

    def _estimate_tokens(self, messages: list[AnthropicMessage], system_prompt: str) -> int:
        """Estimate token count for rate limiting."""
        text_content = system_prompt + "".join(self._message_text(message) for message in messages)
        return self.estimate_message_tokens(text_content)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Args:
            message: Message content

        Returns:
            Estimated token count
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4

    def validate_message_tokens(self, message: str) -> None:
        """Validate that a message doesn't exceed token limits.

        Raises:
            ValueError: If message exceeds token limit
        """
        token_count = self.estimate_message_tokens(message)
        if token_count > self.config.max_message_tokens:
            raise ValueError(
                f"Message exceeds token limit: {token_count} tokens > {self.config.max_message_tokens} limit"
            )

    def truncate_conversation(
        self, messages: list[AnthropicMessage], system_prompt: str, tools: list[AnthropicTool] | None = None
    ) -> list[AnthropicMessage]:
        """Truncate conversation from the beginning to fit within token limits.

        The kept window always starts on a plain user message so a tool result
        is never separated from the tool use that produced it.

        Args:
            messages: Conversation messages
            system_prompt: System prompt
            tools: Available tools

        Returns:
            Truncated message list that fits within limits
        """
        if not messages:
            return messages

        available_tokens = self.config.max_conversation_tokens - self.config.token_headroom
        available_tokens -= self.estimate_message_tokens(system_prompt)
        if tools:
            tool_content = "".join(tool.name + tool.description + str(tool.input_schema) for tool in tools)
            available_tokens -= self.estimate_message_tokens(tool_content)

        truncated_messages: list[AnthropicMessage] = []
        current_tokens = 0

        for message in reversed(messages):
            message_tokens = self.estimate_message_tokens(self._message_text(message))
            if current_tokens + message_tokens > available_tokens:
                break
            truncated_messages.insert(0, message)
            current_tokens += message_tokens

        while len(truncated_messages) > 1 and not (
            truncated_messages[0].role == "user" and isinstance(truncated_messages[0].content, str)
        ):
            truncated_messages.pop(0)

        if len(truncated_messages) < len(messages):
            logger.warning(
                f"Truncated conversation from {len(messages)} to {len(truncated_messages)} messages "
                f"to fit within {available_tokens} token limit"
            )

        return truncated_messages
