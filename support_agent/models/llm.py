"""LLM-related data models and types (provider-agnostic)."""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


# Content block types
class TextBlock(BaseModel):
    """Text content block."""

    model_config = ConfigDict(extra="ignore")  # Ignore any additional fields from Anthropic

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """Tool use request emitted by the model."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]


class ToolResultBlock(BaseModel):
    """Tool result content block sent back to the model."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


class LLMMessage(BaseModel):
    """A message in the model conversation."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]


def extract_text(content: str | list[ContentBlock]) -> str:
    """Join the text blocks of a message into a single string."""
    if isinstance(content, str):
        return content
    return "\n".join(block.text for block in content if isinstance(block, TextBlock))


def tool_use_blocks(content: list[ContentBlock]) -> list[ToolUseBlock]:
    """Return the tool use requests of a response, in request order."""
    return [block for block in content if isinstance(block, ToolUseBlock)]


@dataclass
class LLMUsage:
    """Token/resource usage information from LLM provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    def add(self, other: "LLMUsage") -> None:
        """Accumulate usage from another response."""
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.total_tokens += other.total_tokens
        self.cache_creation_input_tokens += other.cache_creation_input_tokens
        self.cache_read_input_tokens += other.cache_read_input_tokens

    @property
    def cache_hit_rate(self) -> float:
        """Calculate cache hit rate as percentage."""
        total_input = self.input_tokens + self.cache_read_input_tokens + self.cache_creation_input_tokens
        if total_input == 0:
            return 0.0
        return (self.cache_read_input_tokens / total_input) * 100
