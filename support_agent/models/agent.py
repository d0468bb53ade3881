"""Support conversation data models: contexts, tool call records and results."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field

from support_agent.models.llm import LLMMessage, LLMUsage


class Outcome(StrEnum):
    """Routable outcome of a finished support conversation."""

    RESOLVED = "resolved"
    ESCALATED = "escalated"
    RESPONDED = "responded"
    PENDING = "pending"


class EscalationTarget(StrEnum):
    """Queue an escalated conversation is routed to."""

    DEVOPS = "devops"
    HUMAN = "human"


class GuardRailRule(StrEnum):
    """Guard rails in precedence order."""

    HUMAN_REQUEST = "human_request"
    BLOCKED_CONTENT = "blocked_content"
    RESPONSE_LIMIT = "response_limit"
    LOW_CONFIDENCE = "low_confidence"


class ToolCallRecord(BaseModel):
    """Audit entry for a single tool invocation within a run."""

    tool_use_id: str | None = None
    name: str
    input: dict[str, Any] = Field(default_factory=dict)
    output: Any = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def succeeded(self) -> bool:
        """Whether the tool returned a result rather than an error."""
        return self.error is None


class GuardRailVerdict(BaseModel):
    """Decision of the guard-rail engine for one turn."""

    rule_id: GuardRailRule | None = None
    decision: Literal["allow", "block", "escalate"] = "allow"
    target: EscalationTarget | None = None
    reason: str | None = None

    @property
    def allowed(self) -> bool:
        return self.decision == "allow"


class PreviousMessage(BaseModel):
    """A message from earlier in the support conversation."""

    role: Literal["user", "assistant", "system"]
    content: str
    sender_type: Literal["user", "ai", "admin", "system"] | None = None


class ConversationContext(BaseModel):
    """Everything known about an inbound ticket event."""

    ticket_content: str
    customer_id: str | None = None
    category: str | None = None
    error_code: str | None = None
    previous_messages: list[PreviousMessage] = Field(default_factory=list)
    admin_instructions: str | None = None
    admin_instructed_at: str | None = None
    source: str | None = None
    ai_response_count: int | None = Field(default=None, ge=0)

    def automated_response_count(self) -> int:
        """Number of automated responses already sent in this conversation.

        An explicit counter wins; otherwise AI-authored previous messages are counted.
        """
        if self.ai_response_count is not None:
            return self.ai_response_count
        return sum(
            1
            for message in self.previous_messages
            if message.sender_type == "ai" or (message.sender_type is None and message.role == "assistant")
        )


class AgentRunResult(BaseModel):
    """Result of one conversation driver invocation."""

    success: bool
    final_text: str = ""
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    iteration_count: int = 0
    error: str | None = None
    error_kind: str | None = None
    stop_reason: str | None = None
    messages: list[LLMMessage] = Field(default_factory=list)
    usage: LLMUsage = Field(default_factory=LLMUsage)


class Classification(BaseModel):
    """Outcome and escalation target derived from a tool call record."""

    outcome: Outcome
    target: EscalationTarget | None = None


class SupportResult(BaseModel):
    """What the caller receives for a handled ticket."""

    conversation_id: str
    outcome: Outcome
    message: str
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    escalation_target: EscalationTarget | None = None
    error: str | None = None
    guard_rail: GuardRailVerdict | None = None
    iteration_count: int = 0


class MessageAnalysis(BaseModel):
    """Triage information for a support message."""

    category: str = "other"
    priority: Literal["low", "normal", "high", "urgent"] = "normal"
    sentiment: Literal["positive", "neutral", "negative"] = "neutral"
    keywords: list[str] = Field(default_factory=list)
    error_codes: list[str] = Field(default_factory=list)
    requires_human: bool = False
