"""Request and response bodies for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from support_agent.models.agent import (
    ConversationContext,
    EscalationTarget,
    GuardRailVerdict,
    Outcome,
    ToolCallRecord,
)


class TicketRequest(ConversationContext):
    """Request model for the ticket handling endpoint."""

    ticket_content: str = Field(min_length=1)


class SupportResponse(BaseModel):
    """Response model for the ticket handling endpoint."""

    conversation_id: str
    outcome: Outcome
    message: str
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    escalation_target: EscalationTarget | None = None
    guard_rail: GuardRailVerdict | None = None
    iteration_count: int = 0


class ClassifyRequest(BaseModel):
    """A stored tool call record list to classify."""

    tool_calls: list[ToolCallRecord]


class ClassifyResponse(BaseModel):
    outcome: Outcome
    escalation_target: EscalationTarget | None = None


class AnalyzeRequest(BaseModel):
    content: str = Field(min_length=1)


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
