"""API endpoints for the support agent service."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException

from support_agent import __version__
from support_agent.clients.anthropic import AnthropicClient
from support_agent.config import Settings
from support_agent.models.agent import MessageAnalysis
from support_agent.models.api import (
    AnalyzeRequest,
    ClassifyRequest,
    ClassifyResponse,
    HealthResponse,
    SupportResponse,
    TicketRequest,
)
from support_agent.services.backend import InMemorySupportBackend
from support_agent.services.classifier import route
from support_agent.services.driver import ConversationDriver, DriverConfig
from support_agent.services.guard_rails import GuardRailEngine
from support_agent.services.support_agent import SupportAgent
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

_support_agent: SupportAgent | None = None


def get_support_agent() -> SupportAgent:
    """Get or create the support agent instance."""
    global _support_agent
    if _support_agent is None:
        settings = Settings.from_env()
        client = AnthropicClient(api_key=settings.anthropic_api_key, config=settings.anthropic_config())
        _support_agent = SupportAgent(
            driver=ConversationDriver(client, DriverConfig(model=settings.model)),
            backend=InMemorySupportBackend(),
            guard_rails=GuardRailEngine(settings.guard_rail_config()),
            config=settings.support_agent_config(),
        )
    return _support_agent


@router.post("/tickets/{conversation_id}/handle", response_model=SupportResponse, tags=["Tickets"])
async def handle_ticket(
    conversation_id: str, request: TicketRequest, agent: SupportAgent = Depends(get_support_agent)
) -> SupportResponse:
    """Run the support agent on an inbound ticket event.

    Persisting the result and notifying the customer are left to the caller.
    """
    logger.info(f"Processing ticket for conversation {conversation_id}: {request.ticket_content[:50]}...")
    try:
        result = await agent.handle_ticket(conversation_id, request)
    except ValueError as e:
        logger.warning(f"Ticket validation error for conversation {conversation_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Ticket processing error for conversation {conversation_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to process ticket") from e

    logger.info(f"Conversation {conversation_id} outcome: {result.outcome}")
    return SupportResponse(
        conversation_id=result.conversation_id,
        outcome=result.outcome,
        message=result.message,
        tool_calls=result.tool_calls,
        escalation_target=result.escalation_target,
        guard_rail=result.guard_rail,
        iteration_count=result.iteration_count,
    )


@router.post("/classify", response_model=ClassifyResponse, tags=["Tickets"])
async def classify(request: ClassifyRequest) -> ClassifyResponse:
    """Recompute outcome and escalation target from a stored tool call record."""
    classification = route(request.tool_calls)
    return ClassifyResponse(outcome=classification.outcome, escalation_target=classification.target)


@router.post("/analyze", response_model=MessageAnalysis, tags=["Tickets"])
async def analyze(request: AnalyzeRequest, agent: SupportAgent = Depends(get_support_agent)) -> MessageAnalysis:
    """Triage a support message."""
    return await agent.analyze_message(request.content)


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
