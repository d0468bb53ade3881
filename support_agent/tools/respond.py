"""Customer reply tool."""

from typing import Any

from support_agent.errors import ToolExecutionError
from support_agent.services.backend import StoredMessage
from support_agent.tools.base import ToolDefinition, boolean, number, string
from support_agent.tools.context import SupportToolContext
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.8


def create_respond_to_customer_tool(context: SupportToolContext) -> ToolDefinition:
    async def respond_to_customer(params: dict[str, Any]) -> dict[str, Any]:
        message: str = params["message"]
        close_ticket = params.get("close_ticket") is True
        confidence = params.get("confidence")
        if confidence is None:
            confidence = DEFAULT_CONFIDENCE
        logger.info(f"Responding to customer, close: {close_ticket}")

        limit = context.guard_rails.config.response_limit
        response_count = await context.backend.get_ai_response_count(context.conversation_id)
        if response_count >= limit:
            logger.info(f"Response limit reached ({response_count}/{limit}), refusing to send")
            raise ToolExecutionError(f"Maximum automated responses ({limit}) reached; escalate to admin")

        blocked = context.guard_rails.find_blocked_content(message)
        if blocked:
            logger.info(f"Blocked content detected in reply: {blocked}")
            raise ToolExecutionError("Response contains blocked content and was not sent; escalate to admin")

        threshold = context.guard_rails.config.confidence_threshold
        if confidence < threshold:
            logger.info(f"Reply confidence {confidence} below threshold {threshold}, refusing to send")
            raise ToolExecutionError(
                f"Confidence {confidence} is below {threshold}; response was not sent, escalate to admin"
            )

        await context.backend.add_message(
            context.conversation_id,
            StoredMessage(sender_type="ai", content=message, ai_confidence=float(confidence)),
        )
        await context.backend.update_conversation(
            context.conversation_id, status="resolved" if close_ticket else "waiting_user", handled_by="ai"
        )

        return {
            "message_sent": True,
            "ticket_closed": close_ticket,
            "responses_remaining": limit - response_count - 1,
            "message": (
                "Bericht verstuurd en gesprek gemarkeerd als opgelost."
                if close_ticket
                else "Bericht verstuurd, wachten op reactie klant."
            ),
        }

    return ToolDefinition(
        name="respond_to_customer",
        description="Send a reply to the customer in the current conversation.",
        parameters={
            "message": string("Message to the customer", required=True),
            "close_ticket": boolean("Mark the conversation as resolved after sending"),
            "confidence": number("Confidence score (0-1) of this answer"),
        },
        handler=respond_to_customer,
    )
