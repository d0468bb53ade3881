"""Escalation tools: engineering queue and human support team."""

from typing import Any

from support_agent.prompts import FORWARDED_TO_HUMAN_MESSAGE
from support_agent.services.backend import EscalationData, EscalationEmail, StoredMessage
from support_agent.tools.base import ToolDefinition, array, number, string
from support_agent.tools.context import SupportToolContext, resolve_customer_id
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

PRIORITIES = ("low", "normal", "high", "urgent")


def create_escalate_to_devops_tool(context: SupportToolContext) -> ToolDefinition:
    async def escalate_to_devops(params: dict[str, Any]) -> dict[str, Any]:
        customer_id = resolve_customer_id(context, params.get("customer_id"))
        summary: str = params["summary"]
        priority = params["priority"] if params["priority"] in PRIORITIES else "normal"
        logger.info(f"Escalating to DevOps: {summary} ({priority})")

        escalation_id = await context.backend.create_escalation(
            EscalationData(
                customer_id=customer_id,
                conversation_id=context.conversation_id,
                summary=summary,
                priority=priority,
                error_context=params.get("error_context"),
            )
        )
        await context.backend.update_conversation(
            context.conversation_id, status="waiting_support", priority=priority, handled_by="hybrid"
        )
        await context.backend.add_message(
            context.conversation_id,
            StoredMessage(
                sender_type="system", content=f"Issue geëscaleerd naar DevOps. Escalatie ID: {escalation_id}"
            ),
        )

        return {
            "escalation_id": escalation_id,
            "message": "Issue is geëscaleerd naar het DevOps team. We kijken er zo snel mogelijk naar.",
        }

    return ToolDefinition(
        name="escalate_to_devops",
        description="Escalate a technical issue or suspected bug to the engineering team.",
        parameters={
            "customer_id": string("Customer ID", required=True),
            "summary": string("Short summary of the problem", required=True),
            "priority": string("Priority: low, normal, high, urgent", required=True),
            "error_context": string("Relevant error details"),
        },
        handler=escalate_to_devops,
    )


def create_escalate_to_admin_tool(context: SupportToolContext) -> ToolDefinition:
    async def escalate_to_admin(params: dict[str, Any]) -> dict[str, Any]:
        reason: str = params["reason"]
        attempted_solutions = [str(item) for item in params.get("attempted_solutions") or []]
        category = params.get("category") or "other"
        confidence = params.get("confidence")
        logger.info(f"Escalating to admin: {reason}")

        customer = await context.backend.get_customer(context.customer_id) if context.customer_id else None
        if customer is not None:
            await context.backend.send_escalation_email(
                EscalationEmail(
                    conversation_id=context.conversation_id,
                    customer_email=customer.email,
                    customer_name=customer.name,
                    customer_plan=customer.plan,
                    subject=reason,
                    messages=await context.backend.get_conversation_messages(context.conversation_id),
                    category=category,
                    confidence=0.3 if confidence is None else float(confidence),
                    attempted_solutions=attempted_solutions,
                )
            )

        await context.backend.update_conversation(
            context.conversation_id, status="waiting_support", handled_by="hybrid"
        )
        await context.backend.add_message(
            context.conversation_id,
            StoredMessage(sender_type="system", content=f"Doorgestuurd naar support team. Reden: {reason}"),
        )
        await context.backend.add_message(
            context.conversation_id,
            StoredMessage(sender_type="ai", content=FORWARDED_TO_HUMAN_MESSAGE, ai_confidence=1.0),
        )

        return {"escalated": True, "reason": reason, "message": "Issue geëscaleerd naar admin. Klant is geïnformeerd."}

    return ToolDefinition(
        name="escalate_to_admin",
        description=(
            "Escalate to the human support team when you cannot solve the problem, "
            "are unsure how to help, the customer asks for a person, or the problem is too complex."
        ),
        parameters={
            "reason": string("Why escalation is needed", required=True),
            "attempted_solutions": array("What has already been tried"),
            "category": string("Problem category: connection, billing, bug, feature, account, other"),
            "confidence": number("Your confidence (0-1) about this problem"),
        },
        handler=escalate_to_admin,
    )
