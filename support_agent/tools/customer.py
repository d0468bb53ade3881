"""Customer error log, history and plan usage tools."""

from typing import Any

from support_agent.errors import ToolExecutionError
from support_agent.tools.base import ToolDefinition, number, string
from support_agent.tools.context import SupportToolContext, resolve_customer_id
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

NEAR_LIMIT_PERCENTAGE = 80


def create_get_customer_errors_tool(context: SupportToolContext) -> ToolDefinition:
    async def get_customer_errors(params: dict[str, Any]) -> dict[str, Any]:
        customer_id = resolve_customer_id(context, params.get("customer_id"))
        hours = int(params.get("hours") or 24)
        logger.info(f"Getting errors for {customer_id} (last {hours}h)")

        errors = await context.backend.get_customer_errors(customer_id, hours_back=hours)
        if not errors:
            return {
                "total_errors": 0,
                "error_types": [],
                "message": f"Geen errors gevonden in de afgelopen {hours} uur.",
            }

        groups: dict[str, dict[str, Any]] = {}
        for error in sorted(errors, key=lambda e: e.created_at):
            group = groups.setdefault(error.error_type, {"type": error.error_type, "count": 0})
            group["count"] += 1
            group["code"] = error.error_code
            group["latest_message"] = error.error_message
            group["latest_at"] = error.created_at.isoformat()

        return {
            "total_errors": len(errors),
            "error_types": list(groups.values()),
            "message": f"{len(errors)} error(s) gevonden.",
        }

    return ToolDefinition(
        name="get_customer_errors",
        description="Look at recent errors logged for this customer, grouped by error type.",
        parameters={
            "customer_id": string("Customer ID", required=True),
            "hours": number("How many hours to look back (default: 24)"),
        },
        handler=get_customer_errors,
    )


def create_get_customer_history_tool(context: SupportToolContext) -> ToolDefinition:
    async def get_customer_history(params: dict[str, Any]) -> dict[str, Any]:
        customer_id = resolve_customer_id(context, params.get("customer_id"))
        limit = int(params.get("limit") or 5)
        logger.info(f"Getting history for customer: {customer_id}")

        conversations = await context.backend.get_customer_conversations(customer_id, limit=limit)
        if not conversations:
            return {
                "total_conversations": 0,
                "conversations": [],
                "message": "Dit is het eerste support gesprek van deze klant.",
            }

        return {
            "total_conversations": len(conversations),
            "conversations": [
                {
                    "id": c.id,
                    "subject": c.subject,
                    "status": c.status,
                    "category": c.category,
                    "created_at": c.created_at.isoformat(),
                    "resolution": c.resolution_type,
                }
                for c in conversations
            ],
            "message": f"{len(conversations)} eerdere gesprek(ken) gevonden.",
        }

    return ToolDefinition(
        name="get_customer_history",
        description="Look at this customer's earlier support conversations for context.",
        parameters={
            "customer_id": string("Customer ID", required=True),
            "limit": number("Maximum number of conversations (default: 5)"),
        },
        handler=get_customer_history,
    )


def create_get_plan_usage_tool(context: SupportToolContext) -> ToolDefinition:
    async def get_plan_usage(params: dict[str, Any]) -> dict[str, Any]:
        customer_id = resolve_customer_id(context, params.get("customer_id"))
        logger.info(f"Getting plan usage for: {customer_id}")

        usage = await context.backend.get_customer_usage(customer_id)
        if usage is None:
            raise ToolExecutionError(f"No usage data for customer {customer_id}")

        percentage = round(usage.api_calls_used / usage.api_calls_limit * 100) if usage.api_calls_limit else 100
        at_limit = usage.api_calls_used >= usage.api_calls_limit
        near_limit = percentage >= NEAR_LIMIT_PERCENTAGE

        if at_limit:
            recommendation = "Customer reached the limit; suggest upgrading to a higher plan"
        elif near_limit:
            recommendation = f"Customer is above {NEAR_LIMIT_PERCENTAGE}% of the limit; consider discussing an upgrade"
        else:
            recommendation = None

        return {
            "plan": usage.plan,
            "api_calls": {
                "used": usage.api_calls_used,
                "limit": usage.api_calls_limit,
                "percentage": percentage,
                "at_limit": at_limit,
            },
            "divisions": {
                "used": usage.divisions_used,
                "limit": usage.divisions_limit,
                "at_limit": usage.divisions_used >= usage.divisions_limit,
            },
            "recommendation": recommendation,
            "message": (
                "Klant heeft API limiet bereikt." if at_limit else f"Klant gebruikt {percentage}% van API limiet."
            ),
        }

    return ToolDefinition(
        name="get_plan_usage",
        description="Check the customer's plan limits and current usage.",
        parameters={"customer_id": string("Customer ID", required=True)},
        handler=get_plan_usage,
    )
