"""Connection status and re-authentication tools."""

from datetime import UTC, datetime, timedelta
from typing import Any

from support_agent.errors import ToolExecutionError
from support_agent.services.backend import Connection, StoredMessage
from support_agent.tools.base import ToolDefinition, string
from support_agent.tools.context import SupportToolContext, resolve_customer_id
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

EXPIRY_WARNING_WINDOW = timedelta(days=7)
REAUTH_URL = "https://mcp.chefdata.nl/connect"


def token_status(connection: Connection, now: datetime | None = None) -> str:
    """Classify a connection's credentials as valid, expiring_soon or expired."""
    now = now or datetime.now(UTC)
    expires_at = connection.token_expires_at
    if expires_at is None:
        return "valid"
    if expires_at < now:
        return "expired"
    if expires_at < now + EXPIRY_WARNING_WINDOW:
        return "expiring_soon"
    return "valid"


def create_check_connection_status_tool(context: SupportToolContext) -> ToolDefinition:
    async def check_connection_status(params: dict[str, Any]) -> dict[str, Any]:
        customer_id = resolve_customer_id(context, params.get("customer_id"))
        logger.info(f"Checking connection status for customer: {customer_id}")

        customer = await context.backend.get_customer(customer_id)
        if customer is None:
            raise ToolExecutionError(f"Customer {customer_id} not found")

        now = datetime.now(UTC)
        connections = [
            {
                "division_name": conn.division_name,
                "division_code": conn.division_code,
                "status": conn.status,
                "token_status": token_status(conn, now),
                "last_used": conn.last_used_at.isoformat() if conn.last_used_at else None,
            }
            for conn in await context.backend.get_customer_connections(customer_id)
        ]
        has_issues = any(c["status"] != "active" or c["token_status"] != "valid" for c in connections)

        return {
            "customer": {
                "email": customer.email,
                "name": customer.name,
                "plan": customer.plan,
                "member_since": customer.created_at.isoformat(),
            },
            "connections": connections,
            "has_issues": has_issues,
            "message": (
                "Er zijn problemen gevonden met de connecties." if has_issues else "Alle connecties zijn actief."
            ),
        }

    return ToolDefinition(
        name="check_connection_status",
        description=(
            "Check the customer's account and the status of their accounting connections, "
            "including whether credentials are valid, expiring soon or expired."
        ),
        parameters={"customer_id": string("Customer ID", required=True)},
        handler=check_connection_status,
    )


def create_trigger_reauth_tool(context: SupportToolContext) -> ToolDefinition:
    async def trigger_reauth(params: dict[str, Any]) -> dict[str, Any]:
        customer_id = resolve_customer_id(context, params.get("customer_id"))
        reason = params.get("reason") or "token_expired"
        logger.info(f"Triggering reauth for {customer_id}, reason: {reason}")

        customer = await context.backend.get_customer(customer_id)
        if customer is None:
            raise ToolExecutionError(f"Customer {customer_id} not found")

        greeting = f"Hoi {customer.name}," if customer.name else "Hoi,"
        status_line = (
            "Je verbinding is verlopen." if reason == "token_expired" else "Je verbinding verloopt binnenkort."
        )
        body = (
            f"{greeting}\n\n{status_line}\n\n"
            f"Klik op onderstaande link om opnieuw te verbinden:\n{REAUTH_URL}\n\n"
            "Dit duurt minder dan 2 minuten en voorkomt onderbrekingen.\n\n"
            "Groet,\nHet Support Team"
        )

        sent = await context.backend.send_email(customer.email, "Vernieuw je verbinding", body)
        if not sent:
            raise ToolExecutionError("Could not send the re-authentication email")

        await context.backend.add_message(
            context.conversation_id,
            StoredMessage(sender_type="system", content=f"Re-authenticatie email verzonden naar {customer.email}."),
        )
        return {"email": customer.email, "message": f"Re-authenticatie email verzonden naar {customer.email}."}

    return ToolDefinition(
        name="trigger_reauth",
        description="Send the customer a re-authentication email to renew an expired or expiring connection.",
        parameters={
            "customer_id": string("Customer ID", required=True),
            "reason": string("Reason for re-authentication, e.g. token_expired or token_expiring"),
        },
        handler=trigger_reauth,
    )
