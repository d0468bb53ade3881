"""Per-conversation context handed to the support tools."""

from dataclasses import dataclass

from support_agent.errors import ToolExecutionError
from support_agent.services.backend import SupportBackend
from support_agent.services.guard_rails import GuardRailEngine


@dataclass(frozen=True)
class SupportToolContext:
    """Dependencies and identity of the conversation the tools act on."""

    backend: SupportBackend
    guard_rails: GuardRailEngine
    conversation_id: str
    customer_id: str | None = None


def resolve_customer_id(context: SupportToolContext, requested: str | None) -> str:
    """Pin tool access to the ticket's own customer.

    Raises:
        ToolExecutionError: If no customer is known or another customer is requested
    """
    if context.customer_id and requested and requested != context.customer_id:
        raise ToolExecutionError("Access to data of other customers is not allowed")

    customer_id = requested or context.customer_id
    if not customer_id:
        raise ToolExecutionError("No customer ID available for this conversation")
    return customer_id
