"""Tools registry for the support agent."""

from collections.abc import Iterable
from types import MappingProxyType
from typing import Any

from support_agent.errors import SupportAgentError, UnknownToolError
from support_agent.tools.base import ToolDefinition, ToolResult
from support_agent.tools.connection import create_check_connection_status_tool, create_trigger_reauth_tool
from support_agent.tools.context import SupportToolContext
from support_agent.tools.customer import (
    create_get_customer_errors_tool,
    create_get_customer_history_tool,
    create_get_plan_usage_tool,
)
from support_agent.tools.escalation import create_escalate_to_admin_tool, create_escalate_to_devops_tool
from support_agent.tools.knowledge import create_check_known_issues_tool, create_search_docs_tool
from support_agent.tools.respond import create_respond_to_customer_tool
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)


class ToolsRegistry:
    """Fixed catalogue of tools the model may call.

    The catalogue is frozen at construction: there is no way to add or remove
    a tool afterwards, so one registry can safely back many conversations.
    """

    def __init__(self, tools: Iterable[ToolDefinition]):
        """Initialize the registry from tool definitions.

        Raises:
            ValueError: If two tools share a name
        """
        tools_by_name: dict[str, ToolDefinition] = {}
        for tool in tools:
            if tool.name in tools_by_name:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            tools_by_name[tool.name] = tool

        self._tools = MappingProxyType(tools_by_name)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def get_tool_schemas(self) -> list[dict[str, Any]]:
        """Model-facing descriptors for every tool, in registration order."""
        return [
            {"name": tool.name, "description": tool.description, "input_schema": tool.get_json_schema()}
            for tool in self._tools.values()
        ]

    async def execute(self, name: str, tool_input: dict[str, Any]) -> ToolResult:
        """Resolve and execute a tool, converting every failure into an error result.

        Unknown names, invalid input and exceptions raised by the tool body
        all come back as ``ToolResult.failed`` so one failing tool can never
        abort the conversation.
        """
        tool = self._tools.get(name)
        if tool is None:
            error = UnknownToolError(name)
            logger.error(f"Unknown tool requested: {name}")
            return ToolResult.failed(str(error))

        try:
            validated = tool.validate_input(tool_input)
            output = await tool.handler(validated)
        except SupportAgentError as e:
            logger.warning(f"Tool {name} failed ({e.kind}): {e}")
            return ToolResult.failed(str(e))
        except Exception as e:
            logger.error(f"Tool {name} raised unexpectedly: {e}", exc_info=True)
            return ToolResult.failed(f"{type(e).__name__}: {e}")

        logger.debug(f"Tool {name} succeeded: {str(output)[:100]}...")
        return ToolResult.ok(output)


def create_support_registry(context: SupportToolContext) -> ToolsRegistry:
    """Build the support tool catalogue bound to one conversation."""
    return ToolsRegistry(
        [
            create_search_docs_tool(context),
            create_check_connection_status_tool(context),
            create_get_customer_errors_tool(context),
            create_check_known_issues_tool(context),
            create_trigger_reauth_tool(context),
            create_get_customer_history_tool(context),
            create_get_plan_usage_tool(context),
            create_escalate_to_devops_tool(context),
            create_escalate_to_admin_tool(context),
            create_respond_to_customer_tool(context),
        ]
    )
