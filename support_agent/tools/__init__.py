"""Tools for the support agent."""

from support_agent.tools.base import ParameterSchema, ToolDefinition, ToolResult
from support_agent.tools.context import SupportToolContext
from support_agent.tools.registry import ToolsRegistry, create_support_registry

__all__ = [
    "ParameterSchema",
    "SupportToolContext",
    "ToolDefinition",
    "ToolResult",
    "ToolsRegistry",
    "create_support_registry",
]
