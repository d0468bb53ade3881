"""Error taxonomy for the support agent runtime.

Tool-level errors (``UnknownToolError``, ``ToolInputError``,
``ToolExecutionError``) are always recovered by the registry and reported back
to the model as error-tagged tool results. ``ModelCallError`` aborts a single
run. ``MaxIterationsExceeded`` and ``GuardRailBlock`` are routing signals
rather than crashes: both end up as an escalation to a person.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from support_agent.models.agent import GuardRailVerdict


class SupportAgentError(Exception):
    """Base class for all support agent errors."""

    kind: str = "SupportAgentError"


class UnknownToolError(SupportAgentError):
    """The model requested a tool that is not in the registry."""

    kind = "UnknownTool"

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolInputError(SupportAgentError):
    """Tool input failed structural validation."""

    kind = "ToolExecutionError"


class ToolExecutionError(SupportAgentError):
    """A tool body signalled a structured failure."""

    kind = "ToolExecutionError"


class ModelCallError(SupportAgentError):
    """The language model call failed; fatal for the current run."""

    kind = "ModelCallError"


class MaxIterationsExceeded(SupportAgentError):
    """The tool-use loop hit its iteration cap without a final answer."""

    kind = "MaxIterationsExceeded"

    def __init__(self, max_iterations: int):
        super().__init__(f"Agent reached maximum iterations ({max_iterations}) without completing")
        self.max_iterations = max_iterations


class GuardRailBlock(SupportAgentError):
    """A guard rail overrode the model and forced an escalation."""

    kind = "GuardRailBlock"

    def __init__(self, verdict: "GuardRailVerdict"):
        super().__init__(verdict.reason or f"Guard rail {verdict.rule_id} triggered")
        self.verdict = verdict
