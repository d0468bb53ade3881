"""Support agent: guard rails, driver run and outcome routing for one ticket."""

import json
import re
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import ValidationError

from support_agent.errors import GuardRailBlock
from support_agent.models.agent import (
    AgentRunResult,
    ConversationContext,
    EscalationTarget,
    GuardRailRule,
    GuardRailVerdict,
    MessageAnalysis,
    Outcome,
    SupportResult,
)
from support_agent.models.llm import LLMMessage
from support_agent.prompts import (
    ANALYSIS_PROMPT,
    ANALYSIS_REQUEST_TEMPLATE,
    DEFLECTION_MESSAGE,
    FORWARDED_TO_HUMAN_MESSAGE,
    SUPPORT_AGENT_PROMPT,
)
from support_agent.services.backend import SupportBackend
from support_agent.services.classifier import RESPOND_TO_CUSTOMER, route
from support_agent.services.driver import ConversationDriver
from support_agent.services.guard_rails import GuardRailEngine, GuardRailInput
from support_agent.services.triage import detect_error_codes, triage_message
from support_agent.tools.context import SupportToolContext
from support_agent.tools.registry import ToolsRegistry, create_support_registry
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

SUPPORT_MAX_ITERATIONS = 5

RegistryFactory = Callable[[SupportToolContext], ToolsRegistry]


@dataclass(frozen=True)
class SupportAgentConfig:
    """Configuration for the support agent."""

    system_prompt: str = SUPPORT_AGENT_PROMPT
    max_iterations: int = SUPPORT_MAX_ITERATIONS
    model: str | None = None
    timeout_seconds: float | None = 120.0


def build_user_message(context: ConversationContext) -> str:
    """Prefix the ticket text with its metadata and any admin instruction."""
    message = context.ticket_content

    if context.customer_id:
        message = f"[Klant ID: {context.customer_id}]\n\n{message}"
    if context.category:
        message = f"[Categorie: {context.category}]\n\n{message}"
    if context.error_code:
        message = f"[Error Code: {context.error_code}]\n\n{message}"

    if context.admin_instructions:
        message = (
            f"[Admin Instructie van {context.admin_instructed_at or 'nu'}]\n"
            f"{context.admin_instructions}\n\n---\nOriginele vraag van klant:\n{message}"
        )

    return message


def build_messages(context: ConversationContext) -> list[LLMMessage]:
    """Initial transcript: prior user and assistant turns followed by the ticket."""
    messages = [
        LLMMessage(role=previous.role, content=previous.content)
        for previous in context.previous_messages
        if previous.role != "system"
    ]
    # The model conversation has to open with a user turn
    while messages and messages[0].role != "user":
        messages.pop(0)

    messages.append(LLMMessage(role="user", content=build_user_message(context)))
    return messages


class SupportAgent:
    """First-line support agent.

    Wraps a single driver run in the guard rails: requests for a person and
    the automated response ceiling are checked before the model is called,
    blocked content and low confidence after it. Whatever happens, the
    customer gets either a filtered model answer or a forwarded-to-a-person
    message, never internal error text.
    """

    def __init__(
        self,
        driver: ConversationDriver,
        backend: SupportBackend,
        guard_rails: GuardRailEngine | None = None,
        config: SupportAgentConfig | None = None,
        registry_factory: RegistryFactory = create_support_registry,
    ):
        self.driver = driver
        self.backend = backend
        self.guard_rails = guard_rails or GuardRailEngine()
        self.config = config or SupportAgentConfig()
        self.registry_factory = registry_factory

    async def handle_ticket(self, conversation_id: str, context: ConversationContext) -> SupportResult:
        """Handle one inbound ticket event and return the routable result.

        Raises:
            ValueError: If the ticket text exceeds the per-message token limit
        """
        logger.info(f"Handling ticket for conversation {conversation_id}")
        self.driver.validate_message(context.ticket_content)

        response_count = context.automated_response_count()
        try:
            self._check(GuardRailInput(customer_text=context.ticket_content, response_count=response_count))
        except GuardRailBlock as e:
            return self._escalate(conversation_id, e.verdict)

        registry = self.registry_factory(
            SupportToolContext(
                backend=self.backend,
                guard_rails=self.guard_rails,
                conversation_id=conversation_id,
                customer_id=context.customer_id,
            )
        )
        result = await self._run(registry, build_messages(context))

        if not result.success:
            logger.error(f"Agent run for {conversation_id} failed ({result.error_kind}): {result.error}")
            classification = route(result.tool_calls)
            return SupportResult(
                conversation_id=conversation_id,
                outcome=Outcome.ESCALATED,
                message=FORWARDED_TO_HUMAN_MESSAGE,
                tool_calls=result.tool_calls,
                escalation_target=classification.target or EscalationTarget.HUMAN,
                error=result.error,
                iteration_count=result.iteration_count,
            )

        try:
            self._check(
                GuardRailInput(
                    customer_text=context.ticket_content,
                    response_count=response_count,
                    draft=result.final_text,
                    tool_calls=result.tool_calls,
                )
            )
        except GuardRailBlock as e:
            return self._escalate(conversation_id, e.verdict, result)

        classification = route(result.tool_calls)
        logger.info(f"Conversation {conversation_id} classified as {classification.outcome} ({classification.target})")

        return SupportResult(
            conversation_id=conversation_id,
            outcome=classification.outcome,
            message=self._customer_message(result, classification.outcome),
            tool_calls=result.tool_calls,
            escalation_target=classification.target,
            iteration_count=result.iteration_count,
        )

    async def analyze_message(self, content: str) -> MessageAnalysis:
        """Classify a support message with the model, falling back to keyword triage."""
        result = await self.driver.run(
            ANALYSIS_PROMPT,
            ToolsRegistry([]),
            [LLMMessage(role="user", content=ANALYSIS_REQUEST_TEMPLATE.format(content=content))],
            max_iterations=1,
            model=self.config.model,
        )
        if not result.success:
            logger.warning(f"Message analysis failed ({result.error_kind}), using keyword triage")
            return triage_message(content, self.guard_rails)

        try:
            analysis = self._parse_analysis(result.final_text)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Could not parse message analysis, using keyword triage: {e}")
            return triage_message(content, self.guard_rails)

        if not analysis.error_codes:
            analysis.error_codes = detect_error_codes(content)
        analysis.requires_human = analysis.requires_human or self.guard_rails.customer_wants_human(content)
        return analysis

    def _check(self, guard_input: GuardRailInput) -> None:
        verdict = self.guard_rails.evaluate(guard_input)
        if not verdict.allowed:
            raise GuardRailBlock(verdict)

    async def _run(self, registry: ToolsRegistry, messages: list[LLMMessage]) -> AgentRunResult:
        kwargs = {"max_iterations": self.config.max_iterations, "model": self.config.model}
        if self.config.timeout_seconds is not None:
            return await self.driver.run_with_timeout(
                self.config.timeout_seconds, self.config.system_prompt, registry, messages, **kwargs
            )
        return await self.driver.run(self.config.system_prompt, registry, messages, **kwargs)

    def _escalate(
        self, conversation_id: str, verdict: GuardRailVerdict, result: AgentRunResult | None = None
    ) -> SupportResult:
        logger.info(f"Conversation {conversation_id} escalated by guard rail {verdict.rule_id}")
        message = DEFLECTION_MESSAGE if verdict.rule_id == GuardRailRule.BLOCKED_CONTENT else FORWARDED_TO_HUMAN_MESSAGE
        return SupportResult(
            conversation_id=conversation_id,
            outcome=Outcome.ESCALATED,
            message=message,
            tool_calls=result.tool_calls if result else [],
            escalation_target=verdict.target or EscalationTarget.HUMAN,
            guard_rail=verdict,
            iteration_count=result.iteration_count if result else 0,
        )

    def _customer_message(self, result: AgentRunResult, outcome: Outcome) -> str:
        if result.final_text.strip():
            return result.final_text

        for record in reversed(result.tool_calls):
            if record.name == RESPOND_TO_CUSTOMER and record.succeeded:
                return str(record.input.get("message", ""))

        # Escalation tools do not write the customer-facing text
        return FORWARDED_TO_HUMAN_MESSAGE if outcome == Outcome.ESCALATED else ""

    def _parse_analysis(self, text: str) -> MessageAnalysis:
        match = re.search(r"\{.*\}", text, re.DOTALL)
        if not match:
            raise ValueError("No JSON object in analysis output")

        data = json.loads(match.group(0))
        if not isinstance(data, dict):
            raise ValueError("Analysis output is not a JSON object")
        return MessageAnalysis.model_validate(data)
