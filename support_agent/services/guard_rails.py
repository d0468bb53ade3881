"""Deterministic guard rails that can override the model.

Rules run in a fixed precedence order and the first one that triggers decides
the turn; rules below it are not evaluated:

1. human request    - the customer asks for a person
2. blocked content  - the drafted answer touches a forbidden topic
3. response limit   - the automated response ceiling is reached
4. low confidence   - the run ended without a decisive action

Rules that inspect the drafted answer are inert until a draft exists, so the
same ordered evaluation is used before the model runs (rules 1 and 3) and
after it (rules 2 and 4).
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from support_agent.models.agent import EscalationTarget, GuardRailRule, GuardRailVerdict, ToolCallRecord
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

AI_RESPONSE_LIMIT = 5
CONFIDENCE_THRESHOLD = 0.5

RESPOND_TOOL = "respond_to_customer"
TERMINAL_TOOLS = frozenset({RESPOND_TOOL, "escalate_to_admin", "escalate_to_devops"})

HUMAN_REQUEST_PATTERNS: tuple[str, ...] = (
    # Dutch
    r"\b(mens|persoon|medewerker|iemand)\b",
    r"\b(echt|echte)\s*(mens|persoon|medewerker)",
    r"\b(wil|kan|mag|graag)\b.*\bpraten\b.*\bmet\b",
    r"\b(wil|kan|mag|graag)\b.*\bspreken\b.*\bmet\b",
    r"\b(niet|geen)\b.*\b(robot|ai|bot|automatisch)\b",
    r"\bgesproken\s*contact\b",
    r"\btel(efoon|efonisch)\b",
    r"\bbellen?\b",
    r"\bsupport\s*team\b",
    # English
    r"\b(human|person|agent|someone|real\s*person)\b",
    r"\b(speak|talk)\b.*\bto\b.*\b(human|person|someone|agent)\b",
    r"\b(not|no)\b.*\b(robot|ai|bot|automated)\b",
    r"\bcall\s*(me|back)\b",
    r"\bphone\s*(support|call)\b",
)

BLOCKED_CONTENT_PATTERNS: tuple[str, ...] = (
    # Refunds and financial operations
    r"refund",
    r"terugbetaling",
    r"geld\s*terug",
    r"crediteren",
    # Account deletion
    r"delete.*account",
    r"verwijder.*account",
    r"account.*verwijderen",
    r"account.*opheffen",
    # Credentials and payment data
    r"password|wachtwoord",
    r"api[-_]?key|apikey",
    r"token",
    r"credit\s*card|creditcard",
    r"bank\s*gegevens",
    # Feature or timeline promises
    r"we\s*zullen\s*(binnenkort|snel).*toevoegen",
    r"feature.*komt.*binnenkort",
    r"we\s*will\s*(soon|shortly)\s*(add|release|ship)",
)

UNCERTAINTY_MARKERS: tuple[str, ...] = (
    r"\bweet\s+(ik\s+)?niet\b",
    r"\bniet\s+(helemaal\s+)?zeker\b",
    r"\bgeen\s+idee\b",
    r"\bmisschien\b",
    r"\bwellicht\b",
    r"\bi('m|\s+am)\s+not\s+sure\b",
    r"\bi\s+don'?t\s+know\b",
    r"\bnot\s+certain\b",
    r"\bmaybe\b",
    r"\bperhaps\b",
)


def _compile(patterns: Sequence[str]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)


@dataclass(frozen=True)
class GuardRailConfig:
    """Guard rail thresholds and pattern sets."""

    response_limit: int = AI_RESPONSE_LIMIT
    confidence_threshold: float = CONFIDENCE_THRESHOLD
    human_request_patterns: tuple[re.Pattern[str], ...] = field(
        default_factory=lambda: _compile(HUMAN_REQUEST_PATTERNS)
    )
    blocked_content_patterns: tuple[re.Pattern[str], ...] = field(
        default_factory=lambda: _compile(BLOCKED_CONTENT_PATTERNS)
    )
    uncertainty_markers: tuple[re.Pattern[str], ...] = field(default_factory=lambda: _compile(UNCERTAINTY_MARKERS))


@dataclass(frozen=True)
class GuardRailInput:
    """What the guard rails look at for one turn.

    ``draft`` and ``tool_calls`` are None before the model has run.
    """

    customer_text: str
    response_count: int = 0
    draft: str | None = None
    tool_calls: Sequence[ToolCallRecord] | None = None


Rule = Callable[[GuardRailInput], GuardRailVerdict | None]


class GuardRailEngine:
    """Evaluates the guard rails in precedence order, first match wins."""

    def __init__(self, config: GuardRailConfig | None = None):
        self.config = config or GuardRailConfig()
        self._rules: tuple[Rule, ...] = (
            self._human_request_rule,
            self._blocked_content_rule,
            self._response_limit_rule,
            self._low_confidence_rule,
        )

    def evaluate(self, guard_input: GuardRailInput) -> GuardRailVerdict:
        """Return the verdict of the first triggered rule, or an allow verdict."""
        for rule in self._rules:
            verdict = rule(guard_input)
            if verdict is not None:
                logger.info(f"Guard rail {verdict.rule_id} triggered: {verdict.reason}")
                return verdict
        return GuardRailVerdict(decision="allow")

    def customer_wants_human(self, message: str) -> bool:
        """Check if a customer message asks for a person."""
        return any(pattern.search(message) for pattern in self.config.human_request_patterns)

    def find_blocked_content(self, content: str) -> str | None:
        """Return the first blocked pattern found in the content, if any."""
        for pattern in self.config.blocked_content_patterns:
            if pattern.search(content):
                return pattern.pattern
        return None

    def is_uncertain(self, text: str) -> bool:
        return any(marker.search(text) for marker in self.config.uncertainty_markers)

    def _human_request_rule(self, guard_input: GuardRailInput) -> GuardRailVerdict | None:
        if not self.customer_wants_human(guard_input.customer_text):
            return None
        return GuardRailVerdict(
            rule_id=GuardRailRule.HUMAN_REQUEST,
            decision="escalate",
            target=EscalationTarget.HUMAN,
            reason="Customer asked for human assistance",
        )

    def _blocked_content_rule(self, guard_input: GuardRailInput) -> GuardRailVerdict | None:
        if guard_input.draft is None:
            return None

        drafts = [guard_input.draft]
        for record in guard_input.tool_calls or ():
            if record.name == RESPOND_TOOL and isinstance(record.input.get("message"), str):
                drafts.append(record.input["message"])

        for draft in drafts:
            pattern = self.find_blocked_content(draft)
            if pattern:
                return GuardRailVerdict(
                    rule_id=GuardRailRule.BLOCKED_CONTENT,
                    decision="block",
                    target=EscalationTarget.HUMAN,
                    reason=f"Drafted answer contains blocked content: {pattern}",
                )
        return None

    def _response_limit_rule(self, guard_input: GuardRailInput) -> GuardRailVerdict | None:
        if guard_input.response_count < self.config.response_limit:
            return None
        return GuardRailVerdict(
            rule_id=GuardRailRule.RESPONSE_LIMIT,
            decision="escalate",
            target=EscalationTarget.HUMAN,
            reason=f"Maximum automated responses ({self.config.response_limit}) reached",
        )

    def _low_confidence_rule(self, guard_input: GuardRailInput) -> GuardRailVerdict | None:
        if guard_input.draft is None:
            return None
        if self.has_decisive_action(guard_input.draft, guard_input.tool_calls or ()):
            return None
        return GuardRailVerdict(
            rule_id=GuardRailRule.LOW_CONFIDENCE,
            decision="escalate",
            target=EscalationTarget.HUMAN,
            reason="Model output lacks a decisive action",
        )

    def has_decisive_action(self, draft: str, tool_calls: Sequence[ToolCallRecord]) -> bool:
        """The explicit confidence signal.

        A run is decisive when it made a successful terminal tool call and
        every confidence it stated for a customer reply meets the threshold.
        Without a terminal call, a non-empty final text free of uncertainty
        markers also counts.
        """
        terminal_calls = [record for record in tool_calls if record.name in TERMINAL_TOOLS and record.succeeded]

        for record in tool_calls:
            if record.name != RESPOND_TOOL:
                continue
            confidence = record.input.get("confidence")
            if isinstance(confidence, int | float) and not isinstance(confidence, bool):
                if confidence < self.config.confidence_threshold:
                    return False

        if terminal_calls:
            return True

        text = draft.strip()
        return bool(text) and not self.is_uncertain(text)
