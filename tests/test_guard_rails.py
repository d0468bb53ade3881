"""Tests for the guard-rail engine."""

import pytest

from support_agent.models.agent import EscalationTarget, GuardRailRule, ToolCallRecord
from support_agent.services.guard_rails import GuardRailConfig, GuardRailEngine, GuardRailInput


def _respond(message: str = "Je verbinding is hersteld.", confidence: float | None = None, error: str | None = None):
    tool_input = {"message": message}
    if confidence is not None:
        tool_input["confidence"] = confidence
    return ToolCallRecord(name="respond_to_customer", input=tool_input, output=None if error else {}, error=error)


@pytest.fixture
def engine():
    return GuardRailEngine()


class TestHumanRequest:
    """Tests for human-request detection."""

    @pytest.mark.parametrize(
        "message",
        [
            "Ik wil een mens spreken",
            "Kan ik iemand bellen?",
            "Ik wil graag met een echte medewerker spreken met spoed",
            "Can I talk to a real person please",
            "I want to speak to a human",
            "Please call me back",
        ],
    )
    def test_detects_requests_for_a_person(self, engine, message):
        """Dutch and English requests for a person are recognised."""
        assert engine.customer_wants_human(message)

    @pytest.mark.parametrize(
        "message",
        [
            "Mijn verbinding werkt niet meer",
            "Hoe exporteer ik mijn grootboek?",
            "My invoice looks wrong",
        ],
    )
    def test_ignores_ordinary_questions(self, engine, message):
        """Ordinary support questions are not treated as human requests."""
        assert not engine.customer_wants_human(message)

    def test_human_request_escalates_to_human(self, engine):
        """A human request forces an escalation to the human queue."""
        verdict = engine.evaluate(GuardRailInput(customer_text="Ik wil een mens spreken"))

        assert verdict.rule_id == GuardRailRule.HUMAN_REQUEST
        assert verdict.decision == "escalate"
        assert verdict.target == EscalationTarget.HUMAN
        assert not verdict.allowed


class TestBlockedContent:
    """Tests for blocked-content detection."""

    @pytest.mark.parametrize(
        "draft",
        [
            "Je krijgt een refund van ons.",
            "Je krijgt je geld terug.",
            "Ik kan je account verwijderen.",
            "Je nieuwe wachtwoord is hunter2.",
            "Hier is je API-key.",
            "We will soon add that feature.",
        ],
    )
    def test_blocked_drafts_are_found(self, engine, draft):
        """Forbidden topics in a draft are detected."""
        assert engine.find_blocked_content(draft) is not None

    def test_clean_draft_passes(self, engine):
        """An ordinary answer contains no blocked content."""
        assert engine.find_blocked_content("Ik heb je een email gestuurd om opnieuw te verbinden.") is None

    def test_blocked_draft_is_blocked(self, engine):
        """A blocked draft is replaced and escalated to a person."""
        guard_input = GuardRailInput(customer_text="Mijn factuur klopt niet", draft="Je krijgt een refund.")
        verdict = engine.evaluate(guard_input)

        assert verdict.rule_id == GuardRailRule.BLOCKED_CONTENT
        assert verdict.decision == "block"
        assert verdict.target == EscalationTarget.HUMAN

    def test_customer_reply_tool_message_is_checked(self, engine):
        """Messages sent through respond_to_customer are drafts too."""
        verdict = engine.evaluate(
            GuardRailInput(
                customer_text="Mijn factuur klopt niet",
                draft="Klaar.",
                tool_calls=[_respond("Je geld terug is geregeld.")],
            )
        )

        assert verdict.rule_id == GuardRailRule.BLOCKED_CONTENT

    def test_inert_before_a_draft_exists(self, engine):
        """Without a draft the blocked-content rule cannot fire."""
        verdict = engine.evaluate(GuardRailInput(customer_text="Ik wil een refund"))

        assert verdict.allowed


class TestResponseLimit:
    """Tests for the automated response ceiling."""

    def test_limit_reached_escalates(self, engine):
        """At the ceiling the conversation is escalated regardless of content."""
        verdict = engine.evaluate(GuardRailInput(customer_text="Nog een vraag over export", response_count=5))

        assert verdict.rule_id == GuardRailRule.RESPONSE_LIMIT
        assert verdict.target == EscalationTarget.HUMAN

    def test_below_limit_is_allowed(self, engine):
        """One below the ceiling is still allowed."""
        verdict = engine.evaluate(GuardRailInput(customer_text="Nog een vraag over export", response_count=4))

        assert verdict.allowed

    def test_limit_is_configurable(self):
        """The ceiling comes from the configuration."""
        engine = GuardRailEngine(GuardRailConfig(response_limit=2))

        verdict = engine.evaluate(GuardRailInput(customer_text="Hoe werkt de export?", response_count=2))

        assert verdict.rule_id == GuardRailRule.RESPONSE_LIMIT


class TestLowConfidence:
    """Tests for the decisive-action confidence signal."""

    def test_confident_text_answer_is_allowed(self, engine):
        """A plain answer without hedging is decisive."""
        verdict = engine.evaluate(GuardRailInput(customer_text="Hoe werkt de export?", draft="Ga naar Instellingen."))

        assert verdict.allowed

    @pytest.mark.parametrize("draft", ["", "   ", "Ik weet het niet zeker.", "Misschien werkt het morgen.", "Maybe."])
    def test_empty_or_hedged_answer_escalates(self, engine, draft):
        """Empty or uncertain answers without a terminal call are not decisive."""
        verdict = engine.evaluate(GuardRailInput(customer_text="Hoe werkt de export?", draft=draft))

        assert verdict.rule_id == GuardRailRule.LOW_CONFIDENCE
        assert verdict.target == EscalationTarget.HUMAN

    def test_terminal_call_is_decisive_even_with_empty_text(self, engine):
        """A successful customer reply counts as a decisive action."""
        verdict = engine.evaluate(
            GuardRailInput(customer_text="Hoe werkt de export?", draft="", tool_calls=[_respond(confidence=0.9)])
        )

        assert verdict.allowed

    def test_low_stated_confidence_escalates(self, engine):
        """A reply sent with confidence below the threshold is not decisive."""
        verdict = engine.evaluate(
            GuardRailInput(customer_text="Hoe werkt de export?", draft="Klaar.", tool_calls=[_respond(confidence=0.3)])
        )

        assert verdict.rule_id == GuardRailRule.LOW_CONFIDENCE

    def test_failed_terminal_call_does_not_count(self, engine):
        """A refused reply leaves the decision to the final text."""
        verdict = engine.evaluate(
            GuardRailInput(
                customer_text="Hoe werkt de export?",
                draft="",
                tool_calls=[_respond(error="Maximum automated responses (5) reached")],
            )
        )

        assert verdict.rule_id == GuardRailRule.LOW_CONFIDENCE

    def test_escalation_call_is_decisive(self, engine):
        """Escalating is itself a decisive action."""
        record = ToolCallRecord(name="escalate_to_admin", input={"reason": "onbekend probleem"}, output={})

        verdict = engine.evaluate(GuardRailInput(customer_text="Hoe werkt de export?", draft="", tool_calls=[record]))

        assert verdict.allowed


class TestPrecedence:
    """Tests for first-match-wins precedence."""

    def test_human_request_beats_everything(self, engine):
        """A human request wins over blocked content, the ceiling and low confidence."""
        verdict = engine.evaluate(
            GuardRailInput(customer_text="Ik wil een mens spreken", response_count=9, draft="Misschien een refund.")
        )

        assert verdict.rule_id == GuardRailRule.HUMAN_REQUEST

    def test_blocked_content_beats_response_limit(self, engine):
        """Blocked content is reported before the response ceiling."""
        verdict = engine.evaluate(
            GuardRailInput(customer_text="Mijn factuur klopt niet", response_count=5, draft="Je krijgt een refund.")
        )

        assert verdict.rule_id == GuardRailRule.BLOCKED_CONTENT

    def test_response_limit_beats_low_confidence(self, engine):
        """The response ceiling is reported before low confidence."""
        verdict = engine.evaluate(GuardRailInput(customer_text="Hoe werkt de export?", response_count=5, draft=""))

        assert verdict.rule_id == GuardRailRule.RESPONSE_LIMIT

    def test_evaluation_is_read_only(self, engine):
        """Evaluating does not change the records it inspects."""
        records = [_respond(confidence=0.9)]
        snapshot = [record.model_copy(deep=True) for record in records]

        engine.evaluate(GuardRailInput(customer_text="Hoe werkt de export?", draft="ok", tool_calls=records))

        assert records == snapshot
