"""Tests for the action classifier and escalation router."""

import pytest

from support_agent.models.agent import EscalationTarget, Outcome, ToolCallRecord
from support_agent.services.classifier import classify_outcome, escalation_target, route


def _record(name: str, **tool_input) -> ToolCallRecord:
    return ToolCallRecord(name=name, input=tool_input, output={"ok": True})


class TestClassifyOutcome:
    """Tests for the ordered outcome decision list."""

    def test_no_records_is_pending(self):
        """Nothing happened, nothing to route."""
        assert classify_outcome([]) == Outcome.PENDING

    def test_work_without_reply_is_responded(self):
        """Tool work without an explicit reply still counts as responded."""
        assert classify_outcome([_record("check_connection_status", customer_id="CUST_001")]) == Outcome.RESPONDED

    def test_reply_without_close_is_responded(self):
        record = _record("respond_to_customer", message="Hoi", close_ticket=False)
        assert classify_outcome([record]) == Outcome.RESPONDED

    def test_reply_with_close_is_resolved(self):
        assert classify_outcome([_record("respond_to_customer", message="Hoi", close_ticket=True)]) == Outcome.RESOLVED

    def test_close_flag_must_be_exactly_true(self):
        """Truthy values other than True do not close the ticket."""
        record = _record("respond_to_customer", message="Hoi", close_ticket="yes")
        assert classify_outcome([record]) == Outcome.RESPONDED

    def test_first_reply_decides(self):
        """When several replies were sent, the first one is inspected."""
        records = [
            _record("respond_to_customer", message="Eerste", close_ticket=False),
            _record("respond_to_customer", message="Tweede", close_ticket=True),
        ]
        assert classify_outcome(records) == Outcome.RESPONDED

    def test_refused_reply_is_not_a_reply(self):
        """A reply the tool refused does not resolve the ticket."""
        refused = ToolCallRecord(
            name="respond_to_customer",
            input={"message": "Hoi", "close_ticket": True},
            error="Maximum automated responses (5) reached; escalate to admin",
        )
        assert classify_outcome([refused]) == Outcome.RESPONDED

    def test_first_sent_reply_decides(self):
        refused = ToolCallRecord(name="respond_to_customer", input={"message": "Eerste"}, error="refused")
        sent = _record("respond_to_customer", message="Tweede", close_ticket=True)
        assert classify_outcome([refused, sent]) == Outcome.RESOLVED

    def test_failed_escalation_still_escalates(self):
        failed = ToolCallRecord(name="escalate_to_devops", input={"summary": "500 errors"}, error="No customer ID")
        assert route([failed]).outcome == Outcome.ESCALATED
        assert route([failed]).target == EscalationTarget.DEVOPS

    @pytest.mark.parametrize("escalation", ["escalate_to_devops", "escalate_to_admin"])
    def test_escalation_wins_over_reply(self, escalation):
        """Any escalation record makes the outcome escalated."""
        records = [
            _record("respond_to_customer", message="Hoi", close_ticket=True),
            _record(escalation, reason="onduidelijk"),
        ]
        assert classify_outcome(records) == Outcome.ESCALATED


class TestEscalationTarget:
    """Tests for the escalation router."""

    def test_devops_target(self):
        assert escalation_target([_record("escalate_to_devops", summary="500 errors")]) == EscalationTarget.DEVOPS

    def test_admin_target_is_human(self):
        assert escalation_target([_record("escalate_to_admin", reason="klant boos")]) == EscalationTarget.HUMAN

    def test_devops_wins_over_human(self):
        """Engineering takes precedence when both queues were used."""
        records = [_record("escalate_to_admin", reason="x"), _record("escalate_to_devops", summary="y")]
        assert escalation_target(records) == EscalationTarget.DEVOPS

    def test_no_escalation_has_no_target(self):
        assert escalation_target([_record("respond_to_customer", message="Hoi")]) is None


class TestRoute:
    """Tests for the combined classification."""

    def test_route_is_deterministic(self):
        """Re-running on the same stored records reproduces the same result."""
        records = [
            _record("check_connection_status", customer_id="CUST_001"),
            _record("trigger_reauth", customer_id="CUST_001"),
            _record("respond_to_customer", message="Check je email", close_ticket=False),
        ]

        results = {route(records).model_dump_json() for _ in range(10)}

        assert len(results) == 1
        assert route(records).outcome == Outcome.RESPONDED
        assert route(records).target is None

    def test_route_from_serialized_records(self):
        """Records loaded back from storage classify the same way."""
        records = [_record("escalate_to_devops", summary="500 errors", priority="high")]
        stored = [ToolCallRecord.model_validate_json(record.model_dump_json()) for record in records]

        assert route(stored) == route(records)
        assert route(stored).outcome == Outcome.ESCALATED
        assert route(stored).target == EscalationTarget.DEVOPS
