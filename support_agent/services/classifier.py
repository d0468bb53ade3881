"""Action classifier and escalation router.

Both are pure functions of a finished tool call record list and are meant to
be recomputed whenever an outcome is needed, so the outcome can never drift
away from the evidence it was derived from.
"""

from collections.abc import Sequence

from support_agent.models.agent import Classification, EscalationTarget, Outcome, ToolCallRecord

ESCALATE_TO_DEVOPS = "escalate_to_devops"
ESCALATE_TO_ADMIN = "escalate_to_admin"
RESPOND_TO_CUSTOMER = "respond_to_customer"


def _find(records: Sequence[ToolCallRecord], name: str, succeeded_only: bool = False) -> ToolCallRecord | None:
    return next(
        (record for record in records if record.name == name and (record.succeeded or not succeeded_only)),
        None,
    )


def classify_outcome(records: Sequence[ToolCallRecord]) -> Outcome:
    """Derive the conversation outcome from its tool call records.

    Evaluated as an ordered decision list:

    1. any escalation record -> escalated
    2. a customer reply -> resolved when it closed the ticket, else responded
    3. any other tool call -> responded
    4. nothing happened -> pending

    A reply the tool refused was never sent, so it does not count as a
    customer reply. A failed escalation still counts: the conversation goes
    to a person either way.
    """
    if _find(records, ESCALATE_TO_DEVOPS) or _find(records, ESCALATE_TO_ADMIN):
        return Outcome.ESCALATED

    reply = _find(records, RESPOND_TO_CUSTOMER, succeeded_only=True)
    if reply is not None:
        return Outcome.RESOLVED if reply.input.get("close_ticket") is True else Outcome.RESPONDED

    if records:
        return Outcome.RESPONDED

    return Outcome.PENDING


def escalation_target(records: Sequence[ToolCallRecord]) -> EscalationTarget | None:
    """Engineering wins over the human queue when both were escalated to."""
    if _find(records, ESCALATE_TO_DEVOPS):
        return EscalationTarget.DEVOPS
    if _find(records, ESCALATE_TO_ADMIN):
        return EscalationTarget.HUMAN
    return None


def route(records: Sequence[ToolCallRecord]) -> Classification:
    return Classification(outcome=classify_outcome(records), target=escalation_target(records))
