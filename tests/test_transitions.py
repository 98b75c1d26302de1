"""Tests for the ticket state machine."""

from datetime import datetime, timezone

import pytest

from eqms.config import TicketPriority, TicketStatus
from eqms.core.exceptions import InvalidTransitionException
from eqms.tickets.domain import (
    Ticket, TicketComment, Transition, classify_transition, manual_escalation_target,
    next_escalation_status, sla_policy_key
)

S = TicketStatus


@pytest.mark.parametrize("current,expected", [
    (S.NEW, S.ESCALATED_TIER1),
    (S.ESCALATED_TIER1, S.ESCALATED_TIER2),
    (S.ESCALATED_TIER2, S.ESCALATED_TIER3),
    (S.ESCALATED_TIER3, None),
    (S.ASSIGNED, None),
    (S.IN_PROGRESS, None),
    (S.RESOLVED, None),
    (S.CLOSED, None),
])
def test_automatic_escalation_table(current, expected):
    assert next_escalation_status(current) is expected


@pytest.mark.parametrize("current,expected", [
    (S.NEW, S.ESCALATED_TIER1),
    (S.ASSIGNED, S.ESCALATED_TIER1),
    (S.IN_PROGRESS, S.ESCALATED_TIER1),
    (S.ESCALATED_TIER1, S.ESCALATED_TIER2),
    (S.ESCALATED_TIER2, S.ESCALATED_TIER3),
    (S.ESCALATED_TIER3, None),
    (S.RESOLVED, None),
    (S.CLOSED, None),
])
def test_manual_escalation_target(current, expected):
    assert manual_escalation_target(current) is expected


def test_every_status_has_a_policy_key():
    assert sla_policy_key(S.NEW) == "open"
    for status in S:
        if status is not S.NEW:
            assert sla_policy_key(status) == status.value


class TestClassifyTransition:
    @pytest.mark.parametrize("current,target,kind", [
        (S.NEW, S.ESCALATED_TIER1, Transition.ESCALATE),
        (S.ESCALATED_TIER1, S.ESCALATED_TIER2, Transition.ESCALATE),
        (S.NEW, S.ASSIGNED, Transition.ASSIGN),
        (S.ESCALATED_TIER2, S.ASSIGNED, Transition.ASSIGN),
        (S.ASSIGNED, S.IN_PROGRESS, Transition.START),
        (S.IN_PROGRESS, S.RESOLVED, Transition.RESOLVE),
        (S.NEW, S.CLOSED, Transition.CLOSE),
        (S.RESOLVED, S.CLOSED, Transition.CLOSE),
        (S.RESOLVED, S.IN_PROGRESS, Transition.REOPEN),
        (S.CLOSED, S.NEW, Transition.REOPEN),
    ])
    def test_edges(self, current, target, kind):
        assert classify_transition(current, target) is kind

    def test_same_status_rejected(self):
        with pytest.raises(InvalidTransitionException):
            classify_transition(S.ASSIGNED, S.ASSIGNED)

    def test_tiers_cannot_be_skipped(self):
        with pytest.raises(InvalidTransitionException) as exc:
            classify_transition(S.NEW, S.ESCALATED_TIER2)
        assert "escalated_tier1" in exc.value.message

    def test_no_tier_above_tier3(self):
        with pytest.raises(InvalidTransitionException):
            classify_transition(S.ESCALATED_TIER3, S.ESCALATED_TIER1)

    def test_open_ticket_cannot_go_back_to_new(self):
        with pytest.raises(InvalidTransitionException):
            classify_transition(S.ASSIGNED, S.NEW)

    def test_closed_ticket_cannot_be_resolved(self):
        with pytest.raises(InvalidTransitionException):
            classify_transition(S.CLOSED, S.RESOLVED)


class TestTicketEntity:
    def make(self, status=S.NEW) -> Ticket:
        now = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
        return Ticket(
            id="t1", title="t", description="d", status=status, priority=TicketPriority.LOW,
            sbu_id="s1", created_by="u1", created_at=now, updated_at=now,
        )

    def test_resolve_then_close_then_reopen(self):
        ticket = self.make(S.IN_PROGRESS)
        resolved_at = datetime(2024, 1, 15, 11, 0, tzinfo=timezone.utc)
        ticket.apply_status(S.RESOLVED, resolved_at)
        assert ticket.resolved_at == resolved_at and ticket.closed_at is None

        closed_at = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        ticket.apply_status(S.CLOSED, closed_at)
        assert ticket.resolved_at == resolved_at
        assert ticket.closed_at == closed_at

        ticket.apply_status(S.IN_PROGRESS)
        assert ticket.resolved_at is None and ticket.closed_at is None

    def test_negative_sla_time_rejected(self):
        with pytest.raises(ValueError):
            Ticket(id=None, title="t", description="d", status=S.NEW, priority=TicketPriority.LOW,
                   sbu_id="s1", created_by="u1", sla_time=-5)

    def test_flags(self):
        assert self.make(S.NEW).is_escalatable
        assert self.make(S.ASSIGNED).is_paused
        assert self.make(S.CLOSED).is_terminal

    def test_blank_comment_rejected(self):
        with pytest.raises(ValueError):
            TicketComment(id=None, ticket_id="t1", user_id="u1", content="   ")
