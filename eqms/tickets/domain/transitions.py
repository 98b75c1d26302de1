"""
Ticket Status Transitions
=========================

The canonical ticket state machine.

Automatic escalation (SLA breach) only walks the tier chain:

    new -> escalated_tier1 -> escalated_tier2 -> escalated_tier3

Manual transitions:

    escalate  new|assigned|in_progress -> escalated_tier1, then one tier up
    assign    any open status -> assigned
    start     new|assigned|escalated_* -> in_progress
    resolve   any open status -> resolved (resolution note required)
    close     any status -> closed
    reopen    resolved|closed -> new|assigned|in_progress

Every function here matches TicketStatus exhaustively and raises on a
member it does not know about.
"""

from enum import Enum
from typing import Optional

from eqms.config import OPEN_POLICY_KEY, TicketStatus
from eqms.core.exceptions import InvalidTransitionException


class Transition(str, Enum):
    """Kinds of manual status change."""
    ESCALATE = "escalate"
    ASSIGN = "assign"
    START = "start"
    RESOLVE = "resolve"
    CLOSE = "close"
    REOPEN = "reopen"


PAUSED_STATUSES = frozenset({
    TicketStatus.ASSIGNED,
    TicketStatus.IN_PROGRESS,
    TicketStatus.RESOLVED,
    TicketStatus.CLOSED,
})

TERMINAL_STATUSES = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})

ESCALATED_STATUSES = frozenset({
    TicketStatus.ESCALATED_TIER1,
    TicketStatus.ESCALATED_TIER2,
    TicketStatus.ESCALATED_TIER3,
})

# Statuses the escalation sweep has to look at
ESCALATABLE_STATUSES = frozenset({
    TicketStatus.NEW,
    TicketStatus.ESCALATED_TIER1,
    TicketStatus.ESCALATED_TIER2,
})


def _unhandled(status: TicketStatus):
    return ValueError(f"Unhandled ticket status: {status!r}")


def next_escalation_status(status: TicketStatus) -> Optional[TicketStatus]:
    """Successor on SLA breach, or None where the timer is paused or at the ceiling."""
    if status is TicketStatus.NEW:
        return TicketStatus.ESCALATED_TIER1
    if status is TicketStatus.ESCALATED_TIER1:
        return TicketStatus.ESCALATED_TIER2
    if status is TicketStatus.ESCALATED_TIER2:
        return TicketStatus.ESCALATED_TIER3
    if status is TicketStatus.ESCALATED_TIER3:
        return None
    if status in PAUSED_STATUSES:
        return None
    raise _unhandled(status)


def manual_escalation_target(status: TicketStatus) -> Optional[TicketStatus]:
    """Successor for an explicit escalate action; None when there is none."""
    if status in (TicketStatus.NEW, TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS):
        return TicketStatus.ESCALATED_TIER1
    if status is TicketStatus.ESCALATED_TIER1:
        return TicketStatus.ESCALATED_TIER2
    if status is TicketStatus.ESCALATED_TIER2:
        return TicketStatus.ESCALATED_TIER3
    if status in (TicketStatus.ESCALATED_TIER3, TicketStatus.RESOLVED, TicketStatus.CLOSED):
        return None
    raise _unhandled(status)


def sla_policy_key(status: TicketStatus) -> str:
    """Key of the SLA config that governs a status."""
    if status is TicketStatus.NEW:
        return OPEN_POLICY_KEY
    if status in TicketStatus:
        return status.value
    raise _unhandled(status)


def classify_transition(current: TicketStatus, target: TicketStatus) -> Transition:
    """
    Decide which manual transition moves a ticket from current to target.

    Raises:
        InvalidTransitionException: the state machine has no such edge
    """
    if current == target:
        raise InvalidTransitionException(current.value, target.value, "ticket already has this status")

    if target in ESCALATED_STATUSES:
        expected = manual_escalation_target(current)
        if expected is None:
            raise InvalidTransitionException(current.value, target.value, "no escalation tier above the current one")
        if target != expected:
            raise InvalidTransitionException(
                current.value, target.value, f"tiers cannot be skipped, next tier is '{expected.value}'"
            )
        return Transition.ESCALATE

    if target is TicketStatus.CLOSED:
        return Transition.CLOSE

    if target is TicketStatus.RESOLVED:
        if current is TicketStatus.CLOSED:
            raise InvalidTransitionException(current.value, target.value, "closed tickets must be reopened first")
        return Transition.RESOLVE

    if target in (TicketStatus.NEW, TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS):
        if current in TERMINAL_STATUSES:
            return Transition.REOPEN
        if target is TicketStatus.ASSIGNED:
            return Transition.ASSIGN
        if target is TicketStatus.IN_PROGRESS:
            return Transition.START
        raise InvalidTransitionException(current.value, target.value, "only resolved or closed tickets can return to new")

    raise _unhandled(target)
