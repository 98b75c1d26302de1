"""
Tickets Domain Layer
====================

Contains:
- Entities: Ticket, TicketComment
- Transitions: the status state machine

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from eqms.tickets.domain.transitions import (
    Transition,
    PAUSED_STATUSES,
    TERMINAL_STATUSES,
    ESCALATED_STATUSES,
    ESCALATABLE_STATUSES,
    next_escalation_status,
    manual_escalation_target,
    sla_policy_key,
    classify_transition,
)
from eqms.tickets.domain.entities import Ticket, TicketComment

__all__ = [
    # Entities
    "Ticket",
    "TicketComment",
    # State machine
    "Transition",
    "PAUSED_STATUSES",
    "TERMINAL_STATUSES",
    "ESCALATED_STATUSES",
    "ESCALATABLE_STATUSES",
    "next_escalation_status",
    "manual_escalation_target",
    "sla_policy_key",
    "classify_transition",
]
