"""
Tickets Application Layer
=========================

Contains:
- TicketService: the Ticket Update Gateway
- Repository interfaces and the ticket row filter

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from eqms.tickets.application.services import (
    TicketService,
    TicketFilter,
    ITicketRepository,
    ITicketCommentRepository,
    TRANSITION_ACTIONS,
)

__all__ = [
    "TicketService",
    "TicketFilter",
    "ITicketRepository",
    "ITicketCommentRepository",
    "TRANSITION_ACTIONS",
]
