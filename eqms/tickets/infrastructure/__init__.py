"""
Tickets Infrastructure Layer
============================

- Models: SQLAlchemy ORM models
- Repositories: Data access layer
"""

from eqms.tickets.infrastructure.models import TicketModel, TicketCommentModel
from eqms.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyTicketCommentRepository,
)

__all__ = [
    "TicketModel",
    "TicketCommentModel",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyTicketCommentRepository",
]
