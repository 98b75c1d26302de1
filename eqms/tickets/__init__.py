"""
Tickets Module
==============

Bounded Context for the ticket lifecycle.

Responsibilities:
- Ticket entity and the canonical status state machine
- Ticket Update Gateway: the single mutation surface for tickets
- Comments (internal notes visible to staff only)
- Ticket analytics
"""

__version__ = "1.0.0"
