"""Ticket interfaces layer - API controllers."""

from eqms.tickets.interfaces.controllers import tickets_router

__all__ = ["tickets_router"]
