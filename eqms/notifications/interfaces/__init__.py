"""Notification interfaces layer - API controllers."""

from eqms.notifications.interfaces.controllers import email_router

__all__ = ["email_router"]
