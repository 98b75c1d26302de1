"""
Notifications Domain Layer
==========================

Contains:
- OutgoingEmail: a rendered message ready for delivery
- Templates: HTML bodies keyed by ticket event
"""

from eqms.notifications.domain.templates import (
    OutgoingEmail,
    EmailTemplate,
    TEMPLATES,
    template_key,
    render_ticket_email,
    default_subject,
)

__all__ = [
    "OutgoingEmail",
    "EmailTemplate",
    "TEMPLATES",
    "template_key",
    "render_ticket_email",
    "default_subject",
]
