"""
Notifications Application Layer
===============================

Contains:
- EmailDispatcher: background delivery with shutdown drain
- TicketNotifier: recipient resolution for ticket events
- DTOs: ad hoc e-mail request
"""

from eqms.notifications.application.dto import EmailRequest, EmailAcceptedResponse
from eqms.notifications.application.services import EmailDispatcher, IMailer, TicketNotifier

__all__ = [
    "EmailRequest",
    "EmailAcceptedResponse",
    "EmailDispatcher",
    "IMailer",
    "TicketNotifier",
]
