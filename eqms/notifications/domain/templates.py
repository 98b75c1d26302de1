"""
E-mail Templates
================

HTML bodies for ticket notifications, keyed by the event a ticket went
through. Every escalated tier shares the "escalated" template; unknown
keys fall back to a generic update message.
"""

from dataclasses import dataclass, field
from html import escape
from typing import Dict, List, Optional

from eqms.config import TicketStatus


@dataclass(frozen=True)
class EmailTemplate:
    title: str
    message: str


@dataclass
class OutgoingEmail:
    """A rendered message ready for delivery."""
    to: List[str]
    subject: str
    html: str
    ticket_id: Optional[str] = None
    status: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)


TEMPLATES: Dict[str, EmailTemplate] = {
    "new": EmailTemplate(
        "New Ticket Created",
        "A new ticket has been created and is awaiting assignment.",
    ),
    "assigned": EmailTemplate(
        "Ticket Assigned",
        "A ticket has been assigned to you. Please review it and begin work.",
    ),
    "in_progress": EmailTemplate(
        "Ticket In Progress",
        "Work has begun on your ticket.",
    ),
    "escalated": EmailTemplate(
        "Ticket Escalated",
        "This ticket has been escalated and requires immediate attention.",
    ),
    "resolved": EmailTemplate(
        "Ticket Resolved",
        "Your ticket has been resolved. Please review the solution.",
    ),
    "closed": EmailTemplate(
        "Ticket Closed",
        "Your ticket has been closed. Thank you for using our service.",
    ),
}

FALLBACK_TEMPLATE = EmailTemplate("Ticket Update", "Your ticket status has been updated.")


def template_key(status: Optional[str]) -> str:
    """Map a ticket status (or free-form event name) to a template key."""
    if not status:
        return ""
    key = status.strip().lower()
    if key.startswith("escalated"):
        return "escalated"
    return key


def default_subject(status: TicketStatus, ticket_title: str) -> str:
    template = TEMPLATES.get(template_key(status.value), FALLBACK_TEMPLATE)
    return f"[EQMS] {template.title}: {ticket_title}"


def render_ticket_email(
    status: Optional[str],
    ticket_id: str,
    ticket_title: Optional[str] = None,
    resolution: Optional[str] = None,
) -> str:
    """Render the HTML body for a ticket event."""
    template = TEMPLATES.get(template_key(status), FALLBACK_TEMPLATE)

    lines = [
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">',
        f'  <h2 style="color: #2c3e50;">{escape(template.title)}</h2>',
        f'  <p style="color: #34495e;">{escape(template.message)}</p>',
    ]
    if ticket_title:
        lines.append(f'  <p style="color: #34495e;">Subject: {escape(ticket_title)}</p>')
    lines.append(f'  <p style="color: #34495e;">Ticket ID: {escape(ticket_id)}</p>')
    if resolution:
        lines.append(f'  <p style="color: #34495e;">Resolution: {escape(resolution)}</p>')
    lines.extend([
        '  <hr style="border: 1px solid #eee;">',
        '  <p style="color: #7f8c8d; font-size: 0.9em;">',
        "    This is an automated message. Please do not reply to this email.",
        "  </p>",
        "</div>",
    ])
    return "\n".join(lines)
