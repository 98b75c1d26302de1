"""
Ticket Domain Entities
======================

Pure Python domain entities for helpdesk tickets.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from eqms.config import TicketPriority, TicketStatus
from eqms.tickets.domain.transitions import (
    ESCALATABLE_STATUSES, PAUSED_STATUSES, TERMINAL_STATUSES
)


@dataclass
class Ticket:
    """
    Ticket entity representing a query raised against an SBU.

    sla_time holds the minutes allotted for the current status; the
    countdown itself is always measured from created_at.
    """

    # Core attributes
    id: Optional[str]
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    sbu_id: str
    created_by: Optional[str]
    assigned_to: Optional[str] = None
    sla_time: int = 0

    # Timestamps
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Resolution
    resolution: Optional[str] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    # Query form fields
    card_number: Optional[str] = None
    module: Optional[str] = None
    account_number: Optional[str] = None
    query_type: Optional[str] = None

    def __post_init__(self):
        """Validate ticket on initialization."""
        if self.sla_time < 0:
            raise ValueError("sla_time cannot be negative")
        if self.created_at and self.updated_at and self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be before created_at")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_paused(self) -> bool:
        """Escalation timer does not run in this status."""
        return self.status in PAUSED_STATUSES

    @property
    def is_escalatable(self) -> bool:
        return self.status in ESCALATABLE_STATUSES

    def apply_status(self, new_status: TicketStatus, timestamp: Optional[datetime] = None) -> None:
        """Move to a new status and keep resolved_at/closed_at consistent with it."""
        now = timestamp or datetime.now(timezone.utc)

        if new_status is TicketStatus.RESOLVED:
            self.resolved_at = now
            self.closed_at = None
        elif new_status is TicketStatus.CLOSED:
            if self.resolved_at is None:
                self.resolved_at = now
            self.closed_at = now
        elif self.is_terminal:
            # Reopened
            self.resolved_at = None
            self.closed_at = None

        self.status = new_status


@dataclass
class TicketComment:
    """Note on a ticket; internal notes are for staff only."""

    id: Optional[str]
    ticket_id: str
    user_id: Optional[str]
    content: str
    is_internal: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.content or not self.content.strip():
            raise ValueError("Comment content cannot be empty")
