"""
SLA Domain Entities
====================

Pure Python domain entities for the SLA policy table.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from eqms.config import OPEN_POLICY_KEY, SLA_POLICY_KEYS, TicketStatus


def normalize_policy_key(key: str) -> str:
    """
    Canonical policy key for a submitted status string.

    The initial `new` status is governed by the `open` key.

    Raises:
        ValueError: key is not a known policy key
    """
    key = key.strip().lower()
    if key == TicketStatus.NEW.value:
        key = OPEN_POLICY_KEY
    if key not in SLA_POLICY_KEYS:
        raise ValueError(f"Unknown SLA policy key: {key}")
    return key


@dataclass
class SLAConfig:
    """
    Allotted time for tickets of one SBU in one status.

    There is at most one config per (sbu_id, ticket_status).
    """

    id: Optional[str]
    sbu_id: str
    ticket_status: str
    sla_time: int  # minutes
    warning_seconds: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate config on initialization."""
        if self.sla_time < 0:
            raise ValueError("sla_time cannot be negative")
        if self.warning_seconds is not None and self.warning_seconds < 0:
            raise ValueError("warning_seconds cannot be negative")
        self.ticket_status = normalize_policy_key(self.ticket_status)

    @property
    def allotted_seconds(self) -> int:
        return self.sla_time * 60
