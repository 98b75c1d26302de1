"""
SLA Value Objects
==================

Immutable value objects for the escalation domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from eqms.config import (
    CountdownState, TicketStatus, SLA_POLICY_KEYS
)
from eqms.sla.domain.entities import SLAConfig, normalize_policy_key
from eqms.tickets.domain.transitions import (
    PAUSED_STATUSES, next_escalation_status
)


class EscalationCalculator:
    """
    Pure functions for escalation countdowns.

    Stateless utility class - all countdown arithmetic in one place, so
    evaluating the same ticket twice yields the same answer modulo the
    wall-clock time that passed in between.
    """

    @staticmethod
    def calculate_deadline(created_at: datetime, sla_minutes: int) -> datetime:
        """The clock is anchored at ticket creation and never resets."""
        return created_at + timedelta(minutes=sla_minutes)

    @staticmethod
    def calculate_remaining_seconds(
        created_at: datetime,
        sla_minutes: int,
        current_time: datetime
    ) -> int:
        """
        Whole seconds left before the allotment is used up.

        Rounded up, so zero is reached only once elapsed >= allotted.
        """
        elapsed = (current_time - created_at).total_seconds()
        return max(0, math.ceil(sla_minutes * 60 - elapsed))

    @staticmethod
    def calculate_state(remaining_seconds: int, warning_seconds: int) -> CountdownState:
        if remaining_seconds <= 0:
            return CountdownState.EXPIRED
        if remaining_seconds < warning_seconds:
            return CountdownState.WARNING
        return CountdownState.COUNTING

    @staticmethod
    def evaluate(
        ticket_id: str,
        status: TicketStatus,
        created_at: datetime,
        config: Optional[SLAConfig],
        current_time: datetime,
        warning_seconds: int
    ) -> "EscalationCountdown":
        """
        Evaluate the escalation countdown of one ticket.

        Args:
            ticket_id: Ticket identifier (for reporting)
            status: Current ticket status
            created_at: Ticket creation time
            config: SLA config for (sbu_id, policy key of status), None if missing
            current_time: Evaluation instant
            warning_seconds: Threshold below which the countdown is flagged

        Returns:
            EscalationCountdown; paused statuses and missing configs never escalate
        """
        if status in PAUSED_STATUSES:
            return EscalationCountdown(ticket_id=ticket_id, status=status, state=CountdownState.PAUSED)

        if config is None:
            # No allotment configured, never escalates
            return EscalationCountdown(ticket_id=ticket_id, status=status, state=CountdownState.UNKNOWN)

        remaining = EscalationCalculator.calculate_remaining_seconds(
            created_at, config.sla_time, current_time
        )

        return EscalationCountdown(
            ticket_id=ticket_id,
            status=status,
            state=EscalationCalculator.calculate_state(remaining, warning_seconds),
            remaining_seconds=remaining,
            allotted_seconds=config.allotted_seconds,
            warning_seconds=warning_seconds,
            deadline=EscalationCalculator.calculate_deadline(created_at, config.sla_time),
            next_status=next_escalation_status(status),
        )


@dataclass(frozen=True)
class EscalationCountdown:
    """
    Result of evaluating a ticket's escalation timer.

    Only remaining_seconds is meaningful for COUNTING, WARNING and EXPIRED.
    """
    ticket_id: str
    status: TicketStatus
    state: CountdownState
    remaining_seconds: Optional[int] = None
    allotted_seconds: Optional[int] = None
    warning_seconds: Optional[int] = None
    deadline: Optional[datetime] = None
    next_status: Optional[TicketStatus] = None

    @property
    def is_expired(self) -> bool:
        return self.state == CountdownState.EXPIRED

    @property
    def should_escalate(self) -> bool:
        """Expired with somewhere to go; escalated_tier3 expires in place."""
        return self.is_expired and self.next_status is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "ticket_id": self.ticket_id,
            "status": self.status.value,
            "state": self.state.value,
            "remaining_seconds": self.remaining_seconds,
            "allotted_seconds": self.allotted_seconds,
            "warning_seconds": self.warning_seconds,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "next_status": self.next_status.value if self.next_status else None,
            "should_escalate": self.should_escalate,
        }


class EscalationPolicy(BaseModel):
    """
    Escalation policy defaults loaded from YAML.

    default_sla_minutes seeds the SLA table of a new SBU; warning_seconds
    gives the countdown threshold per policy key when a config carries
    no override of its own.
    """
    default_sla_minutes: Dict[str, int] = Field(
        default_factory=dict,
        description="Default allotment in minutes by policy key"
    )
    warning_seconds: Dict[str, int] = Field(
        default_factory=dict,
        description="Warning threshold in seconds by policy key"
    )
    default_warning_seconds: int = Field(
        default=300,
        ge=0,
        description="Warning threshold for keys without an entry"
    )

    @field_validator("default_sla_minutes", "warning_seconds")
    @classmethod
    def validate_keys(cls, v: Dict[str, int]) -> Dict[str, int]:
        """Normalize keys (new -> open) and reject unknown keys or negative values."""
        normalized: Dict[str, int] = {}
        for key, value in v.items():
            if value < 0:
                raise ValueError(f"{key}: value cannot be negative")
            normalized[normalize_policy_key(key)] = int(value)
        return normalized

    def get_default_minutes(self, key: str) -> Optional[int]:
        return self.default_sla_minutes.get(key)

    def get_warning_seconds(self, key: str, config: Optional[SLAConfig] = None) -> int:
        """Config override first, then the per-key value, then the global default."""
        if config is not None and config.warning_seconds is not None:
            return config.warning_seconds
        return self.warning_seconds.get(key, self.default_warning_seconds)

    def seed_table(self, overrides: Optional[Dict[str, int]] = None) -> Dict[str, int]:
        """
        SLA table for a new SBU: explicit overrides win, defaults fill the gaps.

        Keys without either are left out.
        """
        table = dict(self.default_sla_minutes)
        for key, minutes in (overrides or {}).items():
            table[normalize_policy_key(key)] = minutes
        return {key: table[key] for key in SLA_POLICY_KEYS if key in table}


