"""
SLA Domain Layer
================

Contains:
- Entities: SLAConfig
- Value Objects: EscalationCountdown, EscalationPolicy
- Domain Services: Stateless countdown logic (EscalationCalculator)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from eqms.sla.domain.entities import SLAConfig, normalize_policy_key
from eqms.sla.domain.value_objects import (
    EscalationCalculator,
    EscalationCountdown,
    EscalationPolicy,
)

__all__ = [
    # Entities
    "SLAConfig",
    "normalize_policy_key",
    # Value Objects & Services
    "EscalationCalculator",
    "EscalationCountdown",
    "EscalationPolicy",
]
