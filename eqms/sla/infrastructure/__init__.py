"""
SLA Infrastructure Layer
=========================

- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- External: Escalation policy file watcher and sweep scheduler
"""

from eqms.sla.infrastructure.models import SLAConfigModel
from eqms.sla.infrastructure.repositories import SQLAlchemySLAConfigRepository
from eqms.sla.infrastructure.external import EscalationPolicyManager, EscalationScheduler

__all__ = [
    "SLAConfigModel",
    "SQLAlchemySLAConfigRepository",
    "EscalationPolicyManager",
    "EscalationScheduler",
]
