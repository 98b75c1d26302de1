"""
SLA Application Layer
======================

Contains:
- Services: SLA table management and countdown evaluation
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from eqms.sla.application.dto import (
    SLAConfigCreateRequest,
    SLAConfigUpdateRequest,
    SBUSummary,
    SLAConfigResponse,
    SLAConfigEnvelope,
    SLAConfigListResponse,
    CountdownResponse,
    SweepResponse,
)
from eqms.sla.application.services import (
    SLAConfigService,
    CountdownService,
    ISLAConfigRepository,
    IEscalationPolicyProvider,
)

__all__ = [
    # DTOs
    "SLAConfigCreateRequest",
    "SLAConfigUpdateRequest",
    "SBUSummary",
    "SLAConfigResponse",
    "SLAConfigEnvelope",
    "SLAConfigListResponse",
    "CountdownResponse",
    "SweepResponse",
    # Services
    "SLAConfigService",
    "CountdownService",
    # Repository Interfaces
    "ISLAConfigRepository",
    "IEscalationPolicyProvider",
]
