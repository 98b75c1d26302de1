"""
Organization Application Layer
==============================

Contains:
- Services: SBU lifecycle, tier rosters, user profiles
- DTOs: Data transfer objects for API serialization
"""

from eqms.organization.application.services import (
    SBUService,
    TierAssignmentService,
    UserService,
    ISBURepository,
    ITierAssignmentRepository,
    IUserProfileRepository,
)

__all__ = [
    # Services
    "SBUService",
    "TierAssignmentService",
    "UserService",
    # Repository Interfaces
    "ISBURepository",
    "ITierAssignmentRepository",
    "IUserProfileRepository",
]
