"""
Organization Infrastructure Layer
==================================

- Models: SQLAlchemy ORM models
- Repositories: Data access layer
"""

from eqms.organization.infrastructure.models import SBUModel, TierAssignmentModel, UserProfileModel
from eqms.organization.infrastructure.repositories import (
    SQLAlchemySBURepository,
    SQLAlchemyTierAssignmentRepository,
    SQLAlchemyUserProfileRepository,
)

__all__ = [
    "SBUModel",
    "TierAssignmentModel",
    "UserProfileModel",
    "SQLAlchemySBURepository",
    "SQLAlchemyTierAssignmentRepository",
    "SQLAlchemyUserProfileRepository",
]
