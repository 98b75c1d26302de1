"""
Organization Domain Layer
=========================

Contains:
- Entities: UserProfile, SBU, TierAssignment
- TierRoster: an SBU's seats grouped by tier
"""

from eqms.organization.domain.entities import SBU, TierAssignment, TierRoster, UserProfile

__all__ = [
    "SBU",
    "TierAssignment",
    "TierRoster",
    "UserProfile",
]
