"""
Organization Domain Entities
=============================

Pure Python domain entities for SBUs, tier rosters and user profiles.

These entities carry no persistence concerns; repositories translate them
to and from ORM rows.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from eqms.config import (
    ASSIGNABLE_ROLES, SBUStatus, Tier, UserRole, UserStatus
)


@dataclass
class UserProfile:
    """
    Profile of an authenticated user.

    The id is the auth provider's user id; the role governs visibility
    and permitted mutations everywhere.
    """

    id: str
    email: str
    role: UserRole
    status: UserStatus = UserStatus.ACTIVE
    full_name: Optional[str] = None
    sbu_id: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    @property
    def is_assignable(self) -> bool:
        """Only agents and managers may hold tickets or tier seats."""
        return self.role in ASSIGNABLE_ROLES

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


@dataclass
class SBU:
    """Strategic Business Unit owning an SLA table and a tier roster."""

    id: str
    name: str
    description: Optional[str] = None
    status: SBUStatus = SBUStatus.ACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == SBUStatus.ACTIVE

    def deactivate(self) -> None:
        self.status = SBUStatus.INACTIVE


@dataclass
class TierAssignment:
    """Seat of a user at one tier of one SBU."""

    id: str
    user_id: str
    sbu_id: str
    tier: Tier
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class TierRoster:
    """
    All tier seats of an SBU, grouped by tier.

    A user appears under at most one tier.
    """

    sbu_id: str
    members: Dict[Tier, List[str]] = field(
        default_factory=lambda: {tier: [] for tier in Tier}
    )

    @classmethod
    def from_assignments(cls, sbu_id: str, assignments: List[TierAssignment]) -> "TierRoster":
        roster = cls(sbu_id=sbu_id)
        for assignment in assignments:
            roster.members[assignment.tier].append(assignment.user_id)
        return roster

    def tier_of(self, user_id: str) -> Optional[Tier]:
        for tier, user_ids in self.members.items():
            if user_id in user_ids:
                return tier
        return None

    def to_dict(self) -> Dict[str, List[str]]:
        return {tier.value: list(user_ids) for tier, user_ids in self.members.items()}
