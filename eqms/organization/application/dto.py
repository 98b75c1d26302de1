"""
Organization Application DTOs
==============================

Data Transfer Objects for SBU, tier assignment and user endpoints.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from eqms.config import SBUStatus, Tier, UserRole, UserStatus
from eqms.sla.domain.entities import normalize_policy_key


def _normalize_sla_table(v: Optional[Dict[str, int]]) -> Optional[Dict[str, int]]:
    if v is None:
        return None
    table = {}
    for key, minutes in v.items():
        if minutes < 0:
            raise ValueError("SLA times cannot be negative")
        table[normalize_policy_key(key)] = minutes
    return table


class TierRosterPayload(BaseModel):
    """User ids per tier, as sent by the SBU form."""
    tier1: List[str] = Field(default_factory=list)
    tier2: List[str] = Field(default_factory=list)
    tier3: List[str] = Field(default_factory=list)

    def as_roster(self) -> Dict[Tier, List[str]]:
        return {Tier.TIER1: self.tier1, Tier.TIER2: self.tier2, Tier.TIER3: self.tier3}


# ========== SBU ==========

class SBUCreateRequest(BaseModel):
    """Request model for creating an SBU."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    sla_configs: Optional[Dict[str, int]] = Field(
        None,
        alias="slaConfigs",
        description="Allotted minutes by policy key; missing keys use the policy defaults"
    )
    tier_assignments: Optional[TierRosterPayload] = Field(None, alias="tierAssignments")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("SBU name is required")
        return v.strip()

    @field_validator("sla_configs")
    @classmethod
    def validate_sla_configs(cls, v):
        return _normalize_sla_table(v)


class SBUUpdateRequest(BaseModel):
    """Partial update; SLA table and roster are replaced when provided."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[SBUStatus] = None
    sla_configs: Optional[Dict[str, int]] = Field(None, alias="slaConfigs")
    tier_assignments: Optional[TierRosterPayload] = Field(None, alias="tierAssignments")

    @field_validator("sla_configs")
    @classmethod
    def validate_sla_configs(cls, v):
        return _normalize_sla_table(v)


class SBUResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: Optional[str] = None
    status: SBUStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sla_configs: Dict[str, int] = Field(default_factory=dict, alias="slaConfigs")
    tier_assignments: Dict[str, List[str]] = Field(default_factory=dict, alias="tierAssignments")


class SBUEnvelope(BaseModel):
    sbu: SBUResponse


class SBUListResponse(BaseModel):
    sbus: List[SBUResponse] = Field(default_factory=list)


# ========== Users ==========

class UserResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    role: UserRole
    status: UserStatus
    sbu_id: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserCreateRequest(BaseModel):
    """Profile for a user the auth provider already knows."""
    id: str = Field(..., min_length=1, description="Auth provider user id")
    email: EmailStr
    full_name: Optional[str] = None
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    sbu_id: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        # Auth provider user ids are UUIDs
        return str(UUID(v))


class UserUpdateRequest(BaseModel):
    id: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    sbu_id: Optional[str] = None
    avatar_url: Optional[str] = None


class UserEnvelope(BaseModel):
    user: UserResponse


class UserListResponse(BaseModel):
    users: List[UserResponse] = Field(default_factory=list)


# ========== Tier assignments ==========

class TierAssignmentCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    sbu_id: str = Field(..., min_length=1)
    tier: Tier


class TierAssignmentResponse(BaseModel):
    id: str
    user_id: str
    sbu_id: str
    tier: Tier
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserResponse] = None
    sbu: Optional[SBUResponse] = None


class TierAssignmentEnvelope(BaseModel):
    assignment: TierAssignmentResponse


class TierAssignmentListResponse(BaseModel):
    assignments: List[TierAssignmentResponse] = Field(default_factory=list)
