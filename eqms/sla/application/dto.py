"""
SLA Application DTOs
=====================

Data Transfer Objects for the SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eqms.sla.domain.entities import normalize_policy_key


# ========== Request DTOs ==========

class SLAConfigCreateRequest(BaseModel):
    """Request model for adding a row to an SBU's SLA table."""
    sbu_id: str = Field(..., min_length=1, description="Owning SBU")
    ticket_status: str = Field(..., description="Policy key ('open' for new tickets, else the status)")
    sla_time: int = Field(..., ge=0, description="Allotted minutes")
    warning_seconds: Optional[int] = Field(None, ge=0, description="Warning threshold override")

    @field_validator("ticket_status")
    @classmethod
    def validate_ticket_status(cls, v: str) -> str:
        return normalize_policy_key(v)


class SLAConfigUpdateRequest(BaseModel):
    """Partial update of an SLA config."""
    ticket_status: Optional[str] = None
    sla_time: Optional[int] = Field(None, ge=0)
    warning_seconds: Optional[int] = Field(None, ge=0)

    @field_validator("ticket_status")
    @classmethod
    def validate_ticket_status(cls, v: Optional[str]) -> Optional[str]:
        return normalize_policy_key(v) if v is not None else None


# ========== Response DTOs ==========

class SBUSummary(BaseModel):
    """SBU joined onto SLA config responses."""
    id: str
    name: str
    description: Optional[str] = None
    status: str


class SLAConfigResponse(BaseModel):
    """Response model for a single SLA config."""
    id: str
    sbu_id: str
    ticket_status: str
    sla_time: int = Field(..., description="Allotted minutes")
    warning_seconds: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sbu: Optional[SBUSummary] = Field(None, description="Owning SBU")


class SLAConfigEnvelope(BaseModel):
    """Wrapper used by create and update responses."""
    model_config = ConfigDict(populate_by_name=True)

    sla_config: SLAConfigResponse = Field(..., alias="slaConfig")


class SLAConfigListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sla_configs: List[SLAConfigResponse] = Field(default_factory=list, alias="slaConfigs")


class CountdownResponse(BaseModel):
    """Escalation countdown of a ticket."""
    ticket_id: str
    status: str
    state: str = Field(..., description="counting, warning, expired, paused or unknown")
    remaining_seconds: Optional[int] = None
    allotted_seconds: Optional[int] = None
    warning_seconds: Optional[int] = None
    deadline: Optional[datetime] = None
    next_status: Optional[str] = None
    should_escalate: bool = False


class SweepResponse(BaseModel):
    """Summary of one escalation sweep."""
    tickets_evaluated: int = 0
    escalated: int = 0
    skipped_unknown: int = 0
    failed: int = 0
