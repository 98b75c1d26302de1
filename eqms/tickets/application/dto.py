"""
Ticket Application DTOs
=======================

Data Transfer Objects for the ticket API layer.

Status and priority values are accepted case-insensitively ("NEW",
"Escalated_Tier1" and "new" are all fine).
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from eqms.config import TicketPriority, TicketStatus
from eqms.sla.application.dto import SBUSummary


def _lower(v):
    return v.strip().lower() if isinstance(v, str) else v


# ========== Request DTOs ==========

class TicketCreateRequest(BaseModel):
    """Request model for raising a ticket."""
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)
    priority: TicketPriority
    sbu_id: str = Field(..., min_length=1)
    card_number: Optional[str] = Field(None, max_length=64)
    module: Optional[str] = Field(None, max_length=255)
    account_number: Optional[str] = Field(None, max_length=64)
    query_type: Optional[str] = Field(None, max_length=255)

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v):
        return _lower(v)

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class TicketUpdateRequest(BaseModel):
    """
    Generic update. At least one of status, priority, assigned_to or
    resolution must be present; title and description may ride along.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    assigned_to: Optional[str] = None
    resolution: Optional[str] = None

    @field_validator("status", "priority", mode="before")
    @classmethod
    def normalize_enums(cls, v):
        return _lower(v)

    @model_validator(mode="after")
    def require_change(self) -> "TicketUpdateRequest":
        if all(v is None for v in (self.status, self.priority, self.assigned_to, self.resolution)):
            raise ValueError("One of status, priority, assigned_to or resolution is required")
        return self


class StatusUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ticket_id: str = Field(..., min_length=1, alias="ticketId")
    status: TicketStatus
    resolution: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _lower(v)


class PriorityUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ticket_id: str = Field(..., min_length=1, alias="ticketId")
    priority: TicketPriority

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v):
        return _lower(v)


class AssignRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ticket_id: str = Field(..., min_length=1, alias="ticketId")
    assignee_id: str = Field(..., min_length=1, alias="assigneeId")


class ResolveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ticket_id: str = Field(..., min_length=1, alias="ticketId")
    resolution: str = Field(..., min_length=1)

    @field_validator("resolution")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Resolution is required")
        return v.strip()


class EscalateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ticket_id: str = Field(..., min_length=1, alias="ticketId")


class CommentCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(..., min_length=1)
    is_internal: bool = Field(False, alias="isInternal")

    @field_validator("content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Comment content cannot be empty")
        return v


# ========== Response DTOs ==========

class UserSummary(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None


class TicketResponse(BaseModel):
    """Response model for a single ticket."""
    id: str
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    sbu_id: str
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None
    sla_time: int = Field(..., description="Minutes allotted for the current status")
    resolution: Optional[str] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    card_number: Optional[str] = None
    module: Optional[str] = None
    account_number: Optional[str] = None
    query_type: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    sbu: Optional[SBUSummary] = None
    creator: Optional[UserSummary] = None
    assignee: Optional[UserSummary] = None


class TicketEnvelope(BaseModel):
    ticket: TicketResponse


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    page_size: int = Field(..., alias="pageSize")
    total: int


class TicketListResponse(BaseModel):
    tickets: List[TicketResponse] = Field(default_factory=list)
    pagination: Pagination


class CommentResponse(BaseModel):
    id: str
    ticket_id: str
    user_id: Optional[str] = None
    content: str
    is_internal: bool
    created_at: Optional[datetime] = None
    author: Optional[UserSummary] = None


class CommentEnvelope(BaseModel):
    comment: CommentResponse


class CommentListResponse(BaseModel):
    comments: List[CommentResponse] = Field(default_factory=list)


class SBUStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int = 0
    resolved: int = 0
    avg_resolution_time: float = Field(0.0, alias="avgResolutionTime", description="Seconds")


class DateCount(BaseModel):
    date: str
    count: int


class AnalyticsResponse(BaseModel):
    """Ticket counts over everything the caller may see."""
    model_config = ConfigDict(populate_by_name=True)

    total: int
    resolved: int
    by_priority: Dict[str, int] = Field(default_factory=dict, alias="byPriority")
    by_status: Dict[str, int] = Field(default_factory=dict, alias="byStatus")
    by_sbu: Dict[str, SBUStats] = Field(default_factory=dict, alias="bySBU")
    by_date: List[DateCount] = Field(default_factory=list, alias="byDate")
