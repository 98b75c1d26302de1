"""
Organization Controllers (API Routes)
=====================================

FastAPI routes for SBUs, tier assignments and user profiles.

Controllers are thin - they delegate to application services.
"""

from typing import Dict, Optional, Union

from fastapi import APIRouter, Depends, Query, Response, status

from eqms.config import UserRole
from eqms.core.policy import Actor
from eqms.dependencies import get_sbu_service, get_tier_assignment_service, get_user_service
from eqms.organization.application.dto import (
    SBUCreateRequest, SBUEnvelope, SBUListResponse, SBUResponse, SBUUpdateRequest,
    TierAssignmentCreateRequest, TierAssignmentEnvelope, TierAssignmentListResponse,
    TierAssignmentResponse, UserCreateRequest, UserEnvelope, UserListResponse,
    UserResponse, UserUpdateRequest
)
from eqms.organization.application.services import (
    SBUService, TierAssignmentService, UserService
)
from eqms.organization.domain import SBU, TierAssignment, TierRoster, UserProfile
from eqms.shared.api.auth import CurrentUser, get_actor, get_current_user

sbu_router = APIRouter(prefix="/api/sbus", tags=["SBUs"])
tier_router = APIRouter(prefix="/api/tier-assignments", tags=["Tier Assignments"])
user_router = APIRouter(prefix="/api/users", tags=["Users"])


# ========== Example payloads for Swagger ==========

SBU_EXAMPLE = {
    "id": "0b8e6c51-7d1f-4a3e-8f4b-2d9c1e5a7f33",
    "name": "Cards",
    "description": "Card operations",
    "status": "active",
    "created_at": "2024-01-15T10:00:00Z",
    "updated_at": "2024-01-15T10:00:00Z",
    "slaConfigs": {
        "open": 30,
        "assigned": 60,
        "in_progress": 240,
        "escalated_tier1": 60,
        "escalated_tier2": 120,
        "escalated_tier3": 240
    },
    "tierAssignments": {
        "tier1": ["a3d5f7e9-1b2c-4d6e-8f0a-1c3e5a7b9d11"],
        "tier2": [],
        "tier3": []
    }
}


# ========== Mappers ==========

def to_sbu_response(sbu: SBU, table: Optional[Dict[str, int]] = None, roster: Optional[TierRoster] = None) -> SBUResponse:
    return SBUResponse(
        id=sbu.id,
        name=sbu.name,
        description=sbu.description,
        status=sbu.status,
        created_at=sbu.created_at,
        updated_at=sbu.updated_at,
        sla_configs=table or {},
        tier_assignments=roster.to_dict() if roster else {},
    )


def to_user_response(profile: UserProfile) -> UserResponse:
    return UserResponse(
        id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        role=profile.role,
        status=profile.status,
        sbu_id=profile.sbu_id,
        avatar_url=profile.avatar_url,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


def to_assignment_response(
    assignment: TierAssignment,
    user: Optional[UserProfile] = None,
    sbu: Optional[SBU] = None
) -> TierAssignmentResponse:
    return TierAssignmentResponse(
        id=assignment.id,
        user_id=assignment.user_id,
        sbu_id=assignment.sbu_id,
        tier=assignment.tier,
        created_at=assignment.created_at,
        updated_at=assignment.updated_at,
        user=to_user_response(user) if user else None,
        sbu=to_sbu_response(sbu) if sbu else None,
    )


# ========== SBUs ==========

@sbu_router.get(
    "",
    response_model=Union[SBUEnvelope, SBUListResponse],
    summary="Get one SBU or list all",
    description="""
    With `id`, returns `{"sbu": {...}}`; without it, `{"sbus": [...]}`.

    Every SBU carries its SLA table (`slaConfigs`, minutes by policy key)
    and its tier roster (`tierAssignments`, user ids by tier).

    **Query Parameters:**
    - `id`: a single SBU
    - `includeInactive` (default true): also list deactivated SBUs
    """,
    responses={200: {"content": {"application/json": {"example": {"sbus": [SBU_EXAMPLE]}}}}}
)
async def get_sbus(
    sbu_id: Optional[str] = Query(None, alias="id"),
    include_inactive: bool = Query(True, alias="includeInactive"),
    actor: Actor = Depends(get_actor),
    service: SBUService = Depends(get_sbu_service)
):
    if sbu_id:
        return SBUEnvelope(sbu=to_sbu_response(*await service.get_sbu(sbu_id)))
    rows = await service.list_sbus(include_inactive=include_inactive)
    return SBUListResponse(sbus=[to_sbu_response(*row) for row in rows])


@sbu_router.post(
    "",
    response_model=SBUEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create an SBU",
    description="""
    Admin only. The SLA table is seeded from the escalation policy defaults
    for every key missing from `slaConfigs`.

    **Example Request**:
    ```json
    {
        "name": "Cards",
        "description": "Card operations",
        "slaConfigs": {"open": 30, "escalated_tier1": 60},
        "tierAssignments": {"tier1": ["a3d5f7e9-1b2c-4d6e-8f0a-1c3e5a7b9d11"]}
    }
    ```
    """,
    responses={201: {"content": {"application/json": {"example": {"sbu": SBU_EXAMPLE}}}}}
)
async def create_sbu(
    request: SBUCreateRequest,
    actor: Actor = Depends(get_actor),
    service: SBUService = Depends(get_sbu_service)
):
    return SBUEnvelope(sbu=to_sbu_response(*await service.create_sbu(actor, request)))


@sbu_router.patch("", response_model=SBUEnvelope, summary="Update an SBU")
async def update_sbu(
    request: SBUUpdateRequest,
    sbu_id: str = Query(..., alias="id"),
    actor: Actor = Depends(get_actor),
    service: SBUService = Depends(get_sbu_service)
):
    """Admin only. `slaConfigs` and `tierAssignments` replace the stored ones when sent."""
    return SBUEnvelope(sbu=to_sbu_response(*await service.update_sbu(actor, sbu_id, request)))


@sbu_router.delete("", response_model=SBUEnvelope, summary="Deactivate an SBU")
async def deactivate_sbu(
    sbu_id: str = Query(..., alias="id"),
    actor: Actor = Depends(get_actor),
    service: SBUService = Depends(get_sbu_service)
):
    """Admin only. Soft delete: the SBU and its tickets stay, its status turns inactive."""
    sbu = await service.deactivate_sbu(actor, sbu_id)
    return SBUEnvelope(sbu=to_sbu_response(*await service.get_sbu(sbu.id)))


# ========== Tier assignments ==========

@tier_router.get("", response_model=TierAssignmentListResponse, summary="List tier assignments")
async def list_tier_assignments(
    sbu_id: Optional[str] = Query(None),
    actor: Actor = Depends(get_actor),
    service: TierAssignmentService = Depends(get_tier_assignment_service)
):
    """Admins and managers see every seat; everyone else only their own."""
    rows = await service.list_assignments(actor, sbu_id)
    return TierAssignmentListResponse(assignments=[to_assignment_response(*row) for row in rows])


@tier_router.post(
    "",
    response_model=TierAssignmentEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Seat a user at a tier",
    description="""
    Admins and managers. A user holds at most one tier per SBU, so seating
    them again moves them to the new tier.

    **Example Request**:
    ```json
    {
        "user_id": "a3d5f7e9-1b2c-4d6e-8f0a-1c3e5a7b9d11",
        "sbu_id": "0b8e6c51-7d1f-4a3e-8f4b-2d9c1e5a7f33",
        "tier": "tier2"
    }
    ```
    """
)
async def create_tier_assignment(
    request: TierAssignmentCreateRequest,
    actor: Actor = Depends(get_actor),
    service: TierAssignmentService = Depends(get_tier_assignment_service)
):
    assignment, user, sbu = await service.assign(actor, request)
    return TierAssignmentEnvelope(assignment=to_assignment_response(assignment, user, sbu))


@tier_router.delete("", status_code=status.HTTP_204_NO_CONTENT, summary="Remove a tier assignment")
async def delete_tier_assignment(
    assignment_id: str = Query(..., alias="id"),
    actor: Actor = Depends(get_actor),
    service: TierAssignmentService = Depends(get_tier_assignment_service)
):
    await service.remove(actor, assignment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ========== Users ==========

@user_router.get("/me", response_model=UserEnvelope, summary="Profile of the caller")
async def get_me(current: CurrentUser = Depends(get_current_user)):
    return UserEnvelope(user=to_user_response(current.profile))


@user_router.get("/search", response_model=UserListResponse, summary="Search users")
async def search_users(
    q: str = Query("", description="Part of a name or e-mail"),
    actor: Actor = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    """At most ten matches; an empty query matches nobody."""
    return UserListResponse(users=[to_user_response(p) for p in await service.search_users(q)])


@user_router.get("", response_model=UserListResponse, summary="List users")
async def list_users(
    role: Optional[UserRole] = Query(None),
    sbu_id: Optional[str] = Query(None),
    actor: Actor = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    """Staff only."""
    profiles = await service.list_users(actor, role=role, sbu_id=sbu_id)
    return UserListResponse(users=[to_user_response(p) for p in profiles])


@user_router.post(
    "",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user profile"
)
async def create_user(
    request: UserCreateRequest,
    actor: Actor = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    """Admin only. The id must be the user's id at the auth provider."""
    return UserEnvelope(user=to_user_response(await service.create_user(actor, request)))


@user_router.put("", response_model=UserEnvelope, summary="Update a user profile")
async def update_user(
    request: UserUpdateRequest,
    actor: Actor = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    """Admin only. Demoting a user below agent releases their tier seats."""
    return UserEnvelope(user=to_user_response(await service.update_user(actor, request)))


@user_router.delete("", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a user profile")
async def delete_user(
    user_id: str = Query(..., alias="id"),
    actor: Actor = Depends(get_actor),
    service: UserService = Depends(get_user_service)
):
    await service.delete_user(actor, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
