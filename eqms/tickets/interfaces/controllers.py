"""
Ticket Controllers (API Routes)
===============================

FastAPI routes for tickets, comments, analytics and the SLA countdown.

Controllers are thin - every mutation is delegated to the Ticket Update
Gateway (TicketService).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from eqms.config import TicketPriority, TicketStatus
from eqms.core.exceptions import ValidationException
from eqms.core.policy import Actor
from eqms.dependencies import get_countdown_service, get_ticket_service
from eqms.organization.domain import SBU, UserProfile
from eqms.shared.api.auth import get_actor
from eqms.shared.infrastructure.logging import get_logger
from eqms.sla.application.dto import CountdownResponse, SBUSummary
from eqms.sla.application.services import CountdownService
from eqms.tickets.application.dto import (
    AnalyticsResponse, AssignRequest, CommentCreateRequest, CommentEnvelope,
    CommentListResponse, CommentResponse, EscalateRequest, Pagination,
    PriorityUpdateRequest, ResolveRequest, StatusUpdateRequest, TicketCreateRequest,
    TicketEnvelope, TicketListResponse, TicketResponse, TicketUpdateRequest,
    UserSummary
)
from eqms.tickets.application.services import TicketService
from eqms.tickets.domain import Ticket, TicketComment

logger = get_logger(__name__)
router = APIRouter(prefix="/api/tickets", tags=["Tickets"])


# ========== Example payloads for Swagger ==========

TICKET_EXAMPLE = {
    "id": "6f1c2a9e-3b7d-4e21-9a51-0c2f7d8e9b10",
    "title": "Card declined at POS",
    "description": "Customer card declined at merchant terminal since this morning.",
    "status": "escalated_tier1",
    "priority": "high",
    "sbu_id": "0b8e6c51-7d1f-4a3e-8f4b-2d9c1e5a7f33",
    "created_by": "a3d5f7e9-1b2c-4d6e-8f0a-1c3e5a7b9d11",
    "assigned_to": None,
    "sla_time": 60,
    "resolution": None,
    "resolved_at": None,
    "closed_at": None,
    "created_at": "2024-01-15T10:00:00Z",
    "updated_at": "2024-01-15T10:30:00Z",
    "sbu": {"id": "0b8e6c51-7d1f-4a3e-8f4b-2d9c1e5a7f33", "name": "Cards", "status": "active"}
}


# ========== Mappers ==========

def _parse_enum(enum_cls, value: Optional[str], field_name: str):
    if value is None or not value.strip():
        return None
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        raise ValidationException(f"Invalid {field_name}: '{value}'")


def _user_summary(profile: Optional[UserProfile]) -> Optional[UserSummary]:
    if profile is None:
        return None
    return UserSummary(id=profile.id, email=profile.email, full_name=profile.full_name)


def to_ticket_response(
    ticket: Ticket,
    sbu: Optional[SBU] = None,
    creator: Optional[UserProfile] = None,
    assignee: Optional[UserProfile] = None
) -> TicketResponse:
    return TicketResponse(
        id=ticket.id,
        title=ticket.title,
        description=ticket.description,
        status=ticket.status,
        priority=ticket.priority,
        sbu_id=ticket.sbu_id,
        created_by=ticket.created_by,
        assigned_to=ticket.assigned_to,
        sla_time=ticket.sla_time,
        resolution=ticket.resolution,
        resolved_at=ticket.resolved_at,
        closed_at=ticket.closed_at,
        card_number=ticket.card_number,
        module=ticket.module,
        account_number=ticket.account_number,
        query_type=ticket.query_type,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
        sbu=SBUSummary(
            id=sbu.id, name=sbu.name, description=sbu.description, status=sbu.status.value
        ) if sbu else None,
        creator=_user_summary(creator),
        assignee=_user_summary(assignee),
    )


async def _envelope(service: TicketService, ticket: Ticket) -> TicketEnvelope:
    (row,) = await service.with_relations([ticket])
    return TicketEnvelope(ticket=to_ticket_response(*row))


def to_comment_response(comment: TicketComment, author: Optional[UserProfile] = None) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        ticket_id=comment.ticket_id,
        user_id=comment.user_id,
        content=comment.content,
        is_internal=comment.is_internal,
        created_at=comment.created_at,
        author=_user_summary(author),
    )


# ========== Route Handlers ==========

@router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets",
    description="""
    Page of tickets the caller may see, newest first.

    **Visibility by role:**
    - `admin`: every ticket
    - `manager`: tickets of their SBU
    - `agent`: tickets assigned to or raised by them
    - `user`: tickets they raised

    **Query Parameters:**
    - `status`, `priority`, `sbu_id`: exact filters (case-insensitive enums)
    - `search`: substring of title or description
    - `page` (default 1), `pageSize` (default 10, max 100)

    `pagination.total` counts every ticket matching the same filters.
    """
)
async def list_tickets(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    sbu_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(TicketService.DEFAULT_PAGE_SIZE, alias="pageSize", ge=1),
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    tickets, total = await service.list_tickets(
        actor,
        status=_parse_enum(TicketStatus, status_filter, "status"),
        priority=_parse_enum(TicketPriority, priority, "priority"),
        sbu_id=sbu_id,
        search=search,
        page=page,
        page_size=page_size,
    )
    rows = await service.with_relations(tickets)
    return TicketListResponse(
        tickets=[to_ticket_response(*row) for row in rows],
        pagination=Pagination(page=page, page_size=min(page_size, TicketService.MAX_PAGE_SIZE), total=total),
    )


@router.post(
    "",
    response_model=TicketEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Raise a ticket",
    description="""
    Create a ticket in status `new`.

    `sla_time` is stamped from the SBU's `open` SLA config (0 when the SBU
    has none). SBU staff are notified by e-mail.

    **Example Request**:
    ```json
    {
        "title": "Card declined at POS",
        "description": "Customer card declined at merchant terminal since this morning.",
        "priority": "high",
        "sbu_id": "0b8e6c51-7d1f-4a3e-8f4b-2d9c1e5a7f33",
        "card_number": "4111********1111",
        "query_type": "Transaction"
    }
    ```
    """,
    responses={201: {"content": {"application/json": {"example": {"ticket": TICKET_EXAMPLE}}}}}
)
async def create_ticket(
    request: TicketCreateRequest,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.create_ticket(actor, request)
    return await _envelope(service, ticket)


@router.put("", response_model=TicketEnvelope, summary="Update a ticket")
async def update_ticket(
    request: TicketUpdateRequest,
    ticket_id: str = Query(..., alias="id"),
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    """Generic update; needs at least one of status, priority, assigned_to or resolution."""
    ticket = await service.update_ticket(actor, ticket_id, request)
    return await _envelope(service, ticket)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a ticket (admin)")
async def delete_ticket(
    ticket_id: str = Query(..., alias="id"),
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    await service.delete_ticket(actor, ticket_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/status",
    response_model=TicketEnvelope,
    summary="Change ticket status",
    description="""
    Move a ticket along the state machine. `sla_time` is re-stamped from
    the SBU's config for the new status when one exists.

    - escalation moves one tier at a time; tiers cannot be skipped
    - `resolved` requires a `resolution`
    - `closed` and reopening are admin only
    - patching to the current status is rejected
    """
)
async def change_status(
    request: StatusUpdateRequest,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.change_status(actor, request.ticket_id, request.status, request.resolution)
    return await _envelope(service, ticket)


@router.put("/priority", response_model=TicketEnvelope, summary="Change ticket priority")
async def change_priority(
    request: PriorityUpdateRequest,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.change_priority(actor, request.ticket_id, request.priority)
    return await _envelope(service, ticket)


@router.post("/assign", response_model=TicketEnvelope, summary="Assign a ticket")
async def assign_ticket(
    request: AssignRequest,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.assign(actor, request.ticket_id, request.assignee_id)
    return await _envelope(service, ticket)


@router.post("/resolve", response_model=TicketEnvelope, summary="Resolve a ticket")
async def resolve_ticket(
    request: ResolveRequest,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.resolve(actor, request.ticket_id, request.resolution)
    return await _envelope(service, ticket)


@router.post("/escalate", response_model=TicketEnvelope, summary="Escalate a ticket one tier")
async def escalate_ticket(
    request: EscalateRequest,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.escalate(actor, request.ticket_id)
    return await _envelope(service, ticket)


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Ticket analytics",
    description="""
    Counts over every ticket the caller may see.

    - `byPriority`, `byStatus`: count per enum value
    - `bySBU`: per SBU name, total, resolved and mean resolution time in seconds
    - `byDate`: tickets raised per day, oldest first
    """
)
async def ticket_analytics(
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    return AnalyticsResponse.model_validate(await service.analytics(actor))


@router.get("/{ticket_id}", response_model=TicketEnvelope, summary="Get a ticket")
async def get_ticket(
    ticket_id: str,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    ticket = await service.get_ticket(actor, ticket_id)
    return await _envelope(service, ticket)


@router.get(
    "/{ticket_id}/sla",
    response_model=CountdownResponse,
    summary="Escalation countdown of a ticket",
    description="""
    Remaining time before the ticket escalates.

    **States:** `counting`, `warning` (less than the warning threshold
    left), `expired`, `paused` (assigned, in progress, resolved, closed),
    `unknown` (the SBU has no SLA config for the status).

    The countdown is measured from the ticket's creation time.
    """
)
async def get_ticket_countdown(
    ticket_id: str,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service),
    countdowns: CountdownService = Depends(get_countdown_service)
):
    ticket = await service.get_ticket(actor, ticket_id)
    countdown = await countdowns.evaluate(ticket.id, ticket.sbu_id, ticket.status, ticket.created_at)
    return CountdownResponse(**countdown.to_dict())


@router.get("/{ticket_id}/comments", response_model=CommentListResponse, summary="List comments")
async def list_comments(
    ticket_id: str,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    """Internal notes are only returned to staff."""
    rows = await service.list_comments(actor, ticket_id)
    return CommentListResponse(comments=[to_comment_response(c, a) for c, a in rows])


@router.post(
    "/{ticket_id}/comments",
    response_model=CommentEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment"
)
async def add_comment(
    ticket_id: str,
    request: CommentCreateRequest,
    actor: Actor = Depends(get_actor),
    service: TicketService = Depends(get_ticket_service)
):
    comment = await service.add_comment(actor, ticket_id, request)
    return CommentEnvelope(comment=to_comment_response(comment))


# Export router
tickets_router = router
