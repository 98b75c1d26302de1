"""
SLA Controllers (API Routes)
============================

FastAPI routes for the SLA policy table and the escalation sweep.

Controllers are thin - they delegate to application services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from eqms.core.policy import Action, Actor, authorize
from eqms.dependencies import get_sla_config_service, get_sweeper
from eqms.organization.domain import SBU
from eqms.shared.api.auth import get_actor
from eqms.sla.application.dto import (
    SBUSummary, SLAConfigCreateRequest, SLAConfigEnvelope, SLAConfigListResponse,
    SLAConfigResponse, SLAConfigUpdateRequest, SweepResponse
)
from eqms.sla.application.services import SLAConfigService
from eqms.sla.domain import SLAConfig
from eqms.sla.services import EscalationSweeper

router = APIRouter(prefix="/api/sla-configs", tags=["SLA Configs"])
escalation_router = APIRouter(prefix="/api/escalations", tags=["SLA Monitoring"])


# ========== Example payloads for Swagger ==========

SLA_CONFIG_EXAMPLE = {
    "id": "c2f0a7e4-9d3b-4b6a-8e15-7a1d2c3b4e5f",
    "sbu_id": "0b8e6c51-7d1f-4a3e-8f4b-2d9c1e5a7f33",
    "ticket_status": "escalated_tier1",
    "sla_time": 60,
    "warning_seconds": None,
    "created_at": "2024-01-15T10:00:00Z",
    "updated_at": "2024-01-15T10:00:00Z",
    "sbu": {
        "id": "0b8e6c51-7d1f-4a3e-8f4b-2d9c1e5a7f33",
        "name": "Cards",
        "description": "Card operations",
        "status": "active"
    }
}

SWEEP_EXAMPLE = {
    "tickets_evaluated": 42,
    "escalated": 3,
    "skipped_unknown": 1,
    "failed": 0
}


def to_config_response(config: SLAConfig, sbu: Optional[SBU] = None) -> SLAConfigResponse:
    return SLAConfigResponse(
        id=config.id,
        sbu_id=config.sbu_id,
        ticket_status=config.ticket_status,
        sla_time=config.sla_time,
        warning_seconds=config.warning_seconds,
        created_at=config.created_at,
        updated_at=config.updated_at,
        sbu=SBUSummary(
            id=sbu.id, name=sbu.name, description=sbu.description, status=sbu.status.value
        ) if sbu else None,
    )


# ========== Route Handlers ==========

@router.get(
    "",
    response_model=SLAConfigListResponse,
    summary="List SLA configs",
    description="""
    SLA policy table rows joined with their SBU. Admins and managers only.

    **Query Parameters:**
    - `sbu_id`: only the rows of one SBU
    """
)
async def list_sla_configs(
    sbu_id: Optional[str] = Query(None),
    actor: Actor = Depends(get_actor),
    service: SLAConfigService = Depends(get_sla_config_service)
):
    rows = await service.list_configs(actor, sbu_id)
    return SLAConfigListResponse(sla_configs=[to_config_response(c, s) for c, s in rows])


@router.post(
    "",
    response_model=SLAConfigEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create SLA config",
    description="""
    Add a row to an SBU's SLA table. Admin only.

    `ticket_status` is a policy key: `open` (tickets in status `new`),
    `assigned`, `in_progress`, `escalated_tier1`, `escalated_tier2`,
    `escalated_tier3`, `resolved` or `closed`.

    **Example Request**:
    ```json
    {
        "sbu_id": "0b8e6c51-7d1f-4a3e-8f4b-2d9c1e5a7f33",
        "ticket_status": "escalated_tier1",
        "sla_time": 60
    }
    ```

    Returns 409 when the SBU already has a config for the key.
    """,
    responses={201: {"content": {"application/json": {"example": {"slaConfig": SLA_CONFIG_EXAMPLE}}}}}
)
async def create_sla_config(
    request: SLAConfigCreateRequest,
    actor: Actor = Depends(get_actor),
    service: SLAConfigService = Depends(get_sla_config_service)
):
    config, sbu = await service.create_config(actor, request)
    return SLAConfigEnvelope(sla_config=to_config_response(config, sbu))


@router.put("", response_model=SLAConfigEnvelope, summary="Update SLA config")
async def update_sla_config(
    request: SLAConfigUpdateRequest,
    config_id: str = Query(..., alias="id"),
    actor: Actor = Depends(get_actor),
    service: SLAConfigService = Depends(get_sla_config_service)
):
    """Admin only. Tickets keep the sla_time they were stamped with."""
    config, sbu = await service.update_config(actor, config_id, request)
    return SLAConfigEnvelope(sla_config=to_config_response(config, sbu))


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, summary="Delete SLA config")
async def delete_sla_config(
    config_id: str = Query(..., alias="id"),
    actor: Actor = Depends(get_actor),
    service: SLAConfigService = Depends(get_sla_config_service)
):
    await service.delete_config(actor, config_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@escalation_router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Run an escalation sweep now",
    description="""
    Evaluate every ticket whose timer may be running and escalate the
    expired ones by one tier. Admin only.

    The scheduler runs the same sweep every few seconds; this endpoint is
    for operations and for deployments with the scheduler disabled.
    """,
    responses={200: {"content": {"application/json": {"example": SWEEP_EXAMPLE}}}}
)
async def run_escalation_sweep(
    actor: Actor = Depends(get_actor),
    sweeper: EscalationSweeper = Depends(get_sweeper)
):
    authorize(actor, Action.RUN_ESCALATION_SWEEP)
    return SweepResponse(**await sweeper.run())


# Export routers
sla_router = router
