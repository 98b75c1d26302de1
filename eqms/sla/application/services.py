"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from eqms.config import TicketStatus
from eqms.core.exceptions import ConflictException, ResourceNotFoundException
from eqms.core.policy import Action, Actor, authorize
from eqms.organization.domain.entities import SBU
from eqms.shared.infrastructure.logging import get_logger
from eqms.sla.application.dto import SLAConfigCreateRequest, SLAConfigUpdateRequest
from eqms.sla.domain import (
    EscalationCalculator, EscalationCountdown, EscalationPolicy, SLAConfig
)
from eqms.tickets.domain.transitions import sla_policy_key

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISLAConfigRepository(ABC):
    """Interface for SLA policy table access."""

    @abstractmethod
    async def get_by_id(self, config_id: str) -> Optional[SLAConfig]:
        """Get config by ID."""

    @abstractmethod
    async def get_for(self, sbu_id: str, key: str) -> Optional[SLAConfig]:
        """Get the config for (sbu_id, policy key)."""

    @abstractmethod
    async def list_with_sbu(self, sbu_id: Optional[str] = None) -> List[Tuple[SLAConfig, SBU]]:
        """List configs joined with their SBU."""

    @abstractmethod
    async def list_for_sbus(self, sbu_ids: List[str]) -> List[SLAConfig]:
        """List configs of several SBUs."""

    @abstractmethod
    async def get_sbu(self, sbu_id: str) -> Optional[SBU]:
        """Get the SBU a config belongs to."""

    @abstractmethod
    async def create(self, config: SLAConfig) -> SLAConfig:
        """Create new config."""

    @abstractmethod
    async def update(self, config: SLAConfig) -> SLAConfig:
        """Update existing config."""

    @abstractmethod
    async def delete(self, config_id: str) -> bool:
        """Delete config; False if it did not exist."""

    @abstractmethod
    async def replace_for_sbu(self, sbu_id: str, table: Dict[str, int]) -> List[SLAConfig]:
        """Replace an SBU's whole SLA table."""


class IEscalationPolicyProvider(ABC):
    """Interface for escalation policy defaults."""

    @abstractmethod
    def get_policy(self) -> EscalationPolicy:
        """Get current escalation policy."""


# ========== Application Services ==========

class SLAConfigService:
    """
    Service for managing the SLA policy table.

    Every (sbu_id, ticket_status) pair has at most one config.
    """

    def __init__(self, config_repository: ISLAConfigRepository):
        self._repo = config_repository

    async def list_configs(
        self,
        actor: Actor,
        sbu_id: Optional[str] = None
    ) -> List[Tuple[SLAConfig, SBU]]:
        authorize(actor, Action.VIEW_SLA_CONFIGS)
        return await self._repo.list_with_sbu(sbu_id)

    async def create_config(
        self,
        actor: Actor,
        request: SLAConfigCreateRequest
    ) -> Tuple[SLAConfig, SBU]:
        """
        Add a config to an SBU's table.

        Raises:
            AuthorizationException: caller is not an admin
            ResourceNotFoundException: SBU does not exist
            ConflictException: the SBU already has a config for the key
        """
        authorize(actor, Action.MANAGE_SLA_CONFIGS)

        sbu = await self._repo.get_sbu(request.sbu_id)
        if sbu is None:
            raise ResourceNotFoundException("SBU", request.sbu_id)

        if await self._repo.get_for(request.sbu_id, request.ticket_status):
            raise ConflictException(
                f"SBU already has an SLA config for '{request.ticket_status}'",
                {"sbu_id": request.sbu_id, "ticket_status": request.ticket_status}
            )

        config = await self._repo.create(SLAConfig(
            id=None,
            sbu_id=request.sbu_id,
            ticket_status=request.ticket_status,
            sla_time=request.sla_time,
            warning_seconds=request.warning_seconds,
        ))

        logger.info(
            "SLA config created",
            extra={
                "sla_config_id": config.id,
                "sbu_id": config.sbu_id,
                "ticket_status": config.ticket_status,
                "sla_time": config.sla_time,
                "user_id": actor.user_id
            }
        )
        return config, sbu

    async def update_config(
        self,
        actor: Actor,
        config_id: str,
        request: SLAConfigUpdateRequest
    ) -> Tuple[SLAConfig, SBU]:
        authorize(actor, Action.MANAGE_SLA_CONFIGS)

        config = await self._repo.get_by_id(config_id)
        if config is None:
            raise ResourceNotFoundException("SLA config", config_id)

        if request.ticket_status is not None and request.ticket_status != config.ticket_status:
            if await self._repo.get_for(config.sbu_id, request.ticket_status):
                raise ConflictException(
                    f"SBU already has an SLA config for '{request.ticket_status}'",
                    {"sbu_id": config.sbu_id, "ticket_status": request.ticket_status}
                )
            config.ticket_status = request.ticket_status

        if request.sla_time is not None:
            config.sla_time = request.sla_time
        if "warning_seconds" in request.model_fields_set:
            config.warning_seconds = request.warning_seconds

        config = await self._repo.update(config)
        sbu = await self._repo.get_sbu(config.sbu_id)

        logger.info(
            "SLA config updated",
            extra={"sla_config_id": config.id, "user_id": actor.user_id}
        )
        return config, sbu

    async def delete_config(self, actor: Actor, config_id: str) -> None:
        authorize(actor, Action.MANAGE_SLA_CONFIGS)

        if not await self._repo.delete(config_id):
            raise ResourceNotFoundException("SLA config", config_id)

        logger.info(
            "SLA config deleted",
            extra={"sla_config_id": config_id, "user_id": actor.user_id}
        )


class CountdownService:
    """
    Evaluates escalation countdowns against the live policy table.

    Shared by the ticket SLA endpoint and the escalation sweep.
    """

    def __init__(
        self,
        config_repository: ISLAConfigRepository,
        policy_provider: IEscalationPolicyProvider
    ):
        self._repo = config_repository
        self._policy_provider = policy_provider

    async def evaluate(
        self,
        ticket_id: str,
        sbu_id: str,
        status: TicketStatus,
        created_at: datetime,
        current_time: Optional[datetime] = None
    ) -> EscalationCountdown:
        key = sla_policy_key(status)
        config = await self._repo.get_for(sbu_id, key)
        policy = self._policy_provider.get_policy()

        return EscalationCalculator.evaluate(
            ticket_id=ticket_id,
            status=status,
            created_at=created_at,
            config=config,
            current_time=current_time or datetime.now(timezone.utc),
            warning_seconds=policy.get_warning_seconds(key, config),
        )
