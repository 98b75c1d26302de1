"""
Dependency Wiring
=================

Builds request-scoped services from the handles the application factory
keeps on app.state:

- settings        Settings
- database        Database
- policy_manager  EscalationPolicyManager
- dispatcher      EmailDispatcher
- sweeper         EscalationSweeper

The build_* functions take a session and app.state so the escalation
sweep can assemble the same services outside a request.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from eqms.infrastructure.database import get_session
from eqms.notifications.application.services import TicketNotifier
from eqms.organization.application.services import (
    SBUService, TierAssignmentService, UserService
)
from eqms.organization.infrastructure.repositories import (
    SQLAlchemySBURepository, SQLAlchemyTierAssignmentRepository,
    SQLAlchemyUserProfileRepository
)
from eqms.sla.application.services import CountdownService, SLAConfigService
from eqms.sla.infrastructure.repositories import SQLAlchemySLAConfigRepository
from eqms.sla.services import EscalationSweeper
from eqms.tickets.application.services import TicketService
from eqms.tickets.infrastructure.repositories import (
    SQLAlchemyTicketCommentRepository, SQLAlchemyTicketRepository
)


def build_ticket_notifier(session: AsyncSession, state) -> TicketNotifier:
    return TicketNotifier(
        state.dispatcher,
        SQLAlchemyUserProfileRepository(session),
        SQLAlchemyTierAssignmentRepository(session),
    )


def build_ticket_service(session: AsyncSession, state) -> TicketService:
    return TicketService(
        ticket_repository=SQLAlchemyTicketRepository(session),
        comment_repository=SQLAlchemyTicketCommentRepository(session),
        sla_repository=SQLAlchemySLAConfigRepository(session),
        user_repository=SQLAlchemyUserProfileRepository(session),
        sbu_repository=SQLAlchemySBURepository(session),
        notifier=build_ticket_notifier(session, state),
    )


def build_countdown_service(session: AsyncSession, state) -> CountdownService:
    return CountdownService(SQLAlchemySLAConfigRepository(session), state.policy_manager)


def build_sweeper(state) -> EscalationSweeper:
    return EscalationSweeper(
        state.database,
        ticket_service_factory=lambda session: build_ticket_service(session, state),
        countdown_service_factory=lambda session: build_countdown_service(session, state),
    )


# ========== FastAPI dependencies ==========

async def get_ticket_service(
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> TicketService:
    return build_ticket_service(session, request.app.state)


async def get_countdown_service(
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> CountdownService:
    return build_countdown_service(session, request.app.state)


async def get_ticket_notifier(
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> TicketNotifier:
    return build_ticket_notifier(session, request.app.state)


async def get_sla_config_service(session: AsyncSession = Depends(get_session)) -> SLAConfigService:
    return SLAConfigService(SQLAlchemySLAConfigRepository(session))


async def get_sbu_service(
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> SBUService:
    return SBUService(
        sbu_repository=SQLAlchemySBURepository(session),
        sla_repository=SQLAlchemySLAConfigRepository(session),
        tier_repository=SQLAlchemyTierAssignmentRepository(session),
        user_repository=SQLAlchemyUserProfileRepository(session),
        policy_provider=request.app.state.policy_manager,
    )


async def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(
        SQLAlchemyUserProfileRepository(session),
        SQLAlchemyTierAssignmentRepository(session),
        SQLAlchemySBURepository(session),
    )


async def get_tier_assignment_service(session: AsyncSession = Depends(get_session)) -> TierAssignmentService:
    return TierAssignmentService(
        SQLAlchemyTierAssignmentRepository(session),
        SQLAlchemyUserProfileRepository(session),
        SQLAlchemySBURepository(session),
    )


def get_sweeper(request: Request) -> EscalationSweeper:
    return request.app.state.sweeper
