"""
Notification Application Services
=================================

E-mail is fire-and-forget: recipients are resolved while the request's
database session is open, then delivery runs as a background task that
outlives the request. Delivery failures are logged and never reach the
caller.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import List, Optional, Set

from eqms.config import Tier, TicketStatus
from eqms.core.exceptions import ApplicationException
from eqms.core.policy import Action, Actor, authorize
from eqms.notifications.application.dto import EmailRequest
from eqms.notifications.domain import OutgoingEmail, default_subject, render_ticket_email
from eqms.organization.application.services import (
    ITierAssignmentRepository, IUserProfileRepository
)
from eqms.organization.domain import UserProfile
from eqms.shared.infrastructure.logging import get_logger
from eqms.tickets.domain.entities import Ticket

logger = get_logger(__name__)


class IMailer(ABC):
    """Interface for the outbound mail transport."""

    @abstractmethod
    async def send(self, email: OutgoingEmail) -> None:
        """Deliver one message or raise EmailDeliveryException."""


class EmailDispatcher:
    """
    Runs deliveries as tracked background tasks.

    One instance per application; drain() is awaited on shutdown so
    in-flight messages are not cut off.
    """

    def __init__(self, mailer: IMailer):
        self._mailer = mailer
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, email: OutgoingEmail) -> asyncio.Task:
        task = asyncio.create_task(self._deliver(email))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, email: OutgoingEmail) -> None:
        try:
            await self._mailer.send(email)
        except ApplicationException as e:
            logger.error(
                "E-mail delivery failed",
                extra={"ticket_id": email.ticket_id, "status": email.status, "error": e.message}
            )
            return
        except Exception:
            logger.exception(
                "Unexpected error delivering e-mail",
                extra={"ticket_id": email.ticket_id, "status": email.status}
            )
            return

        logger.info(
            "E-mail sent",
            extra={"ticket_id": email.ticket_id, "status": email.status, "recipients": len(email.to)}
        )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait for in-flight deliveries."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("E-mail deliveries still pending at shutdown", extra={"pending": len(pending)})


class TicketNotifier:
    """
    Resolves who hears about a ticket event and queues the e-mail.

    Recipients:
        new             active agents and managers of the SBU
        assigned        the assignee
        escalated_tierN the tier N roster of the SBU, else SBU staff
        in_progress, resolved, closed   the ticket creator
    """

    def __init__(
        self,
        dispatcher: EmailDispatcher,
        user_repository: IUserProfileRepository,
        tier_repository: ITierAssignmentRepository
    ):
        self._dispatcher = dispatcher
        self._users = user_repository
        self._tiers = tier_repository

    async def _emails(self, user_ids) -> List[str]:
        profiles = await self._users.get_by_ids([u for u in user_ids if u])
        return sorted({p.email for p in profiles if p.is_active})

    async def _staff(self, sbu_id: str) -> List[str]:
        staff: List[UserProfile] = await self._users.list_staff_for_sbu(sbu_id)
        return sorted({p.email for p in staff})

    async def _tier_roster(self, sbu_id: str, tier: Tier) -> List[str]:
        seats = await self._tiers.list(sbu_id=sbu_id)
        emails = await self._emails(a.user_id for a in seats if a.tier == tier)
        return emails or await self._staff(sbu_id)

    async def recipients_for(self, ticket: Ticket, status: TicketStatus) -> List[str]:
        if status is TicketStatus.NEW:
            return await self._staff(ticket.sbu_id)
        if status is TicketStatus.ASSIGNED:
            return await self._emails([ticket.assigned_to])
        if status is TicketStatus.ESCALATED_TIER1:
            return await self._tier_roster(ticket.sbu_id, Tier.TIER1)
        if status is TicketStatus.ESCALATED_TIER2:
            return await self._tier_roster(ticket.sbu_id, Tier.TIER2)
        if status is TicketStatus.ESCALATED_TIER3:
            return await self._tier_roster(ticket.sbu_id, Tier.TIER3)
        if status in (TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CLOSED):
            return await self._emails([ticket.created_by])
        raise ValueError(f"Unhandled ticket status: {status!r}")

    async def ticket_changed(self, ticket: Ticket) -> Optional[OutgoingEmail]:
        """
        Queue the notification for the ticket's current status.

        Never raises; a failed lookup is logged and the e-mail is skipped.
        """
        try:
            recipients = await self.recipients_for(ticket, ticket.status)
        except Exception:
            logger.exception(
                "Could not resolve e-mail recipients",
                extra={"ticket_id": ticket.id, "status": ticket.status.value}
            )
            return None

        if not recipients:
            logger.info(
                "No recipients for ticket notification",
                extra={"ticket_id": ticket.id, "status": ticket.status.value}
            )
            return None

        email = OutgoingEmail(
            to=recipients,
            subject=default_subject(ticket.status, ticket.title),
            html=render_ticket_email(ticket.status.value, ticket.id, ticket.title, ticket.resolution),
            ticket_id=ticket.id,
            status=ticket.status.value,
        )
        self._dispatcher.dispatch(email)
        return email

    def send_ticket_email(self, actor: Actor, request: EmailRequest) -> OutgoingEmail:
        """Queue an ad hoc e-mail rendered from the status template."""
        authorize(actor, Action.SEND_EMAIL)

        email = OutgoingEmail(
            to=request.recipients,
            subject=request.subject,
            html=render_ticket_email(request.status, request.ticket_id),
            ticket_id=request.ticket_id,
            status=request.status,
        )
        self._dispatcher.dispatch(email)

        logger.info(
            "E-mail queued",
            extra={"ticket_id": request.ticket_id, "recipients": len(email.to), "user_id": actor.user_id}
        )
        return email
