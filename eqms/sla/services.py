"""
SLA Services
============

Server-owned escalation sweep.

Each run selects the tickets whose timer may be running, evaluates their
countdowns and hands every expired one to the Ticket Update Gateway for
automatic escalation. Runs from the scheduler every few seconds and on
demand from the admin sweep endpoint.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from eqms.config import CountdownState, TicketStatus
from eqms.infrastructure.database import Database
from eqms.shared.infrastructure.logging import get_logger, log_latency
from eqms.sla.application.services import CountdownService
from eqms.tickets.application.services import TicketService
from eqms.tickets.domain import ESCALATABLE_STATUSES

logger = get_logger(__name__)


class EscalationSweeper:
    """
    Escalates tickets whose SLA time has run out.

    The scan runs in one session; each escalation gets its own session so
    a failing ticket is rolled back alone and the sweep carries on. A
    ticket moves at most one tier per run.
    """

    def __init__(
        self,
        database: Database,
        ticket_service_factory: Callable[[AsyncSession], TicketService],
        countdown_service_factory: Callable[[AsyncSession], CountdownService]
    ):
        self._database = database
        self._ticket_service_factory = ticket_service_factory
        self._countdown_service_factory = countdown_service_factory

    async def _find_due(self, summary: dict, now: datetime) -> List[Tuple[str, TicketStatus]]:
        due = []
        async with self._database.session() as session:
            tickets = await self._ticket_service_factory(session).list_for_sweep(ESCALATABLE_STATUSES)
            countdowns = self._countdown_service_factory(session)

            for ticket in tickets:
                countdown = await countdowns.evaluate(
                    ticket.id, ticket.sbu_id, ticket.status, ticket.created_at, now
                )
                summary["tickets_evaluated"] += 1

                if countdown.state is CountdownState.UNKNOWN:
                    summary["skipped_unknown"] += 1
                elif countdown.should_escalate:
                    due.append((ticket.id, ticket.status))
        return due

    async def run(self, current_time: Optional[datetime] = None) -> dict:
        """
        One sweep.

        Returns:
            Summary: tickets_evaluated, escalated, skipped_unknown, failed
        """
        now = current_time or datetime.now(timezone.utc)
        summary = {"tickets_evaluated": 0, "escalated": 0, "skipped_unknown": 0, "failed": 0}

        with log_latency(logger, "escalation_sweep"):
            due = await self._find_due(summary, now)

            for ticket_id, observed_status in due:
                try:
                    async with self._database.session() as session:
                        escalated = await self._ticket_service_factory(session).escalate_automatically(
                            ticket_id, observed_status
                        )
                except Exception:
                    summary["failed"] += 1
                    logger.exception(
                        "Automatic escalation failed",
                        extra={"ticket_id": ticket_id, "from_status": observed_status.value}
                    )
                    continue

                if escalated is not None:
                    summary["escalated"] += 1

        if summary["escalated"] or summary["failed"]:
            logger.info("Escalation sweep finished", extra=summary)
        else:
            logger.debug("Escalation sweep finished", extra=summary)
        return summary
