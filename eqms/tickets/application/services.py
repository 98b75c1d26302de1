"""
Ticket Application Services
===========================

TicketService is the Ticket Update Gateway: every ticket mutation goes
through it, from the HTTP handlers and from the escalation sweep alike.

Each mutation runs the same steps:
1. load the ticket (404)
2. authorize every action the change implies (403)
3. validate the transition (400)
4. on a status change, re-stamp sla_time from the SBU's policy table and
   keep resolved_at / closed_at in line with the new status
5. persist (last write wins)
6. queue the notification e-mail, fire-and-forget
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from eqms.config import TicketPriority, TicketStatus
from eqms.core.exceptions import (
    AuthorizationException, InvalidTransitionException, ResourceNotFoundException,
    ValidationException
)
from eqms.core.policy import (
    Action, Actor, ResourceScope, Rule, authorize, is_allowed, rule_for
)
from eqms.notifications.application.services import TicketNotifier
from eqms.organization.application.services import ISBURepository, IUserProfileRepository
from eqms.organization.domain import SBU, UserProfile
from eqms.shared.infrastructure.logging import get_logger
from eqms.sla.application.services import ISLAConfigRepository
from eqms.tickets.application.dto import (
    CommentCreateRequest, TicketCreateRequest, TicketUpdateRequest
)
from eqms.tickets.domain import (
    Ticket, TicketComment, Transition, classify_transition,
    manual_escalation_target, next_escalation_status, sla_policy_key
)

logger = get_logger(__name__)


@dataclass
class TicketFilter:
    """Row filter for ticket queries; unset fields do not filter."""
    status: Optional[TicketStatus] = None
    statuses: Optional[Tuple[TicketStatus, ...]] = None
    priority: Optional[TicketPriority] = None
    sbu_id: Optional[str] = None
    search: Optional[str] = None
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None
    involved_user: Optional[str] = None


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""

    @abstractmethod
    async def list(
        self,
        filters: TicketFilter,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[Ticket]:
        """List tickets, newest first."""

    @abstractmethod
    async def count(self, filters: TicketFilter) -> int:
        """Count tickets matching the filter."""

    @abstractmethod
    async def create(self, ticket: Ticket) -> Ticket:
        """Create new ticket."""

    @abstractmethod
    async def update(self, ticket: Ticket) -> Ticket:
        """Persist every field of the ticket."""

    @abstractmethod
    async def delete(self, ticket_id: str) -> bool:
        """Delete ticket and its comments; False if it did not exist."""


class ITicketCommentRepository(ABC):
    """Interface for ticket comment data access."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str, include_internal: bool = False) -> List[TicketComment]:
        """Comments of a ticket, oldest first."""

    @abstractmethod
    async def create(self, comment: TicketComment) -> TicketComment:
        """Create new comment."""


# Policy action that authorizes each kind of status change
TRANSITION_ACTIONS: Dict[Transition, Action] = {
    Transition.ESCALATE: Action.ESCALATE_TICKET,
    Transition.ASSIGN: Action.ASSIGN_TICKET,
    Transition.START: Action.CHANGE_STATUS,
    Transition.RESOLVE: Action.RESOLVE_TICKET,
    Transition.CLOSE: Action.CLOSE_TICKET,
    Transition.REOPEN: Action.REOPEN_TICKET,
}


# ========== Application Services ==========

class TicketService:
    """
    Ticket Update Gateway.

    The only component that writes tickets. Automatic escalation calls
    escalate_automatically() with the status the sweep observed, so a
    ticket that moved in the meantime is left alone.
    """

    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        comment_repository: ITicketCommentRepository,
        sla_repository: ISLAConfigRepository,
        user_repository: IUserProfileRepository,
        sbu_repository: ISBURepository,
        notifier: Optional[TicketNotifier] = None
    ):
        self._tickets = ticket_repository
        self._comments = comment_repository
        self._sla = sla_repository
        self._users = user_repository
        self._sbus = sbu_repository
        self._notifier = notifier

    # ---------- helpers ----------

    async def _load(self, ticket_id: str) -> Ticket:
        ticket = await self._tickets.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def _get_assignee(self, user_id: str) -> UserProfile:
        """
        Raises:
            ValidationException: user missing, inactive, or neither agent nor manager
        """
        profile = await self._users.get_by_id(user_id)
        if profile is None:
            raise ValidationException(f"Assignee '{user_id}' does not exist")
        if not profile.is_assignable:
            raise ValidationException("Tickets can only be assigned to agents or managers")
        if not profile.is_active:
            raise ValidationException("Tickets can only be assigned to active users")
        return profile

    @staticmethod
    def _check_transition_inputs(
        transition: Transition,
        resolution: Optional[str],
        assigned_to: Optional[str]
    ) -> None:
        if transition is Transition.RESOLVE and not (resolution and resolution.strip()):
            raise ValidationException("A resolution is required to resolve a ticket")
        if transition is Transition.ASSIGN and not assigned_to:
            raise ValidationException("Ticket has no assignee; assign it to an agent or manager first")

    async def _move_to(self, ticket: Ticket, new_status: TicketStatus, now: datetime) -> None:
        """Re-stamp sla_time for the new status, then change it."""
        config = await self._sla.get_for(ticket.sbu_id, sla_policy_key(new_status))
        if config is not None:
            ticket.sla_time = config.sla_time
        ticket.apply_status(new_status, now)

    async def _save(self, ticket: Ticket, now: datetime) -> Ticket:
        ticket.updated_at = now
        return await self._tickets.update(ticket)

    async def _notify(self, ticket: Ticket) -> None:
        if self._notifier is not None:
            await self._notifier.ticket_changed(ticket)

    def _log_change(self, actor: Actor, ticket: Ticket, operation: str, previous: TicketStatus) -> None:
        logger.info(
            "Ticket updated",
            extra={
                "ticket_id": ticket.id,
                "operation": operation,
                "from_status": previous.value,
                "to_status": ticket.status.value,
                "sla_time": ticket.sla_time,
                "user_id": actor.user_id,
                "system": actor.is_system,
            }
        )

    def _visibility(self, actor: Actor) -> TicketFilter:
        """Row filter equivalent to the actor's view-ticket rule."""
        rule = rule_for(actor, Action.VIEW_TICKET)
        if rule is None:
            raise AuthorizationException(f"Role '{actor.role.value}' may not view tickets")
        if rule is Rule.ANY:
            return TicketFilter()
        if rule is Rule.SAME_SBU:
            return TicketFilter(sbu_id=actor.sbu_id)
        if rule is Rule.ASSIGNEE:
            return TicketFilter(assigned_to=actor.user_id)
        if rule is Rule.INVOLVED:
            return TicketFilter(involved_user=actor.user_id)
        if rule is Rule.CREATOR:
            return TicketFilter(created_by=actor.user_id)
        raise ValueError(f"Unhandled policy rule: {rule}")

    # ---------- reads ----------

    async def get_ticket(self, actor: Actor, ticket_id: str) -> Ticket:
        ticket = await self._load(ticket_id)
        authorize(actor, Action.VIEW_TICKET, ResourceScope.of_ticket(ticket))
        return ticket

    async def list_tickets(
        self,
        actor: Actor,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        sbu_id: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> Tuple[List[Ticket], int]:
        """
        Page of tickets the caller may see, newest first, plus the total
        matching the same filters.
        """
        filters = self._visibility(actor)
        filters.status = status
        filters.priority = priority
        filters.search = search.strip() if search and search.strip() else None
        if sbu_id:
            if filters.sbu_id is not None and filters.sbu_id != sbu_id:
                # Outside the manager's own SBU
                return [], 0
            filters.sbu_id = sbu_id

        page = max(page, 1)
        page_size = min(max(page_size, 1), self.MAX_PAGE_SIZE)

        total = await self._tickets.count(filters)
        tickets = await self._tickets.list(filters, offset=(page - 1) * page_size, limit=page_size)
        return tickets, total

    async def with_relations(
        self,
        tickets: List[Ticket]
    ) -> List[Tuple[Ticket, Optional[SBU], Optional[UserProfile], Optional[UserProfile]]]:
        """Attach SBU, creator and assignee to each ticket."""
        user_ids = {t.created_by for t in tickets if t.created_by} | {t.assigned_to for t in tickets if t.assigned_to}
        users = {u.id: u for u in await self._users.get_by_ids(user_ids)}
        sbus: Dict[str, Optional[SBU]] = {}
        for sbu_id in {t.sbu_id for t in tickets}:
            sbus[sbu_id] = await self._sbus.get_by_id(sbu_id)
        return [
            (t, sbus.get(t.sbu_id), users.get(t.created_by or ""), users.get(t.assigned_to or ""))
            for t in tickets
        ]

    async def analytics(self, actor: Actor) -> dict:
        """
        Counts over every ticket the caller may see: totals, by priority,
        by status, by SBU (with mean resolution seconds) and by creation date.
        """
        authorize(actor, Action.VIEW_ANALYTICS)
        tickets = await self._tickets.list(self._visibility(actor))

        sbu_names: Dict[str, str] = {}
        for sbu_id in {t.sbu_id for t in tickets}:
            sbu = await self._sbus.get_by_id(sbu_id)
            sbu_names[sbu_id] = sbu.name if sbu else "Unknown"

        by_priority = {p.value: 0 for p in TicketPriority}
        by_status = {s.value: 0 for s in TicketStatus}
        by_sbu: Dict[str, dict] = {}
        by_date: Dict[str, int] = {}
        resolved_total = 0

        for ticket in tickets:
            by_priority[ticket.priority.value] += 1
            by_status[ticket.status.value] += 1

            stats = by_sbu.setdefault(
                sbu_names[ticket.sbu_id],
                {"total": 0, "resolved": 0, "avgResolutionTime": 0.0}
            )
            stats["total"] += 1

            if ticket.status is TicketStatus.RESOLVED:
                resolved_total += 1
                if ticket.resolved_at and ticket.created_at:
                    stats["resolved"] += 1
                    seconds = (ticket.resolved_at - ticket.created_at).total_seconds()
                    # Running mean
                    stats["avgResolutionTime"] += (seconds - stats["avgResolutionTime"]) / stats["resolved"]

            if ticket.created_at:
                day = ticket.created_at.date().isoformat()
                by_date[day] = by_date.get(day, 0) + 1

        return {
            "total": len(tickets),
            "resolved": resolved_total,
            "byPriority": by_priority,
            "byStatus": by_status,
            "bySBU": by_sbu,
            "byDate": [{"date": d, "count": by_date[d]} for d in sorted(by_date)],
        }

    async def list_for_sweep(self, statuses: Iterable[TicketStatus]) -> List[Ticket]:
        """Tickets whose escalation timer may be running."""
        return await self._tickets.list(TicketFilter(statuses=tuple(statuses)))

    # ---------- mutations ----------

    async def create_ticket(self, actor: Actor, request: TicketCreateRequest) -> Ticket:
        """
        Raise a ticket. It starts in 'new' with sla_time from the SBU's
        'open' config, or 0 when there is none.

        Raises:
            ResourceNotFoundException: SBU does not exist
            ValidationException: SBU is inactive
        """
        authorize(actor, Action.CREATE_TICKET)

        sbu = await self._sbus.get_by_id(request.sbu_id)
        if sbu is None:
            raise ResourceNotFoundException("SBU", request.sbu_id)
        if not sbu.is_active:
            raise ValidationException(f"SBU '{sbu.name}' is not accepting tickets")

        config = await self._sla.get_for(sbu.id, sla_policy_key(TicketStatus.NEW))
        now = datetime.now(timezone.utc)

        ticket = await self._tickets.create(Ticket(
            id=None,
            title=request.title,
            description=request.description,
            status=TicketStatus.NEW,
            priority=request.priority,
            sbu_id=sbu.id,
            created_by=actor.user_id,
            sla_time=config.sla_time if config else 0,
            created_at=now,
            updated_at=now,
            card_number=request.card_number,
            module=request.module,
            account_number=request.account_number,
            query_type=request.query_type,
        ))

        logger.info(
            "Ticket created",
            extra={
                "ticket_id": ticket.id,
                "sbu_id": ticket.sbu_id,
                "priority": ticket.priority.value,
                "sla_time": ticket.sla_time,
                "user_id": actor.user_id
            }
        )
        await self._notify(ticket)
        return ticket

    async def update_ticket(self, actor: Actor, ticket_id: str, request: TicketUpdateRequest) -> Ticket:
        """
        Generic update. A status equal to the current one is not a change.
        """
        ticket = await self._load(ticket_id)
        scope = ResourceScope.of_ticket(ticket)
        authorize(actor, Action.UPDATE_TICKET, scope)

        transition = None
        if request.status is not None and request.status != ticket.status:
            authorize(actor, Action.CHANGE_STATUS, scope)
            transition = classify_transition(ticket.status, request.status)
            authorize(actor, TRANSITION_ACTIONS[transition], scope)
        if request.priority is not None:
            authorize(actor, Action.CHANGE_PRIORITY, scope)
        if request.assigned_to is not None:
            authorize(actor, Action.ASSIGN_TICKET, scope)
        if request.resolution is not None:
            authorize(actor, Action.RESOLVE_TICKET, scope)

        assignee = await self._get_assignee(request.assigned_to) if request.assigned_to else None
        assigned_to = assignee.id if assignee else ticket.assigned_to
        resolution = request.resolution if request.resolution is not None else ticket.resolution
        if transition is not None:
            self._check_transition_inputs(transition, resolution, assigned_to)

        previous_status = ticket.status
        previous_assignee = ticket.assigned_to
        now = datetime.now(timezone.utc)

        if request.title is not None:
            ticket.title = request.title
        if request.description is not None:
            ticket.description = request.description
        if request.priority is not None:
            ticket.priority = request.priority
        ticket.assigned_to = assigned_to
        ticket.resolution = resolution
        if transition is not None:
            await self._move_to(ticket, request.status, now)

        ticket = await self._save(ticket, now)
        self._log_change(actor, ticket, "update", previous_status)

        if ticket.status != previous_status or (
            ticket.status is TicketStatus.ASSIGNED and ticket.assigned_to != previous_assignee
        ):
            await self._notify(ticket)
        return ticket

    async def change_status(
        self,
        actor: Actor,
        ticket_id: str,
        status: TicketStatus,
        resolution: Optional[str] = None
    ) -> Ticket:
        """
        Move a ticket along the state machine.

        Raises:
            AuthorizationException: caller may not make this kind of change
            InvalidTransitionException: no such edge (same status, skipped tier, ...)
            ValidationException: resolve without resolution, assign without assignee
        """
        ticket = await self._load(ticket_id)
        scope = ResourceScope.of_ticket(ticket)
        authorize(actor, Action.CHANGE_STATUS, scope)

        transition = classify_transition(ticket.status, status)
        authorize(actor, TRANSITION_ACTIONS[transition], scope)

        if resolution is not None:
            ticket.resolution = resolution.strip() or ticket.resolution
        self._check_transition_inputs(transition, ticket.resolution, ticket.assigned_to)

        previous = ticket.status
        now = datetime.now(timezone.utc)
        await self._move_to(ticket, status, now)
        ticket = await self._save(ticket, now)

        self._log_change(actor, ticket, transition.value, previous)
        await self._notify(ticket)
        return ticket

    async def change_priority(self, actor: Actor, ticket_id: str, priority: TicketPriority) -> Ticket:
        ticket = await self._load(ticket_id)
        authorize(actor, Action.CHANGE_PRIORITY, ResourceScope.of_ticket(ticket))

        previous = ticket.priority
        ticket.priority = priority
        ticket = await self._save(ticket, datetime.now(timezone.utc))

        logger.info(
            "Ticket priority changed",
            extra={
                "ticket_id": ticket.id,
                "from_priority": previous.value,
                "to_priority": priority.value,
                "user_id": actor.user_id
            }
        )
        return ticket

    async def assign(self, actor: Actor, ticket_id: str, assignee_id: str) -> Ticket:
        """
        Assign to an agent or manager and move the ticket to 'assigned'.
        Reassigning an already assigned ticket keeps its status.
        """
        ticket = await self._load(ticket_id)
        scope = ResourceScope.of_ticket(ticket)
        authorize(actor, Action.ASSIGN_TICKET, scope)

        if ticket.is_terminal:
            raise InvalidTransitionException(
                ticket.status.value, TicketStatus.ASSIGNED.value, "reopen the ticket before assigning it"
            )
        assignee = await self._get_assignee(assignee_id)

        previous = ticket.status
        now = datetime.now(timezone.utc)
        ticket.assigned_to = assignee.id
        if ticket.status is not TicketStatus.ASSIGNED:
            classify_transition(ticket.status, TicketStatus.ASSIGNED)
            await self._move_to(ticket, TicketStatus.ASSIGNED, now)
        ticket = await self._save(ticket, now)

        self._log_change(actor, ticket, Transition.ASSIGN.value, previous)
        await self._notify(ticket)
        return ticket

    async def resolve(self, actor: Actor, ticket_id: str, resolution: str) -> Ticket:
        return await self.change_status(actor, ticket_id, TicketStatus.RESOLVED, resolution)

    async def escalate(self, actor: Actor, ticket_id: str) -> Ticket:
        """Manual escalation one tier up."""
        ticket = await self._load(ticket_id)
        scope = ResourceScope.of_ticket(ticket)
        authorize(actor, Action.ESCALATE_TICKET, scope)

        target = manual_escalation_target(ticket.status)
        if target is None:
            raise InvalidTransitionException(
                ticket.status.value, "escalated", "no escalation tier above the current status"
            )

        previous = ticket.status
        now = datetime.now(timezone.utc)
        await self._move_to(ticket, target, now)
        ticket = await self._save(ticket, now)

        self._log_change(actor, ticket, Transition.ESCALATE.value, previous)
        await self._notify(ticket)
        return ticket

    async def escalate_automatically(
        self,
        ticket_id: str,
        expected_status: TicketStatus
    ) -> Optional[Ticket]:
        """
        Escalate on SLA breach, as the system actor.

        Does nothing (returns None) when the ticket is gone, has left
        expected_status, or has no tier above it.
        """
        actor = Actor.system()
        ticket = await self._tickets.get_by_id(ticket_id)
        if ticket is None:
            logger.info("Ticket vanished before escalation", extra={"ticket_id": ticket_id})
            return None
        if ticket.status != expected_status:
            logger.info(
                "Ticket moved before escalation, skipping",
                extra={
                    "ticket_id": ticket_id,
                    "expected_status": expected_status.value,
                    "status": ticket.status.value
                }
            )
            return None

        target = next_escalation_status(ticket.status)
        if target is None:
            return None
        authorize(actor, Action.ESCALATE_TICKET, ResourceScope.of_ticket(ticket))

        previous = ticket.status
        now = datetime.now(timezone.utc)
        await self._move_to(ticket, target, now)
        ticket = await self._save(ticket, now)

        self._log_change(actor, ticket, "auto_escalate", previous)
        await self._notify(ticket)
        return ticket

    async def delete_ticket(self, actor: Actor, ticket_id: str) -> None:
        ticket = await self._load(ticket_id)
        authorize(actor, Action.DELETE_TICKET, ResourceScope.of_ticket(ticket))

        await self._tickets.delete(ticket.id)
        logger.info("Ticket deleted", extra={"ticket_id": ticket.id, "user_id": actor.user_id})

    # ---------- comments ----------

    async def list_comments(
        self,
        actor: Actor,
        ticket_id: str
    ) -> List[Tuple[TicketComment, Optional[UserProfile]]]:
        """Comments on a viewable ticket; internal notes only for staff."""
        ticket = await self.get_ticket(actor, ticket_id)
        include_internal = is_allowed(actor, Action.VIEW_INTERNAL_COMMENTS)
        comments = await self._comments.list_for_ticket(ticket.id, include_internal=include_internal)
        authors = {u.id: u for u in await self._users.get_by_ids({c.user_id for c in comments if c.user_id})}
        return [(c, authors.get(c.user_id or "")) for c in comments]

    async def add_comment(
        self,
        actor: Actor,
        ticket_id: str,
        request: CommentCreateRequest
    ) -> TicketComment:
        ticket = await self.get_ticket(actor, ticket_id)
        authorize(actor, Action.COMMENT, ResourceScope.of_ticket(ticket))
        if request.is_internal:
            authorize(actor, Action.ADD_INTERNAL_COMMENT)

        comment = await self._comments.create(TicketComment(
            id=None,
            ticket_id=ticket.id,
            user_id=actor.user_id,
            content=request.content.strip(),
            is_internal=request.is_internal,
            created_at=datetime.now(timezone.utc),
        ))

        logger.info(
            "Comment added",
            extra={
                "ticket_id": ticket.id,
                "comment_id": comment.id,
                "internal": comment.is_internal,
                "user_id": actor.user_id
            }
        )
        return comment
