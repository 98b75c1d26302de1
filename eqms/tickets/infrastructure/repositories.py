"""
Ticket Infrastructure Repositories
==================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
tickets and their comments.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import delete, false, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eqms.config import TicketPriority, TicketStatus
from eqms.core.exceptions import RepositoryException
from eqms.infrastructure.database import as_uuid, ensure_utc
from eqms.tickets.application.services import (
    ITicketCommentRepository, ITicketRepository, TicketFilter
)
from eqms.tickets.domain import Ticket, TicketComment
from eqms.tickets.infrastructure.models import TicketCommentModel, TicketModel


def _str_or_none(value) -> Optional[str]:
    return str(value) if value is not None else None


def ticket_from_model(model: TicketModel) -> Ticket:
    return Ticket(
        id=str(model.id),
        title=model.title,
        description=model.description,
        status=TicketStatus(model.status),
        priority=TicketPriority(model.priority),
        sbu_id=str(model.sbu_id),
        created_by=_str_or_none(model.created_by),
        assigned_to=_str_or_none(model.assigned_to),
        sla_time=model.sla_time,
        created_at=ensure_utc(model.created_at),
        updated_at=ensure_utc(model.updated_at),
        resolution=model.resolution,
        resolved_at=ensure_utc(model.resolved_at),
        closed_at=ensure_utc(model.closed_at),
        card_number=model.card_number,
        module=model.module,
        account_number=model.account_number,
        query_type=model.query_type,
    )


def comment_from_model(model: TicketCommentModel) -> TicketComment:
    return TicketComment(
        id=str(model.id),
        ticket_id=str(model.ticket_id),
        user_id=_str_or_none(model.user_id),
        content=model.content,
        is_internal=model.is_internal,
        created_at=ensure_utc(model.created_at),
    )


class SQLAlchemyTicketRepository(ITicketRepository):
    """SQLAlchemy implementation of ticket repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, ticket_id: str) -> Optional[TicketModel]:
        ticket_uuid = as_uuid(ticket_id)
        if ticket_uuid is None:
            return None
        return await self._session.get(TicketModel, ticket_uuid)

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        model = await self._get_model(ticket_id)
        return ticket_from_model(model) if model else None

    def _apply_filters(self, stmt, filters: TicketFilter):
        """Translate a TicketFilter into WHERE clauses."""
        conditions = []

        if filters.status is not None:
            conditions.append(TicketModel.status == filters.status.value)
        if filters.statuses is not None:
            conditions.append(TicketModel.status.in_([s.value for s in filters.statuses]))
        if filters.priority is not None:
            conditions.append(TicketModel.priority == filters.priority.value)

        # Ids that are not UUIDs cannot match any row
        for column, value in (
            (TicketModel.sbu_id, filters.sbu_id),
            (TicketModel.created_by, filters.created_by),
            (TicketModel.assigned_to, filters.assigned_to),
        ):
            if value is not None:
                parsed = as_uuid(value)
                conditions.append(column == parsed if parsed is not None else false())

        if filters.involved_user is not None:
            user_uuid = as_uuid(filters.involved_user)
            if user_uuid is None:
                conditions.append(false())
            else:
                conditions.append(or_(
                    TicketModel.assigned_to == user_uuid,
                    TicketModel.created_by == user_uuid,
                ))

        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(or_(
                TicketModel.title.ilike(pattern),
                TicketModel.description.ilike(pattern),
            ))

        if conditions:
            stmt = stmt.where(*conditions)
        return stmt

    async def list(
        self,
        filters: TicketFilter,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[Ticket]:
        stmt = self._apply_filters(select(TicketModel), filters)
        stmt = stmt.order_by(TicketModel.created_at.desc(), TicketModel.id.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return [ticket_from_model(m) for m in result.scalars().all()]

    async def count(self, filters: TicketFilter) -> int:
        stmt = self._apply_filters(select(func.count()).select_from(TicketModel), filters)
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def create(self, ticket: Ticket) -> Ticket:
        sbu_uuid = as_uuid(ticket.sbu_id)
        if sbu_uuid is None:
            raise RepositoryException(f"Invalid SBU ID: {ticket.sbu_id}")

        now = datetime.now(timezone.utc)
        model = TicketModel(
            id=uuid4(),
            title=ticket.title,
            description=ticket.description,
            status=ticket.status.value,
            priority=ticket.priority.value,
            sbu_id=sbu_uuid,
            created_by=as_uuid(ticket.created_by),
            assigned_to=as_uuid(ticket.assigned_to),
            sla_time=ticket.sla_time,
            resolution=ticket.resolution,
            card_number=ticket.card_number,
            module=ticket.module,
            account_number=ticket.account_number,
            query_type=ticket.query_type,
            created_at=ticket.created_at or now,
            updated_at=ticket.updated_at or now,
        )
        self._session.add(model)
        await self._session.flush()
        return ticket_from_model(model)

    async def update(self, ticket: Ticket) -> Ticket:
        model = await self._get_model(ticket.id)
        if not model:
            raise RepositoryException(f"Ticket {ticket.id} not found")

        model.title = ticket.title
        model.description = ticket.description
        model.status = ticket.status.value
        model.priority = ticket.priority.value
        model.assigned_to = as_uuid(ticket.assigned_to)
        model.sla_time = ticket.sla_time
        model.resolution = ticket.resolution
        model.resolved_at = ticket.resolved_at
        model.closed_at = ticket.closed_at
        model.card_number = ticket.card_number
        model.module = ticket.module
        model.account_number = ticket.account_number
        model.query_type = ticket.query_type
        model.updated_at = ticket.updated_at or datetime.now(timezone.utc)

        await self._session.flush()
        return ticket_from_model(model)

    async def delete(self, ticket_id: str) -> bool:
        ticket_uuid = as_uuid(ticket_id)
        if ticket_uuid is None:
            return False

        # Not every store enforces the cascade
        await self._session.execute(
            delete(TicketCommentModel).where(TicketCommentModel.ticket_id == ticket_uuid)
        )
        result = await self._session.execute(
            delete(TicketModel).where(TicketModel.id == ticket_uuid)
        )
        return result.rowcount > 0


class SQLAlchemyTicketCommentRepository(ITicketCommentRepository):
    """SQLAlchemy implementation of ticket comment repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_for_ticket(self, ticket_id: str, include_internal: bool = False) -> List[TicketComment]:
        ticket_uuid = as_uuid(ticket_id)
        if ticket_uuid is None:
            return []

        stmt = select(TicketCommentModel).where(TicketCommentModel.ticket_id == ticket_uuid)
        if not include_internal:
            stmt = stmt.where(TicketCommentModel.is_internal.is_(False))
        stmt = stmt.order_by(TicketCommentModel.created_at.asc())

        result = await self._session.execute(stmt)
        return [comment_from_model(m) for m in result.scalars().all()]

    async def create(self, comment: TicketComment) -> TicketComment:
        ticket_uuid = as_uuid(comment.ticket_id)
        if ticket_uuid is None:
            raise RepositoryException(f"Invalid ticket ID: {comment.ticket_id}")

        model = TicketCommentModel(
            id=uuid4(),
            ticket_id=ticket_uuid,
            user_id=as_uuid(comment.user_id),
            content=comment.content,
            is_internal=comment.is_internal,
            created_at=comment.created_at or datetime.now(timezone.utc),
        )
        self._session.add(model)
        await self._session.flush()
        return comment_from_model(model)
