"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
the SLA policy table.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eqms.core.exceptions import ConflictException, RepositoryException
from eqms.infrastructure.database import as_uuid, ensure_utc
from eqms.organization.domain import SBU
from eqms.organization.infrastructure.models import SBUModel
from eqms.organization.infrastructure.repositories import sbu_from_model
from eqms.sla.application.services import ISLAConfigRepository
from eqms.sla.domain import SLAConfig
from eqms.sla.infrastructure.models import SLAConfigModel


def config_from_model(model: SLAConfigModel) -> SLAConfig:
    return SLAConfig(
        id=str(model.id),
        sbu_id=str(model.sbu_id),
        ticket_status=model.ticket_status,
        sla_time=model.sla_time,
        warning_seconds=model.warning_seconds,
        created_at=ensure_utc(model.created_at),
        updated_at=ensure_utc(model.updated_at),
    )


class SQLAlchemySLAConfigRepository(ISLAConfigRepository):
    """
    SQLAlchemy implementation of the SLA policy table.

    The unique (sbu_id, ticket_status) constraint backs the service-level
    duplicate check.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, config_id: str) -> Optional[SLAConfigModel]:
        config_uuid = as_uuid(config_id)
        if config_uuid is None:
            return None
        return await self._session.get(SLAConfigModel, config_uuid)

    async def get_by_id(self, config_id: str) -> Optional[SLAConfig]:
        model = await self._get_model(config_id)
        return config_from_model(model) if model else None

    async def get_for(self, sbu_id: str, key: str) -> Optional[SLAConfig]:
        sbu_uuid = as_uuid(sbu_id)
        if sbu_uuid is None:
            return None

        stmt = select(SLAConfigModel).where(
            SLAConfigModel.sbu_id == sbu_uuid,
            SLAConfigModel.ticket_status == key,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return config_from_model(model) if model else None

    async def list_with_sbu(self, sbu_id: Optional[str] = None) -> List[Tuple[SLAConfig, SBU]]:
        stmt = select(SLAConfigModel, SBUModel).join(SBUModel, SBUModel.id == SLAConfigModel.sbu_id)
        if sbu_id is not None:
            sbu_uuid = as_uuid(sbu_id)
            if sbu_uuid is None:
                return []
            stmt = stmt.where(SLAConfigModel.sbu_id == sbu_uuid)
        stmt = stmt.order_by(SBUModel.name.asc(), SLAConfigModel.ticket_status.asc())

        result = await self._session.execute(stmt)
        return [(config_from_model(c), sbu_from_model(s)) for c, s in result.all()]

    async def list_for_sbus(self, sbu_ids: List[str]) -> List[SLAConfig]:
        ids = [u for u in (as_uuid(s) for s in sbu_ids) if u is not None]
        if not ids:
            return []
        stmt = select(SLAConfigModel).where(SLAConfigModel.sbu_id.in_(ids))
        result = await self._session.execute(stmt)
        return [config_from_model(m) for m in result.scalars().all()]

    async def get_sbu(self, sbu_id: str) -> Optional[SBU]:
        sbu_uuid = as_uuid(sbu_id)
        if sbu_uuid is None:
            return None
        model = await self._session.get(SBUModel, sbu_uuid)
        return sbu_from_model(model) if model else None

    async def _flush(self) -> None:
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConflictException("SBU already has an SLA config for this status") from e

    async def create(self, config: SLAConfig) -> SLAConfig:
        sbu_uuid = as_uuid(config.sbu_id)
        if sbu_uuid is None:
            raise RepositoryException(f"Invalid SBU ID: {config.sbu_id}")

        now = datetime.now(timezone.utc)
        model = SLAConfigModel(
            id=uuid4(),
            sbu_id=sbu_uuid,
            ticket_status=config.ticket_status,
            sla_time=config.sla_time,
            warning_seconds=config.warning_seconds,
            created_at=now,
            updated_at=now,
        )
        self._session.add(model)
        await self._flush()
        return config_from_model(model)

    async def update(self, config: SLAConfig) -> SLAConfig:
        model = await self._get_model(config.id)
        if not model:
            raise RepositoryException(f"SLA config {config.id} not found")

        model.ticket_status = config.ticket_status
        model.sla_time = config.sla_time
        model.warning_seconds = config.warning_seconds
        model.updated_at = datetime.now(timezone.utc)

        await self._flush()
        return config_from_model(model)

    async def delete(self, config_id: str) -> bool:
        config_uuid = as_uuid(config_id)
        if config_uuid is None:
            return False
        result = await self._session.execute(
            delete(SLAConfigModel).where(SLAConfigModel.id == config_uuid)
        )
        return result.rowcount > 0

    async def replace_for_sbu(self, sbu_id: str, table: Dict[str, int]) -> List[SLAConfig]:
        """
        Make the SBU's policy table exactly `table`.

        Rows whose key survives keep their id and warning threshold; only the
        SLA minutes change. Keys missing from `table` are removed.
        """
        sbu_uuid = as_uuid(sbu_id)
        if sbu_uuid is None:
            raise RepositoryException(f"Invalid SBU ID: {sbu_id}")

        result = await self._session.execute(
            select(SLAConfigModel).where(SLAConfigModel.sbu_id == sbu_uuid)
        )
        existing = {model.ticket_status: model for model in result.scalars().all()}

        stale = [key for key in existing if key not in table]
        if stale:
            await self._session.execute(
                delete(SLAConfigModel).where(
                    SLAConfigModel.sbu_id == sbu_uuid,
                    SLAConfigModel.ticket_status.in_(stale),
                )
            )

        now = datetime.now(timezone.utc)
        models = []
        for key, minutes in table.items():
            model = existing.get(key)
            if model is None:
                model = SLAConfigModel(
                    id=uuid4(),
                    sbu_id=sbu_uuid,
                    ticket_status=key,
                    sla_time=minutes,
                    created_at=now,
                    updated_at=now,
                )
                self._session.add(model)
            elif model.sla_time != minutes:
                model.sla_time = minutes
                model.updated_at = now
            models.append(model)

        await self._flush()
        return [config_from_model(m) for m in models]
