"""
Organization Infrastructure Repositories
=========================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
SBUs, user profiles and tier seats.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eqms.config import ASSIGNABLE_ROLES, SBUStatus, Tier, UserRole, UserStatus
from eqms.core.exceptions import RepositoryException
from eqms.infrastructure.database import as_uuid, ensure_utc
from eqms.organization.application.services import (
    ISBURepository, ITierAssignmentRepository, IUserProfileRepository
)
from eqms.organization.domain import SBU, TierAssignment, UserProfile
from eqms.organization.infrastructure.models import (
    SBUModel, TierAssignmentModel, UserProfileModel
)


# ========== Mappers ==========

def sbu_from_model(model: SBUModel) -> SBU:
    return SBU(
        id=str(model.id),
        name=model.name,
        description=model.description,
        status=SBUStatus(model.status),
        created_at=ensure_utc(model.created_at),
        updated_at=ensure_utc(model.updated_at),
    )


def profile_from_model(model: UserProfileModel) -> UserProfile:
    return UserProfile(
        id=str(model.id),
        email=model.email,
        full_name=model.full_name,
        role=UserRole(model.role),
        status=UserStatus(model.status),
        sbu_id=str(model.sbu_id) if model.sbu_id else None,
        avatar_url=model.avatar_url,
        created_at=ensure_utc(model.created_at),
        updated_at=ensure_utc(model.updated_at),
    )


def assignment_from_model(model: TierAssignmentModel) -> TierAssignment:
    return TierAssignment(
        id=str(model.id),
        user_id=str(model.user_id),
        sbu_id=str(model.sbu_id),
        tier=Tier(model.tier),
        created_at=ensure_utc(model.created_at),
        updated_at=ensure_utc(model.updated_at),
    )


def _uuids(values: Iterable[str]) -> list:
    return [u for u in (as_uuid(v) for v in values) if u is not None]


class SQLAlchemySBURepository(ISBURepository):
    """SQLAlchemy implementation of SBU repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, sbu_id: str) -> Optional[SBUModel]:
        sbu_uuid = as_uuid(sbu_id)
        if sbu_uuid is None:
            return None
        return await self._session.get(SBUModel, sbu_uuid)

    async def get_by_id(self, sbu_id: str) -> Optional[SBU]:
        model = await self._get_model(sbu_id)
        return sbu_from_model(model) if model else None

    async def get_by_name(self, name: str) -> Optional[SBU]:
        stmt = select(SBUModel).where(func.lower(SBUModel.name) == name.strip().lower())
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return sbu_from_model(model) if model else None

    async def list(self, include_inactive: bool = True) -> List[SBU]:
        stmt = select(SBUModel)
        if not include_inactive:
            stmt = stmt.where(SBUModel.status == SBUStatus.ACTIVE.value)
        stmt = stmt.order_by(SBUModel.name.asc())
        result = await self._session.execute(stmt)
        return [sbu_from_model(m) for m in result.scalars().all()]

    async def create(self, sbu: SBU) -> SBU:
        now = datetime.now(timezone.utc)
        model = SBUModel(
            id=uuid4(),
            name=sbu.name,
            description=sbu.description,
            status=sbu.status.value,
            created_at=now,
            updated_at=now,
        )
        self._session.add(model)
        await self._session.flush()
        return sbu_from_model(model)

    async def update(self, sbu: SBU) -> SBU:
        model = await self._get_model(sbu.id)
        if not model:
            raise RepositoryException(f"SBU {sbu.id} not found")

        model.name = sbu.name
        model.description = sbu.description
        model.status = sbu.status.value
        model.updated_at = datetime.now(timezone.utc)

        await self._session.flush()
        return sbu_from_model(model)


class SQLAlchemyUserProfileRepository(IUserProfileRepository):
    """SQLAlchemy implementation of user profile repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, user_id: str) -> Optional[UserProfileModel]:
        user_uuid = as_uuid(user_id)
        if user_uuid is None:
            return None
        return await self._session.get(UserProfileModel, user_uuid)

    async def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        model = await self._get_model(user_id)
        return profile_from_model(model) if model else None

    async def get_by_email(self, email: str) -> Optional[UserProfile]:
        stmt = select(UserProfileModel).where(func.lower(UserProfileModel.email) == email.strip().lower())
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return profile_from_model(model) if model else None

    async def get_by_ids(self, user_ids: Iterable[str]) -> List[UserProfile]:
        ids = _uuids(user_ids)
        if not ids:
            return []
        stmt = select(UserProfileModel).where(UserProfileModel.id.in_(ids))
        result = await self._session.execute(stmt)
        return [profile_from_model(m) for m in result.scalars().all()]

    async def list(
        self,
        role: Optional[UserRole] = None,
        sbu_id: Optional[str] = None,
        status: Optional[UserStatus] = None
    ) -> List[UserProfile]:
        stmt = select(UserProfileModel)
        if role is not None:
            stmt = stmt.where(UserProfileModel.role == role.value)
        if sbu_id is not None:
            stmt = stmt.where(UserProfileModel.sbu_id == as_uuid(sbu_id))
        if status is not None:
            stmt = stmt.where(UserProfileModel.status == status.value)
        stmt = stmt.order_by(UserProfileModel.email.asc())
        result = await self._session.execute(stmt)
        return [profile_from_model(m) for m in result.scalars().all()]

    async def search(self, query: str, limit: int = 10) -> List[UserProfile]:
        pattern = f"%{query.strip()}%"
        stmt = (
            select(UserProfileModel)
            .where(or_(
                UserProfileModel.full_name.ilike(pattern),
                UserProfileModel.email.ilike(pattern),
            ))
            .order_by(UserProfileModel.email.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [profile_from_model(m) for m in result.scalars().all()]

    async def list_staff_for_sbu(self, sbu_id: str) -> List[UserProfile]:
        """Active agents and managers affiliated with or rostered in the SBU."""
        sbu_uuid = as_uuid(sbu_id)
        if sbu_uuid is None:
            return []
        rostered = select(TierAssignmentModel.user_id).where(TierAssignmentModel.sbu_id == sbu_uuid)
        stmt = (
            select(UserProfileModel)
            .where(
                UserProfileModel.role.in_([r.value for r in ASSIGNABLE_ROLES]),
                UserProfileModel.status == UserStatus.ACTIVE.value,
                or_(UserProfileModel.sbu_id == sbu_uuid, UserProfileModel.id.in_(rostered)),
            )
            .order_by(UserProfileModel.email.asc())
        )
        result = await self._session.execute(stmt)
        return [profile_from_model(m) for m in result.scalars().all()]

    async def create(self, profile: UserProfile) -> UserProfile:
        user_uuid = as_uuid(profile.id)
        if user_uuid is None:
            raise RepositoryException(f"Invalid user ID: {profile.id}")

        now = datetime.now(timezone.utc)
        model = UserProfileModel(
            id=user_uuid,
            email=profile.email,
            full_name=profile.full_name,
            role=profile.role.value,
            status=profile.status.value,
            sbu_id=as_uuid(profile.sbu_id),
            avatar_url=profile.avatar_url,
            created_at=now,
            updated_at=now,
        )
        self._session.add(model)
        await self._session.flush()
        return profile_from_model(model)

    async def update(self, profile: UserProfile) -> UserProfile:
        model = await self._get_model(profile.id)
        if not model:
            raise RepositoryException(f"User profile {profile.id} not found")

        model.email = profile.email
        model.full_name = profile.full_name
        model.role = profile.role.value
        model.status = profile.status.value
        model.sbu_id = as_uuid(profile.sbu_id)
        model.avatar_url = profile.avatar_url
        model.updated_at = datetime.now(timezone.utc)

        await self._session.flush()
        return profile_from_model(model)

    async def delete(self, user_id: str) -> bool:
        model = await self._get_model(user_id)
        if not model:
            return False
        await self._session.delete(model)
        await self._session.flush()
        return True


class SQLAlchemyTierAssignmentRepository(ITierAssignmentRepository):
    """
    SQLAlchemy implementation of tier assignment repository.

    Writes are delete-then-insert so a user holds one seat per SBU.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, assignment_id: str) -> Optional[TierAssignment]:
        assignment_uuid = as_uuid(assignment_id)
        if assignment_uuid is None:
            return None
        model = await self._session.get(TierAssignmentModel, assignment_uuid)
        return assignment_from_model(model) if model else None

    async def list(
        self,
        sbu_id: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> List[TierAssignment]:
        stmt = select(TierAssignmentModel)
        if sbu_id is not None:
            stmt = stmt.where(TierAssignmentModel.sbu_id == as_uuid(sbu_id))
        if user_id is not None:
            stmt = stmt.where(TierAssignmentModel.user_id == as_uuid(user_id))
        stmt = stmt.order_by(TierAssignmentModel.created_at.asc())
        result = await self._session.execute(stmt)
        return [assignment_from_model(m) for m in result.scalars().all()]

    async def assign(self, user_id: str, sbu_id: str, tier: Tier) -> TierAssignment:
        user_uuid, sbu_uuid = as_uuid(user_id), as_uuid(sbu_id)
        if user_uuid is None or sbu_uuid is None:
            raise RepositoryException("Invalid user or SBU ID")

        await self._session.execute(
            delete(TierAssignmentModel).where(
                TierAssignmentModel.user_id == user_uuid,
                TierAssignmentModel.sbu_id == sbu_uuid,
            )
        )

        now = datetime.now(timezone.utc)
        model = TierAssignmentModel(
            id=uuid4(),
            user_id=user_uuid,
            sbu_id=sbu_uuid,
            tier=tier.value,
            created_at=now,
            updated_at=now,
        )
        self._session.add(model)
        await self._session.flush()
        return assignment_from_model(model)

    async def delete(self, assignment_id: str) -> bool:
        assignment_uuid = as_uuid(assignment_id)
        if assignment_uuid is None:
            return False
        result = await self._session.execute(
            delete(TierAssignmentModel).where(TierAssignmentModel.id == assignment_uuid)
        )
        return result.rowcount > 0

    async def delete_for_user(self, user_id: str) -> int:
        user_uuid = as_uuid(user_id)
        if user_uuid is None:
            return 0
        result = await self._session.execute(
            delete(TierAssignmentModel).where(TierAssignmentModel.user_id == user_uuid)
        )
        return result.rowcount

    async def replace_roster(self, sbu_id: str, roster: Dict[Tier, List[str]]) -> List[TierAssignment]:
        sbu_uuid = as_uuid(sbu_id)
        if sbu_uuid is None:
            raise RepositoryException(f"Invalid SBU ID: {sbu_id}")

        await self._session.execute(
            delete(TierAssignmentModel).where(TierAssignmentModel.sbu_id == sbu_uuid)
        )

        now = datetime.now(timezone.utc)
        models = []
        seen = set()
        for tier, user_ids in roster.items():
            for user_uuid in _uuids(user_ids):
                # A user listed under two tiers keeps the first one
                if user_uuid in seen:
                    continue
                seen.add(user_uuid)
                models.append(TierAssignmentModel(
                    id=uuid4(),
                    user_id=user_uuid,
                    sbu_id=sbu_uuid,
                    tier=tier.value,
                    created_at=now,
                    updated_at=now,
                ))

        self._session.add_all(models)
        await self._session.flush()
        return [assignment_from_model(m) for m in models]
