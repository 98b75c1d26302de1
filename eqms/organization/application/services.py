"""
Organization Application Services
==================================

Application services for SBUs, tier rosters and user profiles.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple

from eqms.config import Tier, UserRole, UserStatus
from eqms.core.exceptions import (
    ConflictException, ResourceNotFoundException, ValidationException
)
from eqms.core.policy import Action, Actor, authorize, is_allowed
from eqms.organization.application.dto import (
    SBUCreateRequest, SBUUpdateRequest, TierAssignmentCreateRequest,
    UserCreateRequest, UserUpdateRequest
)
from eqms.organization.domain import SBU, TierAssignment, TierRoster, UserProfile
from eqms.shared.infrastructure.logging import get_logger
from eqms.sla.application.services import IEscalationPolicyProvider, ISLAConfigRepository

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISBURepository(ABC):
    """Interface for SBU data access."""

    @abstractmethod
    async def get_by_id(self, sbu_id: str) -> Optional[SBU]:
        """Get SBU by ID."""

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[SBU]:
        """Get SBU by name (case-insensitive)."""

    @abstractmethod
    async def list(self, include_inactive: bool = True) -> List[SBU]:
        """List SBUs."""

    @abstractmethod
    async def create(self, sbu: SBU) -> SBU:
        """Create new SBU."""

    @abstractmethod
    async def update(self, sbu: SBU) -> SBU:
        """Update existing SBU."""


class IUserProfileRepository(ABC):
    """Interface for user profile data access."""

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        """Get profile by auth provider user id."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[UserProfile]:
        """Get profile by e-mail (case-insensitive)."""

    @abstractmethod
    async def get_by_ids(self, user_ids: Iterable[str]) -> List[UserProfile]:
        """Get several profiles at once."""

    @abstractmethod
    async def list(
        self,
        role: Optional[UserRole] = None,
        sbu_id: Optional[str] = None,
        status: Optional[UserStatus] = None
    ) -> List[UserProfile]:
        """List profiles with filters."""

    @abstractmethod
    async def search(self, query: str, limit: int = 10) -> List[UserProfile]:
        """Match name or e-mail."""

    @abstractmethod
    async def list_staff_for_sbu(self, sbu_id: str) -> List[UserProfile]:
        """Active agents and managers affiliated with or rostered in an SBU."""

    @abstractmethod
    async def create(self, profile: UserProfile) -> UserProfile:
        """Create new profile."""

    @abstractmethod
    async def update(self, profile: UserProfile) -> UserProfile:
        """Update existing profile."""

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Delete profile; False if it did not exist."""


class ITierAssignmentRepository(ABC):
    """Interface for tier roster data access."""

    @abstractmethod
    async def get_by_id(self, assignment_id: str) -> Optional[TierAssignment]:
        """Get assignment by ID."""

    @abstractmethod
    async def list(
        self,
        sbu_id: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> List[TierAssignment]:
        """List assignments with filters."""

    @abstractmethod
    async def assign(self, user_id: str, sbu_id: str, tier: Tier) -> TierAssignment:
        """Seat a user at a tier, replacing any seat they hold in the SBU."""

    @abstractmethod
    async def delete(self, assignment_id: str) -> bool:
        """Delete assignment; False if it did not exist."""

    @abstractmethod
    async def delete_for_user(self, user_id: str) -> int:
        """Delete every seat of a user."""

    @abstractmethod
    async def replace_roster(self, sbu_id: str, roster: Dict[Tier, List[str]]) -> List[TierAssignment]:
        """Replace an SBU's whole roster."""


# ========== Application Services ==========

class UserService:
    """Service for user profile management and lookup."""

    SEARCH_LIMIT = 10

    def __init__(
        self,
        user_repository: IUserProfileRepository,
        tier_repository: ITierAssignmentRepository,
        sbu_repository: ISBURepository
    ):
        self._users = user_repository
        self._tiers = tier_repository
        self._sbus = sbu_repository

    async def get_profile(self, user_id: str) -> UserProfile:
        profile = await self._users.get_by_id(user_id)
        if profile is None:
            raise ResourceNotFoundException("User", user_id)
        return profile

    async def list_users(
        self,
        actor: Actor,
        role: Optional[UserRole] = None,
        sbu_id: Optional[str] = None
    ) -> List[UserProfile]:
        authorize(actor, Action.VIEW_USERS)
        return await self._users.list(role=role, sbu_id=sbu_id)

    async def search_users(self, query: str) -> List[UserProfile]:
        if not query or not query.strip():
            return []
        return await self._users.search(query, limit=self.SEARCH_LIMIT)

    async def _check_sbu(self, sbu_id: Optional[str]) -> None:
        if sbu_id and await self._sbus.get_by_id(sbu_id) is None:
            raise ResourceNotFoundException("SBU", sbu_id)

    async def create_user(self, actor: Actor, request: UserCreateRequest) -> UserProfile:
        authorize(actor, Action.MANAGE_USERS)

        if await self._users.get_by_id(request.id):
            raise ConflictException(f"User '{request.id}' already has a profile")
        if await self._users.get_by_email(request.email):
            raise ConflictException(f"E-mail '{request.email}' is already in use")
        await self._check_sbu(request.sbu_id)

        profile = await self._users.create(UserProfile(
            id=request.id,
            email=request.email,
            full_name=request.full_name,
            role=request.role,
            status=request.status,
            sbu_id=request.sbu_id,
            avatar_url=request.avatar_url,
        ))

        logger.info(
            "User profile created",
            extra={"target_user_id": profile.id, "role": profile.role.value, "user_id": actor.user_id}
        )
        return profile

    async def update_user(self, actor: Actor, request: UserUpdateRequest) -> UserProfile:
        authorize(actor, Action.MANAGE_USERS)

        profile = await self.get_profile(request.id)

        if request.email is not None and request.email.lower() != profile.email.lower():
            if await self._users.get_by_email(request.email):
                raise ConflictException(f"E-mail '{request.email}' is already in use")
            profile.email = request.email
        if request.full_name is not None:
            profile.full_name = request.full_name
        if request.status is not None:
            profile.status = request.status
        if request.avatar_url is not None:
            profile.avatar_url = request.avatar_url
        if request.sbu_id is not None:
            await self._check_sbu(request.sbu_id)
            profile.sbu_id = request.sbu_id
        if request.role is not None and request.role != profile.role:
            profile.role = request.role
            if not profile.is_assignable:
                # Only agents and managers may sit in a tier
                removed = await self._tiers.delete_for_user(profile.id)
                if removed:
                    logger.info(
                        "Tier seats released after role change",
                        extra={"target_user_id": profile.id, "removed": removed}
                    )

        profile = await self._users.update(profile)
        logger.info("User profile updated", extra={"target_user_id": profile.id, "user_id": actor.user_id})
        return profile

    async def delete_user(self, actor: Actor, user_id: str) -> None:
        authorize(actor, Action.MANAGE_USERS)

        await self._tiers.delete_for_user(user_id)
        if not await self._users.delete(user_id):
            raise ResourceNotFoundException("User", user_id)

        logger.info("User profile deleted", extra={"target_user_id": user_id, "user_id": actor.user_id})


class TierAssignmentService:
    """
    Service for tier roster management.

    A user holds at most one tier per SBU; assigning again moves them.
    """

    def __init__(
        self,
        tier_repository: ITierAssignmentRepository,
        user_repository: IUserProfileRepository,
        sbu_repository: ISBURepository
    ):
        self._tiers = tier_repository
        self._users = user_repository
        self._sbus = sbu_repository

    async def list_assignments(
        self,
        actor: Actor,
        sbu_id: Optional[str] = None
    ) -> List[Tuple[TierAssignment, Optional[UserProfile], Optional[SBU]]]:
        """Admins and managers see every seat, everyone else only their own."""
        if is_allowed(actor, Action.VIEW_ALL_TIER_ASSIGNMENTS):
            assignments = await self._tiers.list(sbu_id=sbu_id)
        else:
            assignments = await self._tiers.list(sbu_id=sbu_id, user_id=actor.user_id)
        return await self._with_relations(assignments)

    async def _with_relations(self, assignments: List[TierAssignment]):
        users = {u.id: u for u in await self._users.get_by_ids({a.user_id for a in assignments})}
        sbus: Dict[str, Optional[SBU]] = {}
        for sbu_id in {a.sbu_id for a in assignments}:
            sbus[sbu_id] = await self._sbus.get_by_id(sbu_id)
        return [(a, users.get(a.user_id), sbus.get(a.sbu_id)) for a in assignments]

    async def assign(
        self,
        actor: Actor,
        request: TierAssignmentCreateRequest
    ) -> Tuple[TierAssignment, UserProfile, SBU]:
        """
        Seat a user at a tier of an SBU.

        Raises:
            ResourceNotFoundException: user or SBU missing
            ValidationException: user is neither agent nor manager
        """
        authorize(actor, Action.MANAGE_TIER_ASSIGNMENTS)

        user = await self._users.get_by_id(request.user_id)
        if user is None:
            raise ResourceNotFoundException("User", request.user_id)
        if not user.is_assignable:
            raise ValidationException("Only agents and managers can be assigned to a tier")

        sbu = await self._sbus.get_by_id(request.sbu_id)
        if sbu is None:
            raise ResourceNotFoundException("SBU", request.sbu_id)

        assignment = await self._tiers.assign(user.id, sbu.id, request.tier)
        logger.info(
            "Tier assignment saved",
            extra={
                "target_user_id": user.id,
                "sbu_id": sbu.id,
                "tier": request.tier.value,
                "user_id": actor.user_id
            }
        )
        return assignment, user, sbu

    async def remove(self, actor: Actor, assignment_id: str) -> None:
        authorize(actor, Action.MANAGE_TIER_ASSIGNMENTS)
        if not await self._tiers.delete(assignment_id):
            raise ResourceNotFoundException("Tier assignment", assignment_id)
        logger.info("Tier assignment removed", extra={"assignment_id": assignment_id, "user_id": actor.user_id})

    async def roster(self, sbu_id: str) -> TierRoster:
        return TierRoster.from_assignments(sbu_id, await self._tiers.list(sbu_id=sbu_id))


class SBUService:
    """
    Service for SBU lifecycle.

    Creating an SBU seeds its SLA table from the escalation policy
    defaults for every key the caller leaves out.
    """

    def __init__(
        self,
        sbu_repository: ISBURepository,
        sla_repository: ISLAConfigRepository,
        tier_repository: ITierAssignmentRepository,
        user_repository: IUserProfileRepository,
        policy_provider: IEscalationPolicyProvider
    ):
        self._sbus = sbu_repository
        self._sla = sla_repository
        self._tiers = tier_repository
        self._users = user_repository
        self._policy_provider = policy_provider

    async def _details(self, sbus: List[SBU]) -> List[Tuple[SBU, Dict[str, int], TierRoster]]:
        configs = await self._sla.list_for_sbus([s.id for s in sbus])
        results = []
        for sbu in sbus:
            table = {c.ticket_status: c.sla_time for c in configs if c.sbu_id == sbu.id}
            roster = TierRoster.from_assignments(sbu.id, await self._tiers.list(sbu_id=sbu.id))
            results.append((sbu, table, roster))
        return results

    async def list_sbus(self, include_inactive: bool = True):
        return await self._details(await self._sbus.list(include_inactive=include_inactive))

    async def get_sbu(self, sbu_id: str):
        sbu = await self._sbus.get_by_id(sbu_id)
        if sbu is None:
            raise ResourceNotFoundException("SBU", sbu_id)
        return (await self._details([sbu]))[0]

    async def _check_roster(self, roster: Dict[Tier, List[str]]) -> None:
        user_ids = {uid for ids in roster.values() for uid in ids}
        profiles = {p.id: p for p in await self._users.get_by_ids(user_ids)}
        for user_id in user_ids:
            profile = profiles.get(user_id)
            if profile is None:
                raise ValidationException(f"User '{user_id}' does not exist")
            if not profile.is_assignable:
                raise ValidationException(f"User '{user_id}' is neither an agent nor a manager")

    async def create_sbu(self, actor: Actor, request: SBUCreateRequest):
        authorize(actor, Action.MANAGE_SBUS)

        if await self._sbus.get_by_name(request.name):
            raise ConflictException(f"SBU '{request.name}' already exists")

        roster = request.tier_assignments.as_roster() if request.tier_assignments else None
        if roster:
            await self._check_roster(roster)

        sbu = await self._sbus.create(SBU(id="", name=request.name, description=request.description))

        table = self._policy_provider.get_policy().seed_table(request.sla_configs)
        await self._sla.replace_for_sbu(sbu.id, table)
        if roster:
            await self._tiers.replace_roster(sbu.id, roster)

        logger.info(
            "SBU created",
            extra={"sbu_id": sbu.id, "sla_keys": sorted(table), "user_id": actor.user_id}
        )
        return (await self._details([sbu]))[0]

    async def update_sbu(self, actor: Actor, sbu_id: str, request: SBUUpdateRequest):
        authorize(actor, Action.MANAGE_SBUS)

        sbu = await self._sbus.get_by_id(sbu_id)
        if sbu is None:
            raise ResourceNotFoundException("SBU", sbu_id)

        if request.name is not None and request.name.strip().lower() != sbu.name.lower():
            if await self._sbus.get_by_name(request.name):
                raise ConflictException(f"SBU '{request.name}' already exists")
            sbu.name = request.name.strip()
        if request.description is not None:
            sbu.description = request.description
        if request.status is not None:
            sbu.status = request.status
        sbu = await self._sbus.update(sbu)

        if request.sla_configs is not None:
            await self._sla.replace_for_sbu(sbu.id, request.sla_configs)
        if request.tier_assignments is not None:
            roster = request.tier_assignments.as_roster()
            await self._check_roster(roster)
            await self._tiers.replace_roster(sbu.id, roster)

        logger.info("SBU updated", extra={"sbu_id": sbu.id, "user_id": actor.user_id})
        return (await self._details([sbu]))[0]

    async def deactivate_sbu(self, actor: Actor, sbu_id: str) -> SBU:
        """Soft delete: the SBU and its history stay, its status turns inactive."""
        authorize(actor, Action.MANAGE_SBUS)

        sbu = await self._sbus.get_by_id(sbu_id)
        if sbu is None:
            raise ResourceNotFoundException("SBU", sbu_id)

        sbu.deactivate()
        sbu = await self._sbus.update(sbu)
        logger.info("SBU deactivated", extra={"sbu_id": sbu.id, "user_id": actor.user_id})
        return sbu
