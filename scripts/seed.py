#!/usr/bin/env python3
"""
Seed a Development Database
===========================

Creates the tables, an admin profile and one SBU whose SLA table comes
from the escalation policy defaults.

The admin id must be the user's id at the auth provider, so tokens it
issues resolve to this profile:

    python scripts/seed.py --admin-id <uuid> --admin-email admin@example.com
"""

import argparse
import asyncio

from eqms.config import UserRole, UserStatus, get_settings
from eqms.core.policy import Actor
from eqms.infrastructure.database import Database
from eqms.organization.application.dto import SBUCreateRequest
from eqms.organization.application.services import SBUService
from eqms.organization.domain import UserProfile
from eqms.organization.infrastructure import models as _organization_models  # noqa: F401
from eqms.organization.infrastructure.repositories import (
    SQLAlchemySBURepository, SQLAlchemyTierAssignmentRepository,
    SQLAlchemyUserProfileRepository
)
from eqms.sla.infrastructure.external import EscalationPolicyManager
from eqms.sla.infrastructure.repositories import SQLAlchemySLAConfigRepository
from eqms.sla.infrastructure import models as _sla_models  # noqa: F401
from eqms.tickets.infrastructure import models as _ticket_models  # noqa: F401


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the EQMS database")
    parser.add_argument("--admin-id", required=True, help="Auth provider user id of the admin")
    parser.add_argument("--admin-email", required=True)
    parser.add_argument("--admin-name", default="Administrator")
    parser.add_argument("--sbu-name", default="General")
    return parser.parse_args()


async def main(args: argparse.Namespace):
    """Create tables, the admin profile and the first SBU; safe to rerun."""
    settings = get_settings()
    database = Database.from_settings(settings)

    policy_manager = EscalationPolicyManager(settings.sla_default_warning_seconds)
    policy_manager.load(settings.escalation_policy_path)

    await database.create_tables()
    print("Tables created")

    async with database.session() as session:
        users = SQLAlchemyUserProfileRepository(session)
        admin = await users.get_by_id(args.admin_id)
        if admin is None:
            admin = await users.create(UserProfile(
                id=args.admin_id,
                email=args.admin_email,
                full_name=args.admin_name,
                role=UserRole.ADMIN,
                status=UserStatus.ACTIVE,
            ))
            print(f"Created admin profile {admin.email}")
        else:
            print(f"Admin profile {admin.email} already exists")

        sbus = SQLAlchemySBURepository(session)
        if await sbus.get_by_name(args.sbu_name) is None:
            service = SBUService(
                sbu_repository=sbus,
                sla_repository=SQLAlchemySLAConfigRepository(session),
                tier_repository=SQLAlchemyTierAssignmentRepository(session),
                user_repository=users,
                policy_provider=policy_manager,
            )
            actor = Actor(user_id=admin.id, role=admin.role, email=admin.email)
            sbu, table, _ = await service.create_sbu(actor, SBUCreateRequest(name=args.sbu_name))
            print(f"Created SBU {sbu.name} with SLA table {table}")
        else:
            print(f"SBU {args.sbu_name} already exists")

    await database.dispose()


if __name__ == "__main__":
    asyncio.run(main(parse_args()))
