"""
Shared fixtures: an application over in-memory SQLite, a seeded
organization, bearer tokens and a mailer that records instead of sending.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
import pytest
from httpx import ASGITransport, AsyncClient

from eqms.config import Settings, TicketPriority, TicketStatus, UserRole, UserStatus
from eqms.main import create_app
from eqms.notifications.application.services import EmailDispatcher, IMailer
from eqms.notifications.domain import OutgoingEmail
from eqms.organization.domain import SBU, UserProfile
from eqms.organization.infrastructure.repositories import (
    SQLAlchemySBURepository, SQLAlchemyUserProfileRepository
)
from eqms.sla.infrastructure.repositories import SQLAlchemySLAConfigRepository
from eqms.tickets.domain import Ticket
from eqms.tickets.infrastructure.repositories import SQLAlchemyTicketRepository

TEST_SECRET = "test-secret"

POLICY_YAML = """
default_sla_minutes:
  open: 30
  escalated_tier1: 60
  escalated_tier2: 120
  escalated_tier3: 240
warning_seconds:
  open: 300
"""

CARDS_SLA_TABLE = {
    "open": 30,
    "escalated_tier1": 60,
    "escalated_tier2": 120,
    "escalated_tier3": 240,
}


class RecordingMailer(IMailer):
    def __init__(self):
        self.sent: List[OutgoingEmail] = []

    async def send(self, email: OutgoingEmail) -> None:
        self.sent.append(email)


@dataclass
class World:
    cards: SBU
    loans: SBU
    admin: UserProfile
    manager: UserProfile
    agent: UserProfile
    other_agent: UserProfile
    user: UserProfile
    other_user: UserProfile
    loans_manager: UserProfile


def make_token(user_id: str, secret: str = TEST_SECRET, expires_in: int = 3600, audience: str = "authenticated") -> str:
    now = datetime.now(timezone.utc)
    claims = {"sub": user_id, "aud": audience, "iat": now, "exp": now + timedelta(seconds=expires_in)}
    return jwt.encode(claims, secret, algorithm="HS256")


def bearer(profile: UserProfile) -> dict:
    return {"Authorization": f"Bearer {make_token(profile.id)}"}


@pytest.fixture
def settings(tmp_path) -> Settings:
    policy_path = tmp_path / "escalation_policy.yaml"
    policy_path.write_text(POLICY_YAML)
    return Settings(
        environment="development",
        database_url="sqlite+aiosqlite:///:memory:",
        db_create_tables=True,
        escalation_policy_path=policy_path,
        escalation_scheduler_enabled=False,
        email_enabled=False,
        auth_jwt_secret=TEST_SECRET,
    )


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
async def app(settings, mailer):
    application = create_app(settings)
    async with application.router.lifespan_context(application):
        application.state.dispatcher = EmailDispatcher(mailer)
        yield application
        await application.state.dispatcher.drain()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def database(app):
    return app.state.database


@pytest.fixture
def dispatcher(app) -> EmailDispatcher:
    return app.state.dispatcher


@pytest.fixture
async def world(database) -> World:
    async with database.session() as session:
        sbus = SQLAlchemySBURepository(session)
        cards = await sbus.create(SBU(id="", name="Cards", description="Card operations"))
        loans = await sbus.create(SBU(id="", name="Loans"))

        users = SQLAlchemyUserProfileRepository(session)

        async def profile(role: UserRole, email: str, sbu_id: Optional[str] = None) -> UserProfile:
            return await users.create(UserProfile(
                id=str(uuid.uuid4()),
                email=email,
                role=role,
                status=UserStatus.ACTIVE,
                full_name=email.split("@")[0].title(),
                sbu_id=sbu_id,
            ))

        world = World(
            cards=cards,
            loans=loans,
            admin=await profile(UserRole.ADMIN, "admin@example.com"),
            manager=await profile(UserRole.MANAGER, "manager@example.com", cards.id),
            agent=await profile(UserRole.AGENT, "agent@example.com", cards.id),
            other_agent=await profile(UserRole.AGENT, "other.agent@example.com", loans.id),
            user=await profile(UserRole.USER, "customer@example.com"),
            other_user=await profile(UserRole.USER, "someone@example.com"),
            loans_manager=await profile(UserRole.MANAGER, "loans.manager@example.com", loans.id),
        )

        await SQLAlchemySLAConfigRepository(session).replace_for_sbu(cards.id, CARDS_SLA_TABLE)
    return world


@pytest.fixture
def make_ticket(database, world):
    """Insert a ticket directly, optionally back-dated."""

    async def _make(
        status: TicketStatus = TicketStatus.NEW,
        age_minutes: float = 0,
        sla_time: int = 30,
        sbu_id: Optional[str] = None,
        created_by: Optional[str] = None,
        assigned_to: Optional[str] = None,
        title: str = "Card declined at POS",
    ) -> Ticket:
        created_at = datetime.now(timezone.utc) - timedelta(minutes=age_minutes)
        async with database.session() as session:
            return await SQLAlchemyTicketRepository(session).create(Ticket(
                id=None,
                title=title,
                description="Customer card declined at merchant terminal.",
                status=status,
                priority=TicketPriority.MEDIUM,
                sbu_id=sbu_id or world.cards.id,
                created_by=created_by or world.user.id,
                assigned_to=assigned_to,
                sla_time=sla_time,
                created_at=created_at,
                updated_at=created_at,
            ))

    return _make


@pytest.fixture
def load_ticket(database):
    async def _load(ticket_id: str) -> Optional[Ticket]:
        async with database.session() as session:
            return await SQLAlchemyTicketRepository(session).get_by_id(ticket_id)

    return _load


@pytest.fixture
def auth():
    """Authorization header for a profile."""
    return bearer


@pytest.fixture
def token():
    """Mint an access token; keyword arguments bend secret, expiry or audience."""
    return make_token
