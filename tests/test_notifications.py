"""Ticket e-mail templates, recipient resolution and the ad hoc e-mail endpoint."""

from datetime import datetime, timezone

import pytest

from eqms.config import TicketPriority, TicketStatus, Tier
from eqms.core.exceptions import EmailDeliveryException
from eqms.dependencies import build_ticket_notifier
from eqms.notifications.application.services import EmailDispatcher, IMailer
from eqms.notifications.domain import OutgoingEmail, default_subject, render_ticket_email
from eqms.organization.infrastructure.repositories import SQLAlchemyTierAssignmentRepository
from eqms.tickets.domain import Ticket


class TestTemplates:
    @pytest.mark.parametrize("status,title", [
        ("new", "New Ticket Created"),
        ("escalated_tier2", "Ticket Escalated"),
        ("ESCALATED_TIER3", "Ticket Escalated"),
        ("resolved", "Ticket Resolved"),
        ("something_else", "Ticket Update"),
        (None, "Ticket Update"),
    ])
    def test_template_by_status(self, status, title):
        assert f">{title}</h2>" in render_ticket_email(status, "T-1")

    def test_body_escapes_user_text(self):
        html = render_ticket_email("resolved", "T-1", "<b>Card</b>", "Reissued & sent")
        assert "&lt;b&gt;Card&lt;/b&gt;" in html
        assert "Reissued &amp; sent" in html

    def test_subject(self):
        assert default_subject(TicketStatus.ASSIGNED, "Card declined") == "[EQMS] Ticket Assigned: Card declined"


def ticket(world, status, assigned_to=None):
    now = datetime.now(timezone.utc)
    return Ticket(
        id="6f1c2a9e-3b7d-4e21-9a51-0c2f7d8e9b10",
        title="Card declined",
        description="Declined at POS",
        status=status,
        priority=TicketPriority.HIGH,
        sbu_id=world.cards.id,
        created_by=world.user.id,
        assigned_to=assigned_to,
        sla_time=30,
        created_at=now,
        updated_at=now,
    )


class TestRecipients:
    async def recipients(self, app, database, world, status, assigned_to=None):
        async with database.session() as session:
            notifier = build_ticket_notifier(session, app.state)
            return await notifier.recipients_for(ticket(world, status, assigned_to), status)

    async def test_new_goes_to_sbu_staff(self, app, database, world):
        assert await self.recipients(app, database, world, TicketStatus.NEW) == [
            "agent@example.com", "manager@example.com"
        ]

    async def test_assigned_goes_to_assignee(self, app, database, world):
        assert await self.recipients(app, database, world, TicketStatus.ASSIGNED, world.agent.id) == [
            "agent@example.com"
        ]

    async def test_resolved_goes_to_creator(self, app, database, world):
        assert await self.recipients(app, database, world, TicketStatus.RESOLVED) == ["customer@example.com"]

    async def test_escalation_goes_to_tier_roster(self, app, database, world):
        async with database.session() as session:
            await SQLAlchemyTierAssignmentRepository(session).assign(world.other_agent.id, world.cards.id, Tier.TIER2)

        assert await self.recipients(app, database, world, TicketStatus.ESCALATED_TIER2) == [
            "other.agent@example.com"
        ]

    async def test_empty_tier_falls_back_to_staff(self, app, database, world):
        # Rostered staff count as SBU staff too
        async with database.session() as session:
            await SQLAlchemyTierAssignmentRepository(session).assign(world.other_agent.id, world.cards.id, Tier.TIER2)

        assert await self.recipients(app, database, world, TicketStatus.ESCALATED_TIER1) == [
            "agent@example.com", "manager@example.com", "other.agent@example.com"
        ]


class FailingMailer(IMailer):
    async def send(self, email: OutgoingEmail) -> None:
        raise EmailDeliveryException("relay refused")


async def test_delivery_failure_is_contained():
    dispatcher = EmailDispatcher(FailingMailer())
    task = dispatcher.dispatch(OutgoingEmail(to=["a@example.com"], subject="s", html="<p/>"))

    await dispatcher.drain()

    assert task.done() and task.exception() is None
    assert dispatcher.pending == 0


class TestEmailEndpoint:
    async def test_queues_rendered_email(self, client, world, auth, dispatcher, mailer):
        response = await client.post(
            "/api/email",
            json={
                "to": "customer@example.com",
                "subject": "Your ticket was resolved",
                "ticketId": "T-42",
                "status": "resolved",
            },
            headers=auth(world.agent),
        )

        assert response.status_code == 202
        assert response.json() == {"success": True, "recipients": 1}

        await dispatcher.drain()
        email = mailer.sent[0]
        assert email.to == ["customer@example.com"]
        assert email.subject == "Your ticket was resolved"
        assert "Ticket Resolved" in email.html
        assert "T-42" in email.html

    async def test_invalid_recipient(self, client, world, auth):
        response = await client.post(
            "/api/email",
            json={"to": "not-an-address", "subject": "Hi", "ticketId": "T-42"},
            headers=auth(world.agent),
        )
        assert response.status_code == 400

    async def test_requires_authentication(self, client):
        response = await client.post(
            "/api/email", json={"to": "customer@example.com", "subject": "Hi", "ticketId": "T-42"}
        )
        assert response.status_code == 401
