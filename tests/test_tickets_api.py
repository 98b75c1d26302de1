"""HTTP tests for the ticket API and the Ticket Update Gateway."""

import uuid

from eqms.config import TicketStatus


async def create_ticket(client, headers, sbu_id, **overrides):
    payload = {
        "title": "Card declined at POS",
        "description": "Customer card declined at merchant terminal since this morning.",
        "priority": "HIGH",
        "sbu_id": sbu_id,
    }
    payload.update(overrides)
    return await client.post("/api/tickets", json=payload, headers=headers)


class TestCreateTicket:
    async def test_stamps_sla_time_from_open_config(self, client, world, auth, load_ticket):
        response = await create_ticket(client, auth(world.user), world.cards.id, card_number="4111********1111")

        assert response.status_code == 201
        ticket = response.json()["ticket"]
        assert ticket["status"] == "new"
        assert ticket["priority"] == "high"
        assert ticket["sla_time"] == 30
        assert ticket["created_by"] == world.user.id
        assert ticket["card_number"] == "4111********1111"
        assert ticket["sbu"]["name"] == "Cards"
        assert ticket["creator"]["email"] == "customer@example.com"

        stored = await load_ticket(ticket["id"])
        assert stored.sla_time == 30

    async def test_sla_time_zero_without_open_config(self, client, world, auth):
        response = await create_ticket(client, auth(world.user), world.loans.id)
        assert response.status_code == 201
        assert response.json()["ticket"]["sla_time"] == 0

    async def test_notifies_sbu_staff(self, client, world, auth, dispatcher, mailer):
        await create_ticket(client, auth(world.user), world.cards.id, title="Statement missing")
        await dispatcher.drain()

        assert len(mailer.sent) == 1
        email = mailer.sent[0]
        assert email.to == ["agent@example.com", "manager@example.com"]
        assert email.subject == "[EQMS] New Ticket Created: Statement missing"
        assert "Statement missing" in email.html

    async def test_unknown_sbu(self, client, world, auth):
        response = await create_ticket(client, auth(world.user), str(uuid.uuid4()))
        assert response.status_code == 404

    async def test_inactive_sbu_rejected(self, client, world, auth):
        await client.delete(f"/api/sbus?id={world.loans.id}", headers=auth(world.admin))
        response = await create_ticket(client, auth(world.user), world.loans.id)
        assert response.status_code == 400

    async def test_missing_fields(self, client, world, auth):
        response = await client.post(
            "/api/tickets", json={"title": "No description", "priority": "low"}, headers=auth(world.user)
        )
        assert response.status_code == 400
        body = response.json()
        assert "description" in body["detail"]
        assert body["correlation_id"] == response.headers["X-Correlation-ID"]


class TestStatusUpdate:
    async def test_escalation_restamps_sla_time(self, client, world, auth, make_ticket, load_ticket):
        ticket = await make_ticket(status=TicketStatus.ESCALATED_TIER1, sla_time=60)

        response = await client.patch(
            "/api/tickets/status",
            json={"ticketId": ticket.id, "status": "escalated_tier2"},
            headers=auth(world.admin),
        )

        assert response.status_code == 200
        assert response.json()["ticket"]["status"] == "escalated_tier2"
        assert response.json()["ticket"]["sla_time"] == 120

        stored = await load_ticket(ticket.id)
        assert stored.status is TicketStatus.ESCALATED_TIER2
        assert stored.sla_time == 120

    async def test_status_is_case_insensitive(self, client, world, auth, make_ticket):
        ticket = await make_ticket()
        response = await client.patch(
            "/api/tickets/status",
            json={"ticketId": ticket.id, "status": "ESCALATED_TIER1"},
            headers=auth(world.manager),
        )
        assert response.status_code == 200
        assert response.json()["ticket"]["sla_time"] == 60

    async def test_unconfigured_status_keeps_sla_time(self, client, world, auth, make_ticket):
        ticket = await make_ticket(sla_time=30)
        response = await client.patch(
            "/api/tickets/status",
            json={"ticketId": ticket.id, "status": "in_progress"},
            headers=auth(world.admin),
        )
        assert response.status_code == 200
        assert response.json()["ticket"]["sla_time"] == 30

    async def test_tiers_cannot_be_skipped(self, client, world, auth, make_ticket):
        ticket = await make_ticket()
        response = await client.patch(
            "/api/tickets/status",
            json={"ticketId": ticket.id, "status": "escalated_tier2"},
            headers=auth(world.admin),
        )
        assert response.status_code == 400
        assert "escalated_tier1" in response.json()["detail"]

    async def test_same_status_rejected(self, client, world, auth, make_ticket):
        ticket = await make_ticket()
        response = await client.patch(
            "/api/tickets/status", json={"ticketId": ticket.id, "status": "new"}, headers=auth(world.admin)
        )
        assert response.status_code == 400

    async def test_unknown_status_rejected(self, client, world, auth, make_ticket):
        ticket = await make_ticket()
        response = await client.patch(
            "/api/tickets/status", json={"ticketId": ticket.id, "status": "on_hold"}, headers=auth(world.admin)
        )
        assert response.status_code == 400

    async def test_resolve_requires_resolution(self, client, world, auth, make_ticket):
        ticket = await make_ticket(status=TicketStatus.IN_PROGRESS)
        response = await client.patch(
            "/api/tickets/status", json={"ticketId": ticket.id, "status": "resolved"}, headers=auth(world.admin)
        )
        assert response.status_code == 400

    async def test_close_is_admin_only(self, client, world, auth, make_ticket):
        ticket = await make_ticket(status=TicketStatus.RESOLVED)
        payload = {"ticketId": ticket.id, "status": "closed"}

        denied = await client.patch("/api/tickets/status", json=payload, headers=auth(world.manager))
        assert denied.status_code == 403

        allowed = await client.patch("/api/tickets/status", json=payload, headers=auth(world.admin))
        assert allowed.status_code == 200
        assert allowed.json()["ticket"]["closed_at"] is not None

    async def test_reopen_is_admin_only_and_restarts_the_clock(self, client, world, auth, make_ticket, load_ticket):
        ticket = await make_ticket(status=TicketStatus.IN_PROGRESS, assigned_to=world.agent.id, sla_time=240)
        admin = auth(world.admin)
        await client.post("/api/tickets/resolve", json={"ticketId": ticket.id, "resolution": "Card reissued"}, headers=admin)
        closed = await client.patch("/api/tickets/status", json={"ticketId": ticket.id, "status": "closed"}, headers=admin)
        assert closed.json()["ticket"]["resolved_at"] is not None
        assert closed.json()["ticket"]["closed_at"] is not None

        payload = {"ticketId": ticket.id, "status": "new"}
        denied = await client.patch("/api/tickets/status", json=payload, headers=auth(world.manager))
        assert denied.status_code == 403

        reopened = await client.patch("/api/tickets/status", json=payload, headers=admin)
        assert reopened.status_code == 200
        body = reopened.json()["ticket"]
        assert body["status"] == "new"
        assert body["sla_time"] == 30
        assert body["resolved_at"] is None
        assert body["closed_at"] is None

        stored = await load_ticket(ticket.id)
        assert stored.status is TicketStatus.NEW
        assert stored.resolved_at is None
        assert stored.closed_at is None

    async def test_resolved_ticket_reopens_to_new(self, client, world, auth, make_ticket):
        ticket = await make_ticket(status=TicketStatus.RESOLVED, sla_time=240)
        payload = {"ticketId": ticket.id, "status": "new"}

        denied = await client.patch("/api/tickets/status", json=payload, headers=auth(world.agent))
        assert denied.status_code == 403

        reopened = await client.patch("/api/tickets/status", json=payload, headers=auth(world.admin))
        assert reopened.status_code == 200
        assert reopened.json()["ticket"]["status"] == "new"
        assert reopened.json()["ticket"]["sla_time"] == 30

    async def test_customer_cannot_change_status(self, client, world, auth, make_ticket):
        ticket = await make_ticket(created_by=world.user.id)
        response = await client.patch(
            "/api/tickets/status",
            json={"ticketId": ticket.id, "status": "escalated_tier1"},
            headers=auth(world.user),
        )
        assert response.status_code == 403

    async def test_missing_ticket(self, client, world, auth):
        response = await client.patch(
            "/api/tickets/status",
            json={"ticketId": str(uuid.uuid4()), "status": "assigned"},
            headers=auth(world.admin),
        )
        assert response.status_code == 404


class TestPriority:
    async def test_agent_not_assigned_is_forbidden(self, client, world, auth, make_ticket):
        ticket = await make_ticket(assigned_to=world.manager.id)
        response = await client.put(
            "/api/tickets/priority", json={"ticketId": ticket.id, "priority": "urgent"}, headers=auth(world.agent)
        )
        assert response.status_code == 403
        assert "correlation_id" in response.json()

    async def test_assigned_agent_may_change_priority(self, client, world, auth, make_ticket, load_ticket):
        ticket = await make_ticket(status=TicketStatus.ASSIGNED, assigned_to=world.agent.id)
        response = await client.put(
            "/api/tickets/priority", json={"ticketId": ticket.id, "priority": "URGENT"}, headers=auth(world.agent)
        )
        assert response.status_code == 200
        assert (await load_ticket(ticket.id)).priority.value == "urgent"

    async def test_priority_change_sends_no_email(self, client, world, auth, make_ticket, dispatcher, mailer):
        ticket = await make_ticket()
        await client.put(
            "/api/tickets/priority", json={"ticketId": ticket.id, "priority": "low"}, headers=auth(world.admin)
        )
        await dispatcher.drain()
        assert mailer.sent == []


class TestAssignResolveEscalate:
    async def test_assign_moves_to_assigned(self, client, world, auth, make_ticket, dispatcher, mailer):
        ticket = await make_ticket(status=TicketStatus.ESCALATED_TIER1, sla_time=60)
        response = await client.post(
            "/api/tickets/assign", json={"ticketId": ticket.id, "assigneeId": world.agent.id}, headers=auth(world.manager)
        )

        assert response.status_code == 200
        body = response.json()["ticket"]
        assert body["status"] == "assigned"
        assert body["assigned_to"] == world.agent.id
        assert body["assignee"]["email"] == "agent@example.com"

        await dispatcher.drain()
        assert [e.to for e in mailer.sent] == [["agent@example.com"]]

    async def test_assignee_must_be_staff(self, client, world, auth, make_ticket):
        ticket = await make_ticket()
        response = await client.post(
            "/api/tickets/assign", json={"ticketId": ticket.id, "assigneeId": world.user.id}, headers=auth(world.admin)
        )
        assert response.status_code == 400

    async def test_closed_ticket_cannot_be_assigned(self, client, world, auth, make_ticket):
        ticket = await make_ticket(status=TicketStatus.CLOSED)
        response = await client.post(
            "/api/tickets/assign", json={"ticketId": ticket.id, "assigneeId": world.agent.id}, headers=auth(world.admin)
        )
        assert response.status_code == 400

    async def test_resolve(self, client, world, auth, make_ticket, dispatcher, mailer):
        ticket = await make_ticket(status=TicketStatus.IN_PROGRESS, assigned_to=world.agent.id)
        response = await client.post(
            "/api/tickets/resolve",
            json={"ticketId": ticket.id, "resolution": "Card reissued"},
            headers=auth(world.agent),
        )

        assert response.status_code == 200
        body = response.json()["ticket"]
        assert body["status"] == "resolved"
        assert body["resolution"] == "Card reissued"
        assert body["resolved_at"] is not None

        await dispatcher.drain()
        assert mailer.sent[0].to == ["customer@example.com"]
        assert "Card reissued" in mailer.sent[0].html

    async def test_blank_resolution_rejected(self, client, world, auth, make_ticket):
        ticket = await make_ticket(status=TicketStatus.IN_PROGRESS)
        response = await client.post(
            "/api/tickets/resolve", json={"ticketId": ticket.id, "resolution": "   "}, headers=auth(world.admin)
        )
        assert response.status_code == 400

    async def test_manual_escalation(self, client, world, auth, make_ticket):
        ticket = await make_ticket(status=TicketStatus.ASSIGNED, assigned_to=world.agent.id)
        response = await client.post("/api/tickets/escalate", json={"ticketId": ticket.id}, headers=auth(world.agent))

        assert response.status_code == 200
        assert response.json()["ticket"]["status"] == "escalated_tier1"
        assert response.json()["ticket"]["sla_time"] == 60

    async def test_no_escalation_above_tier3(self, client, world, auth, make_ticket):
        ticket = await make_ticket(status=TicketStatus.ESCALATED_TIER3)
        response = await client.post("/api/tickets/escalate", json={"ticketId": ticket.id}, headers=auth(world.admin))
        assert response.status_code == 400


class TestGenericUpdateAndDelete:
    async def test_update(self, client, world, auth, make_ticket):
        ticket = await make_ticket()
        response = await client.put(
            f"/api/tickets?id={ticket.id}",
            json={"title": "Card blocked", "priority": "Low", "status": "escalated_tier1"},
            headers=auth(world.admin),
        )

        assert response.status_code == 200
        body = response.json()["ticket"]
        assert body["title"] == "Card blocked"
        assert body["priority"] == "low"
        assert body["status"] == "escalated_tier1"
        assert body["sla_time"] == 60

    async def test_update_requires_a_change(self, client, world, auth, make_ticket):
        ticket = await make_ticket()
        response = await client.put(f"/api/tickets?id={ticket.id}", json={"title": "Only a title"}, headers=auth(world.admin))
        assert response.status_code == 400

    async def test_unchanged_status_is_not_a_transition(self, client, world, auth, make_ticket):
        ticket = await make_ticket()
        response = await client.put(
            f"/api/tickets?id={ticket.id}", json={"status": "new", "priority": "urgent"}, headers=auth(world.admin)
        )
        assert response.status_code == 200
        assert response.json()["ticket"]["status"] == "new"

    async def test_delete_is_admin_only(self, client, world, auth, make_ticket, load_ticket):
        ticket = await make_ticket()

        denied = await client.delete(f"/api/tickets?id={ticket.id}", headers=auth(world.manager))
        assert denied.status_code == 403

        allowed = await client.delete(f"/api/tickets?id={ticket.id}", headers=auth(world.admin))
        assert allowed.status_code == 204
        assert await load_ticket(ticket.id) is None


class TestListTickets:
    async def seed(self, world, make_ticket):
        own = await make_ticket(created_by=world.user.id, title="Card declined")
        assigned = await make_ticket(created_by=world.other_user.id, assigned_to=world.agent.id, title="Statement missing")
        loans = await make_ticket(sbu_id=world.loans.id, created_by=world.other_user.id, title="Printer jammed")
        return own, assigned, loans

    async def ids(self, client, headers, query=""):
        response = await client.get(f"/api/tickets{query}", headers=headers)
        assert response.status_code == 200
        body = response.json()
        return {t["id"] for t in body["tickets"]}, body["pagination"]

    async def test_visibility_by_role(self, client, world, auth, make_ticket):
        own, assigned, loans = await self.seed(world, make_ticket)

        assert (await self.ids(client, auth(world.user)))[0] == {own.id}
        assert (await self.ids(client, auth(world.agent)))[0] == {assigned.id}
        assert (await self.ids(client, auth(world.manager)))[0] == {own.id, assigned.id}
        assert (await self.ids(client, auth(world.admin)))[0] == {own.id, assigned.id, loans.id}

    async def test_manager_cannot_list_other_sbu(self, client, world, auth, make_ticket):
        await self.seed(world, make_ticket)
        ids, pagination = await self.ids(client, auth(world.manager), f"?sbu_id={world.loans.id}")
        assert ids == set()
        assert pagination["total"] == 0

    async def test_filters_and_search(self, client, world, auth, make_ticket):
        own, assigned, loans = await self.seed(world, make_ticket)
        headers = auth(world.admin)

        assert (await self.ids(client, headers, f"?sbu_id={world.loans.id}"))[0] == {loans.id}
        assert (await self.ids(client, headers, "?search=printer"))[0] == {loans.id}
        assert (await self.ids(client, headers, "?status=NEW"))[0] == {own.id, assigned.id, loans.id}
        assert (await self.ids(client, headers, "?status=resolved"))[0] == set()

    async def test_invalid_filter(self, client, world, auth):
        response = await client.get("/api/tickets?status=bogus", headers=auth(world.admin))
        assert response.status_code == 400

    async def test_pagination(self, client, world, auth, make_ticket):
        await self.seed(world, make_ticket)
        headers = auth(world.admin)

        first, pagination = await self.ids(client, headers, "?page=1&pageSize=2")
        second, _ = await self.ids(client, headers, "?page=2&pageSize=2")

        assert pagination == {"page": 1, "pageSize": 2, "total": 3}
        assert len(first) == 2 and len(second) == 1
        assert not first & second


class TestTicketDetail:
    async def test_get_ticket(self, client, world, auth, make_ticket):
        ticket = await make_ticket(created_by=world.user.id)
        response = await client.get(f"/api/tickets/{ticket.id}", headers=auth(world.user))
        assert response.status_code == 200
        assert response.json()["ticket"]["id"] == ticket.id

    async def test_other_users_ticket_is_forbidden(self, client, world, auth, make_ticket):
        ticket = await make_ticket(created_by=world.user.id)
        response = await client.get(f"/api/tickets/{ticket.id}", headers=auth(world.other_user))
        assert response.status_code == 403

    async def test_countdown(self, client, world, auth, make_ticket):
        ticket = await make_ticket(age_minutes=5)
        response = await client.get(f"/api/tickets/{ticket.id}/sla", headers=auth(world.admin))

        assert response.status_code == 200
        countdown = response.json()
        assert countdown["state"] == "counting"
        assert countdown["allotted_seconds"] == 30 * 60
        assert 25 * 60 - 10 <= countdown["remaining_seconds"] <= 25 * 60
        assert countdown["next_status"] == "escalated_tier1"

    async def test_countdown_paused(self, client, world, auth, make_ticket):
        ticket = await make_ticket(status=TicketStatus.ASSIGNED, age_minutes=500)
        response = await client.get(f"/api/tickets/{ticket.id}/sla", headers=auth(world.admin))
        assert response.json()["state"] == "paused"
        assert response.json()["should_escalate"] is False


class TestComments:
    async def test_internal_notes_hidden_from_customers(self, client, world, auth, make_ticket):
        ticket = await make_ticket(created_by=world.user.id, assigned_to=world.agent.id)
        url = f"/api/tickets/{ticket.id}/comments"

        public = await client.post(url, json={"content": "Any update?"}, headers=auth(world.user))
        assert public.status_code == 201
        assert public.json()["comment"]["is_internal"] is False

        internal = await client.post(url, json={"content": "Checking with the issuer", "isInternal": True}, headers=auth(world.agent))
        assert internal.status_code == 201

        as_user = await client.get(url, headers=auth(world.user))
        as_agent = await client.get(url, headers=auth(world.agent))
        assert [c["content"] for c in as_user.json()["comments"]] == ["Any update?"]
        assert len(as_agent.json()["comments"]) == 2
        assert as_agent.json()["comments"][0]["author"]["email"] == "customer@example.com"

    async def test_customer_cannot_add_internal_note(self, client, world, auth, make_ticket):
        ticket = await make_ticket(created_by=world.user.id)
        response = await client.post(
            f"/api/tickets/{ticket.id}/comments", json={"content": "psst", "isInternal": True}, headers=auth(world.user)
        )
        assert response.status_code == 403

    async def test_comment_on_invisible_ticket(self, client, world, auth, make_ticket):
        ticket = await make_ticket(created_by=world.user.id)
        response = await client.post(
            f"/api/tickets/{ticket.id}/comments", json={"content": "hello"}, headers=auth(world.other_user)
        )
        assert response.status_code == 403

    async def test_blank_comment(self, client, world, auth, make_ticket):
        ticket = await make_ticket(created_by=world.user.id)
        response = await client.post(
            f"/api/tickets/{ticket.id}/comments", json={"content": "  "}, headers=auth(world.user)
        )
        assert response.status_code == 400


class TestAnalytics:
    async def test_counts(self, client, world, auth, make_ticket):
        await make_ticket(title="One")
        resolved = await make_ticket(status=TicketStatus.IN_PROGRESS, age_minutes=10)
        await make_ticket(sbu_id=world.loans.id)
        await client.post(
            "/api/tickets/resolve",
            json={"ticketId": resolved.id, "resolution": "Done"},
            headers=auth(world.admin),
        )

        response = await client.get("/api/tickets/analytics", headers=auth(world.admin))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["resolved"] == 1
        assert data["byStatus"]["new"] == 2
        assert data["byStatus"]["closed"] == 0
        assert data["byPriority"]["medium"] == 3
        assert data["bySBU"]["Cards"]["total"] == 2
        assert data["bySBU"]["Cards"]["resolved"] == 1
        assert 590 <= data["bySBU"]["Cards"]["avgResolutionTime"] <= 610
        assert sum(d["count"] for d in data["byDate"]) == 3

    async def test_customers_have_no_analytics(self, client, world, auth):
        response = await client.get("/api/tickets/analytics", headers=auth(world.user))
        assert response.status_code == 403
