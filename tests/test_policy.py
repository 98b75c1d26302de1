"""Tests for the authorization policy."""

import pytest

from eqms.config import UserRole
from eqms.core.exceptions import AuthorizationException
from eqms.core.policy import Action, Actor, ResourceScope, Rule, authorize, is_allowed, rule_for

ADMIN = Actor(user_id="a", role=UserRole.ADMIN)
MANAGER = Actor(user_id="m", role=UserRole.MANAGER, sbu_id="cards")
FREE_MANAGER = Actor(user_id="m2", role=UserRole.MANAGER)
AGENT = Actor(user_id="ag", role=UserRole.AGENT, sbu_id="cards")
USER = Actor(user_id="u", role=UserRole.USER)

CARDS_TICKET = ResourceScope(sbu_id="cards", created_by="u", assigned_to="ag")
LOANS_TICKET = ResourceScope(sbu_id="loans", created_by="x", assigned_to="y")


class TestViewTicket:
    def test_admin_sees_everything(self):
        assert is_allowed(ADMIN, Action.VIEW_TICKET, LOANS_TICKET)

    def test_manager_limited_to_own_sbu(self):
        assert is_allowed(MANAGER, Action.VIEW_TICKET, CARDS_TICKET)
        assert not is_allowed(MANAGER, Action.VIEW_TICKET, LOANS_TICKET)

    def test_manager_without_sbu_is_unrestricted(self):
        assert is_allowed(FREE_MANAGER, Action.VIEW_TICKET, LOANS_TICKET)

    def test_agent_sees_assigned_or_created(self):
        assert is_allowed(AGENT, Action.VIEW_TICKET, CARDS_TICKET)
        assert is_allowed(AGENT, Action.VIEW_TICKET, ResourceScope(sbu_id="loans", created_by="ag"))
        assert not is_allowed(AGENT, Action.VIEW_TICKET, LOANS_TICKET)

    def test_user_sees_own_tickets(self):
        assert is_allowed(USER, Action.VIEW_TICKET, CARDS_TICKET)
        assert not is_allowed(USER, Action.VIEW_TICKET, LOANS_TICKET)


class TestMutations:
    @pytest.mark.parametrize("action", [
        Action.UPDATE_TICKET, Action.CHANGE_STATUS, Action.CHANGE_PRIORITY,
        Action.ASSIGN_TICKET, Action.RESOLVE_TICKET, Action.ESCALATE_TICKET,
    ])
    def test_agent_only_on_assigned_tickets(self, action):
        assert is_allowed(AGENT, action, CARDS_TICKET)
        assert not is_allowed(AGENT, action, ResourceScope(sbu_id="cards", assigned_to="someone-else"))

    @pytest.mark.parametrize("action", [Action.CHANGE_STATUS, Action.CHANGE_PRIORITY])
    def test_user_may_not_mutate(self, action):
        assert not is_allowed(USER, action, CARDS_TICKET)

    @pytest.mark.parametrize("action", [Action.CLOSE_TICKET, Action.REOPEN_TICKET, Action.DELETE_TICKET])
    def test_admin_only_actions(self, action):
        assert is_allowed(ADMIN, action, CARDS_TICKET)
        assert not is_allowed(MANAGER, action, CARDS_TICKET)
        assert not is_allowed(AGENT, action, CARDS_TICKET)

    def test_ownership_rule_needs_a_resource(self):
        assert not is_allowed(AGENT, Action.CHANGE_PRIORITY)


class TestAdministration:
    def test_sla_configs(self):
        assert is_allowed(MANAGER, Action.VIEW_SLA_CONFIGS)
        assert not is_allowed(AGENT, Action.VIEW_SLA_CONFIGS)
        assert is_allowed(ADMIN, Action.MANAGE_SLA_CONFIGS)
        assert not is_allowed(MANAGER, Action.MANAGE_SLA_CONFIGS)

    def test_tier_assignments(self):
        assert is_allowed(MANAGER, Action.MANAGE_TIER_ASSIGNMENTS)
        assert not is_allowed(AGENT, Action.MANAGE_TIER_ASSIGNMENTS)

    def test_internal_comments_are_staff_only(self):
        assert is_allowed(AGENT, Action.VIEW_INTERNAL_COMMENTS)
        assert not is_allowed(USER, Action.VIEW_INTERNAL_COMMENTS)

    def test_authorize_raises(self):
        with pytest.raises(AuthorizationException) as exc:
            authorize(USER, Action.MANAGE_SBUS)
        assert exc.value.status_code == 403


class TestSystemActor:
    def test_may_only_escalate(self):
        system = Actor.system()
        assert is_allowed(system, Action.ESCALATE_TICKET, LOANS_TICKET)
        assert not is_allowed(system, Action.CLOSE_TICKET, LOANS_TICKET)
        assert not is_allowed(system, Action.DELETE_TICKET, LOANS_TICKET)


def test_rule_for_maps_roles_to_row_filters():
    assert rule_for(ADMIN, Action.VIEW_TICKET) is Rule.ANY
    assert rule_for(MANAGER, Action.VIEW_TICKET) is Rule.SAME_SBU
    assert rule_for(AGENT, Action.VIEW_TICKET) is Rule.INVOLVED
    assert rule_for(USER, Action.VIEW_TICKET) is Rule.CREATOR
    assert rule_for(USER, Action.VIEW_ANALYTICS) is None
