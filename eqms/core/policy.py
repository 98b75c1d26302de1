"""
Authorization Policy
====================

Single policy-evaluation function shared by every entry point.

    authorize(actor, action, scope) -> None | raises AuthorizationException

Rules are declared once in a table keyed by action and role. Each rule says
how much of the resource's ownership the role needs to match:

- ANY:      always allowed
- SAME_SBU: resource belongs to the actor's SBU (managers without an SBU
            are unrestricted)
- ASSIGNEE: resource is assigned to the actor
- INVOLVED: resource is assigned to or created by the actor
- CREATOR:  resource was created by the actor

Roles without a rule for an action are denied.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from eqms.config import UserRole
from eqms.core.exceptions import AuthorizationException


class Action(str, Enum):
    """Operations subject to authorization."""
    VIEW_TICKET = "view_ticket"
    CREATE_TICKET = "create_ticket"
    UPDATE_TICKET = "update_ticket"
    CHANGE_STATUS = "change_status"
    CHANGE_PRIORITY = "change_priority"
    ASSIGN_TICKET = "assign_ticket"
    RESOLVE_TICKET = "resolve_ticket"
    ESCALATE_TICKET = "escalate_ticket"
    CLOSE_TICKET = "close_ticket"
    REOPEN_TICKET = "reopen_ticket"
    DELETE_TICKET = "delete_ticket"
    COMMENT = "comment"
    VIEW_INTERNAL_COMMENTS = "view_internal_comments"
    ADD_INTERNAL_COMMENT = "add_internal_comment"
    VIEW_ANALYTICS = "view_analytics"
    VIEW_SLA_CONFIGS = "view_sla_configs"
    MANAGE_SLA_CONFIGS = "manage_sla_configs"
    VIEW_ALL_TIER_ASSIGNMENTS = "view_all_tier_assignments"
    MANAGE_TIER_ASSIGNMENTS = "manage_tier_assignments"
    MANAGE_SBUS = "manage_sbus"
    VIEW_USERS = "view_users"
    MANAGE_USERS = "manage_users"
    SEND_EMAIL = "send_email"
    RUN_ESCALATION_SWEEP = "run_escalation_sweep"


class Rule(str, Enum):
    ANY = "any"
    SAME_SBU = "same_sbu"
    ASSIGNEE = "assignee"
    INVOLVED = "involved"
    CREATOR = "creator"


@dataclass(frozen=True)
class Actor:
    """The caller of an operation."""
    user_id: Optional[str]
    role: UserRole
    sbu_id: Optional[str] = None
    email: Optional[str] = None
    is_system: bool = False

    @classmethod
    def system(cls) -> "Actor":
        """Actor used by the escalation scheduler."""
        return cls(user_id=None, role=UserRole.ADMIN, is_system=True)


@dataclass(frozen=True)
class ResourceScope:
    """Ownership facts about the resource an action targets."""
    sbu_id: Optional[str] = None
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None

    @classmethod
    def of_ticket(cls, ticket) -> "ResourceScope":
        return cls(
            sbu_id=ticket.sbu_id,
            created_by=ticket.created_by,
            assigned_to=ticket.assigned_to,
        )


_STAFF_MUTATION = {
    UserRole.ADMIN: Rule.ANY,
    UserRole.MANAGER: Rule.SAME_SBU,
    UserRole.AGENT: Rule.ASSIGNEE,
}

_ADMIN_ONLY = {UserRole.ADMIN: Rule.ANY}

_STAFF_ONLY = {
    UserRole.ADMIN: Rule.ANY,
    UserRole.MANAGER: Rule.ANY,
    UserRole.AGENT: Rule.ANY,
}

_EVERYONE = {
    UserRole.ADMIN: Rule.ANY,
    UserRole.MANAGER: Rule.ANY,
    UserRole.AGENT: Rule.ANY,
    UserRole.USER: Rule.ANY,
}

POLICY: Dict[Action, Dict[UserRole, Rule]] = {
    Action.VIEW_TICKET: {
        UserRole.ADMIN: Rule.ANY,
        UserRole.MANAGER: Rule.SAME_SBU,
        UserRole.AGENT: Rule.INVOLVED,
        UserRole.USER: Rule.CREATOR,
    },
    Action.CREATE_TICKET: _EVERYONE,
    Action.UPDATE_TICKET: _STAFF_MUTATION,
    Action.CHANGE_STATUS: _STAFF_MUTATION,
    Action.CHANGE_PRIORITY: _STAFF_MUTATION,
    Action.ASSIGN_TICKET: _STAFF_MUTATION,
    Action.RESOLVE_TICKET: _STAFF_MUTATION,
    Action.ESCALATE_TICKET: _STAFF_MUTATION,
    Action.CLOSE_TICKET: _ADMIN_ONLY,
    Action.REOPEN_TICKET: _ADMIN_ONLY,
    Action.DELETE_TICKET: _ADMIN_ONLY,
    Action.COMMENT: _EVERYONE,
    Action.VIEW_INTERNAL_COMMENTS: _STAFF_ONLY,
    Action.ADD_INTERNAL_COMMENT: _STAFF_ONLY,
    Action.VIEW_ANALYTICS: {
        UserRole.ADMIN: Rule.ANY,
        UserRole.MANAGER: Rule.ANY,
        UserRole.AGENT: Rule.ANY,
    },
    Action.VIEW_SLA_CONFIGS: {UserRole.ADMIN: Rule.ANY, UserRole.MANAGER: Rule.ANY},
    Action.MANAGE_SLA_CONFIGS: _ADMIN_ONLY,
    Action.VIEW_ALL_TIER_ASSIGNMENTS: {UserRole.ADMIN: Rule.ANY, UserRole.MANAGER: Rule.ANY},
    Action.MANAGE_TIER_ASSIGNMENTS: {UserRole.ADMIN: Rule.ANY, UserRole.MANAGER: Rule.ANY},
    Action.MANAGE_SBUS: _ADMIN_ONLY,
    Action.VIEW_USERS: _STAFF_ONLY,
    Action.MANAGE_USERS: _ADMIN_ONLY,
    Action.SEND_EMAIL: _EVERYONE,
    Action.RUN_ESCALATION_SWEEP: _ADMIN_ONLY,
}

# The scheduler may only move tickets up the escalation chain
SYSTEM_ACTIONS = frozenset({Action.VIEW_TICKET, Action.ESCALATE_TICKET})


def _rule_matches(rule: Rule, actor: Actor, scope: Optional[ResourceScope]) -> bool:
    if rule is Rule.ANY:
        return True
    if scope is None:
        # Ownership rules need a resource to compare against
        return False
    if rule is Rule.SAME_SBU:
        return actor.sbu_id is None or actor.sbu_id == scope.sbu_id
    if rule is Rule.ASSIGNEE:
        return actor.user_id is not None and scope.assigned_to == actor.user_id
    if rule is Rule.INVOLVED:
        return actor.user_id is not None and actor.user_id in (scope.assigned_to, scope.created_by)
    if rule is Rule.CREATOR:
        return actor.user_id is not None and scope.created_by == actor.user_id
    raise ValueError(f"Unhandled policy rule: {rule}")


def rule_for(actor: Actor, action: Action) -> Optional[Rule]:
    """
    The rule an actor is held to for an action, or None when denied outright.

    List endpoints turn this into a row filter instead of checking each row.
    """
    if actor.is_system:
        return Rule.ANY if action in SYSTEM_ACTIONS else None
    return POLICY[action].get(actor.role)


def is_allowed(actor: Actor, action: Action, scope: Optional[ResourceScope] = None) -> bool:
    """Evaluate the policy without raising."""
    if actor.is_system:
        return action in SYSTEM_ACTIONS

    rule = POLICY[action].get(actor.role)
    if rule is None:
        return False
    return _rule_matches(rule, actor, scope)


def authorize(actor: Actor, action: Action, scope: Optional[ResourceScope] = None) -> None:
    """
    Raise AuthorizationException unless the actor may perform the action.

    Args:
        actor: Caller identity and role
        action: Operation being attempted
        scope: Ownership of the targeted resource, when there is one
    """
    if not is_allowed(actor, action, scope):
        raise AuthorizationException(
            f"Role '{actor.role.value}' may not perform '{action.value}'",
            {"action": action.value, "role": actor.role.value}
        )
