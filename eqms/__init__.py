"""
Escalated Query Management System
=================================

Helpdesk service where tickets raised against a business unit (SBU) are
assigned to agents, escalate through tiers under SLA timers and are
resolved or closed.

Bounded contexts:
- tickets: ticket lifecycle, status state machine, update gateway
- sla: SLA policy table, escalation countdown and scheduler
- organization: SBUs, tier assignments, user profiles
- notifications: transactional e-mail
"""

__version__ = "1.0.0"
