"""
SLA Interfaces Layer
====================

Controllers for the SLA policy table and the escalation sweep.
"""

from eqms.sla.interfaces.controllers import escalation_router, sla_router

__all__ = ["sla_router", "escalation_router"]
