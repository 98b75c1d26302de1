"""
SLA Module
==========

Bounded Context for SLA policy and escalation.

Responsibilities:
- Per-SBU SLA policy table (allotted minutes per ticket status)
- Escalation countdown evaluation
- Server-owned escalation sweep (APScheduler)
- Escalation policy defaults with hot-reload via watchdog
"""

__version__ = "1.0.0"
