"""
Organization Module
===================

Bounded Context for the organizational partition of the helpdesk.

Responsibilities:
- Strategic Business Units (SBUs) and their lifecycle (soft delete)
- Tier rosters: which agents/managers staff tier 1/2/3 of an SBU
- User profiles: role, status and SBU affiliation of every caller
"""

__version__ = "1.0.0"
