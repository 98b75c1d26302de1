"""
Notifications Module
====================

Bounded Context for transactional e-mail.

Responsibilities:
- Status-keyed HTML templates for ticket events
- Recipient resolution from SBU staff and tier rosters
- Fire-and-forget delivery through an SMTP relay
"""

__version__ = "1.0.0"
