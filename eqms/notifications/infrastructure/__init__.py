"""
Notifications Infrastructure Layer
==================================

- External: SMTP relay client and circuit breaker
"""

from eqms.notifications.infrastructure.external import CircuitBreaker, SMTPMailer

__all__ = ["CircuitBreaker", "SMTPMailer"]
