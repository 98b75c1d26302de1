"""
Notification External Service Integrations
===========================================

SMTP relay client with a circuit breaker.

Delivery is attempted once per message; there are no retries.
"""

import time
from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from eqms.config import Settings
from eqms.core.exceptions import EmailDeliveryException
from eqms.notifications.application.services import IMailer
from eqms.notifications.domain import OutgoingEmail
from eqms.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState:
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            elapsed = time.monotonic() - self._last_failure_time
            if elapsed >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class SMTPMailer(IMailer):
    """
    aiosmtplib client for the SMTP relay.

    Opens one connection per message. When no relay host is configured or
    e-mail is disabled, messages are logged and dropped.
    """

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        from_address: str = "eqms@localhost",
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = False,
        start_tls: bool = True,
        timeout: float = 10.0,
        enabled: bool = True,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        self.host = host
        self.port = port
        self.from_address = from_address
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._start_tls = start_tls
        self._timeout = timeout
        self.enabled = enabled
        self._circuit_breaker = circuit_breaker or CircuitBreaker(failure_threshold=5, recovery_timeout=60)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SMTPMailer":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_address=settings.smtp_from_address,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            start_tls=settings.smtp_start_tls,
            timeout=settings.smtp_timeout_seconds,
            enabled=settings.email_enabled,
        )

    def _build_message(self, email: OutgoingEmail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = ", ".join(email.to)
        message["Subject"] = email.subject
        for name, value in email.headers.items():
            message[name] = value
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(email.html, subtype="html")
        return message

    async def send(self, email: OutgoingEmail) -> None:
        """
        Send one message.

        Raises:
            EmailDeliveryException: relay rejected the message, was
                unreachable, or the circuit is open
        """
        if not self.enabled or not self.host:
            logger.debug(
                "SMTP relay not configured, skipping e-mail",
                extra={"ticket_id": email.ticket_id, "recipients": len(email.to)}
            )
            return

        if not self._circuit_breaker.allow_request():
            raise EmailDeliveryException(
                "circuit open, message not sent",
                {"ticket_id": email.ticket_id}
            )

        try:
            await aiosmtplib.send(
                self._build_message(email),
                hostname=self.host,
                port=self.port,
                username=self._username,
                password=self._password,
                use_tls=self._use_tls,
                start_tls=self._start_tls and not self._use_tls,
                timeout=self._timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            self._circuit_breaker.record_failure()
            raise EmailDeliveryException(str(e), {"ticket_id": email.ticket_id}) from e

        self._circuit_breaker.record_success()
