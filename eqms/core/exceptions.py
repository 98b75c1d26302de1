"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. The HTTP layer maps each class
to a status code once, in shared.api.middleware.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""

    status_code = 400


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(DomainException):
    """Exception for validation errors."""


class InvalidTransitionException(ValidationException):
    """Raised when a status change is not permitted by the state machine."""

    def __init__(self, current: str, target: str, reason: Optional[str] = None):
        self.current = current
        self.target = target
        message = f"Cannot move ticket from '{current}' to '{target}'"
        if reason:
            message += f": {reason}"
        super().__init__(message, {"current": current, "target": target})


class AuthenticationException(ApplicationException):
    """Missing, malformed or expired credentials."""

    status_code = 401


class AuthorizationException(ApplicationException):
    """The caller is authenticated but not allowed to perform the action."""

    status_code = 403


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    status_code = 404

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConflictException(ApplicationException):
    """Exception when a write would violate a uniqueness rule."""

    status_code = 409


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class EmailDeliveryException(ExternalServiceException):
    """Exception for SMTP relay failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("SMTP Relay", message, details)
