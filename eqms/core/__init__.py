"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system: the exception taxonomy and the single
authorization policy.
"""

from eqms.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    InvalidTransitionException,
    AuthenticationException,
    AuthorizationException,
    ResourceNotFoundException,
    ConflictException,
    ConfigurationException,
    ExternalServiceException,
    EmailDeliveryException,
)
from eqms.core.policy import Action, Actor, ResourceScope, Rule, authorize, is_allowed, rule_for

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "InvalidTransitionException",
    "AuthenticationException",
    "AuthorizationException",
    "ResourceNotFoundException",
    "ConflictException",
    "ConfigurationException",
    "ExternalServiceException",
    "EmailDeliveryException",
    "Action",
    "Actor",
    "ResourceScope",
    "Rule",
    "authorize",
    "is_allowed",
    "rule_for",
]
